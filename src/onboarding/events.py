"""
onboarding/events.py — NATS event publisher.

Publishes domain events of the onboarding service:
    • ``onboarding.organization.registration_requested`` — a delegate created
      the request pair of a new organization
    • ``onboarding.requests.submitted`` — requests were sent to the
      administration PEC and moved to SUBMITTED

Graceful degradation: when NATS is unreachable the event is skipped with a
warning and the business flow goes on.
"""

from __future__ import annotations

import json
import logging
from typing import Any

import nats
from nats.aio.client import Client as NATSClient

from onboarding.config import get_settings

logger = logging.getLogger(__name__)

# ── Singleton NATS connection ─────────────────────────────────────────────

_nc: NATSClient | None = None
_enabled = True


def disable() -> None:
    """Turns publishing off (memory-store mode and tests)."""
    global _enabled
    _enabled = False


async def connect() -> NATSClient | None:
    """Connects to NATS unless already connected."""
    global _nc
    if not _enabled:
        return None
    if _nc is not None and _nc.is_connected:
        return _nc
    settings = get_settings()
    try:
        _nc = await nats.connect(settings.nats_url, max_reconnect_attempts=1)
        logger.info("NATS publisher connected: %s", settings.nats_url)
        return _nc
    except Exception as exc:
        logger.warning("NATS connect failed (events will be skipped): %s", exc)
        _nc = None
        return None


async def disconnect() -> None:
    """Closes the NATS connection."""
    global _nc
    if _nc and _nc.is_connected:
        await _nc.drain()
        logger.info("NATS publisher disconnected")
    _nc = None


# ── Publishing ───────────────────────────────────────────────────────────

async def publish(subject: str, data: dict[str, Any]) -> None:
    """
    Publishes a JSON event.

    Args:
        subject: Message subject (e.g. ``onboarding.requests.submitted``).
        data: Payload, serialized as JSON.
    """
    nc = await connect()
    if nc is None:
        logger.debug("NATS unavailable — skipping event %s", subject)
        return
    try:
        payload = json.dumps(data, default=str).encode("utf-8")
        await nc.publish(subject, payload)
        logger.info("NATS event published: %s", subject)
    except Exception as exc:
        logger.warning("NATS publish failed for %s: %s", subject, exc)


async def emit_registration_requested(request_ids: list[int], ipa_code: str, requester: str) -> None:
    """Event: request pair created for a new organization."""
    await publish("onboarding.organization.registration_requested", {
        "event": "organization.registration_requested",
        "request_ids": request_ids,
        "ipa_code": ipa_code,
        "requester": requester,
    })


async def emit_requests_submitted(request_ids: list[int], pec: str, requester: str) -> None:
    """Event: requests sent to the administration and marked SUBMITTED."""
    await publish("onboarding.requests.submitted", {
        "event": "requests.submitted",
        "request_ids": request_ids,
        "pec": pec,
        "requester": requester,
    })
