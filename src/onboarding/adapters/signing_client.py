"""
onboarding/adapters/signing_client.py — Remote document signing service client.

The service receives a PDF as base64 and answers with the signed PDF, again
as base64::

    POST {signing_service_url}
    {"document": "<base64>"}        →   {"signed_document": "<base64>"}
"""

from __future__ import annotations

import logging

import httpx

from onboarding.exceptions import SigningError

logger = logging.getLogger(__name__)


class SigningClient:
    """HTTP client of the signing service."""

    def __init__(
        self,
        url: str,
        username: str = "",
        password: str = "",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._url = url
        self._auth = (username, password) if username else None
        self._timeout = timeout
        self._transport = transport

    async def sign(self, content_base64: str) -> str:
        """Returns the signed document, base64 encoded."""
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, auth=self._auth, transport=self._transport
            ) as client:
                response = await client.post(self._url, json={"document": content_base64})
                response.raise_for_status()
                body = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise SigningError(f"Signing service call failed: {exc}") from exc
        if not isinstance(body, dict):
            raise SigningError("Signing service returned an unexpected body")
        signed = body.get("signed_document")
        if not isinstance(signed, str) or not signed:
            raise SigningError("Signing service returned an empty document")
        logger.info("Document signed by %s", self._url)
        return signed
