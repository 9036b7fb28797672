"""
onboarding/services/email_service.py — Outgoing email over SMTP (PEC gateway).
"""

from __future__ import annotations

import logging
import mimetypes
from dataclasses import dataclass, field
from email.message import EmailMessage
from pathlib import Path

import aiosmtplib

from onboarding.exceptions import EmailDeliveryError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Attachment:
    filename: str
    path: Path


@dataclass
class Message:
    to: str
    subject: str
    html: str
    text: str
    attachments: list[Attachment] = field(default_factory=list)


class EmailService:
    """Builds MIME messages and hands them to the SMTP server."""

    def __init__(
        self,
        host: str,
        port: int,
        sender: str,
        username: str = "",
        password: str = "",
        use_tls: bool = False,
        start_tls: bool = True,
        timeout: float = 30.0,
    ) -> None:
        self._host = host
        self._port = port
        self._sender = sender
        self._username = username or None
        self._password = password or None
        self._use_tls = use_tls
        self._start_tls = start_tls and not use_tls
        self._timeout = timeout

    def build(self, message: Message) -> EmailMessage:
        """MIME message with a text part, an HTML alternative and the attachments."""
        mime = EmailMessage()
        mime["From"] = self._sender
        mime["To"] = message.to
        mime["Subject"] = message.subject
        mime.set_content(message.text)
        mime.add_alternative(message.html, subtype="html")
        for attachment in message.attachments:
            content_type, _ = mimetypes.guess_type(attachment.filename)
            maintype, subtype = (content_type or "application/octet-stream").split("/", 1)
            mime.add_attachment(
                attachment.path.read_bytes(),
                maintype=maintype,
                subtype=subtype,
                filename=attachment.filename,
            )
        return mime

    async def send(self, message: Message) -> None:
        try:
            mime = self.build(message)
            await aiosmtplib.send(
                mime,
                hostname=self._host,
                port=self._port,
                username=self._username,
                password=self._password,
                use_tls=self._use_tls,
                start_tls=self._start_tls,
                timeout=self._timeout,
            )
        except (aiosmtplib.SMTPException, OSError) as exc:
            raise EmailDeliveryError(
                f"Could not send email to {message.to}",
                details={"to": message.to},
            ) from exc
        logger.info(
            "Email sent to %s with %d attachment(s)", message.to, len(message.attachments)
        )
