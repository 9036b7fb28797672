"""
onboarding/services/document_service.py — Onboarding documents.

Documents live on the local filesystem, keyed by request id:

    <documents_dir>/unsigned/<id>.pdf   written right after registration
    <documents_dir>/signed/<id>.pdf     written when the request is submitted
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import logging
from pathlib import Path

from reportlab.lib.pagesizes import A4
from reportlab.lib.units import cm
from reportlab.lib.utils import simpleSplit
from reportlab.pdfgen import canvas

from onboarding.adapters.signing_client import SigningClient
from onboarding.exceptions import DocumentGenerationError, DocumentStorageError, SigningError

logger = logging.getLogger(__name__)

_FONT = "Helvetica"
_FONT_SIZE = 12
_LINE_HEIGHT = 16
_MARGIN = 2 * cm


def _render_pdf(content: str, document_path: Path) -> None:
    """Writes ``content`` as wrapped plain text into a single-page PDF."""
    width, height = A4
    pdf = canvas.Canvas(str(document_path), pagesize=A4)
    pdf.setFont(_FONT, _FONT_SIZE)
    y = height - _MARGIN
    for paragraph in content.splitlines() or [""]:
        for line in simpleSplit(paragraph, _FONT, _FONT_SIZE, width - 2 * _MARGIN) or [""]:
            if y < _MARGIN:
                pdf.showPage()
                pdf.setFont(_FONT, _FONT_SIZE)
                y = height - _MARGIN
            pdf.drawString(_MARGIN, y, line)
            y -= _LINE_HEIGHT
    pdf.save()


class DocumentService:
    """Generates, signs and locates onboarding documents."""

    def __init__(self, documents_dir: Path, signing_client: SigningClient) -> None:
        self._documents_dir = Path(documents_dir)
        self._signing_client = signing_client

    @property
    def unsigned_dir(self) -> Path:
        return self._documents_dir / "unsigned"

    @property
    def signed_dir(self) -> Path:
        return self._documents_dir / "signed"

    def unsigned_path(self, request_id: int) -> Path:
        return self.unsigned_dir / f"{request_id}.pdf"

    def signed_path(self, request_id: int) -> Path:
        return self.signed_dir / f"{request_id}.pdf"

    # ── Generation ───────────────────────────────────────────────────────

    async def generate_document(self, content: str, document_path: Path) -> Path:
        """Renders ``content`` into a PDF at ``document_path``."""
        try:
            document_path.parent.mkdir(parents=True, exist_ok=True)
            await asyncio.to_thread(_render_pdf, content, document_path)
        except Exception as exc:
            raise DocumentGenerationError(
                f"Could not generate document {document_path.name}",
                details={"path": str(document_path)},
            ) from exc
        logger.info("Generated document %s", document_path)
        return document_path

    # ── Signing ──────────────────────────────────────────────────────────

    async def sign_document(self, content_base64: str) -> str:
        """Signs base64 content through the remote signing service."""
        return await self._signing_client.sign(content_base64)

    async def create_signed_document(self, request_id: int) -> Path:
        """
        Signs the unsigned document of a request and stores the result.

        Returns the path of the signed document.
        """
        unsigned = self.unsigned_path(request_id)
        signed = self.signed_path(request_id)
        try:
            self.signed_dir.mkdir(parents=True, exist_ok=True)
            unsigned_content = base64.b64encode(unsigned.read_bytes()).decode("ascii")
        except OSError as exc:
            raise DocumentStorageError(
                "An error occurred while reading unsigned document file",
                details={"path": str(unsigned)},
            ) from exc

        signed_content = await self.sign_document(unsigned_content)

        try:
            signed_bytes = base64.b64decode(signed_content, validate=True)
        except (binascii.Error, ValueError, TypeError) as exc:
            raise SigningError("Signing service returned invalid base64 content") from exc
        try:
            signed.write_bytes(signed_bytes)
        except OSError as exc:
            raise DocumentStorageError(
                "An error occurred while saving signed document file",
                details={"path": str(signed)},
            ) from exc
        return signed

    def discard(self, path: Path) -> None:
        """Best-effort removal of a document; failures are only logged."""
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            logger.warning("Could not remove document %s: %s", path, exc)

    # ── Retrieval ────────────────────────────────────────────────────────

    def find_unsigned(self, file_name: str) -> Path | None:
        """Path of an unsigned document if it exists inside the unsigned folder."""
        base = self.unsigned_dir.resolve()
        candidate = (base / file_name).resolve()
        if candidate.parent != base or not candidate.is_file():
            return None
        return candidate
