"""PDF text extraction via pypdf — one string per page, in page order."""

from __future__ import annotations

from io import BytesIO

import pypdf
from pypdf.errors import PyPdfError

from pdfchat.errors import DocumentParseError


class PdfExtractor:
    """Extract per-page text from raw PDF bytes.

    Encrypted documents are opened with an empty password when the owner
    allows it; otherwise extraction fails with ``DocumentParseError``.
    Pages that yield no text (scanned images, etc.) come back as "".
    """

    def extract_pages(self, data: bytes) -> list[str]:
        """Return the text of every page of the PDF in *data*.

        Raises:
            DocumentParseError: If the bytes are not a readable PDF or the
                document is encrypted.
        """
        try:
            reader = pypdf.PdfReader(BytesIO(data))
            if reader.is_encrypted and not reader.decrypt(""):
                raise DocumentParseError("PDF is encrypted and requires a password")
            return [page.extract_text() or "" for page in reader.pages]
        except (PyPdfError, ValueError, KeyError, OSError) as exc:
            raise DocumentParseError(f"Cannot read PDF: {exc}") from exc

    @staticmethod
    def join_pages(pages: list[str]) -> str:
        """Concatenate page texts in order, separated by a blank line.

        Pages with no text are skipped.
        """
        parts = [p.strip() for p in pages if p and p.strip()]
        return "\n\n".join(parts)
