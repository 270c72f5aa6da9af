"""Fetch a staged PDF and turn it into plain text."""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional

import cloudinary.utils
import fitz
import httpx

from scriptforge.errors import FetchError, ParseError
from scriptforge.models.document import ExtractedText

logger = logging.getLogger(__name__)

USER_AGENT = "scriptforge/0.1"


def normalize_block_text(text: str) -> str:
    parts = [line.strip() for line in text.splitlines() if line.strip()]
    return " ".join(parts)


def iter_page_blocks(page: fitz.Page) -> Iterable[str]:
    """Yield cleaned text blocks from a PDF page in reading order."""
    blocks = page.get_text("blocks")
    for block in sorted(blocks, key=lambda b: (b[1], b[0])):
        text = normalize_block_text(block[4])
        if text:
            yield text


def extract_pdf_text(data: bytes) -> tuple[str, int]:
    """Return ``(text, page_count)`` for a PDF held in memory.

    Pages are separated by a blank line, blocks within a page by a newline.
    Raises ParseError when the bytes are not a readable PDF or carry no text.
    """
    try:
        doc = fitz.open(stream=data, filetype="pdf")
    except (RuntimeError, ValueError) as exc:
        raise ParseError(f"Could not open PDF: {exc}") from exc

    try:
        # PyMuPDF sniffs content and will happily open HTML, XML or SVG.
        if not doc.is_pdf:
            raise ParseError("Document is not a PDF")
        if doc.needs_pass:
            raise ParseError("PDF is password protected")
        pages: List[str] = []
        for page_index in range(doc.page_count):
            page_text = "\n".join(iter_page_blocks(doc[page_index]))
            if page_text:
                pages.append(page_text)
        page_count = doc.page_count
    except (RuntimeError, ValueError) as exc:
        raise ParseError(f"Could not read PDF content: {exc}") from exc
    finally:
        doc.close()

    text = "\n\n".join(pages).strip()
    if not text:
        raise ParseError("PDF contains no extractable text")
    return text, page_count


class PdfTextExtractor:
    """Re-fetches staged bytes over HTTP and extracts their text."""

    def __init__(
        self,
        cloud_name: Optional[str] = None,
        resource_type: str = "image",
        timeout: float = 30.0,
        http_client: Optional[httpx.Client] = None,
    ) -> None:
        self.cloud_name = cloud_name
        self.resource_type = resource_type
        self.client = http_client or httpx.Client(
            timeout=timeout,
            follow_redirects=True,
            headers={"User-Agent": USER_AGENT},
        )

    def read_url(self, locator: str) -> str:
        if locator.startswith(("http://", "https://")):
            return locator
        url, _ = cloudinary.utils.cloudinary_url(
            locator,
            resource_type=self.resource_type,
            format="pdf",
            secure=True,
            cloud_name=self.cloud_name,
        )
        return url

    def fetch(self, locator: str) -> bytes:
        url = self.read_url(locator)
        try:
            response = self.client.get(url)
        except httpx.HTTPError as exc:
            logger.error("Fetching %s failed: %s", url, exc)
            raise FetchError(f"Failed to fetch document: {exc}") from exc
        if not response.is_success:
            logger.error("Fetching %s returned HTTP %s", url, response.status_code)
            raise FetchError(
                f"Failed to fetch document: HTTP {response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
            )
        return response.content

    def extract(self, locator: str) -> ExtractedText:
        data = self.fetch(locator)
        text, page_count = extract_pdf_text(data)
        logger.debug("Extracted %s characters from %s pages of %s", len(text), page_count, locator)
        return ExtractedText(locator=locator, text=text, page_count=page_count)

    def close(self) -> None:
        self.client.close()
