"""
Positioned text extraction.

Pulls every non-blank text span out of a document as a TextFragment in
page-space coordinates (origin bottom-left, y at the baseline).
"""

import fitz

from .errors import DocumentReadError
from .locator import build_full_text
from .models import TextFragment


def open_document(data: bytes, name: str = "document") -> fitz.Document:
    """
    Open PDF bytes for reading.

    Raises:
        DocumentReadError: If the bytes are not a readable, unlocked PDF with pages
    """
    try:
        doc = fitz.open(stream=data, filetype="pdf")
    except Exception as e:
        raise DocumentReadError(f"Could not open {name}: {e}") from e

    if doc.needs_pass:
        doc.close()
        raise DocumentReadError(f"{name} is password-protected")
    if len(doc) == 0:
        doc.close()
        raise DocumentReadError(f"{name} has no pages")
    return doc


def extract_page_fragments(page: fitz.Page, page_num: int) -> list[TextFragment]:
    """
    Extract the text fragments of one page.

    Args:
        page: PyMuPDF page object
        page_num: Page number (1-indexed)

    Returns:
        List of TextFragment objects in content order
    """
    fragments = []
    page_height = page.rect.height
    text_dict = page.get_text("dict", flags=fitz.TEXT_PRESERVE_WHITESPACE)

    for block in text_dict.get("blocks", []):
        if block.get("type") != 0:  # Text block
            continue

        for line in block.get("lines", []):
            for span in line.get("spans", []):
                text = span.get("text", "")
                if not text.strip():
                    continue

                bbox = span.get("bbox")
                origin = span.get("origin")
                if bbox is None or origin is None:
                    continue

                fragments.append(TextFragment(
                    text=text,
                    page=page_num,
                    x=origin[0],
                    y=page_height - origin[1],
                    width=bbox[2] - bbox[0],
                    height=span.get("size", bbox[3] - bbox[1]),
                ))

    return fragments


def extract_fragments(doc: fitz.Document) -> list[TextFragment]:
    """Extract fragments from every page, in page order."""
    fragments = []
    for page_index in range(len(doc)):
        fragments.extend(extract_page_fragments(doc[page_index], page_index + 1))
    return fragments


def full_text(fragments: list[TextFragment]) -> str:
    """The text handed to the classifier; same joining as the locator."""
    text, _ = build_full_text(fragments)
    return text
