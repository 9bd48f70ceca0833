"""Shared fixtures: small PDFs built in memory with PyMuPDF."""

import fitz
import pytest

from pdf_sanitizer.models import SensitiveSpan, TextFragment

PAGE_WIDTH = 612
PAGE_HEIGHT = 792


def make_pdf(pages, width=PAGE_WIDTH, height=PAGE_HEIGHT, fontsize=12):
    """
    Build a PDF where each page is a list of (x, baseline_y, text) lines.

    baseline_y is measured from the top of the page, as PyMuPDF draws it.
    """
    doc = fitz.open()
    for lines in pages:
        page = doc.new_page(width=width, height=height)
        for x, y, text in lines:
            page.insert_text((x, y), text, fontsize=fontsize)
    data = doc.tobytes()
    doc.close()
    return data


def page_texts(pdf_bytes):
    doc = fitz.open(stream=pdf_bytes, filetype="pdf")
    try:
        return [page.get_text("text").strip() for page in doc]
    finally:
        doc.close()


def page_sizes(pdf_bytes):
    doc = fitz.open(stream=pdf_bytes, filetype="pdf")
    try:
        return [(page.rect.width, page.rect.height) for page in doc]
    finally:
        doc.close()


def frag(text, x, y=700.0, width=None, height=12.0, page=1):
    return TextFragment(
        text=text,
        page=page,
        x=x,
        y=y,
        width=width if width is not None else 6.0 * len(text),
        height=height,
    )


def spans_of(*pairs):
    """Build spans from (category, literal) pairs."""
    return [SensitiveSpan(category=c, literal=t) for c, t in pairs]


def fixed_classifier(*pairs):
    """A classifier that ignores its input and returns fixed spans."""
    spans = spans_of(*pairs)

    def classify(text):
        return list(spans)

    return classify


@pytest.fixture
def contract_pdf():
    """One page naming a person and a company on separate lines."""
    return make_pdf([[
        (72, 100, "Agreement between John Smith and Acme Corp"),
        (72, 130, "Signed at 12 Main Street"),
    ]])


@pytest.fixture
def six_page_pdf():
    """Six pages; pages 2 and 5 name John Smith, the rest do not."""
    pages = []
    for n in range(1, 7):
        lines = [(72, 100, f"Page {n} general terms")]
        if n in (2, 5):
            lines.append((72, 140, "Witness: John Smith"))
        pages.append(lines)
    return make_pdf(pages)


@pytest.fixture
def blank_pdf():
    """A page with no text at all (stands in for a scanned document)."""
    doc = fitz.open()
    page = doc.new_page(width=PAGE_WIDTH, height=PAGE_HEIGHT)
    page.draw_rect(fitz.Rect(50, 50, 200, 200), color=(0, 0, 1), fill=(0.8, 0.8, 1))
    data = doc.tobytes()
    doc.close()
    return data
