"""
Page rasterization and PNG encoding.

Renders a page into a pixel buffer (discarding all vector and text
structure) and encodes it for embedding on a replacement page.
"""

import io

import cv2
import fitz
import numpy as np
from PIL import Image

from .errors import RasterizationError


def render_page_to_image(page: fitz.Page, scale: float = 2.0) -> np.ndarray:
    """
    Render a PyMuPDF page to a numpy array (BGR format for OpenCV).

    Args:
        page: PyMuPDF page object
        scale: Zoom factor (1.0 = 72 DPI)

    Returns:
        numpy array in BGR format

    Raises:
        RasterizationError: If rendering produced an empty buffer
    """
    mat = fitz.Matrix(scale, scale)
    pix = page.get_pixmap(matrix=mat, alpha=False)

    if pix.width == 0 or pix.height == 0 or not pix.samples:
        raise RasterizationError(f"Empty raster for page {page.number + 1}")

    img = np.frombuffer(pix.samples, dtype=np.uint8).reshape(
        pix.height, pix.width, pix.n
    )

    if pix.n == 1:
        img = cv2.cvtColor(img, cv2.COLOR_GRAY2BGR)
    elif pix.n == 3:
        img = cv2.cvtColor(img, cv2.COLOR_RGB2BGR)
    elif pix.n == 4:
        img = cv2.cvtColor(img, cv2.COLOR_RGBA2BGR)

    return img


def encode_png(image: np.ndarray) -> bytes:
    """
    Encode a BGR (or grayscale) image as PNG bytes.

    Raises:
        RasterizationError: If the image is empty or encoding fails
    """
    if image is None or image.size == 0:
        raise RasterizationError("Cannot encode an empty image")

    if len(image.shape) == 3 and image.shape[2] == 3:
        image = cv2.cvtColor(image, cv2.COLOR_BGR2RGB)

    buf = io.BytesIO()
    try:
        Image.fromarray(image).save(buf, format="PNG")
    except (OSError, ValueError) as e:
        raise RasterizationError(f"PNG encoding failed: {e}") from e

    data = buf.getvalue()
    if not data:
        raise RasterizationError("PNG encoding produced no data")
    return data


def render_page_png(pdf_bytes: bytes, page_index: int, scale: float) -> bytes:
    """
    Open a document, render one page, and return it as PNG.

    Opens its own document handle so it can run in a worker process.
    """
    doc = fitz.open(stream=pdf_bytes, filetype="pdf")
    try:
        image = render_page_to_image(doc[page_index], scale)
    finally:
        doc.close()
    return encode_png(image)


def _render_page_wrapper(args: tuple) -> tuple[int, bytes, str]:
    """
    Wrapper for multiprocessing - unpacks arguments and captures errors.

    Returns:
        (page_index, png_bytes, error); png_bytes is empty on error
    """
    pdf_bytes, page_index, scale = args
    try:
        return (page_index, render_page_png(pdf_bytes, page_index, scale), "")
    except Exception as e:
        return (page_index, b"", str(e))
