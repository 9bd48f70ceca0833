"""
Post-composite checks on replaced pages.

A replaced page must carry no extractable text, and every overlay drawn on
it must render as a solid dark box. Problems are reported as warnings; the
caller decides what to do with them.
"""

from typing import Optional

import cv2
import fitz
import numpy as np

from .geometry import Rect, page_space_to_pixels, shrink_box
from .rasterizer import render_page_to_image


def crop_box(
    image: np.ndarray,
    box: tuple[int, int, int, int]
) -> Optional[np.ndarray]:
    """
    Crop a pixel box from an image, clamped to the image bounds.

    Returns:
        Cropped region, or None if nothing remains after clamping
    """
    img_height, img_width = image.shape[:2]
    x0, y0, x1, y1 = box

    x0 = max(0, x0)
    y0 = max(0, y0)
    x1 = min(img_width, x1)
    y1 = min(img_height, y1)

    if x1 <= x0 or y1 <= y0:
        return None

    return image[y0:y1, x0:x1]


def dark_fraction(region: Optional[np.ndarray], dark_threshold: int = 30) -> float:
    """
    Share of pixels darker than the threshold.

    Args:
        region: Image crop (grayscale or BGR)
        dark_threshold: Pixel values below this count as dark (0-255)

    Returns:
        Fraction between 0 and 1 (1.0 for an empty crop)
    """
    if region is None or region.size == 0:
        return 1.0

    if len(region.shape) == 3:
        region = cv2.cvtColor(region, cv2.COLOR_BGR2GRAY)

    return float(np.count_nonzero(region < dark_threshold)) / region.size


def check_text_removed(page: fitz.Page) -> Optional[str]:
    """Return a warning if the page still has an extractable text layer."""
    text = page.get_text("text").strip()
    if text:
        return f"Page {page.number + 1}: {len(text)} characters of text survived replacement"
    return None


def check_overlays(
    page: fitz.Page,
    overlays: list[Rect],
    dark_threshold: int = 30,
    min_dark_fraction: float = 0.98,
    scale: float = 1.0
) -> list[str]:
    """
    Render a page and confirm every overlay is covered in dark pixels.

    Args:
        page: The replaced page
        overlays: Drawn overlay rectangles in page-space
        dark_threshold: Pixel values below this count as dark
        min_dark_fraction: Required dark share inside each overlay
        scale: Render scale for the check

    Returns:
        List of warning strings (empty when every overlay is solid)
    """
    if not overlays:
        return []

    image = render_page_to_image(page, scale)
    gray = cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
    page_height = page.rect.height

    warnings = []
    for rect in overlays:
        box = page_space_to_pixels(rect, page_height, scale)
        # Anti-aliased edges are not expected to be fully dark
        inner = crop_box(gray, shrink_box(box, 1))
        fraction = dark_fraction(inner, dark_threshold)
        if fraction < min_dark_fraction:
            warnings.append(
                f"Page {page.number + 1}: overlay at {tuple(round(v, 2) for v in rect)} "
                f"is only {fraction:.1%} dark"
            )
    return warnings
