"""
Coordinate transforms between page-space, PyMuPDF points, and raster pixels.

Three systems are in play:
- page-space: origin bottom-left, y increasing upward (what the extractor reports)
- PyMuPDF points: origin top-left, y increasing downward
- pixels: origin top-left, scaled by the render factor

Rectangles in page-space are (x, y, width, height) with (x, y) the
bottom-left corner. Boxes in points or pixels are (x0, y0, x1, y1).
"""

import math

from .models import RedactionRegion


Rect = tuple[float, float, float, float]


def overlay_rect(
    region: RedactionRegion,
    padding: float = 1.0,
    descent_ratio: float = 0.25
) -> Rect:
    """
    Expand a region into the rectangle that actually gets painted.

    The region's y is a text baseline, so the box is shifted down by an
    estimated descent to cover descenders, then padded on every side.

    Args:
        region: Region in page-space
        padding: Extra points on every side
        descent_ratio: Descent as a fraction of the region height

    Returns:
        (x, y, width, height) in page-space
    """
    descent = region.height * descent_ratio
    return (
        region.x - padding,
        region.y - descent - padding,
        region.width + padding * 2,
        region.height + padding * 2,
    )


def is_degenerate(rect: Rect) -> bool:
    """True if any coordinate is non-finite or the size is not positive."""
    x, y, width, height = rect
    if not all(math.isfinite(v) for v in (x, y, width, height)):
        return True
    return width <= 0 or height <= 0


def page_space_to_pdf(rect: Rect, page_height: float) -> Rect:
    """
    Convert a page-space rectangle to PyMuPDF points.

    Args:
        rect: (x, y, width, height), origin bottom-left
        page_height: Page height in points

    Returns:
        (x0, y0, x1, y1), origin top-left
    """
    x, y, width, height = rect
    return (x, page_height - (y + height), x + width, page_height - y)


def page_space_to_pixels(
    rect: Rect,
    page_height: float,
    scale: float
) -> tuple[int, int, int, int]:
    """
    Convert a page-space rectangle to a pixel box on a rendered page.

    Edges are rounded outward so the box covers every pixel the
    rectangle touches.

    Args:
        rect: (x, y, width, height), origin bottom-left, in points
        page_height: Page height in points
        scale: Render scale (pixels per point)

    Returns:
        (x0, y0, x1, y1) in pixels, origin top-left
    """
    x0, y0, x1, y1 = page_space_to_pdf(rect, page_height)
    return (
        math.floor(x0 * scale),
        math.floor(y0 * scale),
        math.ceil(x1 * scale),
        math.ceil(y1 * scale),
    )


def shrink_box(
    box: tuple[int, int, int, int],
    margin: int
) -> tuple[int, int, int, int]:
    """Shrink a pixel box by margin on every side (may become empty)."""
    x0, y0, x1, y1 = box
    return (x0 + margin, y0 + margin, x1 - margin, y1 - margin)
