"""
Redaction compositing: flatten affected pages and paint opaque overlays.

Every page that holds at least one region is rendered to an image, the
original page object is discarded, and a blank page of the same size takes
its place carrying only that image plus solid black boxes. Pages without
regions are left as they are, text layer included.
"""

import logging
import multiprocessing
from collections import defaultdict
from typing import Optional

import fitz

from .errors import DocumentWriteError
from .geometry import overlay_rect, is_degenerate, page_space_to_pdf
from .models import RedactionRegion, SanitizeParams, PageOutcome, CompositeResult
from .rasterizer import render_page_to_image, encode_png, _render_page_wrapper
from .text_extractor import open_document
from .verification import check_text_removed, check_overlays


logger = logging.getLogger(__name__)

OVERLAY_FILL = (0, 0, 0)


class PageArena:
    """
    Pages of a document addressed by a stable identity.

    The identity is the page's original 1-indexed number. Replacing a page
    changes its underlying object but not its identity, so callers never
    have to track index shifts.
    """

    def __init__(self, doc: fitz.Document) -> None:
        self.doc = doc
        self._xrefs = {i + 1: doc[i].xref for i in range(len(doc))}

    def __contains__(self, page_id: int) -> bool:
        return page_id in self._xrefs

    def index_of(self, page_id: int) -> int:
        xref = self._xrefs[page_id]
        for i in range(len(self.doc)):
            if self.doc[i].xref == xref:
                return i
        raise KeyError(page_id)

    def page(self, page_id: int) -> fitz.Page:
        return self.doc[self.index_of(page_id)]

    def replace(self, page_id: int, png: bytes, width: float, height: float) -> fitz.Page:
        """
        Swap a page for a blank page of the given size showing only an image.

        The new page is built in front of the old one and the old one is
        deleted only after the image is embedded, so a failed embed leaves
        the original page in place.
        """
        index = self.index_of(page_id)
        page = self.doc.new_page(pno=index, width=width, height=height)
        try:
            page.insert_image(page.rect, stream=png, keep_proportion=False)
        except Exception:
            self.doc.delete_page(index)
            raise

        # Other objects (a structure tree, outlines) may still point at the
        # old page; strip what it draws so nothing it held survives saving
        old_xref = self.doc[index + 1].xref
        for key in ("Contents", "Resources", "Annots"):
            self.doc.xref_set_key(old_xref, key, "null")
        self.doc.delete_page(index + 1)

        # Page objects are invalidated by deletion; reload
        page = self.doc[index]
        self._xrefs[page_id] = page.xref
        return page


def _serialize(doc: fitz.Document, garbage: int) -> bytes:
    try:
        return doc.tobytes(garbage=garbage, deflate=True)
    except Exception as e:
        raise DocumentWriteError(f"Could not serialize document: {e}") from e


def render_pages(
    document: bytes,
    source: fitz.Document,
    page_nums: list[int],
    params: SanitizeParams
) -> dict[int, tuple[bytes, str]]:
    """
    Render pages to PNG, in parallel when params.workers > 1.

    Args:
        document: Original document bytes (for worker processes)
        source: Read-only handle on the same bytes (for in-process rendering)
        page_nums: 1-indexed pages to render
        params: Sanitize parameters

    Returns:
        Mapping of page number to (png_bytes, error); png_bytes is empty on error
    """
    rendered = {}

    if params.workers > 1 and len(page_nums) > 1:
        args_list = [(document, p - 1, params.scale) for p in page_nums]
        with multiprocessing.Pool(min(params.workers, len(page_nums))) as pool:
            for page_index, png, error in pool.imap(_render_page_wrapper, args_list):
                rendered[page_index + 1] = (png, error)
        return rendered

    for page_num in page_nums:
        try:
            image = render_page_to_image(source[page_num - 1], params.scale)
            rendered[page_num] = (encode_png(image), "")
        except Exception as e:
            rendered[page_num] = (b"", str(e))
    return rendered


def _draw_overlays(
    page: fitz.Page,
    regions: list[RedactionRegion],
    params: SanitizeParams,
    outcome: PageOutcome,
    skipped: list[RedactionRegion]
) -> list[tuple[float, float, float, float]]:
    """Paint one solid box per region; returns the page-space rects drawn."""
    drawn = []
    page_height = page.rect.height

    for region in regions:
        rect = overlay_rect(region, params.padding, params.descent_ratio)
        if is_degenerate((region.x, region.y, region.width, region.height)) or is_degenerate(rect):
            message = f"Page {region.page}: skipped degenerate region {region.id} ({region.category})"
            logger.warning(message)
            outcome.warnings.append(message)
            outcome.regions_skipped += 1
            skipped.append(region)
            continue

        page.draw_rect(
            fitz.Rect(*page_space_to_pdf(rect, page_height)),
            color=None,
            fill=OVERLAY_FILL,
            fill_opacity=1,
            overlay=True,
        )
        drawn.append(rect)
        outcome.regions_drawn += 1

    return drawn


def composite(
    document: bytes,
    regions: list[RedactionRegion],
    params: Optional[SanitizeParams] = None
) -> CompositeResult:
    """
    Rasterize every page holding a region and paint the regions over it.

    Args:
        document: Original PDF bytes
        regions: Regions from the locator
        params: Sanitize parameters

    Returns:
        CompositeResult with the new PDF bytes and per-page outcomes

    Raises:
        DocumentReadError: If the document cannot be opened
        DocumentWriteError: If the result cannot be serialized
    """
    params = params or SanitizeParams()
    target = open_document(document)

    try:
        if not regions:
            return CompositeResult(pdf_bytes=_serialize(target, garbage=0))

        arena = PageArena(target)
        result = CompositeResult(pdf_bytes=b"")

        by_page: dict[int, list[RedactionRegion]] = defaultdict(list)
        for region in regions:
            if region.page in arena:
                by_page[region.page].append(region)
            else:
                message = f"Region {region.id} refers to page {region.page}, which does not exist"
                logger.warning(message)
                result.warnings.append(message)
                result.skipped_regions.append(region)

        page_nums = sorted(by_page)
        source = open_document(document)
        try:
            sizes = {p: (source[p - 1].rect.width, source[p - 1].rect.height) for p in page_nums}
            rendered = render_pages(document, source, page_nums, params)
        finally:
            source.close()

        overlays_by_page = {}
        for page_num in page_nums:
            outcome = PageOutcome(page_num=page_num)
            result.pages.append(outcome)
            png, error = rendered[page_num]

            if not png:
                outcome.error = error or "empty raster"
                logger.warning(f"Page {page_num} left unredacted: {outcome.error}")
                continue

            width, height = sizes[page_num]
            try:
                page = arena.replace(page_num, png, width, height)
            except Exception as e:
                outcome.error = f"image embedding failed: {e}"
                logger.warning(f"Page {page_num} left unredacted: {outcome.error}")
                continue

            overlays_by_page[page_num] = _draw_overlays(
                page, by_page[page_num], params, outcome, result.skipped_regions
            )
            logger.debug(f"Page {page_num}: {outcome.regions_drawn} overlays drawn")

        if params.verify:
            for page_num, overlays in overlays_by_page.items():
                page = arena.page(page_num)
                outcome = next(o for o in result.pages if o.page_num == page_num)
                found = check_overlays(
                    page,
                    overlays,
                    dark_threshold=params.dark_threshold,
                    min_dark_fraction=params.min_dark_fraction,
                )
                text_warning = check_text_removed(page)
                if text_warning:
                    found.insert(0, text_warning)
                for warning in found:
                    logger.warning(warning)
                outcome.warnings.extend(found)

        result.pdf_bytes = _serialize(target, garbage=params.garbage)
        logger.info(
            f"Composited {len(result.redacted_pages)} pages "
            f"({len(result.failed_pages)} failed, {len(result.skipped_regions)} regions skipped)"
        )
        return result
    finally:
        target.close()
