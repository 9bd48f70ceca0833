"""
Data models for span location and page sanitization.

Defines dataclasses for extracted text fragments, classifier spans,
redaction regions, and the per-page / per-document results.
"""

from dataclasses import dataclass, field, asdict
from typing import Optional


@dataclass(frozen=True)
class TextFragment:
    """
    A piece of extracted text with its position on the page.

    Coordinates are in page-space points: origin bottom-left, y is the
    text baseline.
    """
    text: str
    page: int  # 1-indexed
    x: float
    y: float
    width: float
    height: float


@dataclass(frozen=True)
class SensitiveSpan:
    """A sensitive string reported by a classifier, with no position."""
    category: str
    literal: str


@dataclass(frozen=True)
class RedactionRegion:
    """
    One visual line of a matched sensitive string.

    Coordinates are in page-space points, same convention as TextFragment.
    """
    id: str
    category: str
    literal: str
    page: int
    x: float
    y: float
    width: float
    height: float

    @property
    def position_key(self) -> tuple:
        """Page plus rectangle rounded to 2 decimals; equal keys are duplicates."""
        return (
            self.page,
            f"{self.x:.2f}",
            f"{self.y:.2f}",
            f"{self.width:.2f}",
            f"{self.height:.2f}",
        )

    def to_dict(self, include_literal: bool = False) -> dict:
        """
        Convert to dictionary for JSON serialization.

        The matched literal is the sensitive text itself and is left out
        unless include_literal is set.
        """
        data = asdict(self)
        if not include_literal:
            del data["literal"]
        return data

    def to_csv_row(self, doc_id: str = "", include_literal: bool = False) -> dict:
        """Convert to flat dictionary for CSV output."""
        row = {
            "doc_id": doc_id,
            "region_id": self.id,
            "category": self.category,
            "page": self.page,
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
        }
        if include_literal:
            row["literal"] = self.literal
        return row


@dataclass
class SanitizeParams:
    """Parameters for locating and compositing redactions."""
    scale: float = 2.0  # Raster supersampling factor (1.0 = 72 DPI)
    padding: float = 1.0  # Overlay padding on every side, in points
    descent_ratio: float = 0.25  # Fraction of region height shifted below the baseline
    workers: int = 1  # Page-render processes
    verify: bool = True  # Re-render replaced pages and check the overlays
    dark_threshold: int = 30  # Pixel values below this count as covered (0-255)
    min_dark_fraction: float = 0.98  # Required share of dark pixels per overlay
    garbage: int = 4  # PyMuPDF garbage collection level on save

    @property
    def dpi(self) -> float:
        return 72.0 * self.scale

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class PageOutcome:
    """Result of replacing a single page."""
    page_num: int
    regions_drawn: int = 0
    regions_skipped: int = 0
    error: Optional[str] = None
    warnings: list[str] = field(default_factory=list)

    @property
    def redacted(self) -> bool:
        return self.error is None


@dataclass
class CompositeResult:
    """Output of the compositor for one document."""
    pdf_bytes: bytes
    pages: list[PageOutcome] = field(default_factory=list)
    skipped_regions: list[RedactionRegion] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def redacted_pages(self) -> list[int]:
        return [p.page_num for p in self.pages if p.redacted]

    @property
    def failed_pages(self) -> list[int]:
        return [p.page_num for p in self.pages if not p.redacted]

    @property
    def regions_drawn(self) -> int:
        return sum(p.regions_drawn for p in self.pages if p.redacted)

    @property
    def is_partial(self) -> bool:
        return bool(self.failed_pages)


@dataclass
class DocumentResult:
    """Results from sanitizing a single document."""
    doc_id: str
    file_path: str = ""
    output_path: str = ""
    total_pages: int = 0
    fragment_count: int = 0
    spans: list[SensitiveSpan] = field(default_factory=list)
    regions: list[RedactionRegion] = field(default_factory=list)
    redacted_pages: list[int] = field(default_factory=list)
    failed_pages: list[int] = field(default_factory=list)
    skipped_regions: int = 0
    regions_drawn: int = 0
    warnings: list[str] = field(default_factory=list)
    error: Optional[str] = None
    pdf_bytes: Optional[bytes] = field(default=None, repr=False)

    @property
    def total_regions(self) -> int:
        return len(self.regions)

    def apply_composite(self, result: CompositeResult) -> None:
        """Copy the compositor's outcome onto this document result."""
        self.pdf_bytes = result.pdf_bytes
        self.redacted_pages = result.redacted_pages
        self.failed_pages = result.failed_pages
        self.skipped_regions = len(result.skipped_regions)
        self.regions_drawn = result.regions_drawn
        self.warnings.extend(result.warnings)
        for page in result.pages:
            self.warnings.extend(page.warnings)


@dataclass
class CorpusResult:
    """Results from sanitizing a directory of documents."""
    documents: list[DocumentResult] = field(default_factory=list)

    @property
    def total_documents(self) -> int:
        return len(self.documents)

    @property
    def total_pages(self) -> int:
        return sum(d.total_pages for d in self.documents)

    @property
    def total_regions(self) -> int:
        return sum(d.total_regions for d in self.documents)

    @property
    def all_regions(self) -> list[tuple[str, RedactionRegion]]:
        regions = []
        for doc in self.documents:
            regions.extend((doc.doc_id, r) for r in doc.regions)
        return regions
