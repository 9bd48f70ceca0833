"""
Exception hierarchy for document sanitization.

Only document-scoped failures are raised. Page- and region-scoped problems
are recorded on the result objects instead (see models.PageOutcome).
"""


class SanitizerError(Exception):
    """Base class for all fatal sanitization errors."""


class DocumentReadError(SanitizerError):
    """The input could not be opened or parsed as a PDF."""


class UnextractableDocumentError(DocumentReadError):
    """
    The document opened but yielded no text fragments.

    Usually an image-only (scanned) PDF. OCR is not attempted.
    """


class ClassificationError(SanitizerError):
    """The sensitive-text classifier could not be reached or failed outright."""


class RasterizationError(SanitizerError):
    """A page could not be rendered or encoded as an image."""


class DocumentWriteError(SanitizerError):
    """The sanitized document could not be serialized or written."""
