"""
PDF Sanitizer - permanent redaction of sensitive text in PDF documents.

Locates classifier-reported strings on the page, then flattens every
affected page to an image and paints opaque boxes over the matches, so the
redacted text cannot be recovered from the output file.
"""

__version__ = "0.1.0"

from .errors import (
    SanitizerError,
    DocumentReadError,
    UnextractableDocumentError,
    ClassificationError,
    RasterizationError,
    DocumentWriteError,
)
from .models import (
    TextFragment,
    SensitiveSpan,
    RedactionRegion,
    SanitizeParams,
    CompositeResult,
    DocumentResult,
    CorpusResult,
)
from .locator import locate
from .compositor import composite
from .pipeline import sanitize_bytes, process_document, process_corpus
