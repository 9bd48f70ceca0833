"""
Document and corpus orchestration.

Runs extract -> classify -> locate -> composite for one document, and
loops that over a directory of PDFs with a progress bar.
"""

import logging
from pathlib import Path
from typing import Optional

from tqdm import tqdm

from .classifiers import Classifier, parse_classifier_output
from .compositor import composite
from .errors import (
    DocumentReadError, UnextractableDocumentError,
    ClassificationError, DocumentWriteError
)
from .locator import locate
from .models import DocumentResult, CorpusResult, SanitizeParams
from .text_extractor import open_document, extract_fragments, full_text


logger = logging.getLogger(__name__)

OUTPUT_PREFIX = "redacted_"


def sanitize_bytes(
    pdf_bytes: bytes,
    classifier: Classifier,
    params: Optional[SanitizeParams] = None,
    doc_id: str = "document",
    dry_run: bool = False
) -> DocumentResult:
    """
    Sanitize one in-memory PDF.

    Args:
        pdf_bytes: Original document
        classifier: Callable mapping full text to SensitiveSpan objects
        params: Sanitize parameters
        doc_id: Identifier used in logs and reports
        dry_run: Locate regions but do not composite

    Returns:
        DocumentResult; pdf_bytes holds the redacted document unless dry_run

    Raises:
        DocumentReadError: If the document cannot be opened or read
        UnextractableDocumentError: If the document has no extractable text
        ClassificationError: If the classifier fails
        DocumentWriteError: If the redacted document cannot be produced
    """
    params = params or SanitizeParams()
    result = DocumentResult(doc_id=doc_id)

    doc = open_document(pdf_bytes, doc_id)
    try:
        result.total_pages = len(doc)
        fragments = extract_fragments(doc)
    except Exception as e:
        raise DocumentReadError(f"Could not extract text from {doc_id}: {e}") from e
    finally:
        doc.close()

    if not fragments:
        raise UnextractableDocumentError(
            f"No text could be extracted from {doc_id}. It might be an image-only PDF."
        )
    result.fragment_count = len(fragments)
    logger.debug(f"{doc_id}: {len(fragments)} fragments on {result.total_pages} pages")

    try:
        raw = classifier(full_text(fragments))
    except ClassificationError:
        raise
    except Exception as e:
        raise ClassificationError(f"Classifier failed on {doc_id}: {e}") from e

    result.spans = parse_classifier_output(raw)
    result.regions = locate(fragments, result.spans)
    logger.info(f"{doc_id}: {len(result.spans)} spans -> {len(result.regions)} regions")

    if dry_run:
        return result

    result.apply_composite(composite(pdf_bytes, result.regions, params))
    return result


def output_path_for(pdf_path: Path, output_dir: Path) -> Path:
    return output_dir / f"{OUTPUT_PREFIX}{pdf_path.stem}.pdf"


def process_document(
    pdf_path: Path,
    output_dir: Path,
    classifier: Classifier,
    params: Optional[SanitizeParams] = None,
    dry_run: bool = False
) -> DocumentResult:
    """
    Sanitize a PDF on disk and write redacted_<stem>.pdf to output_dir.

    Raises the same errors as sanitize_bytes.
    """
    pdf_path = Path(pdf_path)
    output_dir = Path(output_dir)

    try:
        pdf_bytes = pdf_path.read_bytes()
    except OSError as e:
        raise DocumentReadError(f"Could not read {pdf_path}: {e}") from e

    result = sanitize_bytes(pdf_bytes, classifier, params, doc_id=pdf_path.stem, dry_run=dry_run)
    result.file_path = str(pdf_path)

    if dry_run:
        return result

    out_path = output_path_for(pdf_path, output_dir)
    try:
        output_dir.mkdir(parents=True, exist_ok=True)
        out_path.write_bytes(result.pdf_bytes)
    except OSError as e:
        raise DocumentWriteError(f"Could not write {out_path}: {e}") from e

    result.output_path = str(out_path)
    logger.info(f"Wrote {out_path}")
    return result


def process_corpus(
    input_dir: Path,
    output_dir: Path,
    classifier: Classifier,
    params: Optional[SanitizeParams] = None,
    subset: Optional[int] = None,
    dry_run: bool = False
) -> CorpusResult:
    """
    Sanitize every PDF below a directory.

    Documents are processed one at a time (page rendering may still use
    params.workers processes). A failing document is recorded with its
    error and does not stop the run.

    Args:
        input_dir: Directory containing PDF files
        output_dir: Directory for redacted PDFs
        classifier: Callable mapping full text to SensitiveSpan objects
        params: Sanitize parameters
        subset: If set, only process the first N PDFs
        dry_run: Locate regions but do not composite or write PDFs

    Returns:
        CorpusResult with one DocumentResult per file
    """
    pdf_files = sorted(Path(input_dir).glob("**/*.pdf"))
    if subset is not None:
        pdf_files = pdf_files[:subset]

    if not pdf_files:
        logger.warning(f"No PDF files found in {input_dir}")
        return CorpusResult()

    logger.info(f"Found {len(pdf_files)} PDF files to process")

    documents = []
    for pdf_path in tqdm(pdf_files, desc="Sanitizing PDFs", unit="file"):
        try:
            result = process_document(pdf_path, output_dir, classifier, params, dry_run)
            # Already on disk
            result.pdf_bytes = None
        except Exception as e:
            logger.error(f"Error processing document {pdf_path}: {e}")
            result = DocumentResult(
                doc_id=pdf_path.stem,
                file_path=str(pdf_path),
                error=f"{type(e).__name__}: {e}",
            )
        documents.append(result)

    return CorpusResult(documents=documents)


def get_processing_stats(corpus: CorpusResult) -> dict:
    """
    Get statistics about the processing run.

    Args:
        corpus: Completed corpus result

    Returns:
        Dictionary with processing statistics
    """
    successful_docs = [d for d in corpus.documents if d.error is None]
    failed_docs = [d for d in corpus.documents if d.error is not None]

    return {
        "total_documents": corpus.total_documents,
        "successful_documents": len(successful_docs),
        "failed_documents": len(failed_docs),
        "total_pages": corpus.total_pages,
        "pages_redacted": sum(len(d.redacted_pages) for d in successful_docs),
        "pages_failed": sum(len(d.failed_pages) for d in successful_docs),
        "total_regions": corpus.total_regions,
        "regions_drawn": sum(d.regions_drawn for d in successful_docs),
        "regions_skipped": sum(d.skipped_regions for d in successful_docs),
        "partial_documents": [d.doc_id for d in successful_docs if d.failed_pages],
        "failed_doc_ids": [d.doc_id for d in failed_docs],
    }
