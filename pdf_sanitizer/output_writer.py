"""
Output generation for regions.json, regions.csv, and summary.json.

Handles serialization of located regions, per-document outcomes, and
aggregate statistics.
"""

import json
import csv
from collections import Counter
from pathlib import Path
from datetime import datetime
from typing import Any
from statistics import mean, median, stdev

from .models import RedactionRegion, DocumentResult, CorpusResult, SanitizeParams


def document_to_dict(doc: DocumentResult, include_literals: bool = False) -> dict:
    """Per-document detail block shared by the JSON writers."""
    return {
        "doc_id": doc.doc_id,
        "file_path": doc.file_path,
        "output_path": doc.output_path,
        "total_pages": doc.total_pages,
        "fragment_count": doc.fragment_count,
        "span_count": len(doc.spans),
        "total_regions": doc.total_regions,
        "regions_drawn": doc.regions_drawn,
        "regions_skipped": doc.skipped_regions,
        "redacted_pages": doc.redacted_pages,
        "failed_pages": doc.failed_pages,
        "warnings": doc.warnings,
        "error": doc.error,
        "regions": [r.to_dict(include_literals) for r in doc.regions],
    }


def write_regions_json(
    corpus: CorpusResult,
    params: SanitizeParams,
    output_path: Path,
    include_literals: bool = False
) -> None:
    """
    Write the full region catalogue to JSON format.

    Args:
        corpus: Complete corpus results
        params: Sanitize parameters used
        output_path: Path to write JSON file
        include_literals: Also write the matched text of each region
    """
    catalogue = {
        "run_timestamp": datetime.now().isoformat(),
        "parameters": params.to_dict(),
        "summary": {
            "total_documents": corpus.total_documents,
            "total_pages": corpus.total_pages,
            "total_regions": corpus.total_regions,
        },
        "documents": [document_to_dict(doc, include_literals) for doc in corpus.documents],
    }

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(catalogue, f, indent=2, ensure_ascii=False)


def write_regions_csv(
    corpus: CorpusResult,
    output_path: Path,
    include_literals: bool = False
) -> None:
    """
    Write the catalogue to CSV format (flat, one row per region).

    Args:
        corpus: Complete corpus results
        output_path: Path to write CSV file
        include_literals: Add a literal column with the matched text
    """
    fieldnames = list(RedactionRegion(
        id="", category="", literal="", page=0, x=0, y=0, width=0, height=0
    ).to_csv_row(include_literal=include_literals).keys())

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=fieldnames)
        writer.writeheader()
        for doc_id, region in corpus.all_regions:
            writer.writerow(region.to_csv_row(doc_id, include_literals))


def calculate_distribution_stats(values: list[float]) -> dict[str, Any]:
    """
    Calculate distribution statistics for a list of values.

    Args:
        values: List of numeric values

    Returns:
        Dictionary with distribution statistics
    """
    if not values:
        return {
            "count": 0,
            "mean": 0,
            "median": 0,
            "std": 0,
            "min": 0,
            "max": 0,
        }

    return {
        "count": len(values),
        "mean": round(mean(values), 2),
        "median": round(median(values), 2),
        "std": round(stdev(values), 2) if len(values) > 1 else 0,
        "min": round(min(values), 2),
        "max": round(max(values), 2),
    }


def build_summary(corpus: CorpusResult, params: SanitizeParams) -> dict:
    """Aggregate counts; failed documents contribute nothing but their id."""
    all_regions = [r for _, r in corpus.all_regions]
    succeeded = [d for d in corpus.documents if d.error is None]

    categories = Counter(r.category for r in all_regions)

    return {
        "run_timestamp": datetime.now().isoformat(),
        "parameters": {
            "scale": params.scale,
            "dpi": params.dpi,
            "padding": params.padding,
            "descent_ratio": params.descent_ratio,
        },
        "corpus_stats": {
            "total_documents": corpus.total_documents,
            "total_pages": corpus.total_pages,
            "total_regions": corpus.total_regions,
            "documents_with_errors": corpus.total_documents - len(succeeded),
            "documents_with_failed_pages": sum(1 for d in succeeded if d.failed_pages),
        },
        "page_stats": {
            "pages_redacted": sum(len(d.redacted_pages) for d in succeeded),
            "pages_failed": sum(len(d.failed_pages) for d in succeeded),
            "regions_drawn": sum(d.regions_drawn for d in succeeded),
            "regions_skipped": sum(d.skipped_regions for d in succeeded),
        },
        "regions_per_document": calculate_distribution_stats(
            [d.total_regions for d in succeeded]
        ),
        "category_breakdown": dict(categories.most_common()),
        "size_stats": {
            "width_points": calculate_distribution_stats([r.width for r in all_regions]),
            "height_points": calculate_distribution_stats([r.height for r in all_regions]),
        },
        "failed_doc_ids": [d.doc_id for d in corpus.documents if d.error],
    }


def write_summary_json(
    corpus: CorpusResult,
    params: SanitizeParams,
    output_path: Path
) -> None:
    """Write aggregate statistics to summary.json."""
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(build_summary(corpus, params), f, indent=2)


def write_all_outputs(
    corpus: CorpusResult,
    params: SanitizeParams,
    output_dir: Path,
    include_literals: bool = False
) -> dict[str, Path]:
    """
    Write all report files (regions.json, regions.csv, summary.json).

    Matched text is left out of the reports unless include_literals is set.

    Args:
        corpus: Complete corpus results
        params: Sanitize parameters used
        output_dir: Base output directory
        include_literals: Write each region's matched text as well

    Returns:
        Dictionary mapping output type to file path
    """
    output_dir.mkdir(parents=True, exist_ok=True)

    paths = {
        "regions_json": output_dir / "regions.json",
        "regions_csv": output_dir / "regions.csv",
        "summary_json": output_dir / "summary.json",
    }

    write_regions_json(corpus, params, paths["regions_json"], include_literals)
    write_regions_csv(corpus, paths["regions_csv"], include_literals)
    write_summary_json(corpus, params, paths["summary_json"])

    return paths
