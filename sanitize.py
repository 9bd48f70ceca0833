#!/usr/bin/env python3
"""
PDF Sanitizer CLI

Finds sensitive strings in PDF files and writes permanently redacted copies:
every page holding a match is flattened to an image and the matches are
covered with opaque black boxes.

Usage:
    python sanitize.py ./contract.pdf --output ./out/
    python sanitize.py ./pdfs/ --output ./out/ --classifier gemini
"""

import sys
import logging
from pathlib import Path
from datetime import datetime
from typing import Optional

import click

from pdf_sanitizer.classifiers import (
    Classifier, SpacyClassifier, GeminiClassifier, SpansFileClassifier
)
from pdf_sanitizer.errors import (
    DocumentReadError, ClassificationError, DocumentWriteError
)
from pdf_sanitizer.models import SanitizeParams, CorpusResult
from pdf_sanitizer.pipeline import process_document, process_corpus, get_processing_stats
from pdf_sanitizer.output_writer import write_all_outputs


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S"
)
logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_PARTIAL = 2
EXIT_INTERRUPTED = 130


def validate_input(ctx, param, value):
    """Validate that the input is an existing PDF file or directory."""
    path = Path(value)
    if not path.exists():
        raise click.BadParameter(f"Input does not exist: {value}")
    if path.is_file() and path.suffix.lower() != ".pdf":
        raise click.BadParameter(f"Input file is not a PDF: {value}")
    return path


def build_classifier(
    kind: str,
    spans_file: Optional[Path],
    gemini_api_key: Optional[str],
    gemini_model: str,
    spacy_model: str
) -> Classifier:
    if kind == "file":
        if spans_file is None:
            raise click.UsageError("--spans-file is required with --classifier file")
        return SpansFileClassifier(spans_file)
    if kind == "gemini":
        if not gemini_api_key:
            raise click.UsageError(
                "--gemini-api-key (or GEMINI_API_KEY) is required with --classifier gemini"
            )
        return GeminiClassifier(gemini_api_key, model=gemini_model)
    return SpacyClassifier(model=spacy_model)


def fail(message: str, verbose: bool) -> None:
    click.echo(click.style(message, fg="red"), err=True)
    if verbose:
        import traceback
        traceback.print_exc()
    sys.exit(EXIT_FATAL)


@click.command()
@click.argument("input_path", callback=validate_input)
@click.option(
    "--output", "-o",
    "output_dir",
    required=True,
    type=click.Path(file_okay=False, path_type=Path),
    help="Output directory for redacted PDFs and reports"
)
@click.option(
    "--classifier", "-c",
    "classifier_kind",
    default="spacy",
    type=click.Choice(["spacy", "gemini", "file"]),
    help="Where sensitive strings come from. Default: spacy"
)
@click.option(
    "--spans-file",
    default=None,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="JSON array of {type, text} objects (with --classifier file)"
)
@click.option(
    "--gemini-api-key",
    default=None,
    envvar="GEMINI_API_KEY",
    help="Gemini API key (with --classifier gemini)"
)
@click.option(
    "--gemini-model",
    default="gemini-2.5-flash",
    help="Gemini model name. Default: gemini-2.5-flash"
)
@click.option(
    "--spacy-model",
    default="en_core_web_lg",
    help="spaCy pipeline name. Default: en_core_web_lg"
)
@click.option(
    "--scale",
    default=2.0,
    type=float,
    help="Raster supersampling factor (1.0 = 72 DPI). Default: 2.0"
)
@click.option(
    "--padding",
    default=1.0,
    type=float,
    help="Overlay padding in points on every side. Default: 1.0"
)
@click.option(
    "--descent-ratio",
    default=0.25,
    type=float,
    help="Share of the text height the overlay extends below the baseline. Default: 0.25"
)
@click.option(
    "--workers", "-w",
    default=1,
    type=int,
    help="Number of page-rendering processes. Default: 1"
)
@click.option(
    "--no-verify",
    is_flag=True,
    help="Skip re-rendering replaced pages to check the overlays"
)
@click.option(
    "--subset", "-s",
    default=None,
    type=int,
    help="Process only the first N PDFs of a directory (for testing)"
)
@click.option(
    "--no-report",
    is_flag=True,
    help="Do not write regions.json, regions.csv, summary.json"
)
@click.option(
    "--include-literals",
    is_flag=True,
    help="Write the matched sensitive text into regions.json and regions.csv"
)
@click.option(
    "--dry-run",
    is_flag=True,
    help="Locate regions and write reports, but do not produce redacted PDFs"
)
@click.option(
    "--verbose", "-v",
    is_flag=True,
    help="Enable verbose output"
)
def main(
    input_path: Path,
    output_dir: Path,
    classifier_kind: str,
    spans_file: Optional[Path],
    gemini_api_key: Optional[str],
    gemini_model: str,
    spacy_model: str,
    scale: float,
    padding: float,
    descent_ratio: float,
    workers: int,
    no_verify: bool,
    subset: Optional[int],
    no_report: bool,
    include_literals: bool,
    dry_run: bool,
    verbose: bool,
):
    """
    Permanently redact sensitive text in PDF files.

    INPUT_PATH is a PDF file or a directory searched recursively for PDFs.

    Outputs:

    \b
    - redacted_<name>.pdf: Sanitized copy of each input
    - regions.json: Every located region with per-document detail
    - regions.csv: Flat CSV, one row per region
    - summary.json: Aggregate statistics
    """
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    click.echo("=" * 60)
    click.echo("PDF Sanitizer")
    click.echo("=" * 60)
    click.echo()

    click.echo("Configuration:")
    click.echo(f"  Input:            {input_path}")
    click.echo(f"  Output directory: {output_dir}")
    click.echo(f"  Classifier:       {classifier_kind}")
    click.echo(f"  Scale:            {scale} ({72 * scale:.0f} DPI)")
    click.echo(f"  Padding:          {padding}pt")
    click.echo(f"  Workers:          {workers}")
    click.echo(f"  Verify overlays:  {not no_verify}")
    if subset:
        click.echo(f"  Subset:           first {subset} PDFs")
    if dry_run:
        click.echo("  Dry run:          no PDFs will be written")
    click.echo()

    if scale <= 0:
        raise click.BadParameter("must be positive", param_hint="--scale")

    classifier = build_classifier(
        classifier_kind, spans_file, gemini_api_key, gemini_model, spacy_model
    )
    params = SanitizeParams(
        scale=scale,
        padding=padding,
        descent_ratio=descent_ratio,
        workers=max(1, workers),
        verify=not no_verify,
    )

    output_dir.mkdir(parents=True, exist_ok=True)
    start_time = datetime.now()
    single_file = input_path.is_file()

    try:
        if single_file:
            result = process_document(input_path, output_dir, classifier, params, dry_run)
            corpus = CorpusResult(documents=[result])
        else:
            corpus = process_corpus(
                input_path, output_dir, classifier, params, subset=subset, dry_run=dry_run
            )
    except KeyboardInterrupt:
        click.echo()
        click.echo(click.style("Processing interrupted by user", fg="yellow"))
        sys.exit(EXIT_INTERRUPTED)
    except DocumentReadError as e:
        fail(f"Could not read document: {e}", verbose)
    except ClassificationError as e:
        fail(f"Could not classify document: {e}", verbose)
    except DocumentWriteError as e:
        fail(f"Could not produce redacted document: {e}", verbose)

    if not corpus.documents:
        fail("Error: No PDF files found in input directory", verbose)

    elapsed = datetime.now() - start_time

    click.echo()
    click.echo("Processing complete!")
    click.echo(f"  Time elapsed: {elapsed}")
    click.echo()

    stats = get_processing_stats(corpus)

    click.echo("Results:")
    click.echo(f"  Documents processed: {stats['successful_documents']}/{stats['total_documents']}")
    click.echo(f"  Total pages:         {stats['total_pages']}")
    click.echo(f"  Regions located:     {stats['total_regions']}")
    if not dry_run:
        click.echo(f"  Pages redacted:      {stats['pages_redacted']}")
        click.echo(f"  Regions drawn:       {stats['regions_drawn']}")

    if stats['regions_skipped'] > 0:
        click.echo(click.style(f"  Regions skipped:     {stats['regions_skipped']}", fg="yellow"))

    if stats['pages_failed'] > 0:
        click.echo(click.style(
            f"  Pages left unredacted: {stats['pages_failed']} "
            f"(in {', '.join(stats['partial_documents'])})",
            fg="yellow"
        ))

    if stats['failed_documents'] > 0:
        click.echo()
        click.echo(click.style(f"  Failed documents: {stats['failed_documents']}", fg="yellow"))
        if verbose:
            for doc_id in stats['failed_doc_ids']:
                click.echo(f"    - {doc_id}")

    click.echo()

    if not no_report:
        click.echo("Writing report files...")
        try:
            paths = write_all_outputs(corpus, params, output_dir, include_literals)
        except OSError as e:
            fail(f"Error writing reports: {e}", verbose)
        click.echo(f"  {paths['regions_json']}")
        click.echo(f"  {paths['regions_csv']}")
        click.echo(f"  {paths['summary_json']}")
        click.echo()

    if single_file and stats['pages_failed'] > 0:
        click.echo(click.style("Done, but some pages could not be redacted.", fg="yellow"))
        sys.exit(EXIT_PARTIAL)

    if stats['pages_failed'] > 0 or stats['failed_documents'] > 0:
        click.echo(click.style(
            "Done, but some documents or pages could not be redacted.", fg="yellow"
        ))
        return

    click.echo(click.style("Done!", fg="green"))


if __name__ == "__main__":
    main()
