"""Command-line interface for batch claim document processing.

Provides subcommands for processing a folder of scanned images as one
batch, processing a single image, and requesting scheme recommendations
for a claim.
"""

import argparse
import asyncio
import json
import mimetypes
import sys
from pathlib import Path

from claimscan.export import document_to_dict, export_csv, export_json
from claimscan.pipeline.document_pipeline import DocumentPipeline
from claimscan.pipeline.models import DocumentSnapshot, DocumentStatus, ImageFile
from claimscan.recommendation.client import (
    Claim,
    RecommendationClient,
    recommend_with_fallback,
)
from claimscan.utils.config import load_config
from claimscan.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)

_SUPPORTED_EXTENSIONS = ("*.png", "*.jpg", "*.jpeg", "*.tiff", "*.tif", "*.bmp", "*.webp")


def _find_documents(input_dir: Path) -> list[Path]:
    """Find all supported image files in a directory.

    Args:
        input_dir: Directory to scan for images.

    Returns:
        Sorted list of image file paths.
    """
    files: list[Path] = []
    for ext in _SUPPORTED_EXTENSIONS:
        files.extend(input_dir.glob(ext))
        files.extend(input_dir.glob(ext.upper()))
    return sorted(set(files))


def _load_image(path: Path) -> ImageFile:
    content_type, _ = mimetypes.guess_type(path.name)
    return ImageFile(
        filename=path.name, content=path.read_bytes(), content_type=content_type
    )


def _summarize(documents: list[DocumentSnapshot]) -> dict[str, int]:
    completed = sum(1 for d in documents if d.status is DocumentStatus.COMPLETED)
    return {
        "total": len(documents),
        "completed": completed,
        "failed": len(documents) - completed,
    }


def process_folder(
    input_dir: Path,
    output_json: Path,
    output_csv: Path | None = None,
    verbose: bool = False,
) -> dict[str, int]:
    """Process all images in a folder as one batch and export the results.

    Args:
        input_dir: Directory containing document images.
        output_json: Path for the JSON export of every document.
        output_csv: Optional path for a CSV summary.
        verbose: Whether to print progress and per-document status.

    Returns:
        Summary dict with total, completed, and failed counts.
    """
    config = load_config()
    pipeline = DocumentPipeline.from_config(config)

    files = _find_documents(input_dir)
    if not files:
        logger.warning("No documents found in %s", input_dir)
        return {"total": 0, "completed": 0, "failed": 0}

    logger.info("Found %d documents to process", len(files))

    if verbose:
        last_shown = [-1]

        def show_progress(percent: int) -> None:
            if percent != last_shown[0]:
                last_shown[0] = percent
                print(f"Progress: {percent}%")

        pipeline.add_progress_listener(show_progress)

    documents = asyncio.run(pipeline.process(_load_image(f) for f in files))

    if verbose:
        for i, doc in enumerate(documents, 1):
            detail = f" ({doc.error_message})" if doc.error_message else ""
            print(f"[{i}/{len(documents)}] {doc.filename}: {doc.status}{detail}")

    export_json(documents, output_json)
    logger.info("Results written to %s", output_json)
    if output_csv is not None:
        export_csv(documents, output_csv)
        logger.info("CSV summary written to %s", output_csv)

    summary = _summarize(documents)
    _print_summary(summary, output_json)
    return summary


def _print_summary(summary: dict[str, int], output_path: Path) -> None:
    """Print batch processing summary to stdout.

    Args:
        summary: Counts of total, completed, and failed documents.
        output_path: Path to the JSON export.
    """
    print(f"\n{'=' * 50}")
    print("Batch Processing Complete")
    print(f"{'=' * 50}")
    print(f"Total:     {summary['total']}")
    print(f"Completed: {summary['completed']}")
    print(f"Failed:    {summary['failed']}")
    print(f"Output:    {output_path}")


def extract_single(file_path: Path) -> dict[str, object]:
    """Process a single image and return the resulting document.

    Args:
        file_path: Path to the image file.

    Returns:
        Document dict with status, text, entities, and any error.
    """
    config = load_config()
    pipeline = DocumentPipeline.from_config(config)

    documents = asyncio.run(pipeline.process([_load_image(file_path)]))
    if not documents:
        return {
            "filename": file_path.name,
            "status": DocumentStatus.ERROR.value,
            "error_message": "Unsupported file type",
        }
    return document_to_dict(documents[0])


def recommend(claim: Claim, ocr_text: str | None = None) -> list[dict[str, object]]:
    """Fetch scheme recommendations for a claim, falling back on failure."""
    config = load_config()
    client = RecommendationClient(config.recommendation)
    recommendations = asyncio.run(recommend_with_fallback(client, claim, ocr_text))
    return [r.model_dump(by_alias=True) for r in recommendations]


def _write_or_print(payload: object, output: Path | None) -> None:
    output_str = json.dumps(payload, indent=2, ensure_ascii=False)
    if output:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(output_str, encoding="utf-8")
        print(f"Output written to {output}")
    else:
        print(output_str)


def main(argv: list[str] | None = None) -> None:
    """Parse CLI arguments and dispatch to the appropriate command.

    Args:
        argv: Command-line arguments (defaults to sys.argv).
    """
    parser = argparse.ArgumentParser(
        description="Claim Document OCR Processor",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    batch_parser = subparsers.add_parser("batch", help="Process a folder of images")
    batch_parser.add_argument("input_dir", type=Path, help="Input directory with images")
    batch_parser.add_argument(
        "-o",
        "--output",
        type=Path,
        default=Path("results.json"),
        help="Output JSON file (default: results.json)",
    )
    batch_parser.add_argument("--csv", type=Path, help="Optional CSV summary file")
    batch_parser.add_argument(
        "-v", "--verbose", action="store_true", help="Verbose output"
    )

    single_parser = subparsers.add_parser("extract", help="Process a single image")
    single_parser.add_argument("file", type=Path, help="Image file to process")
    single_parser.add_argument("-o", "--output", type=Path, help="Output JSON file")

    rec_parser = subparsers.add_parser(
        "recommend", help="Recommend schemes for a claim"
    )
    rec_parser.add_argument("--claim-id", required=True, help="Claim identifier")
    rec_parser.add_argument("--holder", required=True, help="Claim holder name")
    rec_parser.add_argument("--village", required=True, help="Claim village")
    rec_parser.add_argument(
        "--type", required=True, dest="claim_type", help="Claim type (IFR, CFR, CR)"
    )
    rec_parser.add_argument(
        "--ocr-text-file", type=Path, help="Recognized text to add as context"
    )
    rec_parser.add_argument("-o", "--output", type=Path, help="Output JSON file")

    args = parser.parse_args(argv)

    setup_logging()

    if args.command == "batch":
        if not args.input_dir.is_dir():
            print(f"Error: {args.input_dir} is not a directory", file=sys.stderr)
            sys.exit(1)
        process_folder(args.input_dir, args.output, args.csv, args.verbose)
    elif args.command == "extract":
        if not args.file.exists():
            print(f"Error: {args.file} does not exist", file=sys.stderr)
            sys.exit(1)
        _write_or_print(extract_single(args.file), args.output)
    elif args.command == "recommend":
        ocr_text = None
        if args.ocr_text_file:
            if not args.ocr_text_file.exists():
                print(f"Error: {args.ocr_text_file} does not exist", file=sys.stderr)
                sys.exit(1)
            ocr_text = args.ocr_text_file.read_text(encoding="utf-8")
        claim = Claim(
            id=args.claim_id,
            holder=args.holder,
            village=args.village,
            type=args.claim_type,
        )
        _write_or_print(recommend(claim, ocr_text), args.output)
    else:
        parser.print_help()
        sys.exit(0)


if __name__ == "__main__":
    main()
