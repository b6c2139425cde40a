#!/usr/bin/env python3
"""
Offer XML Generation Script

Reads offer documents from a JSON file (one object or a list of objects)
and writes one XML file per offer, named after the offer's identity code,
action and description. With --batch, all offers are written into a single
<Offerte> file instead; a failing offer aborts the batch and no file is left
behind.

Usage:
    python generate_offer_xml.py offers.json
    python generate_offer_xml.py offers.json --validate --minify --output-dir out/
    python generate_offer_xml.py offers.json --batch out/offers_batch.xml
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from domain.errors import BatchGenerationError, FileNameError, GenerationError
from repositories.config import configure_logging, load_settings
from repositories.offer_files import load_offer_documents
from services.offer_export_service import export_offer, prepare_submission, write_offer
from services.streaming_generator import StreamingOfferXmlGenerator

logger = logging.getLogger(__name__)


def run_batch(documents: list, path: Path) -> int:
    try:
        summary = StreamingOfferXmlGenerator().write_batch(documents, path)
    except BatchGenerationError as e:
        print(f"✗ Batch aborted at offer {e.offer_code} (index {e.index}): {e.cause}", file=sys.stderr)
        return 1

    print(f"✓ Wrote {summary.offer_count} offer(s) to {summary.path}")
    return 0


def run_single(documents: list, args: argparse.Namespace, output_dir: Path) -> int:
    failures = 0
    for index, document in enumerate(documents):
        try:
            if args.validate:
                submission = asyncio.run(
                    prepare_submission(
                        document,
                        action=args.action,
                        description=args.description,
                        optimize=args.optimize,
                        minify=args.minify,
                        unique=args.unique,
                    )
                )
                if submission.export is None:
                    failures += 1
                    print(f"✗ Offer #{index} failed validation:")
                    for error in submission.validation.errors:
                        print(f"    {error.field}: {error.message}")
                    continue
                export = submission.export
            else:
                export = export_offer(
                    document,
                    action=args.action,
                    description=args.description,
                    optimize=args.optimize,
                    minify=args.minify,
                    unique=args.unique,
                )
        except (GenerationError, FileNameError) as e:
            failures += 1
            print(f"✗ Offer #{index}: {e}", file=sys.stderr)
            continue

        path = write_offer(export, output_dir)
        status = "" if export.is_structurally_valid is not False else " (structural check failed)"
        print(f"✓ {path}{status}")

    print()
    print(f"Generated {len(documents) - failures} of {len(documents)} offer(s)")
    return 1 if failures else 0


def main() -> int:
    """Main entry point for the CLI."""
    settings = load_settings()
    configure_logging(settings)

    parser = argparse.ArgumentParser(
        description="Generate offer XML files from JSON offer documents",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # One XML file per offer in the configured output directory
  python generate_offer_xml.py offers.json

  # Validate first, minify, and write to a specific directory
  python generate_offer_xml.py offers.json --validate --minify --output-dir out/

  # All offers in one batch file
  python generate_offer_xml.py offers.json --batch out/offers_batch.xml
        """
    )

    parser.add_argument("input", help="JSON file with one offer document or a list of them")

    parser.add_argument(
        "--output-dir",
        "-o",
        default=str(settings.output_dir),
        help=f"Directory for generated files (default: {settings.output_dir})"
    )

    parser.add_argument(
        "--action",
        "-a",
        default="INSERIMENTO",
        help="INSERIMENTO or AGGIORNAMENTO (insert/update accepted)"
    )

    parser.add_argument("--description", "-d", help="File name description (default: offer name)")
    parser.add_argument("--validate", action="store_true", help="Run business validation first")
    parser.add_argument("--optimize", action="store_true", help="Strip empty elements")
    parser.add_argument("--minify", action="store_true", help="Write without layout whitespace")
    parser.add_argument("--unique", action="store_true", help="Add a timestamp to file names")
    parser.add_argument("--batch", help="Write all offers into this single batch file")

    args = parser.parse_args()

    try:
        documents = load_offer_documents(args.input)
        if not documents:
            print("No offer documents found")
            return 1

        if args.batch:
            return run_batch(documents, Path(args.batch))
        return run_single(documents, args, Path(args.output_dir))

    except KeyboardInterrupt:
        print("\n\nGeneration interrupted by user")
        return 130

    except Exception as e:
        print(f"\nERROR: {e}", file=sys.stderr)
        logger.exception("Offer generation failed")
        return 1


if __name__ == "__main__":
    sys.exit(main())
