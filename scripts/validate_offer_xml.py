#!/usr/bin/env python3
"""
Offer XML Validation Script

Structurally validates one or more offer XML files and prints every error,
grouped by file. Exits with status 1 if any file has errors.

Usage:
    python validate_offer_xml.py output/ABCDEFGH12345678_INSERIMENTO_WINTEROFFER2024.XML
    python validate_offer_xml.py output/*.XML
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from repositories.config import configure_logging, load_settings
from services.structural_validator import StructuralValidator


def main() -> int:
    """Main entry point for the CLI."""
    settings = load_settings()
    configure_logging(settings)

    parser = argparse.ArgumentParser(
        description="Validate offer XML files against the structural contract"
    )
    parser.add_argument("files", nargs="+", help="XML files to validate")
    args = parser.parse_args()

    validator = StructuralValidator(settings.xsd_path)
    invalid = 0

    for name in args.files:
        result = validator.validate_file(Path(name))
        if result.is_valid:
            print(f"✓ {name}")
            continue

        invalid += 1
        print(f"✗ {name} ({len(result.errors)} error(s))")
        for error in result.errors:
            marker = "FATAL " if error.level == "fatal" else ""
            print(f"    {marker}{error.field}: {error.message}")

    print()
    print("=" * 60)
    print(f"Files checked: {len(args.files)}")
    print(f"  Valid:   {len(args.files) - invalid}")
    print(f"  Invalid: {invalid}")
    print("=" * 60)

    return 1 if invalid else 0


if __name__ == "__main__":
    sys.exit(main())
