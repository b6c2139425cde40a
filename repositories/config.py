"""
Configuration.

Loads a `.env` file from the project root and exposes the settings the
pipeline reads. Nothing here is required: every value has a default, and
the XSD path is informational (the structural validator does not need the
file to exist).

Environment variables:
- OFFER_XSD_PATH: Path to the reference XSD of the offer format
- OFFER_XML_OUTPUT_DIR: Directory generated files are written to
- LOG_LEVEL: Logging level for the scripts and the API (default INFO)
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

PROJECT_ROOT = Path(__file__).parent.parent

# Load environment variables from .env file in the project root
env_path = PROJECT_ROOT / ".env"
load_dotenv(dotenv_path=env_path)

DEFAULT_XSD_PATH = PROJECT_ROOT / "docs" / "offer-schema.xsd"
DEFAULT_OUTPUT_DIR = PROJECT_ROOT / "output"


@dataclass(frozen=True, slots=True)
class Settings:
    xsd_path: Path
    output_dir: Path
    log_level: str


def load_settings() -> Settings:
    """
    Read settings from the environment.

    Raises:
        RuntimeError: If LOG_LEVEL is not a known logging level
    """

    log_level = os.getenv("LOG_LEVEL", "INFO").upper()
    if not isinstance(logging.getLevelName(log_level), int):
        raise RuntimeError(
            f"Invalid environment variable: LOG_LEVEL={log_level!r}. "
            "Use DEBUG, INFO, WARNING, ERROR or CRITICAL."
        )

    return Settings(
        xsd_path=Path(os.getenv("OFFER_XSD_PATH", str(DEFAULT_XSD_PATH))),
        output_dir=Path(os.getenv("OFFER_XML_OUTPUT_DIR", str(DEFAULT_OUTPUT_DIR))),
        log_level=log_level,
    )


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


__all__ = ["PROJECT_ROOT", "Settings", "load_settings", "configure_logging"]
