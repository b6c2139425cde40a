"""
Offer file access.

Reads offer documents (JSON) and XML files, and writes XML atomically:
content goes to a temporary file beside the target and is renamed into place
only once fully written, so a failed write never leaves a partial file.
No validation or generation logic belongs here.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from contextlib import contextmanager, suppress
from pathlib import Path
from typing import Any, Dict, Iterator, List, TextIO, Union

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def read_text(path: PathLike) -> str:
    """
    Read a UTF-8 text file.

    Raises:
        OSError: If the file cannot be read
        UnicodeDecodeError: If the file is not UTF-8
    """

    return Path(path).read_text(encoding="utf-8")


@contextmanager
def atomic_writer(path: PathLike) -> Iterator[TextIO]:
    """
    Open a text handle whose content replaces `path` only on clean exit.

    If the block raises, the temporary file is removed and the target is
    left untouched.
    """

    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=target.parent, prefix=f".{target.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as handle:
            yield handle
        os.replace(tmp_name, target)
    except BaseException:
        with suppress(FileNotFoundError):
            os.unlink(tmp_name)
        raise

    logger.info(f"Wrote {target}", extra={"path": str(target)})


def write_text_atomic(path: PathLike, content: str) -> Path:
    with atomic_writer(path) as handle:
        handle.write(content)
    return Path(path)


def load_offer_documents(path: PathLike) -> List[Dict[str, Any]]:
    """
    Load offer documents from a JSON file.

    The file holds either one document (an object of sections) or a list of
    documents.

    Raises:
        OSError: If the file cannot be read
        ValueError: If the content is not a JSON object or list of objects
    """

    data = json.loads(read_text(path))
    documents = data if isinstance(data, list) else [data]
    if not all(isinstance(document, dict) for document in documents):
        raise ValueError(f"{path}: expected a JSON object or a list of objects")
    return documents


__all__ = ["read_text", "atomic_writer", "write_text_atomic", "load_offer_documents"]
