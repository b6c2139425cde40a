"""
Batch (streaming) generation of offer XML.

Many offers are emitted inside one <Offerte> wrapper, one offer at a time,
so memory is bounded by a single offer rather than the whole batch.

Failure semantics: the batch sink is a single atomic stream. When one offer
fails, generation stops with BatchGenerationError carrying that offer's code
and index, and write_batch discards the partial output; the target file is
either the complete batch or untouched.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Iterator, List, Mapping, Optional, Tuple, Union

from domain.errors import BatchGenerationError, GenerationError
from domain.offer import OfferDocument
from domain.xml_element import XML_DECLARATION
from repositories.offer_files import atomic_writer
from services.xml_generator import OfferXmlGenerator

logger = logging.getLogger(__name__)

BATCH_ROOT = "Offerte"

DocumentInput = Union[OfferDocument, Mapping[str, Any]]


@dataclass(frozen=True, slots=True)
class BatchSummary:
    path: Path
    offer_count: int
    offer_codes: Tuple[str, ...]


def _offer_key(document: DocumentInput, index: int) -> str:
    try:
        code = OfferDocument.from_mapping(document).offer_code
    except TypeError:
        code = None
    return code if isinstance(code, str) and code else f"#{index}"


class StreamingOfferXmlGenerator:
    def __init__(self, generator: Optional[OfferXmlGenerator] = None) -> None:
        self.generator = generator or OfferXmlGenerator()

    def iter_fragments(self, documents: Iterable[DocumentInput]) -> Iterator[str]:
        """
        Yield the batch document piece by piece: header, one chunk per offer, footer.

        Documents are pulled from `documents` lazily.

        Raises:
            BatchGenerationError: On the first offer that cannot be generated
        """

        yield f"{XML_DECLARATION}\n<{BATCH_ROOT}>\n"
        for index, document in enumerate(documents):
            try:
                tree = self.generator.build(document)
            except (GenerationError, TypeError) as exc:
                key = _offer_key(document, index)
                logger.error(
                    f"Batch generation failed at offer {key}",
                    extra={"offer_code": key, "offer_index": index},
                )
                raise BatchGenerationError(key, index, exc) from exc
            yield tree.render(pretty=True, declaration=False, level=1) + "\n"
        yield f"</{BATCH_ROOT}>\n"

    def generate(self, documents: Iterable[DocumentInput]) -> str:
        return "".join(self.iter_fragments(documents))

    def write_batch(self, documents: Iterable[DocumentInput], path: Union[str, Path]) -> BatchSummary:
        """
        Stream a batch into `path` atomically.

        Raises:
            BatchGenerationError: If any offer fails; `path` is left untouched
        """

        codes: List[str] = []

        def tracked() -> Iterator[DocumentInput]:
            for index, document in enumerate(documents):
                codes.append(_offer_key(document, index))
                yield document

        with atomic_writer(path) as handle:
            for fragment in self.iter_fragments(tracked()):
                handle.write(fragment)

        logger.info(
            f"Wrote batch of {len(codes)} offer(s)",
            extra={"path": str(path), "offer_count": len(codes)},
        )
        return BatchSummary(path=Path(path), offer_count=len(codes), offer_codes=tuple(codes))


__all__ = ["BATCH_ROOT", "BatchSummary", "StreamingOfferXmlGenerator"]
