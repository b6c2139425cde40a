"""
Domain: Offer document and validation context.

Contract excerpts implemented here:
- An offer document is an aggregate of named sections. Each section is an
  independent, optionally-present record (or list of records). A section
  whose value is None counts as absent.
- The caller owns the document. The core only reads it; OfferDocument is
  a read-only view and "changing" a section derives a new view.
- A ValidationContext is {document, market type, offer type, action},
  built fresh per run and never mutated in place.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Union

from .enumerations import MarketType, OfferType


class Section(str, Enum):
    """Closed set of section keys, in registration order."""

    IDENTIFICATION = "identification"
    OFFER_DETAILS = "offer_details"
    ACTIVATION_METHODS = "activation_methods"
    CONTACT_INFORMATION = "contact_information"
    OFFER_VALIDITY = "offer_validity"
    OFFER_CHARACTERISTICS = "offer_characteristics"
    PAYMENT_METHODS = "payment_methods"
    REGULATED_COMPONENTS = "regulated_components"
    ENERGY_PRICE_REFERENCES = "energy_price_references"
    DUAL_OFFERS = "dual_offers"
    TIME_BANDS = "time_bands"
    COMPANY_COMPONENTS = "company_components"
    CONTRACTUAL_CONDITIONS = "contractual_conditions"
    OFFER_ZONES = "offer_zones"
    DISCOUNTS = "discounts"
    ADDITIONAL_SERVICES = "additional_services"

    @staticmethod
    def parse(name: Union[str, "Section"]) -> "Section":
        """
        Resolve a section key.

        Raises ValueError for names outside the closed set.
        """

        if isinstance(name, Section):
            return name
        try:
            return Section(name)
        except ValueError:
            raise ValueError(f"Unknown section: {name!r}") from None


# Sections whose value is a list of entries rather than a single record.
LIST_SECTIONS = frozenset(
    {
        Section.PAYMENT_METHODS,
        Section.COMPANY_COMPONENTS,
        Section.CONTRACTUAL_CONDITIONS,
        Section.DISCOUNTS,
        Section.ADDITIONAL_SERVICES,
    }
)


class Action(str, Enum):
    INSERT = "INSERIMENTO"
    UPDATE = "AGGIORNAMENTO"

    @staticmethod
    def parse(value: Union[str, "Action"]) -> "Action":
        """
        Accept the literal tokens or the insert/update aliases, case-insensitively.
        """

        if isinstance(value, Action):
            return value
        token = str(value).strip().upper()
        aliases = {"INSERT": Action.INSERT, "UPDATE": Action.UPDATE}
        if token in aliases:
            return aliases[token]
        try:
            return Action(token)
        except ValueError:
            raise ValueError(
                f"Invalid action {value!r}: expected INSERIMENTO or AGGIORNAMENTO"
            ) from None


SectionKey = Union[str, Section]


def _key(name: SectionKey) -> str:
    return name.value if isinstance(name, Section) else name


@dataclass(frozen=True, slots=True)
class OfferDocument:
    """
    Read-only view over a caller-owned mapping of sections.

    The view copies the top-level mapping only; section records are shared
    with the caller and never written to.
    """

    sections: Mapping[str, Any]

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "sections", MappingProxyType({_key(k): v for k, v in self.sections.items()})
        )

    @classmethod
    def from_mapping(cls, data: Union["OfferDocument", Mapping[str, Any]]) -> "OfferDocument":
        if isinstance(data, OfferDocument):
            return data
        if not isinstance(data, Mapping):
            raise TypeError(f"Offer document must be a mapping, got {type(data).__name__}")
        return cls(sections=data)

    def section(self, name: SectionKey) -> Any:
        return self.sections.get(_key(name))

    def has_section(self, name: SectionKey) -> bool:
        return self.section(name) is not None

    def present_sections(self) -> List[Section]:
        """Known sections that are present, in registration order."""

        return [s for s in Section if self.has_section(s)]

    def value(self, section: SectionKey, field: str, default: Any = None) -> Any:
        data = self.section(section)
        if not isinstance(data, Mapping):
            return default
        return data.get(field, default)

    def entries(self, section: SectionKey) -> List[Mapping[str, Any]]:
        """Entries of a list section; an absent or malformed section yields none."""

        data = self.section(section)
        if not isinstance(data, list):
            return []
        return [entry for entry in data if isinstance(entry, Mapping)]

    @property
    def market_type(self) -> Optional[str]:
        return self.value(Section.OFFER_DETAILS, "TIPO_MERCATO")

    @property
    def offer_type(self) -> Optional[str]:
        return self.value(Section.OFFER_DETAILS, "TIPO_OFFERTA")

    @property
    def offer_code(self) -> Optional[str]:
        return self.value(Section.IDENTIFICATION, "COD_OFFERTA")

    def with_section(self, name: SectionKey, data: Any) -> "OfferDocument":
        updated: Dict[str, Any] = dict(self.sections)
        updated[_key(name)] = data
        return OfferDocument(sections=updated)

    def to_dict(self) -> Dict[str, Any]:
        return dict(self.sections)


@dataclass(frozen=True, slots=True)
class ValidationContext:
    document: OfferDocument
    market_type: Optional[str]
    offer_type: Optional[str]
    action: Action = Action.INSERT

    @classmethod
    def build(
        cls,
        document: Union[OfferDocument, Mapping[str, Any]],
        action: Union[str, Action] = Action.INSERT,
    ) -> "ValidationContext":
        doc = OfferDocument.from_mapping(document)
        return cls(
            document=doc,
            market_type=doc.market_type,
            offer_type=doc.offer_type,
            action=Action.parse(action),
        )

    def derive(self, **changes: Any) -> "ValidationContext":
        return replace(self, **changes)

    def with_section(self, name: SectionKey, data: Any) -> "ValidationContext":
        """Context over a document with one section replaced; market and offer type re-derived."""

        return ValidationContext.build(self.document.with_section(name, data), self.action)

    def is_market(self, market: MarketType) -> bool:
        return self.market_type == market.value

    def is_offer(self, offer: OfferType) -> bool:
        return self.offer_type == offer.value

    def section(self, name: SectionKey) -> Any:
        return self.document.section(name)

    def value(self, section: SectionKey, field: str, default: Any = None) -> Any:
        return self.document.value(section, field, default)

    def entries(self, section: SectionKey) -> List[Mapping[str, Any]]:
        return self.document.entries(section)


__all__ = [
    "Section",
    "LIST_SECTIONS",
    "Action",
    "OfferDocument",
    "ValidationContext",
]
