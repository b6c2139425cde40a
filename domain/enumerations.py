"""
Domain: Closed value sets of the offer format.

Every enumerated element of the offer document has exactly one legal value
set, declared here and nowhere else. The section schemas, the business rules
and the structural validator all read from this module so the three passes
cannot drift apart.

Contract excerpts implemented here:
- Market type: 01 electricity, 02 gas, 03 dual fuel.
- Offer type: 01 fixed, 02 variable, 03 FLAT.
- Code 99 means "Other" wherever it appears and always pairs with a
  companion free-text description.
- Time-band typology drives the number of price intervals:
  01→1, 02→2, 03→3, 04→3, 05→4, 06→5. Other typologies carry no count.
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, Optional, Tuple


class MarketType(str, Enum):
    ELECTRICITY = "01"
    GAS = "02"
    DUAL_FUEL = "03"


class OfferType(str, Enum):
    FIXED = "01"
    VARIABLE = "02"
    FLAT = "03"


class ClientType(str, Enum):
    DOMESTIC = "01"
    OTHER_USES = "02"
    RESIDENTIAL_CONDOMINIUM = "03"


OTHER = "99"

# PREZZISconto.TIPOLOGIA value for a discount on the regulated price
REGULATED_PRICE_DISCOUNT = "04"

# IntervalloPrezzi.UNITA_MISURA
UNIT_EUR_PER_KWH = "03"
FIXED_PRICE_UNITS: Tuple[str, ...] = ("01", "02", "05")

# ComponenteImpresa.MACROAREA groups used by the interval rules
BAND_PRICED_AREAS: Tuple[str, ...] = ("02", "04", "06")
FIXED_PRICED_AREAS: Tuple[str, ...] = ("01", "04", "05", "06")

# Typologies that need a weekly F_* schedule
WEEKLY_SCHEDULE_TYPOLOGIES: Tuple[str, ...] = ("02", "04", "05", "06")

TIME_BAND_INTERVAL_COUNTS: Dict[str, int] = {
    "01": 1,
    "02": 2,
    "03": 3,
    "04": 3,
    "05": 4,
    "06": 5,
}


def _codes(*values: str) -> Tuple[str, ...]:
    return tuple(values)


def _range(first: int, last: int) -> Tuple[str, ...]:
    return tuple(f"{n:02d}" for n in range(first, last + 1))


MARKET_TYPES = tuple(m.value for m in MarketType)
CLIENT_TYPES = tuple(c.value for c in ClientType)
OFFER_TYPES = tuple(o.value for o in OfferType)
SINGLE_OFFER = _codes("SI", "NO")
DOMESTIC_RESIDENT = _range(1, 3)
CONTRACT_ACTIVATION_TYPES = _range(1, 4) + (OTHER,)
ACTIVATION_METHODS = _range(1, 5) + (OTHER,)
PAYMENT_METHODS = _range(1, 4) + (OTHER,)
PRICE_INDEXES = _range(1, 15) + (OTHER,)
REGULATED_COMPONENTS = _range(1, 7) + _codes("09", "10")
TIME_BAND_TYPOLOGIES = _range(1, 7) + _codes("91", "92", "93")
DISPATCHING_TYPES = _range(1, 13) + (OTHER,)
COMPONENT_TYPES = _range(1, 2)
COMPONENT_AREAS = _codes("01", "02", "04", "05", "06")
COMPONENT_UNITS = _range(1, 5)
COMPONENT_BANDS = _range(1, 7)
MONTHS = _range(1, 12)
DISCOUNT_BAND_CODES = _range(1, 7) + _range(9, 18)
DISCOUNT_VALIDITY = _range(1, 3)
DISCOUNT_VAT = _range(1, 2)
DISCOUNT_CONDITIONS = _range(1, 4) + (OTHER,)
DISCOUNT_PRICE_TYPES = _range(1, 4)
DISCOUNT_UNITS = _range(1, 6)
CONDITION_TYPES = _range(1, 5) + (OTHER,)
CONDITION_LIMITING = _range(1, 2)
SERVICE_CATEGORIES = _range(1, 6) + (OTHER,)


# Element name, or "Parent.ELEMENT" where the same element name carries a
# different value set under different parents.
ENUMERATED_ELEMENTS: Dict[str, Tuple[str, ...]] = {
    "TIPO_MERCATO": MARKET_TYPES,
    "OFFERTA_SINGOLA": SINGLE_OFFER,
    "TIPO_CLIENTE": CLIENT_TYPES,
    "DOMESTICO_RESIDENTE": DOMESTIC_RESIDENT,
    "TIPO_OFFERTA": OFFER_TYPES,
    "TIPOLOGIA_ATT_CONTR": CONTRACT_ACTIVATION_TYPES,
    "MODALITA": ACTIVATION_METHODS,
    "MODALITA_PAGAMENTO": PAYMENT_METHODS,
    "IDX_PREZZO_ENERGIA": PRICE_INDEXES,
    "ComponentiRegolate.CODICE": REGULATED_COMPONENTS,
    "TIPOLOGIA_FASCE": TIME_BAND_TYPOLOGIES,
    "TIPO_DISPACCIAMENTO": DISPATCHING_TYPES,
    "ComponenteImpresa.TIPOLOGIA": COMPONENT_TYPES,
    "ComponenteImpresa.MACROAREA": COMPONENT_AREAS,
    "IntervalloPrezzi.UNITA_MISURA": COMPONENT_UNITS,
    "FASCIA_COMPONENTE": COMPONENT_BANDS,
    "MESE_VALIDITA": MONTHS,
    "CODICE_COMPONENTE_FASCIA": DISCOUNT_BAND_CODES,
    "VALIDITA": DISCOUNT_VALIDITY,
    "IVA_SCONTO": DISCOUNT_VAT,
    "CONDIZIONE_APPLICAZIONE": DISCOUNT_CONDITIONS,
    "PREZZISconto.TIPOLOGIA": DISCOUNT_PRICE_TYPES,
    "PREZZISconto.UNITA_MISURA": DISCOUNT_UNITS,
    "TIPOLOGIA_CONDIZIONE": CONDITION_TYPES,
    "LIMITANTE": CONDITION_LIMITING,
    "ProdottiServiziAggiuntivi.MACROAREA": SERVICE_CATEGORIES,
}


def allowed_values(element: str, parent: Optional[str] = None) -> Optional[Tuple[str, ...]]:
    """
    Resolve the closed value set for an element, or None if it is free text.

    A parent-qualified entry wins over a bare element entry.
    """

    if parent is not None:
        qualified = ENUMERATED_ELEMENTS.get(f"{parent}.{element}")
        if qualified is not None:
            return qualified
    return ENUMERATED_ELEMENTS.get(element)


def expected_interval_count(typology: Optional[str]) -> Optional[int]:
    """Number of price intervals a time-band typology requires, if it defines one."""

    if typology is None:
        return None
    return TIME_BAND_INTERVAL_COUNTS.get(typology)


__all__ = [
    "MarketType",
    "OfferType",
    "ClientType",
    "OTHER",
    "REGULATED_PRICE_DISCOUNT",
    "UNIT_EUR_PER_KWH",
    "FIXED_PRICE_UNITS",
    "BAND_PRICED_AREAS",
    "FIXED_PRICED_AREAS",
    "WEEKLY_SCHEDULE_TYPOLOGIES",
    "TIME_BAND_INTERVAL_COUNTS",
    "MARKET_TYPES",
    "CLIENT_TYPES",
    "OFFER_TYPES",
    "SINGLE_OFFER",
    "DOMESTIC_RESIDENT",
    "CONTRACT_ACTIVATION_TYPES",
    "ACTIVATION_METHODS",
    "PAYMENT_METHODS",
    "PRICE_INDEXES",
    "REGULATED_COMPONENTS",
    "TIME_BAND_TYPOLOGIES",
    "DISPATCHING_TYPES",
    "COMPONENT_TYPES",
    "COMPONENT_AREAS",
    "COMPONENT_UNITS",
    "COMPONENT_BANDS",
    "MONTHS",
    "DISCOUNT_BAND_CODES",
    "DISCOUNT_VALIDITY",
    "DISCOUNT_VAT",
    "DISCOUNT_CONDITIONS",
    "DISCOUNT_PRICE_TYPES",
    "DISCOUNT_UNITS",
    "CONDITION_TYPES",
    "CONDITION_LIMITING",
    "SERVICE_CATEGORIES",
    "ENUMERATED_ELEMENTS",
    "allowed_values",
    "expected_interval_count",
]
