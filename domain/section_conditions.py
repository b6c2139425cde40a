"""
Domain: Section applicability.

Whether a section applies, and whether it is required, is a pure function
of market type, offer type and other section values. It never depends on
the order in which a UI collected the data.

Contract excerpts implemented here:
- Always required: identification, offer details, activation methods,
  contact information, offer validity, payment methods.
- Offer characteristics apply to FLAT offers and to electricity.
- Regulated components apply to electricity and gas.
- Energy price references apply to variable offers without a
  regulated-price discount.
- Time bands apply to electricity offers that are not FLAT, and are then
  required.
- Dual-offer links apply to dual fuel.
"""

from __future__ import annotations

from typing import Mapping, Tuple

from .enumerations import REGULATED_PRICE_DISCOUNT, MarketType, OfferType
from .offer import Section, ValidationContext

ALWAYS_REQUIRED: Tuple[Section, ...] = (
    Section.IDENTIFICATION,
    Section.OFFER_DETAILS,
    Section.ACTIVATION_METHODS,
    Section.CONTACT_INFORMATION,
    Section.OFFER_VALIDITY,
    Section.PAYMENT_METHODS,
)

CONDITIONAL: Tuple[Section, ...] = (
    Section.OFFER_CHARACTERISTICS,
    Section.REGULATED_COMPONENTS,
    Section.ENERGY_PRICE_REFERENCES,
    Section.TIME_BANDS,
    Section.DUAL_OFFERS,
)


def has_regulated_price_discount(context: ValidationContext) -> bool:
    """True when any discount carries a price entry of the regulated-price typology."""

    for discount in context.entries(Section.DISCOUNTS):
        prices = discount.get("PREZZISconto") or []
        if any(
            isinstance(price, Mapping) and price.get("TIPOLOGIA") == REGULATED_PRICE_DISCOUNT
            for price in prices
        ):
            return True
    return False


def is_section_applicable(section: Section, context: ValidationContext) -> bool:
    if section is Section.OFFER_CHARACTERISTICS:
        return context.is_offer(OfferType.FLAT) or context.is_market(MarketType.ELECTRICITY)
    if section is Section.REGULATED_COMPONENTS:
        return context.is_market(MarketType.ELECTRICITY) or context.is_market(MarketType.GAS)
    if section is Section.ENERGY_PRICE_REFERENCES:
        return context.is_offer(OfferType.VARIABLE) and not has_regulated_price_discount(context)
    if section is Section.TIME_BANDS:
        return context.is_market(MarketType.ELECTRICITY) and not context.is_offer(OfferType.FLAT)
    if section is Section.DUAL_OFFERS:
        return context.is_market(MarketType.DUAL_FUEL)
    return True


def is_section_required(section: Section, context: ValidationContext) -> bool:
    if section in ALWAYS_REQUIRED:
        return True
    if section is Section.TIME_BANDS:
        return is_section_applicable(section, context)
    return False


__all__ = [
    "ALWAYS_REQUIRED",
    "CONDITIONAL",
    "has_regulated_price_discount",
    "is_section_applicable",
    "is_section_required",
]
