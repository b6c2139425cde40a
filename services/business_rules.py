"""
Business rule set.

The regulatory dependencies between offer fields and sections: what becomes
required under which market and offer type, mutually exclusive options,
interval counts driven by the time-band typology, ordered bounds, and "Other"
selections that need a companion description.

Rule contract:
- Rules are pure. They return None or an empty list when the data is fine
  and never raise for an ordinary violation.
- A cross-field rule covers one concern and returns at most one error.
- A section rule may return several errors (one section can have many
  defects at once, e.g. several malformed price intervals).
- Every error's field is the dotted form of its path, and the path is rooted
  at the section the error belongs to.
"""

from __future__ import annotations

from decimal import Decimal
from functools import lru_cache
from typing import Any, List, Mapping, Optional

from domain.enumerations import (
    BAND_PRICED_AREAS,
    FIXED_PRICE_UNITS,
    FIXED_PRICED_AREAS,
    OTHER,
    UNIT_EUR_PER_KWH,
    WEEKLY_SCHEDULE_TYPOLOGIES,
    ClientType,
    MarketType,
    OfferType,
    expected_interval_count,
)
from domain.formatting import is_timestamp, parse_timestamp, to_decimal
from domain.offer import Section, ValidationContext
from domain.section_conditions import (
    ALWAYS_REQUIRED,
    CONDITIONAL,
    has_regulated_price_discount,
    is_section_applicable,
    is_section_required,
)
from domain.validation import ValidationError
from services.rule_registry import RuleKind, RuleRegistry

# Messages
MSG_IDENTITY_CODE_UPPER = "Identity code must be upper-case"
MSG_OFFER_CODE_UPPER = "Offer code must be upper-case"
MSG_SINGLE_OFFER_REQUIRED = "Single offer selection required for non-dual fuel offers"
MSG_PRICE_INDEX_REQUIRED = "Price index required for variable offers"
MSG_PRICE_INDEX_WITHOUT_REGULATED_DISCOUNT = (
    "Price index required for variable offers without regulated discount"
)
MSG_FLAT_LIMITS_REQUIRED = "Consumption limits required for FLAT offers"
MSG_FLAT_LIMITS_ORDER = "Maximum consumption must exceed minimum consumption"
MSG_CONDOMINIUM_GAS_ONLY = "Residential condominium is only available for gas market"
MSG_POWER_ORDER = "Maximum power must be greater than minimum power"
MSG_VALIDITY_ORDER = "End date must be after start date"
MSG_DUAL_ELECTRICITY_CODES = "Electricity offer codes required for dual fuel"
MSG_DUAL_GAS_CODES = "Gas offer codes required for dual fuel"
MSG_OTHER_DESCRIPTION = "Description required when 'Other' is selected"
MSG_CUSTOM_INDEX_DESCRIPTION = "Description required for custom index"
MSG_TIME_BAND_TYPOLOGY_REQUIRED = "Time band configuration required for electricity offers"
MSG_WEEKLY_SCHEDULE_REQUIRED = "Weekly time band schedule required for selected band type"
MSG_DISPATCHING_VALUE_REQUIRED = "Value required for 'Other' dispatching component"
MSG_FIXED_SINGLE_INTERVAL = "Fixed pricing components must have exactly one interval"
MSG_CONSUMPTION_ORDER = "Consumption upper bound must be greater than lower bound"
MSG_VALIDITY_BOTH_CONFIGURED = "Simple validity and validity period are both configured"
MSG_VALIDITY_MUST_SPECIFY_ONE = "Must specify one of simple validity or validity period"
MSG_DISCOUNT_PRICE_REQUIRED = "At least one price configuration is required"
MSG_PRICE_RANGE_ORDER = "Valid until must be greater than valid from"
MSG_OTHER_CONDITION_DESCRIPTION = "Description required when 'Other' condition is selected"
MSG_OTHER_CATEGORY_DETAILS = "Category details required for 'Other' category"
MSG_ZONE_REQUIRED = "Select at least one geographical area if specifying zones"

ZONE_KEYS = ("REGIONE", "PROVINCIA", "COMUNE")


def interval_count_message(expected: int, actual: int) -> str:
    return (
        f"Must have {expected} price intervals matching time bands "
        f"({expected} required, found {actual})"
    )


def missing_section_message(section: Section) -> str:
    return f"Required section '{section.value}' is missing"


def not_applicable_message(section: Section) -> str:
    return f"Section '{section.value}' does not apply to the selected market and offer type"


def required_section_message(section: Section) -> str:
    return f"Section '{section.value}' is required for the selected market and offer type"


def finding(message: str, *path: Any) -> ValidationError:
    parts = tuple(str(p.value if isinstance(p, Section) else p) for p in path)
    return ValidationError(field=".".join(parts), message=message, path=parts)


def _number(value: Any) -> Optional[Decimal]:
    if value is None:
        return None
    try:
        return to_decimal(value)
    except ValueError:
        return None


def _blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    return False


def _entries(data: Any) -> List[tuple]:
    """(index, entry) pairs of a list, skipping anything that is not a record."""

    if not isinstance(data, list):
        return []
    return [(i, entry) for i, entry in enumerate(data) if isinstance(entry, Mapping)]


def _strictly_ordered(low: Any, high: Any) -> bool:
    """False only when both bounds are numbers and high <= low."""

    lo, hi = _number(low), _number(high)
    if lo is None or hi is None:
        return True
    return hi > lo


# ============================================================================
# Field rules
# ============================================================================

def identity_code_upper_case(value: Any, context: ValidationContext) -> Optional[ValidationError]:
    if isinstance(value, str) and value != value.upper():
        return finding(MSG_IDENTITY_CODE_UPPER, Section.IDENTIFICATION, "PIVA_UTENTE")
    return None


def offer_code_upper_case(value: Any, context: ValidationContext) -> Optional[ValidationError]:
    if isinstance(value, str) and value != value.upper():
        return finding(MSG_OFFER_CODE_UPPER, Section.IDENTIFICATION, "COD_OFFERTA")
    return None


# ============================================================================
# Cross-field rules
# ============================================================================

def single_offer_selection(context: ValidationContext) -> Optional[ValidationError]:
    if context.market_type is None or context.is_market(MarketType.DUAL_FUEL):
        return None
    if _blank(context.value(Section.OFFER_DETAILS, "OFFERTA_SINGOLA")):
        return finding(MSG_SINGLE_OFFER_REQUIRED, Section.OFFER_DETAILS, "OFFERTA_SINGOLA")
    return None


def price_index_required(context: ValidationContext) -> Optional[ValidationError]:
    """
    Variable offers need an energy price index.

    A discount with a regulated-price entry exempts the offer. Once any
    discounts are configured, the error names that exemption.
    """

    if not context.is_offer(OfferType.VARIABLE):
        return None
    if not _blank(context.value(Section.ENERGY_PRICE_REFERENCES, "IDX_PREZZO_ENERGIA")):
        return None

    if isinstance(context.section(Section.DISCOUNTS), list):
        if has_regulated_price_discount(context):
            return None
        return finding(
            MSG_PRICE_INDEX_WITHOUT_REGULATED_DISCOUNT,
            Section.ENERGY_PRICE_REFERENCES,
            "IDX_PREZZO_ENERGIA",
        )
    return finding(MSG_PRICE_INDEX_REQUIRED, Section.ENERGY_PRICE_REFERENCES, "IDX_PREZZO_ENERGIA")


def flat_offer_limits(context: ValidationContext) -> Optional[ValidationError]:
    if not context.is_offer(OfferType.FLAT):
        return None

    minimum = _number(context.value(Section.OFFER_CHARACTERISTICS, "CONSUMO_MIN"))
    maximum = _number(context.value(Section.OFFER_CHARACTERISTICS, "CONSUMO_MAX"))
    if minimum is None or maximum is None:
        return finding(MSG_FLAT_LIMITS_REQUIRED, Section.OFFER_CHARACTERISTICS, "CONSUMO_MIN")
    if maximum <= minimum:
        return finding(MSG_FLAT_LIMITS_ORDER, Section.OFFER_CHARACTERISTICS, "CONSUMO_MAX")
    return None


def residential_condominium(context: ValidationContext) -> Optional[ValidationError]:
    client_type = context.value(Section.OFFER_DETAILS, "TIPO_CLIENTE")
    if client_type != ClientType.RESIDENTIAL_CONDOMINIUM.value:
        return None
    if not context.is_market(MarketType.GAS):
        return finding(MSG_CONDOMINIUM_GAS_ONLY, Section.OFFER_DETAILS, "TIPO_CLIENTE")
    return None


def power_limits(context: ValidationContext) -> Optional[ValidationError]:
    if not context.is_market(MarketType.ELECTRICITY):
        return None
    if not _strictly_ordered(
        context.value(Section.OFFER_CHARACTERISTICS, "POTENZA_MIN"),
        context.value(Section.OFFER_CHARACTERISTICS, "POTENZA_MAX"),
    ):
        return finding(MSG_POWER_ORDER, Section.OFFER_CHARACTERISTICS, "POTENZA_MAX")
    return None


def validity_period(context: ValidationContext) -> Optional[ValidationError]:
    start = context.value(Section.OFFER_VALIDITY, "DATA_INIZIO")
    end = context.value(Section.OFFER_VALIDITY, "DATA_FINE")
    # Malformed dates are reported by the section schema.
    if not (is_timestamp(start) and is_timestamp(end)):
        return None
    if parse_timestamp(end) <= parse_timestamp(start):
        return finding(MSG_VALIDITY_ORDER, Section.OFFER_VALIDITY, "DATA_FINE")
    return None


def dual_offer_electricity_links(context: ValidationContext) -> Optional[ValidationError]:
    if not context.is_market(MarketType.DUAL_FUEL):
        return None
    if not context.value(Section.DUAL_OFFERS, "OFFERTE_CONGIUNTE_EE"):
        return finding(MSG_DUAL_ELECTRICITY_CODES, Section.DUAL_OFFERS, "OFFERTE_CONGIUNTE_EE")
    return None


def dual_offer_gas_links(context: ValidationContext) -> Optional[ValidationError]:
    if not context.is_market(MarketType.DUAL_FUEL):
        return None
    if not context.value(Section.DUAL_OFFERS, "OFFERTE_CONGIUNTE_GAS"):
        return finding(MSG_DUAL_GAS_CODES, Section.DUAL_OFFERS, "OFFERTE_CONGIUNTE_GAS")
    return None


# ============================================================================
# Section rules
# ============================================================================

def activation_methods_rules(data: Any, context: ValidationContext) -> List[ValidationError]:
    if not isinstance(data, Mapping):
        return []
    methods = data.get("MODALITA") or []
    if OTHER in methods and _blank(data.get("DESCRIZIONE")):
        return [finding(MSG_OTHER_DESCRIPTION, Section.ACTIVATION_METHODS, "DESCRIZIONE")]
    return []


def payment_methods_rules(data: Any, context: ValidationContext) -> List[ValidationError]:
    return [
        finding(MSG_OTHER_DESCRIPTION, Section.PAYMENT_METHODS, i, "DESCRIZIONE")
        for i, method in _entries(data)
        if method.get("MODALITA_PAGAMENTO") == OTHER and _blank(method.get("DESCRIZIONE"))
    ]


def energy_price_references_rules(data: Any, context: ValidationContext) -> List[ValidationError]:
    if not isinstance(data, Mapping):
        return []
    if data.get("IDX_PREZZO_ENERGIA") == OTHER and _blank(data.get("ALTRO")):
        return [finding(MSG_CUSTOM_INDEX_DESCRIPTION, Section.ENERGY_PRICE_REFERENCES, "ALTRO")]
    return []


def time_bands_rules(data: Any, context: ValidationContext) -> List[ValidationError]:
    if not isinstance(data, Mapping):
        return []
    errors: List[ValidationError] = []

    if context.is_market(MarketType.ELECTRICITY) and not context.is_offer(OfferType.FLAT):
        typology = data.get("TIPOLOGIA_FASCE")
        if _blank(typology):
            errors.append(finding(MSG_TIME_BAND_TYPOLOGY_REQUIRED, Section.TIME_BANDS, "TIPOLOGIA_FASCE"))
        elif typology in WEEKLY_SCHEDULE_TYPOLOGIES:
            weekly = data.get("FasceOrarieSettimanale")
            if not isinstance(weekly, Mapping) or _blank(weekly.get("F_LUNEDI")):
                errors.append(
                    finding(
                        MSG_WEEKLY_SCHEDULE_REQUIRED,
                        Section.TIME_BANDS,
                        "FasceOrarieSettimanale",
                        "F_LUNEDI",
                    )
                )

    for i, entry in _entries(data.get("Dispacciamento")):
        if entry.get("TIPO_DISPACCIAMENTO") == OTHER and entry.get("VALORE_DISP") is None:
            errors.append(
                finding(MSG_DISPATCHING_VALUE_REQUIRED, Section.TIME_BANDS, "Dispacciamento", i, "VALORE_DISP")
            )
    return errors


def company_components_rules(data: Any, context: ValidationContext) -> List[ValidationError]:
    """
    Price interval rules for electricity company components.

    - kWh-priced components of the energy areas need one interval per time
      band of the selected typology.
    - Components carrying a fixed-price unit have exactly one interval.
    - Consumption bounds of an interval are strictly ordered.
    """

    if not context.is_market(MarketType.ELECTRICITY):
        return []

    expected = expected_interval_count(context.value(Section.TIME_BANDS, "TIPOLOGIA_FASCE"))
    errors: List[ValidationError] = []

    for i, component in _entries(data):
        intervals = _entries(component.get("IntervalloPrezzi"))
        units = [interval.get("UNITA_MISURA") for _, interval in intervals]
        area = component.get("MACROAREA")

        if (
            area in BAND_PRICED_AREAS
            and expected is not None
            and units
            and all(unit == UNIT_EUR_PER_KWH for unit in units)
            and len(intervals) != expected
        ):
            errors.append(
                finding(
                    interval_count_message(expected, len(intervals)),
                    Section.COMPANY_COMPONENTS,
                    i,
                    "IntervalloPrezzi",
                )
            )

        if (
            area in FIXED_PRICED_AREAS
            and any(unit in FIXED_PRICE_UNITS for unit in units)
            and len(intervals) != 1
        ):
            errors.append(
                finding(MSG_FIXED_SINGLE_INTERVAL, Section.COMPANY_COMPONENTS, i, "IntervalloPrezzi")
            )

        for j, interval in intervals:
            if not _strictly_ordered(interval.get("CONSUMO_DA"), interval.get("CONSUMO_A")):
                errors.append(
                    finding(
                        MSG_CONSUMPTION_ORDER,
                        Section.COMPANY_COMPONENTS,
                        i,
                        "IntervalloPrezzi",
                        j,
                        "CONSUMO_A",
                    )
                )
    return errors


def _has_validity_period(period: Any) -> bool:
    if not isinstance(period, Mapping):
        return False
    return (
        period.get("DURATA") is not None
        or not _blank(period.get("VALIDO_FINO"))
        or bool(period.get("MESE_VALIDITA"))
    )


def discounts_rules(data: Any, context: ValidationContext) -> List[ValidationError]:
    errors: List[ValidationError] = []

    for i, discount in _entries(data):
        simple = not _blank(discount.get("VALIDITA"))
        period = _has_validity_period(discount.get("PeriodoValidita"))
        if simple and period:
            errors.append(finding(MSG_VALIDITY_BOTH_CONFIGURED, Section.DISCOUNTS, i, "VALIDITA"))
        elif not simple and not period:
            errors.append(finding(MSG_VALIDITY_MUST_SPECIFY_ONE, Section.DISCOUNTS, i, "VALIDITA"))

        prices = discount.get("PREZZISconto")
        if not prices:
            errors.append(finding(MSG_DISCOUNT_PRICE_REQUIRED, Section.DISCOUNTS, i, "PREZZISconto"))
        for j, price in _entries(prices):
            if not _strictly_ordered(price.get("VALIDO_DA"), price.get("VALIDO_FINO")):
                errors.append(
                    finding(MSG_PRICE_RANGE_ORDER, Section.DISCOUNTS, i, "PREZZISconto", j, "VALIDO_FINO")
                )

        condition = discount.get("Condizione")
        if (
            isinstance(condition, Mapping)
            and condition.get("CONDIZIONE_APPLICAZIONE") == OTHER
            and _blank(condition.get("DESCRIZIONE_CONDIZIONE"))
        ):
            errors.append(
                finding(
                    MSG_OTHER_CONDITION_DESCRIPTION,
                    Section.DISCOUNTS,
                    i,
                    "Condizione",
                    "DESCRIZIONE_CONDIZIONE",
                )
            )
    return errors


def contractual_conditions_rules(data: Any, context: ValidationContext) -> List[ValidationError]:
    return [
        finding(MSG_OTHER_DESCRIPTION, Section.CONTRACTUAL_CONDITIONS, i, "ALTRO")
        for i, condition in _entries(data)
        if condition.get("TIPOLOGIA_CONDIZIONE") == OTHER and _blank(condition.get("ALTRO"))
    ]


def additional_services_rules(data: Any, context: ValidationContext) -> List[ValidationError]:
    return [
        finding(MSG_OTHER_CATEGORY_DETAILS, Section.ADDITIONAL_SERVICES, i, "DETTAGLI_MACROAREA")
        for i, service in _entries(data)
        if service.get("MACROAREA") == OTHER and _blank(service.get("DETTAGLI_MACROAREA"))
    ]


def offer_zones_rules(data: Any, context: ValidationContext) -> List[ValidationError]:
    if not isinstance(data, Mapping):
        return []
    if any(key in data for key in ZONE_KEYS) and not any(data.get(key) for key in ZONE_KEYS):
        return [finding(MSG_ZONE_REQUIRED, Section.OFFER_ZONES)]
    return []


# ============================================================================
# Global rules
# ============================================================================

def section_applicability(context: ValidationContext) -> List[ValidationError]:
    """
    Always-required sections must be present. Conditional sections must be
    present when required and absent when they do not apply.
    """

    document = context.document
    errors = [
        finding(missing_section_message(section), section)
        for section in ALWAYS_REQUIRED
        if not document.has_section(section)
    ]

    # Applicability is undefined until market and offer type are known.
    if context.market_type is None or context.offer_type is None:
        return errors

    for section in CONDITIONAL:
        present = document.has_section(section)
        if present and not is_section_applicable(section, context):
            errors.append(finding(not_applicable_message(section), section))
        elif not present and is_section_required(section, context):
            errors.append(finding(required_section_message(section), section))
    return errors


# ============================================================================
# Registration
# ============================================================================

FIELD_RULES = {
    "identification.PIVA_UTENTE": identity_code_upper_case,
    "identification.COD_OFFERTA": offer_code_upper_case,
}

CROSS_FIELD_RULES = {
    "single_offer_selection": single_offer_selection,
    "price_index_required": price_index_required,
    "flat_offer_limits": flat_offer_limits,
    "residential_condominium": residential_condominium,
    "power_limits": power_limits,
    "validity_period": validity_period,
    "dual_offer_electricity_links": dual_offer_electricity_links,
    "dual_offer_gas_links": dual_offer_gas_links,
}

SECTION_RULES = {
    Section.ACTIVATION_METHODS: activation_methods_rules,
    Section.PAYMENT_METHODS: payment_methods_rules,
    Section.ENERGY_PRICE_REFERENCES: energy_price_references_rules,
    Section.TIME_BANDS: time_bands_rules,
    Section.COMPANY_COMPONENTS: company_components_rules,
    Section.DISCOUNTS: discounts_rules,
    Section.CONTRACTUAL_CONDITIONS: contractual_conditions_rules,
    Section.ADDITIONAL_SERVICES: additional_services_rules,
    Section.OFFER_ZONES: offer_zones_rules,
}

GLOBAL_RULES = {
    "section_applicability": section_applicability,
}


def register_business_rules(registry: RuleRegistry) -> RuleRegistry:
    """
    Register the full rule catalogue.

    Safe to call more than once: the same names are registered with the
    same functions, so a second call leaves the registry equivalent.
    """

    for name, check in FIELD_RULES.items():
        registry.register(RuleKind.FIELD, name, check)
    for name, check in CROSS_FIELD_RULES.items():
        registry.register(RuleKind.CROSS_FIELD, name, check)
    for section, check in SECTION_RULES.items():
        registry.register(RuleKind.SECTION, section.value, check, section=section)
    for name, check in GLOBAL_RULES.items():
        registry.register(RuleKind.GLOBAL, name, check)
    return registry


def ensure_initialized(registry: RuleRegistry) -> RuleRegistry:
    if not registry.is_populated():
        register_business_rules(registry)
    return registry


@lru_cache(maxsize=1)
def get_default_registry() -> RuleRegistry:
    """Process-wide registry built once and reused; pass your own to the runner to isolate."""

    return register_business_rules(RuleRegistry())


__all__ = [
    "interval_count_message",
    "missing_section_message",
    "not_applicable_message",
    "required_section_message",
    "finding",
    "FIELD_RULES",
    "CROSS_FIELD_RULES",
    "SECTION_RULES",
    "GLOBAL_RULES",
    "register_business_rules",
    "ensure_initialized",
    "get_default_registry",
]
