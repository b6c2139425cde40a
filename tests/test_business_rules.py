"""
Tests for `services/business_rules.py`.

Covers contract rules:
- Price interval count follows the time-band typology (electricity only).
- Discount simple validity and validity period are mutually exclusive, and
  one of them is required.
- Cross-field rules return at most one error; section rules may return many.
- Conditional sections follow market type, offer type and discounts.
- Every finding's field is the dotted form of its path.
"""

from __future__ import annotations

import pytest

from domain.offer import ValidationContext
from services import business_rules as rules
from services.business_rules import (
    MSG_CONDOMINIUM_GAS_ONLY,
    MSG_CONSUMPTION_ORDER,
    MSG_CUSTOM_INDEX_DESCRIPTION,
    MSG_DISCOUNT_PRICE_REQUIRED,
    MSG_DISPATCHING_VALUE_REQUIRED,
    MSG_DUAL_ELECTRICITY_CODES,
    MSG_DUAL_GAS_CODES,
    MSG_FIXED_SINGLE_INTERVAL,
    MSG_FLAT_LIMITS_ORDER,
    MSG_FLAT_LIMITS_REQUIRED,
    MSG_IDENTITY_CODE_UPPER,
    MSG_OTHER_CATEGORY_DETAILS,
    MSG_OTHER_CONDITION_DESCRIPTION,
    MSG_OTHER_DESCRIPTION,
    MSG_POWER_ORDER,
    MSG_PRICE_INDEX_REQUIRED,
    MSG_PRICE_INDEX_WITHOUT_REGULATED_DISCOUNT,
    MSG_PRICE_RANGE_ORDER,
    MSG_SINGLE_OFFER_REQUIRED,
    MSG_TIME_BAND_TYPOLOGY_REQUIRED,
    MSG_VALIDITY_BOTH_CONFIGURED,
    MSG_VALIDITY_MUST_SPECIFY_ONE,
    MSG_VALIDITY_ORDER,
    MSG_WEEKLY_SCHEDULE_REQUIRED,
    MSG_ZONE_REQUIRED,
    interval_count_message,
)
from services.rule_registry import RuleKind


def _context(document: dict) -> ValidationContext:
    return ValidationContext.build(document)


def _messages(errors) -> list:
    return [e.message for e in errors]


class TestCompanyComponents:
    def test_sample_components_are_valid(self, sample_document) -> None:
        """Verify three kWh intervals satisfy typology 03."""

        data = sample_document["company_components"]
        assert rules.company_components_rules(data, _context(sample_document)) == []

    def test_interval_count_mismatch(self, sample_document) -> None:
        """Verify two intervals under typology 03 report '3 required, found 2'."""

        sample_document["company_components"][0]["IntervalloPrezzi"].pop()
        data = sample_document["company_components"]

        errors = rules.company_components_rules(data, _context(sample_document))

        assert len(errors) == 1
        assert errors[0].message == "Must have 3 price intervals matching time bands (3 required, found 2)"
        assert errors[0].message == interval_count_message(3, 2)
        assert errors[0].field == "company_components.0.IntervalloPrezzi"
        assert errors[0].path == ("company_components", "0", "IntervalloPrezzi")

    @pytest.mark.parametrize("typology, expected", [("01", 1), ("02", 2), ("05", 4), ("06", 5)])
    def test_interval_count_follows_typology(self, sample_document, typology, expected) -> None:
        """Verify each typology's interval count."""

        sample_document["time_bands"]["TIPOLOGIA_FASCE"] = typology
        data = sample_document["company_components"]

        errors = rules.company_components_rules(data, _context(sample_document))

        assert _messages(errors) == [interval_count_message(expected, 3)]

    def test_typology_without_count_is_not_checked(self, sample_document) -> None:
        """Verify typologies outside 01-06 carry no interval count."""

        sample_document["time_bands"]["TIPOLOGIA_FASCE"] = "91"
        sample_document["company_components"][0]["IntervalloPrezzi"].pop()

        data = sample_document["company_components"]
        assert rules.company_components_rules(data, _context(sample_document)) == []

    def test_fixed_price_component_needs_single_interval(self, sample_document) -> None:
        """Verify fixed-price components have exactly one interval."""

        intervals = sample_document["company_components"][1]["IntervalloPrezzi"]
        intervals.append({"PREZZO": 1, "UNITA_MISURA": "01"})

        errors = rules.company_components_rules(sample_document["company_components"], _context(sample_document))

        assert _messages(errors) == [MSG_FIXED_SINGLE_INTERVAL]
        assert errors[0].field == "company_components.1.IntervalloPrezzi"

    def test_consumption_bounds_strictly_ordered(self, sample_document) -> None:
        """Verify CONSUMO_A must exceed CONSUMO_DA."""

        interval = sample_document["company_components"][0]["IntervalloPrezzi"][0]
        interval.update({"CONSUMO_DA": 100, "CONSUMO_A": 100})

        errors = rules.company_components_rules(sample_document["company_components"], _context(sample_document))

        assert _messages(errors) == [MSG_CONSUMPTION_ORDER]
        assert errors[0].field == "company_components.0.IntervalloPrezzi.0.CONSUMO_A"

    def test_rules_apply_to_electricity_only(self, sample_document) -> None:
        """Verify gas offers skip the interval rules."""

        sample_document["offer_details"]["TIPO_MERCATO"] = "02"
        sample_document["company_components"][0]["IntervalloPrezzi"].pop()

        data = sample_document["company_components"]
        assert rules.company_components_rules(data, _context(sample_document)) == []


class TestDiscounts:
    @pytest.mark.parametrize(
        "validita, period, expected",
        [
            ("01", {"DURATA": 12}, [MSG_VALIDITY_BOTH_CONFIGURED]),
            (None, None, [MSG_VALIDITY_MUST_SPECIFY_ONE]),
            ("01", None, []),
            (None, {"VALIDO_FINO": "12/2025"}, []),
            (None, {"MESE_VALIDITA": ["01"]}, []),
            (None, {"MESE_VALIDITA": []}, [MSG_VALIDITY_MUST_SPECIFY_ONE]),
        ],
    )
    def test_validity_mutual_exclusion(self, sample_document, validita, period, expected) -> None:
        """Verify exactly one of simple validity or validity period is set."""

        discount = sample_document["discounts"][0]
        discount["VALIDITA"] = validita
        if period is not None:
            discount["PeriodoValidita"] = period

        errors = rules.discounts_rules(sample_document["discounts"], _context(sample_document))

        assert _messages(errors) == expected
        for error in errors:
            assert error.field == "discounts.0.VALIDITA"

    def test_price_configuration_required(self, sample_document) -> None:
        """Verify a discount needs at least one price entry."""

        sample_document["discounts"][0]["PREZZISconto"] = []

        errors = rules.discounts_rules(sample_document["discounts"], _context(sample_document))

        assert _messages(errors) == [MSG_DISCOUNT_PRICE_REQUIRED]

    def test_price_range_strictly_ordered(self, sample_document) -> None:
        """Verify VALIDO_FINO must exceed VALIDO_DA."""

        sample_document["discounts"][0]["PREZZISconto"][0].update({"VALIDO_DA": 10, "VALIDO_FINO": 5})

        errors = rules.discounts_rules(sample_document["discounts"], _context(sample_document))

        assert _messages(errors) == [MSG_PRICE_RANGE_ORDER]
        assert errors[0].field == "discounts.0.PREZZISconto.0.VALIDO_FINO"

    def test_other_condition_needs_description(self, sample_document) -> None:
        """Verify 'Other' application condition requires a description."""

        sample_document["discounts"][0]["Condizione"] = {"CONDIZIONE_APPLICAZIONE": "99"}

        errors = rules.discounts_rules(sample_document["discounts"], _context(sample_document))

        assert _messages(errors) == [MSG_OTHER_CONDITION_DESCRIPTION]

    def test_section_rule_reports_every_defect(self, sample_document) -> None:
        """Verify several defects in one section are all reported."""

        discount = sample_document["discounts"][0]
        discount["VALIDITA"] = None
        discount["PREZZISconto"] = []

        errors = rules.discounts_rules(sample_document["discounts"], _context(sample_document))

        assert _messages(errors) == [MSG_VALIDITY_MUST_SPECIFY_ONE, MSG_DISCOUNT_PRICE_REQUIRED]


class TestCrossFieldRules:
    def test_sample_passes_every_cross_field_rule(self, sample_document) -> None:
        """Verify the valid sample triggers no cross-field rule."""

        context = _context(sample_document)
        for check in rules.CROSS_FIELD_RULES.values():
            assert check(context) is None

    def test_single_offer_selection(self, sample_document) -> None:
        """Verify non dual-fuel offers need OFFERTA_SINGOLA."""

        del sample_document["offer_details"]["OFFERTA_SINGOLA"]

        error = rules.single_offer_selection(_context(sample_document))

        assert error.message == MSG_SINGLE_OFFER_REQUIRED
        assert error.field == "offer_details.OFFERTA_SINGOLA"

    def test_single_offer_not_needed_for_dual_fuel(self, sample_document) -> None:
        """Verify dual fuel offers skip the single-offer selection."""

        del sample_document["offer_details"]["OFFERTA_SINGOLA"]
        sample_document["offer_details"]["TIPO_MERCATO"] = "03"

        assert rules.single_offer_selection(_context(sample_document)) is None

    def test_price_index_required_for_variable_offers(self, sample_document) -> None:
        """Verify a variable offer without discounts needs a price index."""

        sample_document["offer_details"]["TIPO_OFFERTA"] = "02"
        del sample_document["discounts"]

        error = rules.price_index_required(_context(sample_document))

        assert error.message == MSG_PRICE_INDEX_REQUIRED
        assert error.field == "energy_price_references.IDX_PREZZO_ENERGIA"

    def test_price_index_message_names_regulated_discount(self, sample_document) -> None:
        """Verify configured discounts without a regulated entry name the exemption."""

        sample_document["offer_details"]["TIPO_OFFERTA"] = "02"

        error = rules.price_index_required(_context(sample_document))

        assert error.message == MSG_PRICE_INDEX_WITHOUT_REGULATED_DISCOUNT

    def test_regulated_discount_exempts_price_index(self, sample_document) -> None:
        """Verify a regulated-price discount entry removes the requirement."""

        sample_document["offer_details"]["TIPO_OFFERTA"] = "02"
        sample_document["discounts"][0]["PREZZISconto"][0]["TIPOLOGIA"] = "04"

        assert rules.price_index_required(_context(sample_document)) is None

    def test_price_index_present(self, sample_document) -> None:
        """Verify a configured index satisfies the rule."""

        sample_document["offer_details"]["TIPO_OFFERTA"] = "02"
        sample_document["energy_price_references"] = {"IDX_PREZZO_ENERGIA": "01"}

        assert rules.price_index_required(_context(sample_document)) is None

    @pytest.mark.parametrize(
        "limits, expected",
        [
            ({}, MSG_FLAT_LIMITS_REQUIRED),
            ({"CONSUMO_MIN": 100}, MSG_FLAT_LIMITS_REQUIRED),
            ({"CONSUMO_MIN": 100, "CONSUMO_MAX": 50}, MSG_FLAT_LIMITS_ORDER),
            ({"CONSUMO_MIN": 100, "CONSUMO_MAX": 100}, MSG_FLAT_LIMITS_ORDER),
            ({"CONSUMO_MIN": 100, "CONSUMO_MAX": 2000}, None),
        ],
    )
    def test_flat_offer_limits(self, sample_document, limits, expected) -> None:
        """Verify FLAT offers need ordered consumption limits."""

        sample_document["offer_details"]["TIPO_OFFERTA"] = "03"
        sample_document["offer_characteristics"] = limits

        error = rules.flat_offer_limits(_context(sample_document))

        assert (error.message if error else None) == expected

    @pytest.mark.parametrize("market, expected", [("01", MSG_CONDOMINIUM_GAS_ONLY), ("02", None), ("03", MSG_CONDOMINIUM_GAS_ONLY)])
    def test_residential_condominium_only_for_gas(self, sample_document, market, expected) -> None:
        """Verify client type 03 is limited to the gas market."""

        sample_document["offer_details"].update({"TIPO_CLIENTE": "03", "TIPO_MERCATO": market})

        error = rules.residential_condominium(_context(sample_document))

        assert (error.message if error else None) == expected

    def test_residential_condominium_without_market(self, sample_document) -> None:
        """Verify client type 03 is flagged while the market is still unset."""

        sample_document["offer_details"]["TIPO_CLIENTE"] = "03"
        del sample_document["offer_details"]["TIPO_MERCATO"]

        error = rules.residential_condominium(_context(sample_document))

        assert error.message == MSG_CONDOMINIUM_GAS_ONLY
        assert error.field == "offer_details.TIPO_CLIENTE"

    def test_power_limits_ordered(self, sample_document) -> None:
        """Verify maximum power must exceed minimum power."""

        sample_document["offer_characteristics"] = {"POTENZA_MIN": 6, "POTENZA_MAX": 3}

        error = rules.power_limits(_context(sample_document))

        assert error.message == MSG_POWER_ORDER
        assert error.field == "offer_characteristics.POTENZA_MAX"

    def test_validity_end_after_start(self, sample_document) -> None:
        """Verify DATA_FINE must follow DATA_INIZIO."""

        sample_document["offer_validity"]["DATA_FINE"] = "01/01/2025_00:00:00"

        error = rules.validity_period(_context(sample_document))

        assert error.message == MSG_VALIDITY_ORDER
        assert error.path == ("offer_validity", "DATA_FINE")

    def test_validity_ignores_malformed_dates(self, sample_document) -> None:
        """Verify malformed dates are left to the schema pass."""

        sample_document["offer_validity"]["DATA_FINE"] = "2025-12-31"

        assert rules.validity_period(_context(sample_document)) is None

    def test_dual_fuel_needs_both_links(self, sample_document) -> None:
        """Verify dual fuel offers name linked electricity and gas offers."""

        sample_document["offer_details"]["TIPO_MERCATO"] = "03"
        sample_document["dual_offers"] = {"OFFERTE_CONGIUNTE_EE": [], "OFFERTE_CONGIUNTE_GAS": []}
        context = _context(sample_document)

        assert rules.dual_offer_electricity_links(context).message == MSG_DUAL_ELECTRICITY_CODES
        assert rules.dual_offer_gas_links(context).message == MSG_DUAL_GAS_CODES

        sample_document["dual_offers"] = {"OFFERTE_CONGIUNTE_EE": ["EE1"], "OFFERTE_CONGIUNTE_GAS": ["GAS1"]}
        context = _context(sample_document)

        assert rules.dual_offer_electricity_links(context) is None
        assert rules.dual_offer_gas_links(context) is None


class TestOtherDescriptions:
    @pytest.mark.parametrize("section", ["activation_methods", "payment_methods", "energy_price_references"])
    def test_registered_as_section_rules(self, registry, section) -> None:
        """Verify "Other" description checks run in the section phase."""

        assert registry.get(RuleKind.SECTION, section) is not None
        assert not any(section in name for name in registry.get_all(RuleKind.CROSS_FIELD))

    def test_activation_method_other(self, sample_document) -> None:
        """Verify 'Other' activation method needs a description."""

        data = {"MODALITA": ["01", "99"]}

        errors = rules.activation_methods_rules(data, _context(sample_document))

        assert _messages(errors) == [MSG_OTHER_DESCRIPTION]
        assert errors[0].field == "activation_methods.DESCRIZIONE"

    def test_payment_method_other_is_indexed(self, sample_document) -> None:
        """Verify the failing payment entry is named by its index."""

        data = [{"MODALITA_PAGAMENTO": "01"}, {"MODALITA_PAGAMENTO": "99", "DESCRIZIONE": " "}]

        errors = rules.payment_methods_rules(data, _context(sample_document))

        assert [e.field for e in errors] == ["payment_methods.1.DESCRIZIONE"]

    def test_custom_price_index(self, sample_document) -> None:
        """Verify index 99 needs its ALTRO description."""

        errors = rules.energy_price_references_rules({"IDX_PREZZO_ENERGIA": "99"}, _context(sample_document))

        assert _messages(errors) == [MSG_CUSTOM_INDEX_DESCRIPTION]

    def test_contractual_condition_other(self, sample_document) -> None:
        """Verify 'Other' condition type needs ALTRO."""

        data = [{"TIPOLOGIA_CONDIZIONE": "99", "DESCRIZIONE": "x", "LIMITANTE": "01"}]

        errors = rules.contractual_conditions_rules(data, _context(sample_document))

        assert [e.field for e in errors] == ["contractual_conditions.0.ALTRO"]

    def test_additional_service_other(self, sample_document) -> None:
        """Verify 'Other' service category needs details."""

        data = [{"NOME": "n", "DETTAGLIO": "d", "MACROAREA": "99"}]

        errors = rules.additional_services_rules(data, _context(sample_document))

        assert _messages(errors) == [MSG_OTHER_CATEGORY_DETAILS]


class TestTimeBandsAndZones:
    def test_typology_required_for_electricity(self, sample_document) -> None:
        """Verify electricity non-FLAT offers need a typology."""

        errors = rules.time_bands_rules({}, _context(sample_document))

        assert _messages(errors) == [MSG_TIME_BAND_TYPOLOGY_REQUIRED]

    @pytest.mark.parametrize("typology", ["02", "04", "05", "06"])
    def test_weekly_schedule_required(self, sample_document, typology) -> None:
        """Verify typologies with weekly bands need a schedule."""

        errors = rules.time_bands_rules({"TIPOLOGIA_FASCE": typology}, _context(sample_document))

        assert _messages(errors) == [MSG_WEEKLY_SCHEDULE_REQUIRED]
        assert errors[0].field == "time_bands.FasceOrarieSettimanale.F_LUNEDI"

    def test_other_dispatching_needs_value(self, sample_document) -> None:
        """Verify 'Other' dispatching entries need VALORE_DISP."""

        data = {
            "TIPOLOGIA_FASCE": "01",
            "Dispacciamento": [{"TIPO_DISPACCIAMENTO": "99", "NOME": "Other"}],
        }

        errors = rules.time_bands_rules(data, _context(sample_document))

        assert _messages(errors) == [MSG_DISPATCHING_VALUE_REQUIRED]
        assert errors[0].field == "time_bands.Dispacciamento.0.VALORE_DISP"

    def test_zone_keys_need_a_selection(self, sample_document) -> None:
        """Verify zone keys without any area are reported."""

        errors = rules.offer_zones_rules({"REGIONE": [], "COMUNE": []}, _context(sample_document))

        assert _messages(errors) == [MSG_ZONE_REQUIRED]
        assert rules.offer_zones_rules({}, _context(sample_document)) == []


class TestSectionApplicability:
    def test_sample_sections_apply(self, sample_document) -> None:
        """Verify the valid sample has no applicability errors."""

        assert rules.section_applicability(_context(sample_document)) == []

    def test_missing_required_section(self, sample_document) -> None:
        """Verify always-required sections are reported by name."""

        del sample_document["payment_methods"]

        errors = rules.section_applicability(_context(sample_document))

        assert _messages(errors) == ["Required section 'payment_methods' is missing"]
        assert errors[0].field == "payment_methods"

    def test_none_section_counts_as_absent(self, sample_document) -> None:
        """Verify a None section value is treated as missing."""

        sample_document["identification"] = None

        errors = rules.section_applicability(_context(sample_document))

        assert "Required section 'identification' is missing" in _messages(errors)

    def test_time_bands_required_for_electricity(self, sample_document) -> None:
        """Verify electricity non-FLAT offers require time bands."""

        del sample_document["time_bands"]

        errors = rules.section_applicability(_context(sample_document))

        assert [e.field for e in errors] == ["time_bands"]

    def test_section_present_where_not_applicable(self, sample_document) -> None:
        """Verify gas offers may not carry time bands or dual links."""

        sample_document["offer_details"]["TIPO_MERCATO"] = "02"
        sample_document["dual_offers"] = {"OFFERTE_CONGIUNTE_EE": ["EE1"]}

        errors = rules.section_applicability(_context(sample_document))

        assert sorted(e.field for e in errors) == [
            "dual_offers",
            "offer_characteristics",
            "time_bands",
        ]

    def test_price_references_not_applicable_with_regulated_discount(self, sample_document) -> None:
        """Verify a regulated-price discount makes price references inapplicable."""

        sample_document["offer_details"]["TIPO_OFFERTA"] = "02"
        sample_document["discounts"][0]["PREZZISconto"][0]["TIPOLOGIA"] = "04"
        sample_document["energy_price_references"] = {"IDX_PREZZO_ENERGIA": "01"}

        errors = rules.section_applicability(_context(sample_document))

        assert [e.field for e in errors] == ["energy_price_references"]


def test_identity_code_must_be_upper_case(sample_document) -> None:
    """Verify the identity code field rule."""

    context = _context(sample_document)

    error = rules.identity_code_upper_case("abcdefgh12345678", context)

    assert error.message == MSG_IDENTITY_CODE_UPPER
    assert error.field == "identification.PIVA_UTENTE"
    assert rules.identity_code_upper_case("ABCDEFGH12345678", context) is None
