"""
Tests for `services/validation_runner.py`.

Covers contract rules:
- Schema checks run for every present section; results merge in section
  order regardless of completion order.
- Errors are deduplicated by (field, message), keeping the first.
- A rule or schema lookup that raises is logged and contributes nothing,
  without hiding the findings of other rules or sections.
- validate_section runs one section's schema, its section rule and the
  cross-field rules reporting on that section.
"""

from __future__ import annotations

import asyncio
import logging

import pytest

from domain.validation import ValidationError
from schemas.sections import lookup_section_schema
from services.business_rules import MSG_POWER_ORDER, interval_count_message
from services.rule_registry import RuleKind
from services.validation_runner import (
    ValidationRunner,
    group_errors_by_section,
    run_validation,
    validate_section,
)


def _run(document, registry, **kwargs):
    return asyncio.run(run_validation(document, registry=registry, **kwargs))


def _fields(result) -> list:
    return [e.field for e in result.errors]


class TestRunValidation:
    def test_sample_document_is_valid(self, sample_document, registry) -> None:
        """Verify the complete sample passes every pass."""

        result = _run(sample_document, registry)

        assert result.is_valid
        assert result.errors == ()

    def test_runs_are_deterministic(self, sample_document, registry) -> None:
        """Verify identical input yields identical error lists."""

        sample_document["identification"]["PIVA_UTENTE"] = "SHORT"
        sample_document["offer_details"]["DURATA"] = 120
        del sample_document["payment_methods"]

        first = _run(sample_document, registry)
        second = _run(sample_document, registry)

        assert first.errors == second.errors
        assert not first.is_valid

    def test_schema_errors_are_rooted_at_their_section(self, sample_document, registry) -> None:
        """Verify schema findings carry field '{section}.{loc}' and a section-rooted path."""

        sample_document["identification"]["PIVA_UTENTE"] = "SHORT"

        result = _run(sample_document, registry)

        error = next(e for e in result.errors if e.field == "identification.PIVA_UTENTE")
        assert error.path == ("identification", "PIVA_UTENTE")
        assert error.section == "identification"

    def test_schema_errors_merge_in_section_order(self, sample_document, registry) -> None:
        """Verify schema findings follow section registration order."""

        sample_document["discounts"][0]["IVA_SCONTO"] = "07"
        sample_document["identification"]["PIVA_UTENTE"] = "SHORT"
        sample_document["offer_details"]["DURATA"] = 120

        result = _run(sample_document, registry)
        sections = [e.section for e in result.errors]

        assert sections.index("identification") < sections.index("offer_details") < sections.index("discounts")

    def test_decimal_precision_is_checked(self, sample_document, registry) -> None:
        """Verify power accepts at most one decimal place."""

        sample_document["offer_characteristics"]["POTENZA_MIN"] = 3.25

        result = _run(sample_document, registry)

        error = next(e for e in result.errors if e.field == "offer_characteristics.POTENZA_MIN")
        assert "Maximum 1 decimal places allowed" in error.message

    def test_unknown_keys_are_rejected(self, sample_document, registry) -> None:
        """Verify section schemas forbid unknown fields."""

        sample_document["offer_details"]["UNKNOWN"] = "x"

        result = _run(sample_document, registry)

        assert "offer_details.UNKNOWN" in _fields(result)

    def test_list_section_errors_are_indexed(self, sample_document, registry) -> None:
        """Verify entries of list sections are named by index."""

        sample_document["payment_methods"][1]["MODALITA_PAGAMENTO"] = "77"

        result = _run(sample_document, registry)

        assert "payment_methods.1.MODALITA_PAGAMENTO" in _fields(result)

    def test_business_errors_follow_schema_errors(self, sample_document, registry) -> None:
        """Verify rule phases run after the schema pass."""

        sample_document["identification"]["PIVA_UTENTE"] = "SHORT"
        sample_document["offer_characteristics"] = {"POTENZA_MIN": 6, "POTENZA_MAX": 3}

        result = _run(sample_document, registry)
        fields = _fields(result)

        assert fields.index("identification.PIVA_UTENTE") < fields.index("offer_characteristics.POTENZA_MAX")

    def test_duplicate_findings_are_collapsed(self, sample_document, registry) -> None:
        """Verify two rules reporting the same (field, message) yield one error."""

        def duplicate(context):
            return ValidationError(field="general", message="Duplicate finding")

        registry.register(RuleKind.CROSS_FIELD, "duplicate_a", duplicate)
        registry.register(RuleKind.CROSS_FIELD, "duplicate_b", duplicate)

        result = _run(sample_document, registry)

        assert [e.message for e in result.errors] == ["Duplicate finding"]

    def test_raising_rule_is_isolated(self, sample_document, registry, caplog) -> None:
        """Verify a raising rule is logged and other rules still report."""

        def broken(context):
            raise RuntimeError("rule defect")

        registry.register(RuleKind.CROSS_FIELD, "broken", broken)
        sample_document["offer_characteristics"] = {"POTENZA_MIN": 6, "POTENZA_MAX": 3}

        with caplog.at_level(logging.ERROR, logger="services.validation_runner"):
            result = _run(sample_document, registry)

        assert [e.message for e in result.errors] == [MSG_POWER_ORDER]
        assert any("broken" in record.getMessage() for record in caplog.records)

    def test_raising_schema_lookup_is_isolated(self, sample_document, registry, caplog) -> None:
        """Verify one failing schema check never hides the others."""

        def lookup(name):
            if name == "discounts":
                raise RuntimeError("schema defect")
            return lookup_section_schema(name)

        sample_document["identification"]["PIVA_UTENTE"] = "SHORT"
        runner = ValidationRunner(registry, schema_lookup=lookup)

        with caplog.at_level(logging.ERROR, logger="services.validation_runner"):
            result = asyncio.run(runner.run_validation(sample_document))

        assert "identification.PIVA_UTENTE" in _fields(result)
        assert any("discounts" in record.getMessage() for record in caplog.records)

    def test_sections_without_schema_are_skipped(self, sample_document, registry) -> None:
        """Verify a lookup returning None skips the schema pass."""

        sample_document["identification"]["PIVA_UTENTE"] = "SHORT"
        runner = ValidationRunner(registry, schema_lookup=lambda name: None)

        result = asyncio.run(runner.run_validation(sample_document))

        assert result.is_valid

    def test_unknown_action_is_rejected(self, sample_document, registry) -> None:
        """Verify only insert/update actions are accepted."""

        with pytest.raises(ValueError):
            _run(sample_document, registry, action="DELETE")

    def test_caller_document_is_not_modified(self, sample_document, registry) -> None:
        """Verify validation only reads the document."""

        before = repr(sample_document)
        _run(sample_document, registry)

        assert repr(sample_document) == before


class TestValidateSection:
    def test_interval_count_reported_for_edited_section(self, sample_document, registry) -> None:
        """Verify the section rule runs against the edited section data."""

        components = sample_document["company_components"]
        components[0]["IntervalloPrezzi"].pop()

        result = asyncio.run(
            validate_section("company_components", components, sample_document, registry=registry)
        )

        assert [e.message for e in result.errors] == [interval_count_message(3, 2)]

    def test_cross_field_rules_filtered_to_section(self, sample_document, registry) -> None:
        """Verify only cross-field findings rooted at the section are kept."""

        sample_document["offer_validity"]["DATA_FINE"] = "01/01/2024_00:00:00"
        edited = {"POTENZA_MIN": 6, "POTENZA_MAX": 3}

        result = asyncio.run(
            validate_section("offer_characteristics", edited, sample_document, registry=registry)
        )

        assert [e.message for e in result.errors] == [MSG_POWER_ORDER]
        assert result.by_section().keys() == {"offer_characteristics"}

    def test_schema_name_override(self, sample_document, registry) -> None:
        """Verify a section can be checked against another schema name."""

        result = asyncio.run(
            validate_section(
                "offer_details",
                {"TELEFONO": "not a phone!"},
                sample_document,
                schema_name="contact_information",
                registry=registry,
            )
        )

        assert "offer_details.TELEFONO" in _fields(result)


def test_group_errors_by_section() -> None:
    """Verify grouping by path root, with 'general' for empty paths."""

    errors = [
        ValidationError(field="identification.PIVA_UTENTE", message="a", path=("identification", "PIVA_UTENTE")),
        ValidationError(field="global", message="b"),
        ValidationError(field="identification.COD_OFFERTA", message="c", path=("identification", "COD_OFFERTA")),
    ]

    grouped = group_errors_by_section(errors)

    assert list(grouped) == ["identification", "general"]
    assert [e.message for e in grouped["identification"]] == ["a", "c"]
    assert [e.message for e in grouped["general"]] == ["b"]
