"""
Validation runner.

Orchestrates one validation run over an offer document:

1. Make sure the rule registry is populated (one-time registration).
2. Build the ValidationContext.
3. Run the section schema checks for every present section concurrently and
   wait for all of them. Results are merged in section registration order,
   not completion order.
4. Run field rules, then cross-field rules, then section rules (present
   sections only), then global rules.
5. Deduplicate by (field, message), keeping the first occurrence.

A rule that raises is a defect in the rule, not a finding: it is logged and
contributes nothing. A schema check that raises is handled the same way and
never hides the results of the other sections. A section without a schema
is skipped.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, List, Mapping, Optional, Sequence, Tuple, Union

from pydantic import TypeAdapter
from pydantic import ValidationError as SchemaValidationError

from domain.offer import Action, OfferDocument, Section, ValidationContext
from domain.validation import ValidationError, ValidationResult, group_errors_by_section
from schemas.sections import lookup_section_schema
from services.business_rules import ensure_initialized, get_default_registry
from services.rule_registry import Rule, RuleKind, RuleRegistry

logger = logging.getLogger(__name__)

SchemaLookup = Callable[[str], Optional[Any]]
DocumentInput = Union[OfferDocument, Mapping[str, Any]]


def _section_key(name: Union[str, Section]) -> str:
    return name.value if isinstance(name, Section) else str(name)


def schema_error(section: str, error: Mapping[str, Any]) -> ValidationError:
    """Convert one pydantic error into a ValidationError rooted at its section."""

    path = (section,) + tuple(str(part) for part in error.get("loc", ()))
    return ValidationError(field=".".join(path), message=error["msg"], path=path)


class ValidationRunner:
    def __init__(
        self,
        registry: Optional[RuleRegistry] = None,
        schema_lookup: Optional[SchemaLookup] = None,
    ) -> None:
        self.registry = registry if registry is not None else get_default_registry()
        self.schema_lookup = schema_lookup if schema_lookup is not None else lookup_section_schema

    async def run_validation(
        self,
        document: DocumentInput,
        action: Union[str, Action] = Action.INSERT,
    ) -> ValidationResult:
        """
        Validate a whole offer document.

        Args:
            document: Mapping of section key to section data, or an OfferDocument
            action: INSERIMENTO/AGGIORNAMENTO (or insert/update)

        Returns:
            ValidationResult with deduplicated errors in deterministic order
        """
        ensure_initialized(self.registry)
        context = ValidationContext.build(document, action)

        checks = [(key, key, context.section(key)) for key in self._present_keys(context)]
        errors = await self._check_schemas(checks)
        errors.extend(self._run_field_rules(context))
        errors.extend(self._run_cross_field_rules(context))
        errors.extend(self._run_section_rules(context))
        errors.extend(self._run_global_rules(context))

        result = ValidationResult.from_errors(errors)
        logger.debug(
            f"Validation finished with {len(result.errors)} error(s)",
            extra={"offer_code": context.document.offer_code, "action": context.action.value},
        )
        return result

    async def validate_section(
        self,
        name: Union[str, Section],
        section_data: Any,
        full_document: DocumentInput,
        schema_name: Optional[str] = None,
        action: Union[str, Action] = Action.INSERT,
    ) -> ValidationResult:
        """
        Validate one section against the rest of the document.

        Runs the schema check for that section, its section rule and the
        cross-field rules whose findings are rooted at that section.
        """
        ensure_initialized(self.registry)
        key = _section_key(name)
        context = ValidationContext.build(full_document, action).with_section(key, section_data)

        errors: List[ValidationError] = []
        if section_data is not None:
            errors = await self._check_schemas([(key, schema_name or key, section_data)])

        rule = self.registry.get(RuleKind.SECTION, key)
        if rule is not None and section_data is not None:
            errors.extend(self._evaluate(rule, context, section_data))

        errors.extend(e for e in self._run_cross_field_rules(context) if e.section == key)
        return ValidationResult.from_errors(errors)

    # ------------------------------------------------------------------
    # Schema pass
    # ------------------------------------------------------------------

    def _present_keys(self, context: ValidationContext) -> List[str]:
        return [section.value for section in context.document.present_sections()]

    async def _check_schemas(
        self, checks: Sequence[Tuple[str, str, Any]]
    ) -> List[ValidationError]:
        """Run (section key, schema name, data) checks concurrently; merge in input order."""

        scheduled = [
            (key, self._check_section_schema(key, schema_name, data))
            for key, schema_name, data in checks
        ]
        results = await asyncio.gather(*(task for _, task in scheduled), return_exceptions=True)

        errors: List[ValidationError] = []
        for (key, _), result in zip(scheduled, results):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                logger.error(
                    f"Schema check for section '{key}' failed",
                    exc_info=result,
                    extra={"section": key},
                )
                continue
            errors.extend(result)
        return errors

    async def _check_section_schema(self, key: str, schema_name: str, data: Any) -> List[ValidationError]:
        schema = self.schema_lookup(schema_name)
        if schema is None:
            return []
        adapter = self.registry.get_schema(f"schema:{schema_name}", lambda: TypeAdapter(schema))
        try:
            adapter.validate_python(data)
        except SchemaValidationError as exc:
            return [schema_error(key, error) for error in exc.errors()]
        return []

    # ------------------------------------------------------------------
    # Rule phases
    # ------------------------------------------------------------------

    def _evaluate(self, rule: Rule, context: ValidationContext, data: Any = None) -> List[ValidationError]:
        try:
            return rule.evaluate(context, data)
        except Exception:
            logger.exception(
                f"Validation rule '{rule.name}' raised; ignoring its findings",
                extra={"rule_kind": rule.kind.value, "rule_name": rule.name},
            )
            return []

    def _run_field_rules(self, context: ValidationContext) -> List[ValidationError]:
        errors: List[ValidationError] = []
        for rule in self.registry.get_all(RuleKind.FIELD).values():
            data = context.section(rule.section)
            if not isinstance(data, Mapping):
                continue
            errors.extend(self._evaluate(rule, context, data.get(rule.field)))
        return errors

    def _run_cross_field_rules(self, context: ValidationContext) -> List[ValidationError]:
        errors: List[ValidationError] = []
        for rule in self.registry.get_all(RuleKind.CROSS_FIELD).values():
            errors.extend(self._evaluate(rule, context))
        return errors

    def _run_section_rules(self, context: ValidationContext) -> List[ValidationError]:
        errors: List[ValidationError] = []
        for rule in self.registry.get_all(RuleKind.SECTION).values():
            data = context.section(rule.section if rule.section is not None else rule.name)
            if data is None:
                continue
            errors.extend(self._evaluate(rule, context, data))
        return errors

    def _run_global_rules(self, context: ValidationContext) -> List[ValidationError]:
        errors: List[ValidationError] = []
        for rule in self.registry.get_all(RuleKind.GLOBAL).values():
            errors.extend(self._evaluate(rule, context))
        return errors


async def run_validation(
    document: DocumentInput,
    action: Union[str, Action] = Action.INSERT,
    registry: Optional[RuleRegistry] = None,
    schema_lookup: Optional[SchemaLookup] = None,
) -> ValidationResult:
    return await ValidationRunner(registry, schema_lookup).run_validation(document, action)


async def validate_section(
    name: Union[str, Section],
    section_data: Any,
    full_document: DocumentInput,
    schema_name: Optional[str] = None,
    action: Union[str, Action] = Action.INSERT,
    registry: Optional[RuleRegistry] = None,
) -> ValidationResult:
    return await ValidationRunner(registry).validate_section(
        name, section_data, full_document, schema_name=schema_name, action=action
    )


__all__ = [
    "ValidationRunner",
    "run_validation",
    "validate_section",
    "group_errors_by_section",
    "schema_error",
]
