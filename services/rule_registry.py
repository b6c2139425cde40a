"""
Rule registry.

A write-once, read-many store of named validation rules of four kinds, plus
a memoized cache for derived per-section schema objects.

Contract:
- register(kind, name, check) stores a rule under (kind, name). Registering
  the same name again replaces the previous rule; the registry is a mapping,
  not an append log.
- get_all(kind) returns the current rules of one kind in insertion order.
- get_schema(key, factory) calls factory() only on the first request for a
  key and serves the cached value until clear_cache().
- The registry is an explicit value handed to the validation runner. It is
  populated once and treated as read-only afterwards.

Rule shapes by kind:
- FIELD:       check(value, context)         -> ValidationError | None
- CROSS_FIELD: check(context)                -> ValidationError | None
- SECTION:     check(section_data, context)  -> list[ValidationError]
- GLOBAL:      check(context)                -> list[ValidationError]
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Mapping, Optional

from domain.offer import Section, ValidationContext
from domain.validation import ValidationError


class RuleKind(str, Enum):
    FIELD = "field"
    CROSS_FIELD = "cross_field"
    SECTION = "section"
    GLOBAL = "global"


@dataclass(frozen=True, slots=True)
class Rule:
    kind: RuleKind
    name: str
    check: Callable[..., Any]
    section: Optional[Section] = None
    field: Optional[str] = None

    def evaluate(self, context: ValidationContext, data: Any = None) -> List[ValidationError]:
        """
        Run the rule and normalize its outcome to a list.

        `data` is the field value for FIELD rules and the section data for
        SECTION rules; it is ignored for the other kinds. Exceptions raised
        by the check propagate to the caller.
        """

        if self.kind in (RuleKind.FIELD, RuleKind.SECTION):
            outcome = self.check(data, context)
        else:
            outcome = self.check(context)

        if outcome is None:
            return []
        if isinstance(outcome, ValidationError):
            return [outcome]
        return list(outcome)


class RuleRegistry:
    """Named rules by kind, plus a schema cache."""

    def __init__(self) -> None:
        self._rules: Dict[RuleKind, Dict[str, Rule]] = {kind: {} for kind in RuleKind}
        self._schemas: Dict[str, Any] = {}

    def register(
        self,
        kind: RuleKind,
        name: str,
        check: Callable[..., Any],
        section: Optional[Section] = None,
        field: Optional[str] = None,
    ) -> Rule:
        """
        Store a rule under (kind, name), replacing any rule already there.

        FIELD rules are named "<section>.<FIELD>" and SECTION rules by their
        section key; the section and field are derived from the name when
        not given.

        Raises:
            ValueError: If a FIELD or SECTION rule name does not resolve to a section
        """

        kind = RuleKind(kind)
        if kind is RuleKind.FIELD and (section is None or field is None):
            section_name, _, field_name = name.partition(".")
            if not field_name:
                raise ValueError(f"Field rule name must be '<section>.<FIELD>': {name!r}")
            section = Section.parse(section_name)
            field = field_name
        elif kind is RuleKind.SECTION and section is None:
            section = Section.parse(name)

        rule = Rule(kind=kind, name=name, check=check, section=section, field=field)
        self._rules[kind][name] = rule
        return rule

    def get(self, kind: RuleKind, name: str) -> Optional[Rule]:
        return self._rules[RuleKind(kind)].get(name)

    def get_all(self, kind: RuleKind) -> Mapping[str, Rule]:
        return MappingProxyType(dict(self._rules[RuleKind(kind)]))

    def get_schema(self, key: str, factory: Callable[[], Any]) -> Any:
        if key not in self._schemas:
            self._schemas[key] = factory()
        return self._schemas[key]

    def clear_cache(self) -> None:
        self._schemas.clear()

    def is_populated(self) -> bool:
        """True once cross-field rules exist; the one-time population check."""

        return bool(self._rules[RuleKind.CROSS_FIELD])

    def __len__(self) -> int:
        return sum(len(rules) for rules in self._rules.values())


__all__ = ["RuleKind", "Rule", "RuleRegistry"]
