"""Declarative field validation.

Each field owns one FieldRule. Rules are evaluated independently against
a normalized copy of the value; cross-field conditions are expressed with
``required_if`` on the dependent field.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Mapping, Optional

REQUIRED_MESSAGE = "Ce champ est obligatoire"


@dataclass(frozen=True)
class FieldRule:
    """Validation rule for a single field.

    ``check`` receives the normalized, non-blank value and returns an error
    message or None.
    """

    name: str
    required: bool = False
    required_if: Optional[Callable[[Mapping[str, Any]], bool]] = None
    normalize: Optional[Callable[[Any], Any]] = None
    pattern: Optional[re.Pattern] = None
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    check: Optional[Callable[[Any], Optional[str]]] = None
    text: bool = False
    required_message: str = REQUIRED_MESSAGE
    pattern_message: str = "Format invalide"
    min_length_message: Optional[str] = None
    max_length_message: Optional[str] = None

    @property
    def expects_text(self) -> bool:
        return (
            self.text
            or self.pattern is not None
            or self.min_length is not None
            or self.max_length is not None
        )

    def is_required(self, record: Mapping[str, Any]) -> bool:
        if self.required:
            return True
        return self.required_if is not None and bool(self.required_if(record))

    def evaluate(self, record: Mapping[str, Any]) -> Optional[str]:
        """Return the first error message for this field, or None."""
        value = record.get(self.name)
        if self.normalize is not None and value is not None:
            value = self.normalize(value)

        if is_blank(value):
            return self.required_message if self.is_required(record) else None

        if not isinstance(value, str):
            if self.expects_text:
                return self.pattern_message
        else:
            if self.min_length is not None and len(value) < self.min_length:
                return self.min_length_message or (
                    f"Au moins {self.min_length} caractères requis"
                )
            if self.max_length is not None and len(value) > self.max_length:
                return self.max_length_message or (
                    f"Au plus {self.max_length} caractères autorisés"
                )
            if self.pattern is not None and not self.pattern.match(value):
                return self.pattern_message

        if self.check is not None:
            return self.check(value)

        return None


@dataclass
class ValidationResult:
    field_errors: dict[str, str] = field(default_factory=dict)

    @property
    def is_valid(self) -> bool:
        return not self.field_errors

    def to_dict(self) -> dict[str, Any]:
        return {"is_valid": self.is_valid, "field_errors": dict(self.field_errors)}


class FieldValidator:
    """Evaluates a set of FieldRules against full or partial records."""

    def __init__(self, rules: Iterable[FieldRule]):
        self._rules = {rule.name: rule for rule in rules}

    @property
    def field_names(self) -> frozenset[str]:
        return frozenset(self._rules)

    def rule(self, name: str) -> Optional[FieldRule]:
        return self._rules.get(name)

    def validate(
        self,
        record: Mapping[str, Any],
        fields: Optional[Iterable[str]] = None,
    ) -> ValidationResult:
        """Validate ``fields`` of ``record`` (all known fields by default).

        Field names without a rule are ignored.
        """
        names = self._rules.keys() if fields is None else fields
        result = ValidationResult()
        for name in names:
            rule = self._rules.get(name)
            if rule is None:
                continue
            message = rule.evaluate(record)
            if message is not None:
                result.field_errors[name] = message
        return result

    def validate_field(self, name: str, record: Mapping[str, Any]) -> Optional[str]:
        rule = self._rules.get(name)
        return rule.evaluate(record) if rule is not None else None

    def normalize(self, record: Mapping[str, Any]) -> dict[str, Any]:
        """Return a copy of ``record`` with each known field normalized."""
        normalized = dict(record)
        for name, rule in self._rules.items():
            value = normalized.get(name)
            if rule.normalize is not None and value is not None:
                normalized[name] = rule.normalize(value)
        return normalized


def is_blank(value: Any) -> bool:
    return value is None or value is False or (isinstance(value, str) and not value)
