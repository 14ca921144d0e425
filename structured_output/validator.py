"""Validator — structural conformance of a reply to a compiled schema.

``validate`` parses JSON text when needed and reports every violation it
finds, not just the first, so the caller can decide whether to retry or
repair. It never coerces: ``"21.5"`` is not a number here, even though
the hydrator would accept it.

``compile_validator`` turns a schema into a reusable checker once;
structured types cache theirs.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Callable

from .repair import Repair, repair_candidate

# ---------------------------------------------------------------------------
# Data structures
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SchemaViolation:
    """A single structural problem in a candidate."""

    path: str
    keyword: str  # "parse", "type", "required", "enum", "additionalProperties"
    message: str

    def __str__(self) -> str:
        return f"{self.path or '<root>'}: {self.message}"


@dataclass(frozen=True)
class ValidationOutcome:
    """Result of one ``validate`` call. Never mutated after return."""

    valid: bool
    candidate: Any
    original_candidate: Any
    errors: tuple[SchemaViolation, ...] = ()
    repairs: tuple[Repair, ...] = ()

    def error_messages(self) -> list[str]:
        return [str(e) for e in self.errors]


Check = Callable[[Any, str, list], None]


# ---------------------------------------------------------------------------
# Type matching
# ---------------------------------------------------------------------------


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


_TYPE_TESTS: dict[str, Callable[[Any], bool]] = {
    "string": lambda v: isinstance(v, str),
    "number": _is_number,
    "integer": lambda v: _is_number(v) and float(v).is_integer(),
    "boolean": lambda v: isinstance(v, bool),
    "object": lambda v: isinstance(v, Mapping),
    "array": lambda v: isinstance(v, list),
    "null": lambda v: v is None,
}


def _describe(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if _is_number(value):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    if isinstance(value, Mapping):
        return "object"
    return type(value).__name__


def _child(path: str, name: str) -> str:
    return f"{path}.{name}" if path else name


# ---------------------------------------------------------------------------
# Compilation
# ---------------------------------------------------------------------------


def _build(schema: Any) -> Check:
    """Build a check function for one (sub)schema."""
    if not isinstance(schema, Mapping):
        return lambda value, path, errors: None

    declared = schema.get("type")
    if isinstance(declared, str):
        types = [declared]
    elif isinstance(declared, (list, tuple)):
        types = [t for t in declared if isinstance(t, str)]
    else:
        types = []
    tests = [_TYPE_TESTS[t] for t in types if t in _TYPE_TESTS]

    enum = schema.get("enum")
    enum_values = list(enum) if isinstance(enum, (list, tuple)) else None

    properties = schema.get("properties")
    property_checks: dict[str, Check] = {}
    if isinstance(properties, Mapping):
        property_checks = {name: _build(sub) for name, sub in properties.items()}
    required = [r for r in schema.get("required", []) or [] if isinstance(r, str)]
    closed = schema.get("additionalProperties") is False

    items = schema.get("items")
    item_check: Check | None = None
    tuple_checks: list[Check] | None = None
    if isinstance(items, (list, tuple)):
        tuple_checks = [_build(sub) for sub in items]
    elif items is not None:
        item_check = _build(items)

    def check(value: Any, path: str, errors: list) -> None:
        if tests and not any(test(value) for test in tests):
            errors.append(SchemaViolation(
                path, "type",
                f"expected {' or '.join(types)}, got {_describe(value)}",
            ))
            return

        if enum_values is not None and value not in enum_values:
            errors.append(SchemaViolation(
                path, "enum", f"value {value!r} not in allowed values {enum_values}",
            ))

        if isinstance(value, Mapping):
            for name in required:
                if name not in value:
                    errors.append(SchemaViolation(
                        _child(path, name), "required",
                        f"missing required property {name!r}",
                    ))
            for name, sub_check in property_checks.items():
                if name in value:
                    sub_check(value[name], _child(path, name), errors)
            if closed:
                for name in value:
                    if name not in property_checks:
                        errors.append(SchemaViolation(
                            _child(path, str(name)), "additionalProperties",
                            f"unexpected property {name!r}",
                        ))

        if isinstance(value, list):
            if item_check is not None:
                for i, item in enumerate(value):
                    item_check(item, f"{path}[{i}]", errors)
            elif tuple_checks is not None:
                for i, (item, sub_check) in enumerate(zip(value, tuple_checks)):
                    sub_check(item, f"{path}[{i}]", errors)

    return check


class SchemaValidator:
    """A schema compiled into a reusable checker."""

    def __init__(self, schema: Mapping[str, Any] | None):
        self.schema = schema
        self._check = _build(schema) if schema is not None else None

    def errors(self, value: Any) -> list[SchemaViolation]:
        if self._check is None:
            return []
        found: list[SchemaViolation] = []
        self._check(value, "", found)
        return found

    def __call__(self, value: Any) -> list[SchemaViolation]:
        return self.errors(value)


def compile_validator(schema: Mapping[str, Any] | None) -> SchemaValidator:
    return SchemaValidator(schema)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def validate(
    candidate: Any,
    schema: Mapping[str, Any] | None,
    *,
    repair: bool = False,
    validator: SchemaValidator | None = None,
) -> ValidationOutcome:
    """Check *candidate* (JSON text or parsed value) against *schema*.

    Parse failures come back as ``valid=False`` with a single ``"parse"``
    violation; this function does not raise for bad input. With
    ``repair=True`` text candidates go through ``repair_candidate`` first.
    A ``None`` schema accepts anything.
    """
    original = candidate
    repairs: list[Repair] = []

    if isinstance(candidate, (bytes, bytearray)):
        candidate = candidate.decode("utf-8", errors="replace")

    if isinstance(candidate, str):
        if repair:
            parsed, repairs, error = repair_candidate(candidate)
        else:
            try:
                parsed, error = json.loads(candidate), None
            except (ValueError, RecursionError) as exc:
                parsed, error = None, str(exc)
        if error is not None:
            return ValidationOutcome(
                valid=False,
                candidate=original,
                original_candidate=original,
                errors=(SchemaViolation("", "parse", f"invalid JSON: {error}"),),
                repairs=tuple(repairs),
            )
        candidate = parsed

    checker = validator if validator is not None else compile_validator(schema)
    errors = checker.errors(candidate)
    return ValidationOutcome(
        valid=not errors,
        candidate=candidate,
        original_candidate=original,
        errors=tuple(errors),
        repairs=tuple(repairs),
    )
