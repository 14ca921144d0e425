"""Hydrator — rebuild typed instances from a (validated) reply.

Walks each declared property of a compiled schema, coerces loosely typed
model output (``"21.5"``, ``"false"``) into the values the constructor
expects, recurses into nested structured types, and finally calls the
original constructor once with the assembled arguments.

Failure modes:

- unparsable JSON text -> ``None`` (logged), never an exception;
- a required property that cannot be produced -> ``HydrationError``
  naming the type and property;
- an optional property that cannot be produced -> absent (the
  constructor default applies, else ``None``);
- an exception escaping the constructor -> logged and ``None``, or
  ``ConstructionError`` when hydrating strictly. Strictness carries into
  nested structured types.
"""

from __future__ import annotations

import inspect
import json
import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Callable

from .errors import ConstructionError, HydrationError

log = logging.getLogger(__name__)


class _Missing:
    """Marker for a property that contributes no value."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING = _Missing()

ResolveStructuredType = Callable[[str], Any]


# ---------------------------------------------------------------------------
# Constructor metadata
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ConstructorParameter:
    """One constructor parameter the hydrator can fill."""

    name: str
    has_default: bool = False
    keyword_only: bool = False


def constructor_parameters(factory: Callable) -> list[ConstructorParameter] | None:
    """Read parameter metadata from *factory*'s signature.

    Returns None when the signature cannot be inspected or only takes
    ``*args``/``**kwargs``; the caller then falls back to schema order.
    """
    try:
        signature = inspect.signature(factory)
    except (TypeError, ValueError):
        return None
    params: list[ConstructorParameter] = []
    for param in signature.parameters.values():
        if param.kind in (param.VAR_POSITIONAL, param.VAR_KEYWORD):
            continue
        if param.kind == param.POSITIONAL_ONLY:
            params.append(ConstructorParameter(param.name, param.default is not param.empty))
            continue
        params.append(ConstructorParameter(
            param.name,
            has_default=param.default is not param.empty,
            keyword_only=param.kind == param.KEYWORD_ONLY,
        ))
    return params or None


def parameters_from_declaration(declared) -> list[ConstructorParameter]:
    """Normalise ``constructor_args`` (names or ``{name, optional}`` dicts)."""
    params: list[ConstructorParameter] = []
    for entry in declared:
        if isinstance(entry, str):
            params.append(ConstructorParameter(entry))
        elif isinstance(entry, Mapping) and entry.get("name"):
            params.append(ConstructorParameter(
                str(entry["name"]), has_default=bool(entry.get("optional", False))
            ))
        else:
            raise TypeError(f"Invalid constructor argument declaration: {entry!r}")
    return params


# ---------------------------------------------------------------------------
# Scalar coercion
# ---------------------------------------------------------------------------


def coerce_string(value: Any) -> Any:
    return value if isinstance(value, str) else MISSING


def coerce_number(value: Any, *, integer: bool = False) -> Any:
    """Number as-is or parsed from a numeric string; MISSING otherwise."""
    if isinstance(value, bool):
        return MISSING
    if isinstance(value, (int, float)):
        number = value
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return MISSING
        try:
            number = int(text)
        except ValueError:
            try:
                number = float(text)
            except ValueError:
                return MISSING
    else:
        return MISSING
    if isinstance(number, float):
        if not math.isfinite(number):
            return MISSING
        if integer:
            if not number.is_integer():
                return MISSING
            return int(number)
    return number


_TRUE_STRINGS = {"true", "1"}
_FALSE_STRINGS = {"false", "0"}


def coerce_boolean(value: Any) -> Any:
    """Bool as-is; "true"/"false"/"1"/"0" (any case) and 1/0 coerced."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        text = value.strip().lower()
        if text in _TRUE_STRINGS:
            return True
        if text in _FALSE_STRINGS:
            return False
        return MISSING
    if isinstance(value, (int, float)) and value in (0, 1):
        return bool(value)
    return MISSING


_SCALARS: dict[str, Callable[[Any], Any]] = {
    "string": coerce_string,
    "number": coerce_number,
    "integer": lambda v: coerce_number(v, integer=True),
    "boolean": coerce_boolean,
}


def parse_recipe(recipe: Any) -> Any:
    """Decode JSON text; MISSING when it does not parse."""
    if isinstance(recipe, (bytes, bytearray)):
        recipe = recipe.decode("utf-8", errors="replace")
    if isinstance(recipe, str):
        try:
            return json.loads(recipe)
        except (ValueError, RecursionError) as exc:
            log.warning("Cannot hydrate from invalid JSON: %s", exc)
            return MISSING
    return recipe


# ---------------------------------------------------------------------------
# Hydrator
# ---------------------------------------------------------------------------


class Hydrator:
    """Property-by-property hydration of one structured type's schema."""

    def __init__(
        self,
        type_name: str,
        resolve_structured_type: ResolveStructuredType,
        *,
        strict: bool = False,
    ):
        self.type_name = type_name
        self.resolve = resolve_structured_type
        self.strict = strict

    def _fail(self, prop: str, message: str):
        raise HydrationError(self.type_name, prop, message)

    def property_values(self, schema: Mapping[str, Any], recipe: Mapping[str, Any]) -> dict[str, Any]:
        """Coerced value (or MISSING) for every declared property, in schema order."""
        properties = schema.get("properties") or {}
        required = set(schema.get("required") or ())
        values: dict[str, Any] = {}
        for name, prop_schema in properties.items():
            values[name] = self.value(
                name, prop_schema, recipe.get(name, MISSING), name in required
            )
        return values

    def value(self, prop: str, schema: Any, raw: Any, required: bool) -> Any:
        if not isinstance(schema, Mapping):
            return raw
        kind = schema.get("type")
        if not isinstance(kind, str):
            return raw

        if kind in _SCALARS:
            if raw is MISSING or raw is None:
                if required:
                    self._fail(prop, f"required {kind} is missing")
                return MISSING
            coerced = _SCALARS[kind](raw)
            if coerced is MISSING and required:
                self._fail(prop, f"expected {kind}, got {raw!r}")
            return coerced

        if kind == "array":
            if not isinstance(raw, list):
                if required:
                    self._fail(prop, f"expected array, got {raw!r}")
                return MISSING
            return self._array(prop, schema.get("items"), raw, required)

        if kind == "object":
            if raw is MISSING or raw is None:
                if required:
                    self._fail(prop, "required object is missing")
                return MISSING
            return self._object(prop, schema, raw, required)

        if kind == "null":
            return None

        # Untyped fragments (bare enums, {}) pass through untouched.
        return raw

    def _array(self, prop: str, items: Any, raw: list, required: bool) -> Any:
        if isinstance(items, (list, tuple)):
            schemas = [items[i] if i < len(items) else {} for i in range(len(raw))]
        elif isinstance(items, Mapping) and items.get("type"):
            schemas = [items] * len(raw)
        else:
            return list(raw)

        try:
            return [
                self._item(f"{prop}[{i}]", item_schema, item, required)
                for i, (item_schema, item) in enumerate(zip(schemas, raw))
            ]
        except _OptionalItemFailure:
            return MISSING

    def _item(self, path: str, schema: Mapping[str, Any], item: Any, required: bool) -> Any:
        kind = schema.get("type") if isinstance(schema, Mapping) else None

        if kind == "object" and schema.get("name"):
            structured = self.resolve(schema["name"])
            if structured is None:
                self._fail(path, f"unknown structured type {schema['name']!r}")
            hydrate = getattr(structured, "hydrate", None)
            if callable(hydrate):
                hydrated = hydrate(item, strict=self.strict)
                return item if hydrated is None else hydrated
            return shallow_copy(structured, item)

        if kind in _SCALARS or kind == "array":
            try:
                coerced = self.value(path, schema, item, True)
            except HydrationError:
                if required:
                    raise
                raise _OptionalItemFailure() from None
            return coerced

        if kind == "object":
            if not isinstance(item, Mapping):
                if required:
                    self._fail(path, f"expected object, got {item!r}")
                raise _OptionalItemFailure()
            return self._inline_object(path, schema, item)

        return item

    def _object(self, prop: str, schema: Mapping[str, Any], raw: Any, required: bool) -> Any:
        name = schema.get("name")
        if name:
            structured = self.resolve(name)
            hydrate = getattr(structured, "hydrate", None)
            if structured is None or not callable(hydrate):
                log.debug(
                    "No hydrator for nested type %s", name,
                    extra={"structured_type": self.type_name, "property": prop},
                )
                return MISSING
            hydrated = hydrate(raw, strict=self.strict)
            return MISSING if hydrated is None else hydrated
        if not isinstance(raw, Mapping):
            if required:
                self._fail(prop, f"expected object, got {raw!r}")
            return MISSING
        return self._inline_object(prop, schema, raw)

    def _inline_object(self, path: str, schema: Mapping[str, Any], raw: Mapping[str, Any]) -> dict:
        if not isinstance(schema.get("properties"), Mapping):
            return dict(raw)
        nested = Hydrator(f"{self.type_name}.{path}", self.resolve, strict=self.strict)
        values = nested.property_values(schema, raw)
        result = dict(raw)
        for key, value in values.items():
            if value is MISSING:
                result.pop(key, None)
            else:
                result[key] = value
        return result


class _OptionalItemFailure(Exception):
    """An element of an optional array could not be coerced."""


def shallow_copy(cls: Any, item: Any) -> Any:
    """Instance of *cls* with *item*'s keys copied on, constructor bypassed."""
    if not isinstance(cls, type) or not isinstance(item, Mapping):
        return item
    instance = cls.__new__(cls)
    instance.__dict__.update(item)
    return instance


def assemble_arguments(
    params: list[ConstructorParameter], values: Mapping[str, Any]
) -> tuple[list[Any], dict[str, Any]]:
    """Positional args in parameter order, switching to keywords after a gap.

    A MISSING value is omitted when its parameter has a default (so the
    default applies) and passed as None otherwise.
    """
    args: list[Any] = []
    kwargs: dict[str, Any] = {}
    gap = False
    for param in params:
        value = values.get(param.name, MISSING)
        if value is MISSING:
            if param.has_default:
                gap = True
                continue
            value = None
        if gap or param.keyword_only:
            kwargs[param.name] = value
        else:
            args.append(value)
    return args, kwargs


def hydrate(
    recipe: Any,
    schema: Mapping[str, Any] | None,
    resolve_structured_type: ResolveStructuredType,
    *,
    factory: Callable[..., Any],
    constructor_params: list[ConstructorParameter] | None = None,
    type_name: str | None = None,
    strict: bool = False,
) -> Any:
    """Build a *factory* instance from *recipe* (JSON text, mapping, or list).

    A list recipe hydrates element-wise and returns a list. Returns None
    when the recipe does not parse, is not an object, or the constructor
    fails (unless *strict*).
    """
    name = type_name or (schema or {}).get("name") or getattr(factory, "__name__", "?")
    parsed = parse_recipe(recipe)
    if parsed is MISSING:
        return None
    if isinstance(parsed, list):
        return [
            hydrate(item, schema, resolve_structured_type, factory=factory,
                    constructor_params=constructor_params, type_name=name, strict=strict)
            for item in parsed
        ]
    if not isinstance(parsed, Mapping):
        log.warning("Cannot hydrate %s from %s", name, type(parsed).__name__)
        return None
    if schema is None:
        log.warning("Cannot hydrate %s: it has no schema", name)
        return None

    values = Hydrator(name, resolve_structured_type, strict=strict).property_values(schema, parsed)
    params = constructor_params or [
        ConstructorParameter(prop) for prop in (schema.get("properties") or {})
    ]
    args, kwargs = assemble_arguments(params, values)

    try:
        return factory(*args, **kwargs)
    except Exception as exc:
        if strict:
            raise ConstructionError(name, exc) from exc
        log.error(
            "Failed to construct %s with args=%r kwargs=%r", name, args, kwargs,
            exc_info=True, extra={"structured_type": name},
        )
        return None
