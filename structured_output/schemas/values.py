"""Author-facing schema building blocks.

A structured type is declared with a ``SchemaFragment`` whose
``properties`` map each field to a *schema value*:

- a primitive marker (``"string"``, ``"number"``, ``"integer"``,
  ``"boolean"``, ``"null"``) or the Python types ``str``, ``float``,
  ``int``, ``bool``;
- another structured type (its class, its ``StructuredType``, or a
  ``Ref`` by name for forward references);
- ``array(item)`` or a one-element list ``[item]``;
- ``enum_schema(...)``;
- any raw JSON Schema mapping.
"""

from __future__ import annotations

import enum
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from ..errors import SchemaConfigurationError

# ---------------------------------------------------------------------------
# Markers
# ---------------------------------------------------------------------------

PRIMITIVE_TYPES: frozenset[str] = frozenset(
    {"string", "number", "integer", "boolean", "null"}
)

JSON_TYPES: frozenset[str] = PRIMITIVE_TYPES | {"object", "array"}

PYTHON_TYPE_MARKERS: dict[type, str] = {
    str: "string",
    bool: "boolean",
    int: "integer",
    float: "number",
}


@dataclass(frozen=True)
class Ref:
    """Reference to a registered structured type by name.

    Resolved through the owning registry when the referencing schema is
    compiled, so the target may be declared later in the module.
    """

    name: str

    def __post_init__(self):
        if not self.name or not isinstance(self.name, str):
            raise SchemaConfigurationError("Ref needs a non-empty type name")


def array(items: Any = None, **extra: Any) -> dict[str, Any]:
    """Array wrapper. ``items=None`` leaves the item schema to inference."""
    wrapper: dict[str, Any] = {"type": "array", **extra}
    if items is not None:
        wrapper["items"] = items
    return wrapper


def enum_values(values: Any) -> list[Any]:
    """Normalise an enum declaration to its literal value list.

    Accepts an ``enum.Enum`` subclass, a mapping (its values), or a list
    whose members may themselves be either of those.
    """
    if isinstance(values, type) and issubclass(values, enum.Enum):
        return [member.value for member in values]
    if isinstance(values, Mapping):
        return list(values.values())
    if isinstance(values, (list, tuple)):
        flat: list[Any] = []
        for value in values:
            if (isinstance(value, type) and issubclass(value, enum.Enum)) or isinstance(
                value, Mapping
            ):
                flat.extend(enum_values(value))
            elif isinstance(value, enum.Enum):
                flat.append(value.value)
            else:
                flat.append(value)
        return flat
    raise SchemaConfigurationError(f"Unsupported enum declaration: {values!r}")


def enum_schema(
    values: Any, *, type: str | None = None, description: str | None = None
) -> dict[str, Any]:
    """Enum wrapper: ``{"type"?, "enum": [...], "description"?}``."""
    schema: dict[str, Any] = {}
    if type is not None:
        schema["type"] = type
    schema["enum"] = enum_values(values)
    if description is not None:
        schema["description"] = description
    return schema


# ---------------------------------------------------------------------------
# SchemaFragment
# ---------------------------------------------------------------------------

_WIRE_ALIASES = {
    "additionalProperties": "additional_properties",
    "allowNoSchema": "allow_no_schema",
    "constructorArgs": "constructor_args",
}


@dataclass(frozen=True)
class SchemaFragment:
    """The uncompiled, author-declared schema of a structured type."""

    type: str = "object"
    name: str | None = None
    description: str | None = None
    properties: Mapping[str, Any] | None = None
    required: tuple[str, ...] = ()
    additional_properties: bool | None = None
    strict: bool | None = None
    allow_no_schema: bool | None = None
    constructor_args: tuple[Any, ...] | None = None
    extra: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if not isinstance(self.type, str) or not self.type:
            raise SchemaConfigurationError(f"Invalid fragment type: {self.type!r}")
        if self.properties is not None and not isinstance(self.properties, Mapping):
            raise SchemaConfigurationError(
                f"Fragment properties must be a mapping, got {type(self.properties).__name__}"
            )
        object.__setattr__(self, "required", tuple(self.required or ()))
        if self.constructor_args is not None:
            object.__setattr__(self, "constructor_args", tuple(self.constructor_args))
        if self.properties is not None:
            unknown = [r for r in self.required if r not in self.properties]
            if unknown:
                raise SchemaConfigurationError(
                    f"Fragment {self.name or '<unnamed>'} requires undeclared "
                    f"properties: {', '.join(unknown)}"
                )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> SchemaFragment:
        """Build a fragment from a mapping; unknown keys land in ``extra``."""
        if not isinstance(data, Mapping):
            raise SchemaConfigurationError(
                f"Schema fragment must be a mapping, got {type(data).__name__}"
            )
        known = {f for f in cls.__dataclass_fields__ if f != "extra"}
        kwargs: dict[str, Any] = {}
        extra: dict[str, Any] = {}
        for key, value in data.items():
            attr = _WIRE_ALIASES.get(key, key)
            if attr in known:
                kwargs[attr] = value
            else:
                extra[key] = value
        if kwargs.get("type") is None:
            kwargs.pop("type", None)
        return cls(**kwargs, extra=extra)

    def with_defaults(self, *, name: str, description: str) -> SchemaFragment:
        """Copy with ``name``/``description`` filled in where missing."""
        if self.name and self.description is not None:
            return self
        return SchemaFragment(
            type=self.type,
            name=self.name or name,
            description=self.description if self.description is not None else description,
            properties=self.properties,
            required=self.required,
            additional_properties=self.additional_properties,
            strict=self.strict,
            allow_no_schema=self.allow_no_schema,
            constructor_args=self.constructor_args,
            extra=self.extra,
        )
