"""Schema Value Compiler — fragments to canonical JSON Schema.

Walks a fragment's property map and expands every schema value into
plain JSON Schema. References to other structured types are resolved
through a caller-supplied ``resolve_reference`` callable that returns the
dependency's compiled schema, compiling it on demand, so declaration
order never matters. The result is inlined as a deep copy.

Everything that cannot be compiled raises ``SchemaConfigurationError``:
these are declaration mistakes, not bad model output.
"""

from __future__ import annotations

import copy
import logging
import re
from collections.abc import Mapping
from typing import Any, Callable

from ..errors import SchemaConfigurationError
from .values import (
    PRIMITIVE_TYPES,
    PYTHON_TYPE_MARKERS,
    Ref,
    SchemaFragment,
    enum_values,
)

log = logging.getLogger(__name__)

JsonSchema = dict[str, Any]
ResolveReference = Callable[[Any], "JsonSchema | None"]
FindItemType = Callable[[str], "JsonSchema | None"]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def is_reference(value: Any) -> bool:
    """True for ``Ref`` and anything exposing a structured ``get_schema``."""
    if isinstance(value, Ref):
        return True
    if isinstance(value, type) and value in PYTHON_TYPE_MARKERS:
        return False
    return getattr(value, "__structured__", None) is not None or (
        not isinstance(value, (type, Mapping, list, tuple, str))
        and callable(getattr(value, "get_schema", None))
    )


def reference_name(value: Any) -> str:
    if isinstance(value, Ref):
        return value.name
    structured = getattr(value, "__structured__", value)
    return getattr(structured, "name", None) or getattr(value, "__name__", repr(value))


def singular_candidates(property_name: str) -> list[str]:
    """Type names a plural property name might refer to.

    ``previous_addresses`` -> ``["PreviousAddress", "Address"]``. Best
    effort only: irregular plurals ("series", "data") guess wrong.
    """
    words = [w for w in re.split(r"_|(?<=[a-z0-9])(?=[A-Z])", property_name) if w]
    if not words:
        return []
    last = words[-1]
    if last.endswith("ies") and len(last) > 3:
        last = last[:-3] + "y"
    elif last.endswith("ses") or last.endswith("xes"):
        last = last[:-2]
    elif last.endswith("s") and not last.endswith("ss"):
        last = last[:-1]
    else:
        return []
    words[-1] = last
    full = "".join(w[:1].upper() + w[1:] for w in words)
    tail = last[:1].upper() + last[1:]
    return [full] if full == tail else [full, tail]


# ---------------------------------------------------------------------------
# Compiler
# ---------------------------------------------------------------------------


class SchemaCompiler:
    """Compiles schema values against one reference resolver.

    Args:
        resolve_reference: Returns the compiled schema for a reference
            value, or None when it cannot be resolved.
        find_item_type: Optional lookup used when an array declares no
            ``items``; receives the property name and returns the schema
            of the type it names, or None.
    """

    def __init__(
        self,
        resolve_reference: ResolveReference,
        find_item_type: FindItemType | None = None,
    ):
        self.resolve_reference = resolve_reference
        self.find_item_type = find_item_type

    def compile_fragment(self, fragment: SchemaFragment) -> JsonSchema:
        """Build the canonical document for a whole fragment."""
        document: JsonSchema = {
            "type": fragment.type,
            "name": fragment.name,
            "description": fragment.description if fragment.description is not None else "",
            "properties": self.compile_properties(fragment.properties or {}),
            "required": list(fragment.required),
        }
        if fragment.additional_properties is not None:
            document["additionalProperties"] = fragment.additional_properties
        if fragment.strict is not None:
            document["strict"] = fragment.strict
        if fragment.allow_no_schema is not None:
            document["allowNoSchema"] = fragment.allow_no_schema
        for key, value in fragment.extra.items():
            document.setdefault(key, copy.deepcopy(value))
        return document

    def compile_properties(self, properties: Mapping[str, Any]) -> JsonSchema:
        return {
            name: self.compile_value(value, property_name=name)
            for name, value in properties.items()
        }

    def compile_value(self, value: Any, property_name: str | None = None) -> JsonSchema:
        if isinstance(value, str):
            return self._compile_marker(value)

        if isinstance(value, type) and value in PYTHON_TYPE_MARKERS:
            return {"type": PYTHON_TYPE_MARKERS[value]}

        if is_reference(value):
            resolved = self.resolve_reference(value)
            if resolved is None:
                raise SchemaConfigurationError(
                    f"Unresolved structured type reference: {reference_name(value)}"
                )
            return copy.deepcopy(resolved)

        if isinstance(value, (list, tuple)):
            return self._compile_alternatives(value, property_name)

        if isinstance(value, Mapping):
            return self._compile_mapping(value, property_name)

        if value is None:
            raise SchemaConfigurationError(
                f"Null schema value for property {property_name!r}"
            )
        raise SchemaConfigurationError(
            f"Unsupported schema value for property {property_name!r}: {value!r}"
        )

    # -- value kinds ---------------------------------------------------------

    def _compile_marker(self, marker: str) -> JsonSchema:
        if marker not in PRIMITIVE_TYPES:
            raise SchemaConfigurationError(
                f"Unknown primitive marker {marker!r}; expected one of "
                f"{sorted(PRIMITIVE_TYPES)} (use Ref() for type names)"
            )
        return {"type": marker}

    def _compile_alternatives(self, values, property_name: str | None) -> JsonSchema:
        if not values:
            raise SchemaConfigurationError(
                f"Empty list schema for property {property_name!r}"
            )
        if len(values) == 1:
            return {"type": "array", "items": self.compile_value(values[0])}
        return {
            "type": "array",
            "items": [self.compile_value(v) for v in values],
        }

    def _compile_mapping(self, value: Mapping[str, Any], property_name: str | None) -> JsonSchema:
        result: JsonSchema = {}
        for key, item in value.items():
            if key in ("properties", "items", "enum"):
                continue
            result[key] = copy.deepcopy(item)

        if "enum" in value:
            result["enum"] = copy.deepcopy(enum_values(value["enum"]))

        properties = value.get("properties")
        if isinstance(properties, Mapping):
            result["properties"] = self.compile_properties(properties)
        elif properties is not None:
            result["properties"] = copy.deepcopy(properties)

        items = value.get("items")
        if isinstance(items, (list, tuple)):
            result["items"] = [self.compile_value(v) for v in items]
        elif items is not None:
            result["items"] = self.compile_value(items)
        elif value.get("type") == "array":
            result["items"] = self._infer_items(property_name)
        return result

    def _infer_items(self, property_name: str | None) -> JsonSchema:
        if not property_name:
            return {}
        if self.find_item_type is not None:
            schema = self.find_item_type(property_name)
            if schema is not None:
                log.debug(
                    "Inferred items of %r as registered type %s",
                    property_name, schema.get("name"),
                )
                return copy.deepcopy(schema)
        log.debug("No item type inferred for array property %r", property_name)
        return {}


def compile_value(value: Any, resolve_reference: ResolveReference) -> JsonSchema:
    """Compile one schema value with no array-item inference."""
    return SchemaCompiler(resolve_reference).compile_value(value)
