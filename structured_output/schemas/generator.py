"""Schema Generator — draft a fragment from an example reply.

Given a concrete example of what a model should return, the generator
produces a YAML-ready fragment that ``loader.load_fragment()`` accepts.
The draft is a starting point: review descriptions, required fields and
item types before using it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml


# ---------------------------------------------------------------------------
# Data structures
# ---------------------------------------------------------------------------


@dataclass
class InferredProperty:
    """A single property inferred from an example value."""

    name: str
    type: str | None
    required: bool = True
    items: InferredProperty | None = None
    nested: list[InferredProperty] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _infer(name: str, value: Any) -> InferredProperty:
    """Infer a property from a name-value pair.

    - ``str`` -> ``"string"``, ``bool`` -> ``"boolean"`` (checked before
      int), ``int`` -> ``"integer"``, ``float`` -> ``"number"``
    - ``dict`` -> inline ``"object"`` with nested properties
    - ``list`` -> ``"array"`` whose items come from the first element
    - ``None`` -> untyped and optional
    """
    if isinstance(value, str):
        return InferredProperty(name, "string")
    if isinstance(value, bool):
        return InferredProperty(name, "boolean")
    if isinstance(value, int):
        return InferredProperty(name, "integer")
    if isinstance(value, float):
        return InferredProperty(name, "number")
    if isinstance(value, dict):
        return InferredProperty(
            name, "object", nested=[_infer(k, v) for k, v in value.items()]
        )
    if isinstance(value, list):
        items = _infer(name, value[0]) if value else None
        return InferredProperty(name, "array", items=items)
    return InferredProperty(name, None, required=False)


def _to_schema(prop: InferredProperty) -> Any:
    """Schema value for one inferred property (markers where possible)."""
    if prop.type == "object":
        return {
            "type": "object",
            "properties": {p.name: _to_schema(p) for p in prop.nested},
            "required": [p.name for p in prop.nested if p.required],
        }
    if prop.type == "array":
        if prop.items is None:
            return {"type": "array", "items": {}}
        return {"array": _to_schema(prop.items)}
    if prop.type is None:
        return {}
    return prop.type


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def infer_fragment_from_example(
    example: dict[str, Any],
    name: str,
    description: str | None = None,
) -> dict[str, Any]:
    """Create a fragment dict from an example reply.

    Every key with a non-null example value is marked required.
    """
    if not isinstance(example, dict):
        raise TypeError(f"Example must be a JSON object, got {type(example).__name__}")
    inferred = [_infer(k, v) for k, v in example.items()]
    return {
        "name": name,
        "description": description or f"Auto-generated from an example {name} reply",
        "properties": {p.name: _to_schema(p) for p in inferred},
        "required": [p.name for p in inferred if p.required],
    }


def write_fragment(fragment: dict[str, Any], path: Path | str) -> None:
    """Write a fragment dict to a YAML file.

    Uses ``sort_keys=False`` to preserve property ordering for readability.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as fh:
        yaml.dump(
            fragment,
            fh,
            default_flow_style=False,
            sort_keys=False,
            allow_unicode=True,
        )
