"""YAML-authored schema fragments.

A fragment file holds the same keys as ``SchemaFragment.from_dict``::

    name: UserProfile
    description: A user profile.
    properties:
      id: number
      name: string
      address: {ref: Address}
      previous_addresses: {array: {ref: Address}}
      role: {enum: [admin, member]}
    required: [id, name]

Two shorthands are expanded: ``{ref: Name}`` becomes ``Ref("Name")`` and
``{array: X}`` becomes ``array(X)``. A fragment may declare
``extends: base.yaml`` (relative to its own directory); the base is
loaded first and merged, the extension winning on conflicts.
"""

from __future__ import annotations

import copy
import threading
from pathlib import Path
from typing import Any

import yaml

from ..errors import SchemaConfigurationError
from .values import Ref, SchemaFragment, array

# ---------------------------------------------------------------------------
# Thread-safe cache
# ---------------------------------------------------------------------------

_cache: dict[Path, SchemaFragment] = {}
_cache_lock: threading.Lock = threading.Lock()

# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _load_yaml(path: Path) -> dict[str, Any]:
    """Read and parse a YAML file with explicit UTF-8 encoding."""
    with open(path, encoding="utf-8") as fh:
        data = yaml.safe_load(fh)
    if not isinstance(data, dict):
        raise SchemaConfigurationError(f"Schema fragment at {path} did not parse to a mapping")
    return data


def _merge_fragments(base: dict[str, Any], extension: dict[str, Any]) -> dict[str, Any]:
    """Merge *extension* onto *base*.

    - ``properties`` are merged key-by-key; extension entries win.
    - ``required`` is the union, base order first.
    - Any other keys from the extension replace the base's.
    """
    merged: dict[str, Any] = copy.deepcopy(base)

    if "properties" in extension:
        merged.setdefault("properties", {})
        merged["properties"].update(copy.deepcopy(extension["properties"] or {}))

    if "required" in extension:
        required = list(merged.get("required") or [])
        for name in extension["required"] or []:
            if name not in required:
                required.append(name)
        merged["required"] = required

    for key in extension:
        if key not in ("properties", "required", "extends"):
            merged[key] = copy.deepcopy(extension[key])

    return merged


def _resolve_raw(path: Path, seen: tuple[Path, ...] = ()) -> dict[str, Any]:
    """Load *path* and fold in its ``extends`` chain."""
    if path in seen:
        chain = " -> ".join(str(p) for p in (*seen, path))
        raise SchemaConfigurationError(f"Circular extends: {chain}")
    if not path.is_file():
        raise FileNotFoundError(f"No schema fragment at {path}")
    data = _load_yaml(path)
    base_ref = data.get("extends")
    if not base_ref:
        return data
    base_path = (path.parent / str(base_ref))
    if not base_path.suffix:
        base_path = base_path.with_suffix(".yaml")
    base = _resolve_raw(base_path.resolve(), (*seen, path))
    base.pop("name", None)
    return _merge_fragments(base, data)


def _expand(value: Any) -> Any:
    """Turn the ``ref``/``array`` shorthands into schema values."""
    if isinstance(value, dict):
        if set(value) == {"ref"}:
            return Ref(str(value["ref"]))
        if "array" in value and "type" not in value:
            extra = {k: _expand(v) for k, v in value.items() if k != "array"}
            return array(_expand(value["array"]), **extra)
        expanded = dict(value)
        if isinstance(expanded.get("properties"), dict):
            expanded["properties"] = {
                name: _expand(sub) for name, sub in expanded["properties"].items()
            }
        if "items" in expanded:
            expanded["items"] = _expand(expanded["items"])
        return expanded
    if isinstance(value, list):
        return [_expand(v) for v in value]
    return value


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_fragment(path: Path | str) -> SchemaFragment:
    """Load (and cache) the fragment at *path*.

    Fragments are immutable, so cached instances are shared.
    """
    resolved = Path(path).resolve()

    with _cache_lock:
        if resolved in _cache:
            return _cache[resolved]

    # --- Resolve outside the lock (I/O) --------------------------------
    data = _resolve_raw(resolved)
    data.pop("extends", None)
    data.setdefault("name", resolved.stem)
    if isinstance(data.get("properties"), dict):
        data["properties"] = {
            name: _expand(value) for name, value in data["properties"].items()
        }
    fragment = SchemaFragment.from_dict(data)

    with _cache_lock:
        _cache[resolved] = fragment

    return fragment


def load_fragments(directory: Path | str) -> dict[str, SchemaFragment]:
    """Every ``*.yaml`` fragment in *directory*, keyed by fragment name."""
    fragments: dict[str, SchemaFragment] = {}
    for path in sorted(Path(directory).glob("*.yaml")):
        fragment = load_fragment(path)
        fragments[fragment.name] = fragment
    return fragments


def clear_cache() -> None:
    """Drop all cached fragments.  Intended for testing."""
    with _cache_lock:
        _cache.clear()
