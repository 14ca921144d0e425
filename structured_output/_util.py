"""Shared helpers.

Deterministic JSON serialization: the same schema or tool result always
renders to the same text, which keeps prompts and snapshots stable.
"""

import importlib
import json as _json
from typing import Any


def to_json(obj: Any, **kwargs) -> str:
    """Serialize to JSON with deterministic key ordering."""
    kwargs.setdefault("sort_keys", True)
    return _json.dumps(obj, **kwargs)


def load_target(target: str) -> Any:
    """Import ``"package.module:Attribute"`` and return the attribute."""
    module_name, sep, attr = target.partition(":")
    if not sep or not module_name or not attr:
        raise ValueError(f"Expected 'module:attribute', got {target!r}")
    module = importlib.import_module(module_name)
    obj: Any = module
    for part in attr.split("."):
        obj = getattr(obj, part)
    return obj
