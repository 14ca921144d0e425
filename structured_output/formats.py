"""Provider envelopes for compiled schemas and tool definitions.

Pure dict transforms: the compiled schema is the single source of truth
and each provider gets the wrapping it expects. No transport here.
"""

from __future__ import annotations

import copy
from typing import Any

# Keys of a compiled schema document that are envelope metadata rather
# than JSON Schema keywords.
_ENVELOPE_KEYS = ("name", "strict", "allowNoSchema")


def json_schema_body(schema: dict[str, Any]) -> dict[str, Any]:
    """The bare JSON Schema (also what Ollama's ``format`` field takes)."""
    return {
        key: copy.deepcopy(value)
        for key, value in schema.items()
        if key not in _ENVELOPE_KEYS
    }


def response_format(schema: dict[str, Any], *, strict: bool | None = None) -> dict[str, Any]:
    """Chat-completions ``response_format`` for structured output."""
    body = json_schema_body(schema)
    description = body.pop("description", "")
    envelope: dict[str, Any] = {
        "name": schema.get("name") or "response",
        "schema": body,
        "strict": bool(schema.get("strict", False) if strict is None else strict),
    }
    if description:
        envelope["description"] = description
    return {"type": "json_schema", "json_schema": envelope}


def tool_definition(schema: dict[str, Any], *, name: str | None = None) -> dict[str, Any]:
    """Function-calling definition derived from a compiled schema."""
    definition: dict[str, Any] = {
        "type": "function",
        "name": name or schema.get("name"),
        "description": schema.get("description", ""),
        "parameters": {
            "type": "object",
            "properties": copy.deepcopy(schema.get("properties", {})),
            "required": list(schema.get("required", [])),
            "additionalProperties": schema.get("additionalProperties", False),
        },
    }
    if "strict" in schema:
        definition["strict"] = schema["strict"]
    if "allowNoSchema" in schema:
        definition["allowNoSchema"] = schema["allowNoSchema"]
    return definition


def openai_tool(definition: dict[str, Any]) -> dict[str, Any]:
    """Chat-completions ``tools`` entry."""
    function: dict[str, Any] = {
        "name": definition["name"],
        "description": definition.get("description", ""),
        "parameters": copy.deepcopy(definition["parameters"]),
    }
    if "strict" in definition:
        function["strict"] = definition["strict"]
    return {"type": "function", "function": function}


def anthropic_tool(definition: dict[str, Any]) -> dict[str, Any]:
    """Anthropic Messages ``tools`` entry (``input_schema`` form)."""
    parameters = copy.deepcopy(definition["parameters"])
    return {
        "name": definition["name"],
        "description": definition.get("description", ""),
        "input_schema": parameters,
    }


PROVIDERS = {
    "generic": lambda definition: copy.deepcopy(definition),
    "openai": openai_tool,
    "anthropic": anthropic_tool,
}


def format_tool(definition: dict[str, Any], provider: str = "generic") -> dict[str, Any]:
    try:
        formatter = PROVIDERS[provider]
    except KeyError:
        raise ValueError(
            f"Unknown provider {provider!r}; expected one of {sorted(PROVIDERS)}"
        ) from None
    return formatter(definition)
