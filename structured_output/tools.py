"""Tool-flavored structured types.

A tool is a structured type whose schema describes function-call
parameters. The same compiled schema drives both the provider tool
definition and the validation/hydration of the model's call arguments;
the hydrated instance's ``run()`` produces the result.

``ToolRegistry.handle`` mirrors a classic dispatcher: it always returns a
string and turns unknown tools, bad arguments and tool crashes into
``{"error": ...}`` payloads rather than raising.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Callable

from ._util import to_json
from .errors import HydrationError, SchemaConfigurationError, ToolArgumentError
from .formats import format_tool, tool_definition
from .registry import SchemaRegistry
from .structured_type import StructuredType, as_structured_type, attach

log = logging.getLogger(__name__)


class ToolType(StructuredType):
    """StructuredType whose schema is a set of call parameters."""

    def get_definition(self) -> dict[str, Any]:
        schema = self.get_schema()
        if schema is None:
            schema = {
                "name": self.name,
                "description": self.fragment.description or "",
                "properties": {},
                "required": [],
            }
        return tool_definition(schema, name=self.name)

    def invoke(self, arguments: Any, *, repair: bool = False) -> Any:
        """Validate *arguments*, hydrate the tool and return ``run()``."""
        outcome = self.validate(arguments, repair=repair)
        if not outcome.valid:
            raise ToolArgumentError(self.name, outcome)
        instance = self.hydrate(outcome.candidate, strict=True)
        run = getattr(instance, "run", None)
        if not callable(run):
            raise SchemaConfigurationError(f"Tool {self.name} has no run() method")
        return run()


def _class_get_definition(cls):
    return cls.__structured__.get_definition()


def tool(
    fragment: Mapping[str, Any] | None = None,
    /,
    *,
    registry: SchemaRegistry | None = None,
    tools: ToolRegistry | None = None,
    parameters: Mapping[str, Any] | None = None,
    **fields: Any,
) -> Callable[[type], type]:
    """Class decorator declaring a tool.

    Parameters come from ``properties``/``required`` (fragment keys) or a
    ``parameters`` JSON Schema object. Tools are not added to the schema
    registry; pass ``tools=`` to add them to a ToolRegistry.
    """
    data: dict[str, Any] = dict(fragment or {})
    data.update(fields)
    if parameters is not None:
        data.setdefault("properties", parameters.get("properties", {}))
        data.setdefault("required", parameters.get("required", []))
        if "additionalProperties" in parameters:
            data.setdefault("additionalProperties", parameters["additionalProperties"])
    data.pop("type", None)
    data.setdefault("properties", {})

    def decorate(cls: type) -> type:
        structured = attach(data, cls, registry=registry, register=False, wrapper=ToolType)
        if not hasattr(cls, "get_definition"):
            cls.get_definition = classmethod(_class_get_definition)
        if tools is not None:
            tools.register(structured)
        return cls

    return decorate


class ToolRegistry:
    """Tools by name, with provider definitions and call dispatch."""

    def __init__(self):
        self._tools: dict[str, ToolType] = {}

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def register(self, tool_or_class: Any) -> ToolType:
        structured = as_structured_type(tool_or_class)
        if not isinstance(structured, ToolType):
            raise SchemaConfigurationError(f"Not a tool: {tool_or_class!r}")
        if structured.name in self._tools:
            log.debug("Tool %s replaced", structured.name)
        self._tools[structured.name] = structured
        return structured

    def get(self, name: str) -> ToolType | None:
        return self._tools.get(name)

    def names(self) -> list[str]:
        return sorted(self._tools)

    def definitions(self, provider: str = "generic") -> list[dict[str, Any]]:
        return [
            format_tool(self._tools[name].get_definition(), provider)
            for name in self.names()
        ]

    def handle(self, name: str, arguments: Any) -> str:
        """Dispatch a tool call; always returns a string."""
        found = self.get(name)
        if found is None:
            log.warning("Unknown tool called: %s", name)
            return to_json({"error": f"Unknown tool: {name}"})
        try:
            result = found.invoke(arguments, repair=True)
        except ToolArgumentError as e:
            log.info("Rejected arguments for tool %s", name, extra={"structured_type": name})
            return to_json({
                "error": f"Invalid arguments for {name}",
                "violations": e.outcome.error_messages(),
            })
        except HydrationError as e:
            log.info("Could not build tool %s: %s", name, e, extra={"structured_type": name})
            return to_json({
                "error": f"Invalid arguments for {name}",
                "violations": [str(e)],
            })
        except Exception as e:
            log.error("Unhandled error in tool %s", name, exc_info=True)
            return to_json({"error": f"Internal error in {name}: {type(e).__name__}: {e}"})
        if isinstance(result, str):
            return result
        return to_json(result, default=str)
