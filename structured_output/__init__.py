"""Structured Output — typed, validated replies from language models."""

__version__ = "0.1.0"

from .errors import (
    ConstructionError,
    HydrationError,
    SchemaConfigurationError,
    StructuredOutputError,
    StructuredOutputRetryError,
    ToolArgumentError,
)
from .formats import anthropic_tool, openai_tool, response_format
from .hydrator import hydrate
from .registry import SchemaRegistry, default_registry
from .retry import repair_guidance, request_structured
from .schemas import Ref, SchemaFragment, array, enum_schema
from .structured_type import StructuredType, attach, structured
from .tools import ToolRegistry, ToolType, tool
from .validator import SchemaViolation, ValidationOutcome, compile_validator, validate

__all__ = [
    "ConstructionError",
    "HydrationError",
    "Ref",
    "SchemaConfigurationError",
    "SchemaFragment",
    "SchemaRegistry",
    "SchemaViolation",
    "StructuredOutputError",
    "StructuredOutputRetryError",
    "StructuredType",
    "ToolArgumentError",
    "ToolRegistry",
    "ToolType",
    "ValidationOutcome",
    "anthropic_tool",
    "array",
    "attach",
    "compile_validator",
    "default_registry",
    "enum_schema",
    "hydrate",
    "openai_tool",
    "repair_guidance",
    "request_structured",
    "response_format",
    "structured",
    "tool",
    "validate",
]
