"""Exception hierarchy for the structured-output engine.

Configuration problems (bad fragments, unresolved references) are
programmer errors and surface at compile/attach time. Data problems in a
model reply surface as ``ValidationOutcome.errors`` or, during hydration,
as ``HydrationError`` for required fields.
"""


class StructuredOutputError(Exception):
    """Base exception for every engine failure."""


class SchemaConfigurationError(StructuredOutputError):
    """A schema fragment cannot be compiled."""


class HydrationError(StructuredOutputError):
    """A required property could not be turned into a constructor argument."""

    def __init__(self, type_name: str, property_name: str, message: str):
        self.type_name = type_name
        self.property_name = property_name
        super().__init__(f"{type_name}.{property_name}: {message}")


class ConstructionError(StructuredOutputError):
    """The structured type's own constructor rejected the hydrated arguments."""

    def __init__(self, type_name: str, cause: Exception):
        self.type_name = type_name
        self.cause = cause
        super().__init__(
            f"Failed to construct {type_name}: {type(cause).__name__}: {cause}"
        )


class StructuredOutputRetryError(StructuredOutputError):
    """Every attempt at obtaining a conforming reply failed."""

    def __init__(self, type_name: str, attempts: int, outcome=None):
        self.type_name = type_name
        self.attempts = attempts
        self.outcome = outcome
        super().__init__(
            f"No valid {type_name} reply after {attempts} attempt(s)"
        )


class ToolArgumentError(StructuredOutputError):
    """Tool-call arguments do not satisfy the tool's parameter schema."""

    def __init__(self, tool_name: str, outcome):
        self.tool_name = tool_name
        self.outcome = outcome
        details = "; ".join(str(e) for e in outcome.errors)
        super().__init__(f"Invalid arguments for tool {tool_name}: {details}")
