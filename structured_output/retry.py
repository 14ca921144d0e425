"""Schema-repair retry loop.

``request_structured`` asks a caller-supplied ``send(schema, guidance)``
for a reply, validates it (with repair) and hydrates it. When the reply
does not conform, the violations are rendered into corrective guidance
and sent back on the next attempt. Transport, timeouts and backoff stay
with the caller; this loop only retries on schema mismatches.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from . import config
from .errors import (
    ConstructionError,
    HydrationError,
    SchemaConfigurationError,
    StructuredOutputRetryError,
)
from .logging_config import clear_reply_id, set_reply_id
from .structured_type import as_structured_type
from .validator import SchemaViolation, ValidationOutcome

log = logging.getLogger(__name__)

Send = Callable[[dict[str, Any], "str | None"], Any]


def repair_guidance(outcome: ValidationOutcome, type_name: str | None = None) -> str:
    """Corrective prompt listing what was wrong with the last reply."""
    target = f"the {type_name} schema" if type_name else "the schema"
    lines = [f"Your previous reply did not match {target}:"]
    lines.extend(f"- {violation}" for violation in outcome.errors)
    lines.append("Reply again with only a JSON value that satisfies the schema.")
    return "\n".join(lines)


def request_structured(
    send: Send,
    structured: Any,
    *,
    retries: int | None = None,
    reply_id: str | None = None,
) -> Any:
    """Obtain a hydrated instance of *structured* from ``send``.

    *send* receives the compiled schema and ``None`` on the first call,
    then the guidance text from ``repair_guidance`` on each retry.
    """
    stype = as_structured_type(structured)
    if stype is None:
        raise SchemaConfigurationError(f"Not a structured type: {structured!r}")
    schema = stype.get_schema()
    if schema is None:
        raise SchemaConfigurationError(f"{stype.name} has no schema to request")
    if retries is None:
        retries = config.DEFAULT_RETRIES
    attempts = retries + 1

    if reply_id:
        set_reply_id(reply_id)
    try:
        guidance: str | None = None
        outcome: ValidationOutcome | None = None
        for attempt in range(1, attempts + 1):
            reply = send(schema, guidance)
            outcome = stype.validate(reply, repair=True)
            if not outcome.valid:
                log.info(
                    "Attempt %d/%d: reply for %s did not validate",
                    attempt, attempts, stype.name,
                    extra={"structured_type": stype.name},
                )
                guidance = repair_guidance(outcome, stype.name)
                continue

            try:
                instance = stype.hydrate(outcome.candidate, strict=True)
            except (HydrationError, ConstructionError) as exc:
                log.info(
                    "Attempt %d/%d: %s could not be built: %s",
                    attempt, attempts, stype.name, exc,
                    extra={"structured_type": stype.name},
                )
                outcome = ValidationOutcome(
                    valid=False,
                    candidate=outcome.candidate,
                    original_candidate=outcome.original_candidate,
                    errors=(SchemaViolation(
                        getattr(exc, "property_name", "") or "", "hydrate", str(exc)
                    ),),
                    repairs=outcome.repairs,
                )
                guidance = repair_guidance(outcome, stype.name)
                continue

            if attempt > 1:
                log.info("Got a valid %s on attempt %d", stype.name, attempt)
            return instance
    finally:
        if reply_id:
            clear_reply_id()

    log.warning(
        "Giving up on %s after %d attempt(s)", stype.name, attempts,
        extra={"structured_type": stype.name},
    )
    raise StructuredOutputRetryError(stype.name, attempts, outcome)
