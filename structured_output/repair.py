"""Cleanup of malformed model replies before validation.

Models regularly wrap JSON in markdown fences or emit almost-JSON
(trailing commas, single quotes, truncated brackets). ``repair_candidate``
tries the cheap fix first (fence stripping) and falls back to
``json_repair``. Every step taken is recorded as a ``Repair`` so the
caller can see exactly what was changed.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from json_repair import repair_json

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Repair:
    """One cleanup step applied to a reply."""

    attempt: str  # "strip_code_fence" or "json_repair"
    original_candidate: Any
    candidate: Any
    error: str | None = None
    timestamp: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat(timespec="seconds")
    )


def strip_code_fence(text: str) -> str | None:
    """Remove a surrounding ```json ... ``` fence, or None if there is none."""
    stripped = text.strip()
    if not stripped.startswith("```"):
        return None
    newline = stripped.find("\n")
    if newline == -1:
        return None
    body = stripped[newline + 1:]
    if body.rstrip().endswith("```"):
        body = body.rstrip()[:-3]
    return body.strip()


def repair_candidate(text: str) -> tuple[Any, list[Repair], str | None]:
    """Parse *text*, repairing it if needed.

    Returns ``(parsed, repairs, error)``. ``error`` is None on success; on
    failure ``parsed`` is None and ``error`` describes the last parse
    failure.
    """
    repairs: list[Repair] = []
    try:
        return json.loads(text), repairs, None
    except (ValueError, RecursionError) as exc:
        error = str(exc)

    current = text
    unfenced = strip_code_fence(text)
    if unfenced is not None:
        try:
            parsed = json.loads(unfenced)
        except (ValueError, RecursionError) as exc:
            error = str(exc)
            repairs.append(Repair("strip_code_fence", text, unfenced, error=error))
            current = unfenced
        else:
            repairs.append(Repair("strip_code_fence", text, unfenced))
            return parsed, repairs, None

    try:
        repaired = repair_json(current, return_objects=False)
    except RecursionError as exc:
        error = f"reply is nested too deeply to repair: {exc}"
        repairs.append(Repair("json_repair", current, None, error=error))
        log.debug("Reply could not be repaired: %s", error)
        return None, repairs, error

    try:
        parsed = json.loads(repaired)
    except (ValueError, RecursionError) as exc:
        error = str(exc)
        repairs.append(Repair("json_repair", current, repaired, error=error))
        log.debug("Reply could not be repaired: %s", error)
        return None, repairs, error

    repairs.append(Repair("json_repair", current, repaired))
    log.warning(
        "Repaired malformed JSON reply (%d -> %d chars)", len(current), len(repaired)
    )
    return parsed, repairs, None
