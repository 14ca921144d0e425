"""Configuration and environment handling."""

import logging
import os
import sys
from dotenv import load_dotenv

load_dotenv()

_PREFIX = "STRUCTURED_OUTPUT_"

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def _warn(name: str, raw: str, default) -> None:
    print(
        f"WARNING: {_PREFIX}{name}={raw!r} is not valid; using {default!r}.",
        file=sys.stderr,
    )


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(_PREFIX + name)
    if raw is None or raw.strip() == "":
        return default
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    _warn(name, raw, default)
    return default


def _env_int(name: str, default: int, *, minimum: int = 0) -> int:
    raw = os.getenv(_PREFIX + name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        _warn(name, raw, default)
        return default
    if value < minimum:
        _warn(name, raw, default)
        return default
    return value


def _env_level(name: str, default: int) -> int:
    raw = os.getenv(_PREFIX + name)
    if raw is None or raw.strip() == "":
        return default
    level = logging.getLevelName(raw.strip().upper())
    if not isinstance(level, int):
        _warn(name, raw, logging.getLevelName(default))
        return default
    return level


# Logging
LOG_LEVEL = _env_level("LOG_LEVEL", logging.WARNING)
LOG_FILE = os.getenv(_PREFIX + "LOG_FILE") or None
LOG_JSON = _env_bool("LOG_JSON", False)

# Schema compilation: probe the registry for singular type names when an
# array property declares no items.
INFER_ARRAY_ITEMS = _env_bool("INFER_ARRAY_ITEMS", True)

# Hydration: raise ConstructionError instead of returning None when a
# constructor rejects its arguments.
STRICT_HYDRATION = _env_bool("STRICT_HYDRATION", False)

# Schema-repair retries for request_structured()
DEFAULT_RETRIES = _env_int("DEFAULT_RETRIES", 2)
