"""Shared enums and helpers for CLI commands."""

import json
from enum import Enum
from typing import Any, Optional

from reflib_common import configure_logging, get_settings
from reflib_storage import JsonLibrary

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class OutputFormat(str, Enum):
    """Output format options."""

    text = "text"
    json = "json"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def setup_logging() -> None:
    settings = get_settings()
    configure_logging(level=settings.log_level, log_format=settings.log_format)


def open_library(library_path: Optional[str]) -> JsonLibrary:
    """Load the library from ``--library`` or the configured default path."""
    return JsonLibrary.load(library_path or get_settings().library_path)


def to_json(payload: dict[str, Any]) -> str:
    return json.dumps(payload, indent=2, ensure_ascii=False)
