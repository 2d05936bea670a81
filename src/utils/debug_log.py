"""
Debug Log Utility

Provides optional console tracing for presentation state graphic
reconstruction and a per-call diagnostic sink that callers can hand to the
geometry and codec functions to collect warnings instead of printing them.

Inputs:
    - annotation_debug(message) calls from application code
    - DiagnosticLog.debug/warning/error calls from reconstruction code
    - Environment: DICOMVIEWER_ANNOTATION_DEBUG (set to 1, true, or yes to enable)

Outputs:
    - When enabled: "[ANNOTATION DEBUG]" lines on the console
    - DiagnosticLog: list of (level, message) entries owned by the caller

Requirements:
    - Standard library only: os, typing
"""

import os
from typing import List, Optional, Tuple

# Annotation debug prints (console); set DICOMVIEWER_ANNOTATION_DEBUG=1 to enable.
_ANNOTATION_DEBUG_ENV = os.getenv("DICOMVIEWER_ANNOTATION_DEBUG", "0").strip().lower()
ANNOTATION_DEBUG_ENABLED = _ANNOTATION_DEBUG_ENV in ("1", "true", "yes")

DEBUG = "debug"
WARNING = "warning"
ERROR = "error"


def annotation_debug(msg: str) -> None:
    """Print annotation debug message to console only when DICOMVIEWER_ANNOTATION_DEBUG is set."""
    if ANNOTATION_DEBUG_ENABLED:
        print(f"[ANNOTATION DEBUG] {msg}")


class DiagnosticLog:
    """
    Caller-owned collector for reconstruction diagnostics.

    One instance is typically created per presentation state (or per call)
    and passed down; nothing is shared between calls.
    """

    def __init__(self, echo: bool = False):
        """
        Initialize an empty diagnostic log.

        Args:
            echo: Also forward every entry to annotation_debug
        """
        self.entries: List[Tuple[str, str]] = []
        self.echo = echo

    def _add(self, level: str, message: str) -> None:
        self.entries.append((level, message))
        if self.echo:
            annotation_debug(f"{level.upper()}: {message}")

    def debug(self, message: str) -> None:
        self._add(DEBUG, message)

    def warning(self, message: str) -> None:
        self._add(WARNING, message)

    def error(self, message: str) -> None:
        self._add(ERROR, message)

    def messages(self, level: Optional[str] = None) -> List[str]:
        """
        Return logged messages, optionally filtered by level.

        Args:
            level: One of DEBUG, WARNING, ERROR, or None for all

        Returns:
            List of message strings in insertion order
        """
        return [msg for lvl, msg in self.entries if level is None or lvl == level]

    def clear(self) -> None:
        self.entries = []

    def __len__(self) -> int:
        return len(self.entries)


def report(diagnostics: Optional[DiagnosticLog], level: str, message: str) -> None:
    """
    Route a message to the caller's sink, or to the console when none was given.

    Debug messages without a sink only appear when annotation debugging is
    enabled; warnings and errors are always printed with the [ANNOTATIONS] prefix.
    """
    if diagnostics is not None:
        diagnostics._add(level, message)
    elif level == DEBUG:
        annotation_debug(message)
    else:
        print(f"[ANNOTATIONS] {message}")
