# src/logging/context.py — v1
"""Contextual logging support — attach attempt_id, language, stage to log records."""

from __future__ import annotations

import contextvars
from dataclasses import dataclass
from typing import Any

# Context variables for structured logging, set per completion attempt.
_attempt_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "attempt_id", default=None
)
_language: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "language", default=None
)
_stage: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "stage", default=None
)


@dataclass
class LogContext:
    """Immutable snapshot of current logging context."""

    attempt_id: str | None = None
    language: str | None = None
    stage: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(
        attempt_id=_attempt_id.get(),
        language=_language.get(),
        stage=_stage.get(),
    )


def set_attempt_context(attempt_id: str, language: str | None = None) -> None:
    """Set attempt-level context (called once per completion attempt)."""
    _attempt_id.set(attempt_id)
    _language.set(language)
    _stage.set(None)


def set_stage(stage: str | None) -> None:
    """Set the pipeline stage (cache, generate, decode, sanitize, store)."""
    _stage.set(stage)


def clear_context() -> None:
    """Reset all context variables."""
    _attempt_id.set(None)
    _language.set(None)
    _stage.set(None)
