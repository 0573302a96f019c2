# src/core/models.py — v1
"""Completion outcome models shared by the coordinator, facade and CLI.

A completion attempt always ends in exactly one of four outcomes:
CompletionResult, NoSuggestion, Cancelled or Failed.
"""

from __future__ import annotations

from typing import Any, Literal, Union

from pydantic import BaseModel, Field


class CompletionResult(BaseModel):
    """A completion ready to be shown in the editor."""

    status: Literal["completed"] = "completed"
    completion_text: str
    cache_hit: bool = False
    elapsed_ms: int = 0
    num_lines: int = Field(default=1, ge=1)
    attempt_id: str = ""
    model: str = ""
    provider: str = ""

    def to_payload(self) -> dict[str, Any]:
        """Editor-facing payload (camelCase keys)."""
        return {
            "completionText": self.completion_text,
            "cacheHit": self.cache_hit,
            "elapsedMs": self.elapsed_ms,
            "numLines": self.num_lines,
        }


class NoSuggestion(BaseModel):
    """Attempt finished, but nothing worth showing (empty or echoed context)."""

    status: Literal["no_suggestion"] = "no_suggestion"
    reason: Literal["empty", "echo", "disabled", "unsupported_file"] = "empty"
    attempt_id: str = ""
    elapsed_ms: int = 0


class Cancelled(BaseModel):
    """Attempt superseded or cancelled. Never surfaced to the user."""

    status: Literal["cancelled"] = "cancelled"
    attempt_id: str = ""


class Failed(BaseModel):
    """Transport failure or unexpected pipeline error."""

    status: Literal["failed"] = "failed"
    reason: str
    error_type: Literal["transport", "internal"] = "transport"
    attempt_id: str = ""


CompletionOutcome = Union[CompletionResult, NoSuggestion, Cancelled, Failed]
