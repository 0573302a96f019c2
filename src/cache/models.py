# src/cache/models.py — v1
"""Cache domain models: CodeSnippet, BufferChange, CacheStats."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from pydantic import BaseModel, Field, field_validator

# Lines of surrounding context captured before / after an edit.
CONTEXT_LINES_BEFORE = 10
CONTEXT_LINES_AFTER = 5


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CodeSnippet(BaseModel):
    """Single cache entry: a completion or an edited code fragment."""

    id: str
    code: str
    language: str = "unknown"
    created_at: datetime = Field(default_factory=utcnow)
    context: str = ""
    source_path: str = ""
    tags: list[str] = Field(default_factory=list)
    frequency: int = Field(default=1, ge=1)
    last_touched_at: datetime = Field(default_factory=utcnow)

    @field_validator("tags")
    @classmethod
    def dedupe_tags(cls, v: list[str]) -> list[str]:
        return list(dict.fromkeys(t for t in v if t))

    @field_validator("created_at", "last_touched_at")
    @classmethod
    def ensure_aware(cls, v: datetime) -> datetime:
        """Naive timestamps are read as UTC."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    def is_expired(self, now: datetime, retention: timedelta) -> bool:
        return now - self.created_at > retention

    def age_hours(self, now: datetime) -> float:
        return max(0.0, (now - self.created_at).total_seconds() / 3600.0)


class BufferChange(BaseModel):
    """A text edit reported by the editor outside the completion flow."""

    document_text: str
    start_line: int = Field(default=0, ge=0)
    end_line: int = Field(default=0, ge=0)
    text: str
    language: str = "unknown"
    file_path: str = ""

    @property
    def is_significant(self) -> bool:
        """Whitespace, newlines and single keystrokes are not worth caching."""
        return len(self.text.strip()) > 3

    def context_window(
        self,
        before: int = CONTEXT_LINES_BEFORE,
        after: int = CONTEXT_LINES_AFTER,
    ) -> str:
        """Document lines around the edit, clamped to the buffer."""
        lines = self.document_text.split("\n")
        if not lines:
            return ""
        start = max(0, self.start_line - before)
        end = min(len(lines) - 1, max(self.end_line, self.start_line) + after)
        return "\n".join(lines[start : end + 1])


class CacheStats(BaseModel):
    """Snapshot of cache contents for status displays."""

    snippet_count: int
    language_stats: dict[str, int] = Field(default_factory=dict)
    expired_count: int = 0
    max_snippets: int
    retention_hours: int
