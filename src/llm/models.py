# src/llm/models.py — v1
"""Endpoint-facing types: GenerationResponse, ConnectionStatus."""

from __future__ import annotations

from pydantic import BaseModel, Field


class GenerationResponse(BaseModel):
    """Raw output of one generation call.

    ``raw_text`` is handed to the decoder untouched: it may be a single JSON
    object, newline-delimited JSON chunks, plain text or something broken.
    """

    raw_text: str
    model: str
    provider: str
    latency_ms: int = 0
    status_code: int = 200


class ConnectionStatus(BaseModel):
    """Result of an endpoint connectivity check."""

    success: bool
    message: str
    models: list[str] = Field(default_factory=list)
