"""Pydantic schemas for API contracts."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class EvaluateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    audio_base64: str = Field(default="", alias="audioBase64")
    mime_type: str = Field(default="", alias="mimeType")
    target_word: str = Field(default="", alias="targetWord")


class ErrorResponse(BaseModel):
    error: str
    kind: str | None = None


class HealthResponse(BaseModel):
    ok: bool
    configured: bool
    timestamp: datetime
