"""API settings resolved from the environment."""

from __future__ import annotations

import os
from functools import lru_cache

from pydantic import BaseModel, Field


class APISettings(BaseModel):
    app_name: str = Field(default="WordCoach Evaluation API")
    version: str = Field(default="0.1.0")
    openai_api_key: str | None = Field(default=os.getenv("OPENAI_API_KEY"))
    openai_base_url: str = Field(
        default=os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1")
    )
    transcription_model: str = Field(
        default=os.getenv("TRANSCRIPTION_MODEL", "whisper-1")
    )
    judge_model: str = Field(default=os.getenv("JUDGE_MODEL", "gpt-4o-mini"))
    language: str = Field(default=os.getenv("EVALUATION_LANGUAGE", "en"))
    request_timeout: float = Field(default=float(os.getenv("REQUEST_TIMEOUT", "30")))
    max_retries: int = Field(default=int(os.getenv("EVALUATION_MAX_RETRIES", "3")))
    initial_backoff_ms: int = Field(
        default=int(os.getenv("EVALUATION_INITIAL_BACKOFF_MS", "1000"))
    )
    max_audio_bytes: int = Field(
        default=int(os.getenv("MAX_AUDIO_BYTES", str(10 * 1024 * 1024)))
    )


@lru_cache()
def get_settings() -> APISettings:
    return APISettings()
