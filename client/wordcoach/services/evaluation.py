"""Two-stage pronunciation evaluation: transcription, then judgment."""

from __future__ import annotations

import asyncio
import json
import logging
import time
from typing import Any, Dict, Optional

import httpx
from pydantic import ValidationError

from ..audio.types import AudioClip
from ..errors import (
    ConfigurationError,
    SchemaError,
    TransientServiceError,
    classify_failure,
)
from ..store.settings_store import DEFAULT_BASE_URL, AppSettings
from .retry import Sleep, retry_with_backoff
from .schemas import EvaluationResult

LOGGER = logging.getLogger("wordcoach.evaluation")

SYSTEM_PROMPT = "You are a pronunciation evaluation expert. Always respond with valid JSON only."

JUDGMENT_PROMPT = """You are a strict linguistics coach evaluating pronunciation. The user tried to pronounce the word "{word}".

The transcription of what they said: "{transcript}"

Analyze the pronunciation accuracy and reply with a JSON object with exactly these fields:
{{
  "score": <integer from 0 to 100>,
  "phoneticMatch": "<IPA transcription of what was heard>",
  "feedback": "<which sounds were wrong or whether the intonation was off, at most 2 sentences>",
  "isCorrect": <true if a native speaker would understand the word, false otherwise>
}}

Return ONLY valid JSON, no other text."""

CLIP_EXTENSIONS = {
    "audio/flac": "flac",
    "audio/wav": "wav",
    "audio/x-wav": "wav",
    "audio/webm": "webm",
    "audio/ogg": "ogg",
    "audio/mpeg": "mp3",
    "audio/mp4": "m4a",
}


class EvaluationClient:
    """Score a clip against a target word via remote transcription and judgment.

    Both stages run as one unit of work under ``retry_with_backoff``: a
    transient failure in the judgment stage repeats the transcription too.
    Every failure leaves this class as an ``EvaluationError`` subclass.
    """

    def __init__(
        self,
        api_key: Optional[str],
        *,
        base_url: str = DEFAULT_BASE_URL,
        transcription_model: str = "whisper-1",
        judge_model: str = "gpt-4o-mini",
        language: str = "en",
        timeout: float = 30.0,
        max_retries: int = 3,
        initial_delay: float = 1.0,
        client: Optional[httpx.AsyncClient] = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.api_key = api_key or ""
        self.base_url = base_url.rstrip("/")
        self.transcription_model = transcription_model
        self.judge_model = judge_model
        self.language = language
        self.max_retries = max_retries
        self.initial_delay = initial_delay
        self._sleep = sleep
        self._client = client or httpx.AsyncClient(timeout=timeout)

    @classmethod
    def from_settings(cls, settings: AppSettings, **kwargs: Any) -> "EvaluationClient":
        return cls(
            settings.resolved_api_key(),
            base_url=settings.base_url or DEFAULT_BASE_URL,
            transcription_model=settings.transcription_model,
            judge_model=settings.judge_model,
            language=settings.language,
            timeout=settings.request_timeout,
            max_retries=settings.max_retries,
            initial_delay=settings.initial_backoff_ms / 1000.0,
            **kwargs,
        )

    async def evaluate(self, clip: AudioClip, target_word: str) -> EvaluationResult:
        if not self.api_key:
            raise ConfigurationError(
                "API key is not configured. Please set OPENAI_API_KEY.",
                detail="API key missing",
            )
        started = time.perf_counter()
        result = await retry_with_backoff(
            lambda: self._attempt(clip, target_word),
            max_retries=self.max_retries,
            initial_delay=self.initial_delay,
            sleep=self._sleep,
        )
        LOGGER.info(
            "Evaluated %r: score=%d correct=%s (%.2fs)",
            target_word,
            result.score,
            result.is_correct,
            time.perf_counter() - started,
        )
        return result

    async def _attempt(self, clip: AudioClip, target_word: str) -> EvaluationResult:
        transcript = await self.transcribe(clip)
        return await self.judge(target_word, transcript)

    async def transcribe(self, clip: AudioClip) -> str:
        if clip.is_empty:
            LOGGER.debug("Empty clip; skipping transcription")
            return ""
        extension = CLIP_EXTENSIONS.get(clip.media_type.split(";")[0].strip(), "webm")
        files = {"file": (f"audio.{extension}", clip.data, clip.media_type)}
        data = {"model": self.transcription_model, "language": self.language}
        response = await self._post("/audio/transcriptions", files=files, data=data)
        payload = self._json(response, "transcription")
        text = payload.get("text") if isinstance(payload, dict) else None
        return text.strip() if isinstance(text, str) else ""

    async def judge(self, target_word: str, transcript: str) -> EvaluationResult:
        body = {
            "model": self.judge_model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {
                    "role": "user",
                    "content": JUDGMENT_PROMPT.format(word=target_word, transcript=transcript),
                },
            ],
            "response_format": {"type": "json_object"},
            "temperature": 0.2,
        }
        response = await self._post("/chat/completions", json=body)
        payload = self._json(response, "judgment")
        try:
            content = payload["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as exc:
            raise SchemaError(detail="judgment response has no message content") from exc
        if not isinstance(content, str) or not content.strip():
            raise SchemaError(detail="judgment response content is empty")
        try:
            return EvaluationResult.model_validate_json(content)
        except ValidationError as exc:
            raise SchemaError(detail=f"judgment did not match schema: {exc}") from exc

    async def _post(self, path: str, **kwargs: Any) -> httpx.Response:
        try:
            response = await self._client.post(
                f"{self.base_url}{path}",
                headers={"Authorization": f"Bearer {self.api_key}"},
                **kwargs,
            )
        except httpx.RequestError as exc:
            raise TransientServiceError(detail=f"{type(exc).__name__}: {exc}") from exc
        if response.status_code >= 400:
            raise classify_failure(response.status_code, self._error_text(response))
        return response

    @staticmethod
    def _json(response: httpx.Response, stage: str) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            raise SchemaError(detail=f"{stage} response is not JSON") from exc

    @staticmethod
    def _error_text(response: httpx.Response) -> str:
        try:
            data: Dict[str, Any] = response.json()
        except ValueError:
            return response.text[:200] or response.reason_phrase
        error = data.get("error") if isinstance(data, dict) else None
        if isinstance(error, dict):
            parts = [str(error.get(key)) for key in ("message", "type", "code") if error.get(key)]
            if parts:
                return " | ".join(parts)
        if isinstance(error, str):
            return error
        return json.dumps(data)[:200]

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "EvaluationClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()


__all__ = ["EvaluationClient", "EvaluationResult"]
