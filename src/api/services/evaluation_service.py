"""Decode uploaded audio and run it through the evaluation client."""

from __future__ import annotations

import base64
import binascii
import logging
import time

from client.wordcoach.audio.types import AudioClip
from client.wordcoach.errors import ErrorKind, EvaluationError
from client.wordcoach.services.evaluation import EvaluationClient
from client.wordcoach.services.schemas import EvaluationResult

from ..metrics import EVALUATION_COUNTER, EVALUATION_LATENCY
from ..schemas import EvaluateRequest
from ..settings import APISettings

LOGGER = logging.getLogger("wordcoach.api")

STATUS_BY_KIND = {
    ErrorKind.TRANSIENT_SERVICE: 503,
    ErrorKind.QUOTA_EXCEEDED: 402,
    ErrorKind.CONFIGURATION: 401,
    ErrorKind.SCHEMA: 502,
    ErrorKind.DEVICE_ACCESS: 500,
}

MISSING_FIELDS_MESSAGE = "Missing required fields: audioBase64, mimeType, targetWord"
MISSING_KEY_MESSAGE = "OpenAI API key is not configured. Please set OPENAI_API_KEY environment variable."


class RequestRejected(Exception):
    def __init__(self, status_code: int, message: str, kind: str | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.kind = kind


class EvaluationService:
    def __init__(self, settings: APISettings, client: EvaluationClient) -> None:
        self.settings = settings
        self.client = client

    def decode(self, payload: EvaluateRequest) -> AudioClip:
        if not payload.audio_base64 or not payload.mime_type or not payload.target_word.strip():
            raise RequestRejected(400, MISSING_FIELDS_MESSAGE)
        try:
            data = base64.b64decode("".join(payload.audio_base64.split()), validate=True)
        except (binascii.Error, ValueError) as exc:
            raise RequestRejected(400, "audioBase64 is not valid base64") from exc
        if len(data) > self.settings.max_audio_bytes:
            raise RequestRejected(413, "Audio clip is too large")
        return AudioClip(data, payload.mime_type)

    async def evaluate(self, payload: EvaluateRequest) -> EvaluationResult:
        clip = self.decode(payload)
        if not self.settings.openai_api_key:
            EVALUATION_COUNTER.labels(outcome=ErrorKind.CONFIGURATION.value).inc()
            raise RequestRejected(500, MISSING_KEY_MESSAGE, ErrorKind.CONFIGURATION.value)
        start = time.perf_counter()
        try:
            result = await self.client.evaluate(clip, payload.target_word.strip())
        except EvaluationError as exc:
            EVALUATION_COUNTER.labels(outcome=exc.kind.value).inc()
            LOGGER.warning("Evaluation failed (%s): %s", exc.kind.value, exc.detail or exc.message)
            raise RequestRejected(STATUS_BY_KIND[exc.kind], exc.message, exc.kind.value) from exc
        finally:
            EVALUATION_LATENCY.observe(time.perf_counter() - start)
        EVALUATION_COUNTER.labels(outcome="ok").inc()
        return result
