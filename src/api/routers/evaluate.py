"""Pronunciation evaluation endpoint."""

from __future__ import annotations

from typing import AsyncIterator

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from client.wordcoach.services.evaluation import EvaluationClient

from ..schemas import ErrorResponse, EvaluateRequest
from ..services.evaluation_service import EvaluationService, RequestRejected
from ..settings import APISettings, get_settings

router = APIRouter(prefix="/api", tags=["evaluate"])


async def get_client(settings: APISettings = Depends(get_settings)) -> AsyncIterator[EvaluationClient]:
    client = EvaluationClient(
        settings.openai_api_key,
        base_url=settings.openai_base_url,
        transcription_model=settings.transcription_model,
        judge_model=settings.judge_model,
        language=settings.language,
        timeout=settings.request_timeout,
        max_retries=settings.max_retries,
        initial_delay=settings.initial_backoff_ms / 1000.0,
    )
    try:
        yield client
    finally:
        await client.close()


def get_service(
    settings: APISettings = Depends(get_settings),
    client: EvaluationClient = Depends(get_client),
) -> EvaluationService:
    return EvaluationService(settings, client)


@router.post(
    "/evaluate-pronunciation",
    responses={400: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
)
async def evaluate_pronunciation(
    payload: EvaluateRequest,
    service: EvaluationService = Depends(get_service),
):
    try:
        result = await service.evaluate(payload)
    except RequestRejected as exc:
        body = ErrorResponse(error=exc.message, kind=exc.kind)
        return JSONResponse(status_code=exc.status_code, content=body.model_dump(exclude_none=True))
    return result.to_payload()
