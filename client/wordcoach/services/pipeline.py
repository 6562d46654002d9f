"""One recording attempt: capture a clip, then evaluate it."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from ..audio.recorder import CaptureController
from ..audio.types import AudioClip
from ..errors import EvaluationError
from .evaluation import EvaluationClient
from .schemas import EvaluationResult

LOGGER = logging.getLogger("wordcoach.pipeline")


@dataclass(slots=True)
class AttemptOutcome:
    word: str
    clip: Optional[AudioClip] = None
    result: Optional[EvaluationResult] = None
    error: Optional[EvaluationError] = None

    @property
    def ok(self) -> bool:
        return self.result is not None


async def run_attempt(
    controller: CaptureController,
    client: EvaluationClient,
    word: str,
    *,
    on_clip_ready: Callable[[AudioClip], None] | None = None,
    on_result: Callable[[EvaluationResult], None] | None = None,
    on_error: Callable[[EvaluationError], None] | None = None,
) -> AttemptOutcome:
    """Record until end of utterance and score the clip against ``word``.

    Classified errors are reported through ``on_error`` and the outcome rather
    than raised, so the caller can offer a retry.
    """
    outcome = AttemptOutcome(word=word)
    try:
        clip = await controller.record()
        if clip is None:
            LOGGER.info("Attempt for %r aborted before a clip was produced", word)
            return outcome
        outcome.clip = clip
        if on_clip_ready:
            on_clip_ready(clip)
        outcome.result = await client.evaluate(clip, word)
    except EvaluationError as exc:
        LOGGER.warning("Attempt for %r failed (%s): %s", word, exc.kind.value, exc.detail or exc.message)
        outcome.error = exc
        if on_error:
            on_error(exc)
        return outcome
    if on_result:
        on_result(outcome.result)
    return outcome


__all__ = ["AttemptOutcome", "run_attempt"]
