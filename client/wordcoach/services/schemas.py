"""Wire schema for the pronunciation judgment."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class EvaluationResult(BaseModel):
    """Judgment returned by the language model, exactly as received.

    Field names on the wire are camelCase; ``model_dump(by_alias=True)``
    reproduces the received payload.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    score: int = Field(ge=0, le=100, strict=True)
    phonetic_match: str = Field(alias="phoneticMatch", strict=True)
    feedback: str = Field(strict=True)
    is_correct: bool = Field(alias="isCorrect", strict=True)

    def to_payload(self) -> dict:
        return self.model_dump(by_alias=True)


__all__ = ["EvaluationResult"]
