"""Append-only archive of scored attempts."""

from __future__ import annotations

import json
import time
from dataclasses import dataclass, asdict, field
from pathlib import Path
from typing import List, Optional

from ..services.schemas import EvaluationResult

PASSING_SCORE = 80


@dataclass(slots=True)
class AttemptRecord:
    word: str
    score: int
    is_correct: bool
    feedback: str = ""
    phonetic_match: str = ""
    recorded_at: float = field(default_factory=time.time)

    @classmethod
    def from_result(cls, word: str, result: EvaluationResult) -> "AttemptRecord":
        return cls(
            word=word,
            score=result.score,
            is_correct=result.is_correct,
            feedback=result.feedback,
            phonetic_match=result.phonetic_match,
        )


@dataclass(slots=True)
class SessionSummary:
    attempts: int
    average_score: int
    correct: int
    passed: int


class ResultsStore:
    """Keep attempt scores in memory and, when given a path, as JSON lines."""

    def __init__(self, path: Optional[Path] = None) -> None:
        self.path = Path(path) if path else None
        self._records: List[AttemptRecord] = []
        if self.path:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._records = self._load()

    def append(self, word: str, result: EvaluationResult) -> AttemptRecord:
        record = AttemptRecord.from_result(word, result)
        self._records.append(record)
        if self.path:
            with self.path.open("a", encoding="utf-8") as handle:
                handle.write(json.dumps(asdict(record), ensure_ascii=False) + "\n")
        return record

    def list(self) -> List[AttemptRecord]:
        return list(self._records)

    def summary(self) -> SessionSummary:
        count = len(self._records)
        average = round(sum(r.score for r in self._records) / count) if count else 0
        return SessionSummary(
            attempts=count,
            average_score=average,
            correct=sum(1 for r in self._records if r.is_correct),
            passed=sum(1 for r in self._records if r.score >= PASSING_SCORE),
        )

    def __len__(self) -> int:
        return len(self._records)

    def _load(self) -> List[AttemptRecord]:
        if self.path is None or not self.path.exists():
            return []
        records: List[AttemptRecord] = []
        for line in self.path.read_text(encoding="utf-8").splitlines():
            if not line.strip():
                continue
            try:
                records.append(AttemptRecord(**json.loads(line)))
            except (TypeError, ValueError):
                continue
        return records


__all__ = ["AttemptRecord", "ResultsStore", "SessionSummary", "PASSING_SCORE"]
