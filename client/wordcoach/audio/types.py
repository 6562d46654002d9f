"""Dataclasses shared across audio helpers."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from ..config import CONFIG
from ..scheduling import Countdown
from .backend import InputStream


class CaptureState(str, Enum):
    IDLE = "idle"
    LISTENING = "listening"
    SPEAKING = "speaking"
    FINALIZED = "finalized"
    ABORTED = "aborted"


ACTIVE_STATES = frozenset({CaptureState.LISTENING, CaptureState.SPEAKING})


@dataclass(frozen=True, slots=True)
class AudioClip:
    """One finalized recording; may be empty when nothing was captured."""

    data: bytes
    media_type: str = CONFIG.media_type

    @property
    def is_empty(self) -> bool:
        return not self.data

    def __len__(self) -> int:
        return len(self.data)


@dataclass(slots=True)
class CaptureSession:
    """Resources held by one recording attempt."""

    stream: InputStream
    speech_started: bool = False
    countdown: Optional[Countdown] = None
    levels: List[float] = field(default_factory=lambda: [8.0] * CONFIG.visualizer_bars)
    released: bool = False
