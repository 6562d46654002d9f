"""Energy-threshold end-of-utterance detection."""

from __future__ import annotations

from enum import Enum

from ..config import CONFIG


class Observation(str, Enum):
    QUIET = "quiet"  # below threshold, no speech yet
    VOICE = "voice"  # above threshold
    SILENCE = "silence"  # below threshold after speech started


class EndpointDetector:
    """Classify energy samples relative to a fixed voice threshold.

    The detector only tracks whether speech has started; the silence countdown
    itself is owned by the capture controller.
    """

    def __init__(self, threshold: float = CONFIG.silence_threshold) -> None:
        self.threshold = float(threshold)
        self.speech_started = False

    def observe(self, level: float) -> Observation:
        if level > self.threshold:
            self.speech_started = True
            return Observation.VOICE
        if self.speech_started:
            return Observation.SILENCE
        return Observation.QUIET

    def reset(self) -> None:
        self.speech_started = False

    def set_threshold(self, value: float) -> None:
        self.threshold = max(0.0, min(float(value), 255.0))


__all__ = ["EndpointDetector", "Observation"]
