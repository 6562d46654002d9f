"""Capture defaults shared by the recorder and analyzer."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class CaptureConfig:
    sample_rate: int = 16_000
    channels: int = 1
    # Analyzer FFT size; yields fft_size // 2 byte-scaled bins.
    fft_size: int = 64
    min_decibels: float = -100.0
    max_decibels: float = -30.0
    # Average bin level on the 0-255 scale above which the input counts as voice.
    silence_threshold: float = 15.0
    silence_ms: int = 1500
    frame_ms: int = 16
    visualizer_bars: int = 12
    media_type: str = "audio/flac"


CONFIG = CaptureConfig()
