"""Short-time energy analysis on a 0-255 analyzer scale."""

from __future__ import annotations

import numpy as np

from ..config import CONFIG

INT16_SCALE = 32768.0


def byte_frequency_data(
    window: np.ndarray,
    fft_size: int = CONFIG.fft_size,
    min_decibels: float = CONFIG.min_decibels,
    max_decibels: float = CONFIG.max_decibels,
) -> np.ndarray:
    """Return ``fft_size // 2`` magnitude bins mapped from decibels to 0-255.

    Uses the most recent ``fft_size`` samples of ``window`` (zero-padded when
    shorter) under a Blackman window, like a browser analyser node.
    """
    samples = np.asarray(window)
    if samples.ndim > 1:
        samples = samples[:, 0]
    if samples.dtype == np.int16:
        data = samples.astype(np.float32) / INT16_SCALE
    else:
        data = samples.astype(np.float32, copy=False)
    frame = np.zeros(fft_size, dtype=np.float32)
    tail = data[-fft_size:]
    if tail.size:
        frame[-tail.size :] = tail
    spectrum = np.fft.rfft(frame * np.blackman(fft_size))[: fft_size // 2]
    magnitude = np.abs(spectrum) / fft_size
    with np.errstate(divide="ignore"):
        decibels = 20.0 * np.log10(magnitude)
    scaled = (decibels - min_decibels) * (255.0 / (max_decibels - min_decibels))
    scaled = np.nan_to_num(scaled, nan=0.0, neginf=0.0, posinf=255.0)
    return np.clip(scaled, 0, 255).astype(np.uint8)


def average_level(bins: np.ndarray) -> float:
    if bins.size == 0:
        return 0.0
    return float(np.mean(bins))


def display_bars(bins: np.ndarray, count: int = CONFIG.visualizer_bars) -> list[float]:
    """Pick ``count`` evenly spaced bins and scale them for a level meter."""
    if bins.size == 0:
        return [8.0] * count
    step = max(1, bins.size // count)
    bars = []
    for idx in range(count):
        value = float(bins[min(idx * step, bins.size - 1)])
        bars.append(max(8.0, value / 2))
    return bars


def analyze_energy(window: np.ndarray) -> float:
    return average_level(byte_frequency_data(window))


__all__ = ["analyze_energy", "average_level", "byte_frequency_data", "display_bars"]
