"""Cheap loudness checks that keep silence away from the backends."""

from __future__ import annotations

from typing import Sequence

import numpy as np

from models import AudioChunk

MIN_WINDOW_BYTES = 20_000
SILENCE_RMS = 0.001
NOISE_FLOOR_RANGE = 0.01


def rms(samples: np.ndarray) -> float:
    data = np.asarray(samples, dtype=np.float64)
    if data.size == 0:
        return 0.0
    return float(np.sqrt(np.mean(np.square(data))))


def dynamic_range(samples: np.ndarray) -> float:
    """Spread of absolute amplitudes: ``max(|x|) - min(|x|)``."""
    magnitude = np.abs(np.asarray(samples, dtype=np.float64))
    if magnitude.size == 0:
        return 0.0
    return float(magnitude.max() - magnitude.min())


class QualityGate:
    def __init__(
        self,
        min_window_bytes: int = MIN_WINDOW_BYTES,
        silence_rms: float = SILENCE_RMS,
        noise_floor_range: float = NOISE_FLOOR_RANGE,
    ) -> None:
        self.min_window_bytes = min_window_bytes
        self.silence_rms = silence_rms
        self.noise_floor_range = noise_floor_range

    def should_process_window(self, chunks: Sequence[AudioChunk]) -> bool:
        """Byte-size pre-check, run before anything is decoded."""
        total = sum(len(chunk.payload) for chunk in chunks)
        return total > self.min_window_bytes

    def should_process(self, samples: np.ndarray) -> bool:
        if samples is None or len(samples) == 0:
            return False
        if rms(samples) < self.silence_rms:
            return False
        if dynamic_range(samples) < self.noise_floor_range:
            return False
        return True
