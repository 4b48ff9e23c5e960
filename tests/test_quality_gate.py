from __future__ import annotations

import numpy as np

from models import AudioChunk
from quality_gate import QualityGate, dynamic_range, rms


def _chunk(size: int, sequence: int = 1) -> AudioChunk:
    return AudioChunk(
        sequence=sequence,
        captured_at=0.0,
        mime_type="audio/L16;rate=16000;channels=1",
        payload=b"\x00" * size,
    )


def _tone(amplitude: float = 0.3, n: int = 16000) -> np.ndarray:
    t = np.arange(n) / 16000.0
    return (amplitude * np.sin(2 * np.pi * 440.0 * t)).astype(np.float32)


def test_rms_and_dynamic_range() -> None:
    samples = np.array([0.5, -0.5, 0.5, -0.5], dtype=np.float32)
    assert rms(samples) == 0.5
    assert dynamic_range(samples) == 0.0

    samples = np.array([0.0, -0.2, 0.8], dtype=np.float32)
    assert abs(dynamic_range(samples) - 0.8) < 1e-6


def test_all_zero_samples_are_rejected() -> None:
    gate = QualityGate()
    assert gate.should_process(np.zeros(16000, dtype=np.float32)) is False


def test_empty_samples_are_rejected() -> None:
    gate = QualityGate()
    assert gate.should_process(np.array([], dtype=np.float32)) is False


def test_speech_like_signal_passes() -> None:
    gate = QualityGate()
    assert gate.should_process(_tone()) is True


def test_quiet_signal_below_rms_floor_is_rejected() -> None:
    gate = QualityGate()
    assert gate.should_process(_tone(amplitude=0.0005)) is False


def test_constant_magnitude_signal_is_rejected_by_dynamic_range() -> None:
    # Loud but flat: RMS is high, spread of magnitudes is zero.
    gate = QualityGate()
    samples = np.full(16000, 0.2, dtype=np.float32)
    samples[::2] = -0.2
    assert gate.should_process(samples) is False


def test_window_byte_check() -> None:
    gate = QualityGate(min_window_bytes=20_000)
    assert gate.should_process_window([]) is False
    assert gate.should_process_window([_chunk(10_000), _chunk(10_000, 2)]) is False
    assert gate.should_process_window([_chunk(10_000), _chunk(10_001, 2)]) is True
