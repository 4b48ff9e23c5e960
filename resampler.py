"""Nearest-neighbour PCM resampling."""

from __future__ import annotations

import numpy as np

from errors import InvalidInputError

TARGET_SAMPLE_RATE = 16000


def resample(samples: np.ndarray, from_rate: int, to_rate: int) -> np.ndarray:
    """Resample ``samples`` from ``from_rate`` to ``to_rate``.

    Output index ``i`` takes ``samples[floor(i * ratio)]`` with
    ``ratio = from_rate / to_rate``, or 0.0 when that index falls outside
    the input. Equal rates return the input object itself.
    """
    if from_rate == to_rate:
        return samples
    if samples is None or len(samples) == 0:
        raise InvalidInputError("cannot resample empty audio")
    if from_rate <= 0 or to_rate <= 0:
        raise InvalidInputError(f"invalid sample rates: {from_rate} -> {to_rate}")

    data = np.asarray(samples, dtype=np.float32)
    ratio = from_rate / to_rate
    output_length = int(np.floor(len(data) / ratio))
    if output_length <= 0:
        raise InvalidInputError(
            f"{len(data)} samples at {from_rate} Hz is too short for {to_rate} Hz"
        )

    source_index = np.floor(np.arange(output_length) * ratio).astype(np.int64)
    output = np.zeros(output_length, dtype=np.float32)
    in_bounds = (source_index >= 0) & (source_index < len(data))
    output[in_bounds] = data[source_index[in_bounds]]
    return output
