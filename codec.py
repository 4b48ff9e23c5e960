"""Audio payload decoding and WAV encoding.

Captured chunks carry either raw little-endian PCM16 (``audio/L16``) or a
RIFF WAV stream. Compressed containers are recognised by their magic bytes
but are not decoded here.
"""

from __future__ import annotations

import io
import wave
from typing import Sequence

import numpy as np

from errors import DecodeError
from models import AudioChunk, DecodedSamples

PCM16_MIME = "audio/L16"
WAV_MIME = "audio/wav"
DEFAULT_CONTAINER_MIME = "audio/webm;codecs=opus"

_MAGIC_FORMATS = (
    (b"RIFF", WAV_MIME),
    (b"OggS", "audio/ogg;codecs=opus"),
    (b"\x1a\x45\xdf\xa3", DEFAULT_CONTAINER_MIME),
)


def pcm16_mime_type(sample_rate: int, channels: int = 1) -> str:
    return f"{PCM16_MIME};rate={sample_rate};channels={channels}"


def detect_audio_format(payload: bytes) -> str:
    """Guess a MIME type from the first bytes of ``payload``."""
    head = payload[:12]
    for magic, mime in _MAGIC_FORMATS:
        if head.startswith(magic):
            return mime
    return DEFAULT_CONTAINER_MIME


def _parse_mime(mime_type: str) -> tuple[str, dict[str, str]]:
    parts = [p.strip() for p in mime_type.split(";") if p.strip()]
    if not parts:
        return "", {}
    params: dict[str, str] = {}
    for part in parts[1:]:
        key, _, value = part.partition("=")
        params[key.strip().lower()] = value.strip()
    return parts[0].lower(), params


def _first_channel(interleaved: np.ndarray, channels: int) -> np.ndarray:
    if channels <= 1:
        return interleaved
    usable = len(interleaved) - (len(interleaved) % channels)
    return interleaved[:usable].reshape(-1, channels)[:, 0]


def _decode_pcm16(payload: bytes, params: dict[str, str]) -> DecodedSamples:
    try:
        sample_rate = int(params.get("rate", "0"))
        channels = int(params.get("channels", "1"))
    except ValueError as exc:
        raise DecodeError(f"bad PCM parameters: {params}") from exc
    if sample_rate <= 0 or channels <= 0:
        raise DecodeError(f"bad PCM parameters: {params}")
    if len(payload) % 2:
        raise DecodeError("PCM16 payload has an odd number of bytes")
    pcm = np.frombuffer(payload, dtype="<i2")
    mono = _first_channel(pcm, channels)
    return DecodedSamples(
        sample_rate=sample_rate,
        channel_data=(mono.astype(np.float32) / 32768.0),
    )


def _decode_wav(payload: bytes) -> DecodedSamples:
    try:
        with wave.open(io.BytesIO(payload), "rb") as wf:
            sample_rate = wf.getframerate()
            channels = wf.getnchannels()
            sample_width = wf.getsampwidth()
            frames = wf.readframes(wf.getnframes())
    except (wave.Error, EOFError) as exc:
        raise DecodeError(f"invalid WAV data: {exc}") from exc
    if sample_width != 2:
        raise DecodeError(f"unsupported WAV sample width: {sample_width * 8} bit")
    pcm = np.frombuffer(frames, dtype="<i2")
    mono = _first_channel(pcm, channels)
    return DecodedSamples(
        sample_rate=sample_rate,
        channel_data=(mono.astype(np.float32) / 32768.0),
    )


def decode_chunks(chunks: Sequence[AudioChunk]) -> DecodedSamples:
    """Concatenate chunk payloads in order and decode them to mono float32."""
    if not chunks:
        raise DecodeError("no audio chunks to decode")
    mime_types = {_parse_mime(chunk.mime_type)[0] for chunk in chunks}
    if len(mime_types) != 1:
        raise DecodeError(f"mixed audio formats in window: {sorted(mime_types)}")

    payload = b"".join(chunk.payload for chunk in chunks)
    if not payload:
        raise DecodeError("audio chunks are empty")

    base, params = _parse_mime(chunks[0].mime_type)
    if base == PCM16_MIME.lower():
        decoded = _decode_pcm16(payload, params)
    elif base in ("audio/wav", "audio/wave", "audio/x-wav"):
        decoded = _decode_wav(payload)
    else:
        raise DecodeError(f"unsupported audio format: {chunks[0].mime_type}")

    if len(decoded) == 0:
        raise DecodeError("decoded audio has no samples")
    return decoded


def encode_wav(samples: np.ndarray, sample_rate: int) -> bytes:
    """Encode float samples as 16-bit mono WAV bytes."""
    clipped = np.clip(np.asarray(samples, dtype=np.float32), -1.0, 1.0)
    scaled = np.where(clipped < 0, clipped * 0x8000, clipped * 0x7FFF)
    pcm = scaled.astype("<i2").tobytes()

    buf = io.BytesIO()
    with wave.open(buf, "wb") as wf:
        wf.setnchannels(1)
        wf.setsampwidth(2)
        wf.setframerate(sample_rate)
        wf.writeframes(pcm)
    return buf.getvalue()
