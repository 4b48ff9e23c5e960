from __future__ import annotations

import io
import wave

import numpy as np
import pytest

from codec import decode_chunks, detect_audio_format, encode_wav, pcm16_mime_type
from errors import DecodeError
from models import AudioChunk


def _pcm_chunk(values: list[int], sequence: int = 1, rate: int = 48000, channels: int = 1) -> AudioChunk:
    return AudioChunk(
        sequence=sequence,
        captured_at=0.0,
        mime_type=pcm16_mime_type(rate, channels),
        payload=np.array(values, dtype="<i2").tobytes(),
    )


def test_pcm_chunks_are_concatenated_in_order() -> None:
    chunks = [_pcm_chunk([0, 16384], 1), _pcm_chunk([-32768, 32767], 2)]
    decoded = decode_chunks(chunks)

    assert decoded.sample_rate == 48000
    np.testing.assert_allclose(
        decoded.channel_data, [0.0, 0.5, -1.0, 32767 / 32768], rtol=1e-6
    )


def test_multichannel_pcm_keeps_first_channel() -> None:
    decoded = decode_chunks([_pcm_chunk([100, -1, 200, -1, 300, -1], channels=2)])
    np.testing.assert_allclose(
        decoded.channel_data, np.array([100, 200, 300]) / 32768.0, rtol=1e-6
    )


def test_wav_payload_is_decoded() -> None:
    wav = encode_wav(np.array([0.0, 0.5, -0.5], dtype=np.float32), 16000)
    chunk = AudioChunk(sequence=1, captured_at=0.0, mime_type="audio/wav", payload=wav)
    decoded = decode_chunks([chunk])

    assert decoded.sample_rate == 16000
    assert len(decoded) == 3
    assert decoded.channel_data[1] == pytest.approx(0.5, abs=1e-3)


def test_empty_and_unsupported_inputs_fail_with_decode_error() -> None:
    with pytest.raises(DecodeError):
        decode_chunks([])
    with pytest.raises(DecodeError):
        decode_chunks([AudioChunk(1, 0.0, "audio/webm;codecs=opus", b"\x1a\x45\xdf\xa3data")])
    with pytest.raises(DecodeError):
        decode_chunks([AudioChunk(1, 0.0, "audio/wav", b"RIFFnot-a-wav")])
    with pytest.raises(DecodeError):
        decode_chunks([AudioChunk(1, 0.0, pcm16_mime_type(16000), b"\x00\x00\x00")])


def test_mixed_formats_fail_with_decode_error() -> None:
    chunks = [
        _pcm_chunk([1, 2]),
        AudioChunk(2, 0.0, "audio/wav", b"RIFF"),
    ]
    with pytest.raises(DecodeError, match="mixed"):
        decode_chunks(chunks)


def test_encode_wav_header_and_scaling() -> None:
    wav = encode_wav(np.array([1.0, -1.0, 2.0, -2.0], dtype=np.float32), 16000)
    assert wav[:4] == b"RIFF"

    with wave.open(io.BytesIO(wav), "rb") as wf:
        assert wf.getnchannels() == 1
        assert wf.getsampwidth() == 2
        assert wf.getframerate() == 16000
        frames = np.frombuffer(wf.readframes(wf.getnframes()), dtype="<i2")
    assert frames.tolist() == [32767, -32768, 32767, -32768]


def test_detect_audio_format_by_magic_bytes() -> None:
    assert detect_audio_format(b"RIFF\x00\x00\x00\x00WAVE") == "audio/wav"
    assert detect_audio_format(b"OggS\x00\x02") == "audio/ogg;codecs=opus"
    assert detect_audio_format(b"\x1a\x45\xdf\xa3\x01") == "audio/webm;codecs=opus"
    assert detect_audio_format(b"") == "audio/webm;codecs=opus"
