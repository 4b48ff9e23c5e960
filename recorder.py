"""Microphone capture into timed audio chunks."""

from __future__ import annotations

import logging
import threading
import time
from collections import deque
from typing import Any, Callable, Optional

import numpy as np

from codec import pcm16_mime_type
from errors import ResourceError
from models import AudioChunk

try:
    import sounddevice as sd
except Exception:  # pragma: no cover
    sd = None  # type: ignore

logger = logging.getLogger(__name__)

CAPTURE_SAMPLE_RATE = 48000
CHUNK_MS = 1000
WINDOW_CAPACITY = 15

ChunkCallback = Callable[[AudioChunk], None]


class AudioCaptureBuffer:
    """Owns the input stream and keeps every chunk it produced.

    ``window()`` returns the most recent ``window_capacity`` chunks;
    ``all_chunks()`` returns everything since the last ``clear()``.
    """

    def __init__(
        self,
        sample_rate: int = CAPTURE_SAMPLE_RATE,
        channels: int = 1,
        chunk_ms: int = CHUNK_MS,
        window_capacity: int = WINDOW_CAPACITY,
    ) -> None:
        self.sample_rate = sample_rate
        self.channels = channels
        self.chunk_ms = chunk_ms
        self.mime_type = pcm16_mime_type(sample_rate, channels)
        self._stream: Any = None
        self._running = False
        self._lock = threading.Lock()
        self._sequence = 0
        self._window: deque[AudioChunk] = deque(maxlen=window_capacity)
        self._chunks: list[AudioChunk] = []
        self._on_chunk: Optional[ChunkCallback] = None

    @property
    def is_running(self) -> bool:
        return self._running

    def start(self, on_chunk: Optional[ChunkCallback] = None) -> None:
        with self._lock:
            if self._running:
                return
            if sd is None:
                raise ResourceError("sounddevice is not installed")
            self._on_chunk = on_chunk
            blocksize = int(self.sample_rate * (self.chunk_ms / 1000.0))
            stream = None
            try:
                stream = sd.InputStream(
                    samplerate=self.sample_rate,
                    channels=self.channels,
                    dtype="int16",
                    blocksize=blocksize,
                    callback=self._on_audio,
                )
                stream.start()
            except Exception as exc:
                if stream is not None:
                    stream.close()
                raise ResourceError(f"microphone unavailable: {exc}") from exc
            self._stream = stream
            self._running = True
            logger.info("Capture started at %d Hz, %d ms chunks", self.sample_rate, self.chunk_ms)

    def stop(self) -> None:
        with self._lock:
            self._running = False
            stream, self._stream = self._stream, None
        if stream is None:
            return
        try:
            stream.stop()
        finally:
            stream.close()
            logger.info("Capture stopped after %d chunks", self._sequence)

    def clear(self) -> None:
        with self._lock:
            self._window.clear()
            self._chunks = []

    def window(self) -> list[AudioChunk]:
        with self._lock:
            return list(self._window)

    def all_chunks(self) -> list[AudioChunk]:
        with self._lock:
            return list(self._chunks)

    def _on_audio(self, indata: Any, frames: int, time_info: Any, status: Any) -> None:
        if status:
            logger.debug("Input stream status: %s", status)
        payload = np.asarray(indata, dtype=np.int16).tobytes()
        if not payload:
            return
        with self._lock:
            if not self._running:
                return
            self._sequence += 1
            chunk = AudioChunk(
                sequence=self._sequence,
                captured_at=time.time(),
                mime_type=self.mime_type,
                payload=payload,
            )
            self._window.append(chunk)
            self._chunks.append(chunk)
            on_chunk = self._on_chunk
        if on_chunk is not None:
            on_chunk(chunk)
