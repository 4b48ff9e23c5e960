"""Protocol interfaces used by RecordingSession."""

from __future__ import annotations

from typing import Callable, Optional, Protocol

from config import Settings
from models import AudioChunk, TranscriptionRequest, TranscriptionResult


class TranscriptionBackend(Protocol):
    def transcribe(self, request: TranscriptionRequest) -> TranscriptionResult: ...


class ChunkSource(Protocol):
    def start(self, on_chunk: Optional[Callable[[AudioChunk], None]] = None) -> None: ...

    def stop(self) -> None: ...

    def clear(self) -> None: ...

    def window(self) -> list[AudioChunk]: ...

    def all_chunks(self) -> list[AudioChunk]: ...


class ConfigStore(Protocol):
    def get_api_key(self) -> str: ...

    def set_api_key(self, key: str) -> None: ...

    def get_endpoint_url(self) -> str: ...

    def set_endpoint_url(self, url: str) -> None: ...

    def get_hotkey(self) -> str: ...

    def set_hotkey(self, hotkey: str) -> None: ...

    def load(self) -> Settings: ...
