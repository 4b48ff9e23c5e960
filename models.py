"""Core data models for live transcription."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

import numpy as np


class SessionState(str, Enum):
    IDLE = "IDLE"
    RECORDING = "RECORDING"
    FINALIZING = "FINALIZING"


class JobStatus(str, Enum):
    QUEUED = "QUEUED"
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"

    @classmethod
    def from_wire(cls, value: str | None) -> "JobStatus":
        """Map a remote status string onto a job status."""
        mapping = {
            "IN_QUEUE": cls.QUEUED,
            "IN_PROGRESS": cls.RUNNING,
            "COMPLETED": cls.COMPLETED,
            "FAILED": cls.FAILED,
        }
        return mapping.get((value or "").upper(), cls.QUEUED)

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)


@dataclass(frozen=True)
class AudioChunk:
    sequence: int
    captured_at: float
    mime_type: str
    payload: bytes


@dataclass(frozen=True)
class DecodedSamples:
    sample_rate: int
    channel_data: np.ndarray

    def __len__(self) -> int:
        return int(self.channel_data.shape[0])


@dataclass
class TranscriptionRequest:
    samples: np.ndarray
    sample_rate: int
    language: str = "en"
    task: str = "transcribe"


@dataclass
class TranscriptionResult:
    text: str


@dataclass
class RemoteJob:
    id: str
    status: JobStatus = JobStatus.QUEUED
    result: Optional[TranscriptionResult] = None
    error: Optional[str] = None


@dataclass
class StreamState:
    committed_text: str = ""
    last_emit_cursor: int = 0
    last_speech_at: Optional[float] = None
