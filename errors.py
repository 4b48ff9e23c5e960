"""Shared error codes, user-facing messages and the transcription error taxonomy."""

from __future__ import annotations

from typing import Optional

from models import SessionState

INVALID_INPUT = "INVALID_INPUT"
RESOURCE_ERROR = "RESOURCE_ERROR"
DECODE_ERROR = "DECODE_ERROR"
OVERSIZE_INPUT = "OVERSIZE_INPUT"
BACKEND_UNAVAILABLE = "BACKEND_UNAVAILABLE"
JOB_FAILED = "JOB_FAILED"
JOB_TIMEOUT = "JOB_TIMEOUT"
EMPTY_RESULT = "EMPTY_RESULT"
CANCELLED = "CANCELLED"

ERROR_MESSAGES = {
    INVALID_INPUT: "Audio input is invalid.",
    RESOURCE_ERROR: "Microphone is unavailable or permission was denied.",
    DECODE_ERROR: "Captured audio could not be decoded.",
    OVERSIZE_INPUT: "Audio is too large to send for transcription.",
    BACKEND_UNAVAILABLE: "Transcription backend is unavailable.",
    JOB_FAILED: "Remote transcription job failed.",
    JOB_TIMEOUT: "Remote transcription job did not finish in time.",
    EMPTY_RESULT: "Transcription finished without any text.",
    CANCELLED: "Recording was cancelled.",
}


class TranscriptionError(Exception):
    code = "TRANSCRIPTION_ERROR"

    def __init__(self, message: str = "", state: Optional[SessionState] = None) -> None:
        super().__init__(message or ERROR_MESSAGES.get(self.code, self.code))
        self.state = state

    @property
    def message(self) -> str:
        return str(self)


class InvalidInputError(TranscriptionError, ValueError):
    code = INVALID_INPUT


class ResourceError(TranscriptionError):
    code = RESOURCE_ERROR


class DecodeError(TranscriptionError):
    code = DECODE_ERROR


class OversizeInputError(TranscriptionError):
    code = OVERSIZE_INPUT


class BackendUnavailableError(TranscriptionError):
    code = BACKEND_UNAVAILABLE


class JobFailedError(TranscriptionError):
    code = JOB_FAILED


class JobTimeoutError(TranscriptionError):
    code = JOB_TIMEOUT


class EmptyResultError(TranscriptionError):
    code = EMPTY_RESULT


# Per-tick failures that are logged and skipped rather than reported.
SKIPPABLE_ERRORS = (InvalidInputError, DecodeError, BackendUnavailableError)
