"""Remote asynchronous transcription over an HTTP job queue.

A job is submitted with ``POST /run`` and, unless the submit response is
already terminal, polled with ``GET /status/{id}`` until it completes, fails
or the attempt budget runs out.
"""

from __future__ import annotations

import base64
import logging
import time
from typing import Any, Callable, Optional

import httpx
import numpy as np

from codec import detect_audio_format, encode_wav
from errors import (
    BackendUnavailableError,
    EmptyResultError,
    InvalidInputError,
    JobFailedError,
    JobTimeoutError,
    OversizeInputError,
)
from models import JobStatus, RemoteJob, TranscriptionRequest, TranscriptionResult
from resampler import TARGET_SAMPLE_RATE, resample

logger = logging.getLogger(__name__)

MAX_PAYLOAD_BYTES = 10 * 1024 * 1024
SUBMIT_TIMEOUT_S = 30.0
STATUS_TIMEOUT_S = 5.0
POLL_INTERVAL_S = 1.0
MAX_POLL_ATTEMPTS = 120


class _TransientPollError(Exception):
    def __init__(self, message: str, not_found: bool = False) -> None:
        super().__init__(message)
        self.not_found = not_found


def _error_detail(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.reason_phrase or "Unknown error"
    if isinstance(data, dict):
        return str(data.get("error") or data.get("details") or response.reason_phrase)
    return response.reason_phrase or "Unknown error"


def extract_text(output: Any) -> Optional[str]:
    """Pull transcript text from a job ``output`` object.

    Prefers ``output.text`` and falls back to the joined segment texts.
    Returns None when neither carries any text.
    """
    if not isinstance(output, dict):
        return None
    text = output.get("text")
    if isinstance(text, str) and text.strip():
        return text.strip()
    segments = output.get("segments") or []
    parts = [
        str(seg.get("text", "")).strip()
        for seg in segments
        if isinstance(seg, dict) and str(seg.get("text", "")).strip()
    ]
    if parts:
        return " ".join(parts)
    return None


class RemoteJobBackend:
    def __init__(
        self,
        base_url: str,
        api_key: str,
        audio_format: Optional[str] = None,
        max_payload_bytes: int = MAX_PAYLOAD_BYTES,
        submit_timeout_s: float = SUBMIT_TIMEOUT_S,
        status_timeout_s: float = STATUS_TIMEOUT_S,
        poll_interval_s: float = POLL_INTERVAL_S,
        max_poll_attempts: int = MAX_POLL_ATTEMPTS,
        client: Optional[httpx.Client] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._audio_format = audio_format
        self._max_payload_bytes = max_payload_bytes
        self._submit_timeout_s = submit_timeout_s
        self._status_timeout_s = status_timeout_s
        self._poll_interval_s = poll_interval_s
        self._max_poll_attempts = max_poll_attempts
        self._client = client or httpx.Client()
        self._sleep = sleep

    def close(self) -> None:
        self._client.close()

    def transcribe(self, request: TranscriptionRequest) -> TranscriptionResult:
        if not self._base_url or not self._api_key:
            raise BackendUnavailableError("remote endpoint or API key is not configured")

        samples = np.asarray(request.samples, dtype=np.float32)
        if samples.size == 0:
            raise InvalidInputError("no samples to transcribe")
        if request.sample_rate != TARGET_SAMPLE_RATE:
            samples = resample(samples, request.sample_rate, TARGET_SAMPLE_RATE)

        wav = encode_wav(samples, TARGET_SAMPLE_RATE)
        if len(wav) > self._max_payload_bytes:
            raise OversizeInputError(
                f"audio payload is {len(wav) / 1024 / 1024:.2f}MB, "
                f"limit is {self._max_payload_bytes / 1024 / 1024:.2f}MB"
            )

        body = {
            "input": {
                "audio": base64.b64encode(wav).decode("ascii"),
                "audio_format": self._audio_format or detect_audio_format(wav),
                "language": request.language or "en",
                "task": request.task,
            }
        }
        job = self.submit(body)
        if not job.status.is_terminal:
            job = self.poll(job)
        return self._finish(job)

    # ------------------------------------------------------------------
    # Protocol steps
    # ------------------------------------------------------------------

    def submit(self, body: dict) -> RemoteJob:
        try:
            response = self._client.post(
                f"{self._base_url}/run",
                json=body,
                headers=self._headers(),
                timeout=self._submit_timeout_s,
            )
        except httpx.TimeoutException as exc:
            raise BackendUnavailableError(
                f"submit timed out after {self._submit_timeout_s:.0f} seconds"
            ) from exc
        except httpx.TransportError as exc:
            raise BackendUnavailableError(f"submit failed: {exc}") from exc

        if response.status_code in (401, 403):
            raise BackendUnavailableError(f"remote rejected credentials: {response.status_code}")
        if response.is_error:
            raise JobFailedError(
                f"submit failed: {response.status_code} - {_error_detail(response)}"
            )

        data = self._json(response)
        text = extract_text(data.get("output"))
        job_id = str(data.get("id") or "")
        raw_status = data.get("status")

        if text is not None:
            logger.info("Remote job %s returned a result synchronously", job_id or "<sync>")
            return RemoteJob(
                id=job_id,
                status=JobStatus.COMPLETED,
                result=TranscriptionResult(text=text),
            )
        if raw_status is None and data.get("error"):
            return RemoteJob(id=job_id, status=JobStatus.FAILED, error=str(data["error"]))
        if not job_id:
            # Terminal without text: surfaced by _finish as an empty result.
            return RemoteJob(id="", status=JobStatus.COMPLETED, error=data.get("error"))

        job = RemoteJob(id=job_id, status=JobStatus.from_wire(raw_status))
        if job.status is JobStatus.FAILED:
            job.error = str(data.get("error") or "Unknown error")
        logger.info("Submitted remote job %s (%s)", job.id, job.status.value)
        return job

    def poll(self, job: RemoteJob) -> RemoteJob:
        """Poll ``job`` until it reaches a terminal status."""
        url = f"{self._base_url}/status/{job.id}"
        attempts = self._max_poll_attempts
        for attempt in range(attempts):
            is_last = attempt == attempts - 1
            try:
                data = self._fetch_status(url)
            except _TransientPollError as exc:
                logger.warning(
                    "Status check for job %s failed (attempt %d/%d): %s",
                    job.id, attempt + 1, attempts, exc,
                )
                if is_last:
                    if exc.not_found:
                        raise JobFailedError(f"job {job.id} was not found") from exc
                    break
                self._sleep(self._poll_interval_s)
                continue

            job.status = JobStatus.from_wire(data.get("status"))
            if job.status is JobStatus.COMPLETED:
                text = extract_text(data.get("output"))
                if text is not None:
                    job.result = TranscriptionResult(text=text)
                logger.info("Remote job %s completed after %d status checks", job.id, attempt + 1)
                return job
            if job.status is JobStatus.FAILED:
                job.error = str(data.get("error") or "Unknown error")
                logger.error("Remote job %s failed: %s", job.id, job.error)
                return job

            logger.debug("Remote job %s is %s (attempt %d/%d)", job.id, job.status.value, attempt + 1, attempts)
            if not is_last:
                self._sleep(self._poll_interval_s)

        raise JobTimeoutError(
            f"job polling timeout after {attempts} attempts "
            f"({attempts * self._poll_interval_s:.0f} seconds)"
        )

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _fetch_status(self, url: str) -> dict:
        try:
            response = self._client.get(
                url, headers=self._headers(), timeout=self._status_timeout_s
            )
        except httpx.TimeoutException as exc:
            raise _TransientPollError(
                f"status check timed out after {self._status_timeout_s:.0f} seconds"
            ) from exc
        except httpx.TransportError as exc:
            raise _TransientPollError(str(exc)) from exc

        if response.status_code == 404:
            raise _TransientPollError("job not visible yet (404)", not_found=True)
        if response.status_code >= 500:
            raise _TransientPollError(f"{response.status_code} - {_error_detail(response)}")
        if response.status_code in (401, 403):
            raise BackendUnavailableError(f"remote rejected credentials: {response.status_code}")
        if response.is_error:
            raise JobFailedError(
                f"failed to check job status: {response.status_code} - {_error_detail(response)}"
            )
        return self._json(response)

    def _finish(self, job: RemoteJob) -> TranscriptionResult:
        if job.status is JobStatus.FAILED:
            raise JobFailedError(f"job failed: {job.error or 'Unknown error'}")
        if job.result is None or not job.result.text:
            raise EmptyResultError(
                f"job {job.id or '<sync>'} completed but no transcription text was found"
            )
        return job.result

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }

    @staticmethod
    def _json(response: httpx.Response) -> dict:
        try:
            data = response.json()
        except ValueError as exc:
            raise JobFailedError("remote response is not valid JSON") from exc
        if not isinstance(data, dict):
            raise JobFailedError("remote response has an unexpected shape")
        return data
