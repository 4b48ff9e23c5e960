"""State-machine based recording session orchestration."""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Optional

import numpy as np

from codec import decode_chunks
from errors import (
    CANCELLED,
    SKIPPABLE_ERRORS,
    BackendUnavailableError,
    ResourceError,
    TranscriptionError,
)
from interfaces import ChunkSource, TranscriptionBackend
from models import AudioChunk, SessionState, TranscriptionRequest
from quality_gate import QualityGate
from recorder import AudioCaptureBuffer
from resampler import TARGET_SAMPLE_RATE, resample
from stream_merger import StreamMerger

logger = logging.getLogger(__name__)

TICK_INTERVAL_S = 0.8
MIN_PARTIAL_CHUNKS = 2
# Partial ticks only look at the trailing two seconds of the window.
MAX_PARTIAL_SAMPLES = 2 * TARGET_SAMPLE_RATE
MIN_PARTIAL_SAMPLES = 2000

StateCallback = Callable[[SessionState, SessionState], None]
DeltaCallback = Callable[[str], None]
ErrorCallback = Callable[[str, str], None]


def _monotonic_ms() -> float:
    return time.monotonic() * 1000.0


class RecordingSession:
    def __init__(
        self,
        backend: TranscriptionBackend,
        capture_factory: Callable[[], ChunkSource] = AudioCaptureBuffer,
        gate: Optional[QualityGate] = None,
        merger: Optional[StreamMerger] = None,
        language: str = "en",
        tick_interval_s: float = TICK_INTERVAL_S,
        on_delta: Optional[DeltaCallback] = None,
        on_error: Optional[ErrorCallback] = None,
        on_state_change: Optional[StateCallback] = None,
        clock: Callable[[], float] = _monotonic_ms,
    ) -> None:
        self._backend = backend
        self._capture_factory = capture_factory
        self._gate = gate or QualityGate()
        self._merger = merger or StreamMerger()
        self._language = language
        self._tick_interval_s = tick_interval_s
        self._on_delta = on_delta
        self._on_error = on_error
        self._on_state_change = on_state_change
        self._clock = clock

        self._lock = threading.RLock()
        self._state = SessionState.IDLE
        self._capture: Optional[ChunkSource] = None
        self._cancel_event = threading.Event()
        self._scheduler: Optional[threading.Thread] = None
        self._in_flight = False
        self._settled = threading.Event()
        self._settled.set()
        self._last_error: Optional[TranscriptionError] = None

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def transcript(self) -> str:
        return self._merger.committed_text

    @property
    def last_error(self) -> Optional[TranscriptionError]:
        return self._last_error

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Acquire the microphone and begin periodic partial transcription.

        Raises ``ResourceError`` if the capture device cannot be opened; the
        session then stays idle.
        """
        with self._lock:
            if self._state != SessionState.IDLE:
                logger.debug("start() ignored in state %s", self._state.value)
                return
            capture = self._capture_factory()
            try:
                capture.start()
            except ResourceError as exc:
                self._record_error(exc)
                raise
            except Exception as exc:
                error = ResourceError(f"capture start failed: {exc}")
                self._record_error(error)
                raise error from exc

            self._capture = capture
            self._merger.reset()
            self._last_error = None
            self._cancel_event = threading.Event()
            self._transition(SessionState.RECORDING)
            self._scheduler = threading.Thread(
                target=self._tick_loop,
                args=(self._cancel_event,),
                name="transcription-tick",
                daemon=True,
            )
            self._scheduler.start()

    def stop(self) -> None:
        """Stop recording, run the final pass over all audio, return to idle."""
        with self._lock:
            if self._state != SessionState.RECORDING:
                logger.debug("stop() ignored in state %s", self._state.value)
                return
            self._cancel_event.set()
            self._transition(SessionState.FINALIZING)
            scheduler, self._scheduler = self._scheduler, None
            capture = self._capture

        try:
            try:
                self._join_scheduler(scheduler)
            finally:
                self._release_capture(capture)
            self._settled.wait()
            if capture is not None:
                self._final_pass(capture)
        finally:
            with self._lock:
                self._capture = None
                self._transition(SessionState.IDLE)

    def cancel(self, reason: str) -> None:
        """Abandon the recording without a final pass."""
        with self._lock:
            if self._state != SessionState.RECORDING:
                logger.debug("cancel() ignored in state %s", self._state.value)
                return
            self._cancel_event.set()
            scheduler, self._scheduler = self._scheduler, None
            capture, self._capture = self._capture, None

        try:
            try:
                self._join_scheduler(scheduler)
            finally:
                self._release_capture(capture)
            self._settled.wait()
        finally:
            with self._lock:
                self._emit_error(CANCELLED, reason)
                self._transition(SessionState.IDLE)

    # ------------------------------------------------------------------
    # Partial ticks
    # ------------------------------------------------------------------

    def _tick_loop(self, cancel_event: threading.Event) -> None:
        while not cancel_event.wait(self._tick_interval_s):
            self._tick()

    def _tick(self) -> None:
        with self._lock:
            if self._state != SessionState.RECORDING or self._capture is None:
                return
            if self._in_flight:
                logger.debug("Previous transcription still running, skipping tick")
                return
            self._in_flight = True
            self._settled.clear()
            capture = self._capture
        threading.Thread(
            target=self._run_partial,
            args=(capture,),
            name="transcription-partial",
            daemon=True,
        ).start()

    def _run_partial(self, capture: ChunkSource) -> None:
        try:
            window = capture.window()
            if len(window) < MIN_PARTIAL_CHUNKS or not self._gate.should_process_window(window):
                logger.debug("Window too small for a partial pass (%d chunks)", len(window))
                return
            samples = self._prepare(window, partial=True)
            if samples is None:
                return
            self._transcribe_and_emit(samples)
        except SKIPPABLE_ERRORS as exc:
            logger.warning("Skipping tick: %s", exc)
        except TranscriptionError as exc:
            self._report(exc)
        except Exception:
            logger.exception("Partial transcription failed unexpectedly")
        finally:
            with self._lock:
                self._in_flight = False
                self._settled.set()

    # ------------------------------------------------------------------
    # Final pass
    # ------------------------------------------------------------------

    def _final_pass(self, capture: ChunkSource) -> None:
        with self._lock:
            self._in_flight = True
            self._settled.clear()
        try:
            chunks = capture.all_chunks()
            if not chunks or not self._gate.should_process_window(chunks):
                logger.info("Not enough audio for a final pass (%d chunks)", len(chunks))
                capture.clear()
                return
            samples = self._prepare(chunks, partial=False)
            if samples is None:
                logger.info("Final audio is silent, nothing to transcribe")
                capture.clear()
                return
            self._transcribe_and_emit(samples)
            capture.clear()
        except TranscriptionError as exc:
            self._report(exc)
        except Exception as exc:
            logger.exception("Final transcription pass failed unexpectedly")
            error = BackendUnavailableError(f"final pass failed: {exc}")
            error.__cause__ = exc
            self._report(error)
        finally:
            with self._lock:
                self._in_flight = False
                self._settled.set()

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _prepare(self, chunks: list[AudioChunk], partial: bool) -> Optional[np.ndarray]:
        decoded = decode_chunks(chunks)
        samples = resample(decoded.channel_data, decoded.sample_rate, TARGET_SAMPLE_RATE)
        if partial:
            samples = samples[-MAX_PARTIAL_SAMPLES:]
            if len(samples) < MIN_PARTIAL_SAMPLES:
                logger.debug("Partial window has only %d samples", len(samples))
                return None
        if not self._gate.should_process(samples):
            logger.debug("Quality gate rejected %d samples", len(samples))
            return None
        return samples

    def _transcribe_and_emit(self, samples: np.ndarray) -> None:
        request = TranscriptionRequest(
            samples=samples,
            sample_rate=TARGET_SAMPLE_RATE,
            language=self._language,
        )
        result = self._backend.transcribe(request)
        delta = self._merger.merge(result.text, self._clock())
        if delta and self._on_delta:
            try:
                self._on_delta(delta)
            except Exception:
                logger.exception("on_delta callback failed")

    def _join_scheduler(self, scheduler: Optional[threading.Thread]) -> None:
        if scheduler is not None and scheduler is not threading.current_thread():
            scheduler.join()

    def _release_capture(self, capture: Optional[ChunkSource]) -> None:
        if capture is None:
            return
        try:
            capture.stop()
        except Exception:
            logger.exception("Failed to stop audio capture")

    def _record_error(self, exc: TranscriptionError) -> None:
        exc.state = self._state
        self._last_error = exc

    def _report(self, exc: TranscriptionError) -> None:
        with self._lock:
            self._record_error(exc)
            logger.error("Transcription failed in %s: [%s] %s", self._state.value, exc.code, exc)
            self._emit_error(exc.code, exc.message)

    def _emit_error(self, code: str, message: str) -> None:
        if self._on_error:
            try:
                self._on_error(code, message)
            except Exception:
                logger.exception("on_error callback failed")

    def _transition(self, to_state: SessionState) -> None:
        from_state = self._state
        if from_state == to_state:
            return
        self._state = to_state
        logger.info("Session %s -> %s", from_state.value, to_state.value)
        if self._on_state_change:
            try:
                self._on_state_change(from_state, to_state)
            except Exception:
                logger.exception("on_state_change callback failed")
