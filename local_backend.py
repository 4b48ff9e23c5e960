"""In-process Whisper backend built on faster-whisper."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Any, Callable, Optional, Sequence

import numpy as np

from errors import BackendUnavailableError, EmptyResultError, InvalidInputError
from models import TranscriptionRequest, TranscriptionResult
from resampler import TARGET_SAMPLE_RATE, resample

try:
    from faster_whisper import WhisperModel
except Exception:  # pragma: no cover
    WhisperModel = None  # type: ignore

logger = logging.getLogger(__name__)

DEFAULT_MODELS = ("tiny.en", "tiny")
ACQUIRE_TIMEOUT_S = 60.0

PRIMARY_DECODE_OPTIONS = {
    "chunk_length": 5,
    "no_speech_threshold": 0.3,
    "log_prob_threshold": -0.8,
    "compression_ratio_threshold": 2.0,
}

# Looser settings for a single retry when the primary pass hears nothing.
FALLBACK_DECODE_OPTIONS = {
    "chunk_length": 3,
    "no_speech_threshold": 0.1,
    "log_prob_threshold": -1.2,
    "compression_ratio_threshold": 2.5,
}

ModelFactory = Callable[[str], Any]


class LocalModelBackend:
    def __init__(
        self,
        models: Sequence[str] = DEFAULT_MODELS,
        device: str = "cpu",
        compute_type: str = "int8",
        acquire_timeout_s: float = ACQUIRE_TIMEOUT_S,
        model_factory: Optional[ModelFactory] = None,
    ) -> None:
        if not models:
            raise ValueError("at least one candidate model is required")
        self._models = list(models)
        self._device = device
        self._compute_type = compute_type
        self._acquire_timeout_s = acquire_timeout_s
        self._model_factory = model_factory or self._load_whisper_model
        self._lock = threading.Lock()
        self._model: Any = None
        self._model_name: Optional[str] = None

    @property
    def is_ready(self) -> bool:
        return self._model is not None

    @property
    def model_name(self) -> Optional[str]:
        return self._model_name

    def acquire(self) -> Any:
        """Load the first candidate model that comes up within the time budget.

        The loaded model is reused by every later call until ``reset()``.
        """
        with self._lock:
            if self._model is not None:
                return self._model

            failures: list[str] = []
            for name in self._models:
                logger.info("Loading local model %s", name)
                # The loader thread is abandoned on timeout.
                executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="model-load")
                future = executor.submit(self._model_factory, name)
                try:
                    model = future.result(timeout=self._acquire_timeout_s)
                except FutureTimeoutError:
                    logger.warning(
                        "Loading model %s timed out after %.0fs", name, self._acquire_timeout_s
                    )
                    failures.append(f"{name}: timeout")
                    continue
                except Exception as exc:
                    logger.warning("Loading model %s failed: %s", name, exc)
                    failures.append(f"{name}: {exc}")
                    continue
                finally:
                    executor.shutdown(wait=False)

                self._model = model
                self._model_name = name
                logger.info("Local model %s ready", name)
                return model

            raise BackendUnavailableError(
                "no local model could be loaded (" + "; ".join(failures) + ")"
            )

    def reset(self) -> None:
        with self._lock:
            self._model = None
            self._model_name = None

    def transcribe(self, request: TranscriptionRequest) -> TranscriptionResult:
        model = self.acquire()
        samples = np.asarray(request.samples, dtype=np.float32)
        if samples.size == 0:
            raise InvalidInputError("no samples to transcribe")
        if request.sample_rate != TARGET_SAMPLE_RATE:
            samples = resample(samples, request.sample_rate, TARGET_SAMPLE_RATE)

        text = self._run(model, samples, request, PRIMARY_DECODE_OPTIONS)
        if not text:
            logger.debug("Primary decode returned no text, retrying with fallback options")
            text = self._run(model, samples, request, FALLBACK_DECODE_OPTIONS)
        if not text:
            raise EmptyResultError("local model returned no text")
        return TranscriptionResult(text=text)

    def _run(
        self,
        model: Any,
        samples: np.ndarray,
        request: TranscriptionRequest,
        options: dict,
    ) -> str:
        segments, _info = model.transcribe(
            samples,
            language=request.language or None,
            task=request.task,
            **options,
        )
        return " ".join(seg.text.strip() for seg in segments if seg.text.strip())

    def _load_whisper_model(self, name: str) -> Any:
        if WhisperModel is None:
            raise BackendUnavailableError("faster-whisper is not installed")
        return WhisperModel(name, device=self._device, compute_type=self._compute_type)
