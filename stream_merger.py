"""Incremental fusion of overlapping transcript fragments.

Fragments from successive partial ticks overlap because each tick
transcribes a trailing audio window. ``StreamMerger`` keeps one append-only
transcript and hands back only the text that the caller has not seen yet.
"""

from __future__ import annotations

import logging
import string

from models import StreamState

logger = logging.getLogger(__name__)

PAUSE_THRESHOLD_MS = 3000

_STRIP_CHARS = string.punctuation + "“”‘’…¿¡"


def _normalize(word: str) -> str:
    return word.strip(_STRIP_CHARS).casefold()


def _longest_overlap(committed_words: list[str], fragment_words: list[str]) -> int:
    """Largest k where the last k committed words equal the first k fragment words."""
    limit = min(len(committed_words), len(fragment_words))
    if limit == 0:
        return 0
    tail = [_normalize(w) for w in committed_words[-limit:]]
    head = [_normalize(w) for w in fragment_words[:limit]]
    for k in range(limit, 0, -1):
        if tail[-k:] == head[:k]:
            return k
    return 0


class StreamMerger:
    def __init__(self, pause_threshold_ms: float = PAUSE_THRESHOLD_MS) -> None:
        self.pause_threshold_ms = pause_threshold_ms
        self._state = StreamState()

    @property
    def committed_text(self) -> str:
        return self._state.committed_text

    @property
    def state(self) -> StreamState:
        return self._state

    def reset(self) -> None:
        self._state = StreamState()

    def merge(self, fragment: str, emitted_at: float) -> str:
        """Fold ``fragment`` into the transcript and return the new suffix.

        ``emitted_at`` is in milliseconds. Returns an empty string when the
        fragment adds nothing.
        """
        state = self._state
        text = fragment.strip()
        if not text:
            return ""

        committed = state.committed_text
        if not committed:
            state.committed_text = text
            state.last_speech_at = emitted_at
            return self._take_delta()

        if text in committed:
            return self._take_delta()

        committed_words = committed.split()
        fragment_words = text.split()
        overlap = _longest_overlap(committed_words, fragment_words)
        remaining = fragment_words[overlap:]
        if not remaining:
            return self._take_delta()
        if overlap == 0:
            logger.debug("No overlap with committed transcript, appending whole fragment")

        separator = " "
        if (
            state.last_speech_at is not None
            and emitted_at - state.last_speech_at > self.pause_threshold_ms
        ):
            separator = "\n"

        state.committed_text = committed + separator + " ".join(remaining)
        state.last_speech_at = emitted_at
        return self._take_delta()

    def _take_delta(self) -> str:
        state = self._state
        delta = state.committed_text[state.last_emit_cursor:]
        state.last_emit_cursor = len(state.committed_text)
        return delta
