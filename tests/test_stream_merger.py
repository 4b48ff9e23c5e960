from __future__ import annotations

import random

from stream_merger import StreamMerger

T0 = 1_000_000.0


def test_first_fragment_is_trimmed_and_emitted() -> None:
    merger = StreamMerger()
    assert merger.merge("  hello world  ", T0) == "hello world"
    assert merger.committed_text == "hello world"


def test_overlapping_word_is_deduplicated() -> None:
    merger = StreamMerger()
    merger.merge("hello world", T0)
    delta = merger.merge("world peace", T0 + 100)

    assert merger.committed_text == "hello world peace"
    assert delta == " peace"


def test_no_overlap_appends_with_space() -> None:
    merger = StreamMerger()
    merger.merge("hello", T0)
    delta = merger.merge("goodbye", T0 + 100)

    assert merger.committed_text == "hello goodbye"
    assert delta == " goodbye"


def test_repeated_fragment_is_a_noop() -> None:
    merger = StreamMerger()
    merger.merge("the quick brown fox", T0)
    assert merger.merge("quick brown", T0 + 100) == ""
    assert merger.committed_text == "the quick brown fox"


def test_longest_overlap_wins() -> None:
    merger = StreamMerger()
    merger.merge("one two three two three", T0)
    delta = merger.merge("two three four", T0 + 100)

    assert merger.committed_text == "one two three two three four"
    assert delta == " four"


def test_pause_longer_than_threshold_inserts_line_break() -> None:
    merger = StreamMerger()
    merger.merge("first sentence", T0)
    delta = merger.merge("second sentence", T0 + 3001)

    assert merger.committed_text == "first sentence\nsecond sentence"
    assert delta == "\nsecond sentence"


def test_pause_at_threshold_does_not_break_line() -> None:
    merger = StreamMerger()
    merger.merge("first", T0)
    merger.merge("second", T0 + 3000)
    assert merger.committed_text == "first second"


def test_overlap_ignores_case_and_punctuation() -> None:
    merger = StreamMerger()
    merger.merge("Hello world.", T0)
    delta = merger.merge("World, peace", T0 + 100)

    assert merger.committed_text == "Hello world. peace"
    assert delta == " peace"


def test_blank_fragment_returns_empty_delta() -> None:
    merger = StreamMerger()
    assert merger.merge("   ", T0) == ""
    merger.merge("hi", T0)
    assert merger.merge("", T0 + 10) == ""
    assert merger.committed_text == "hi"


def test_reset_clears_state() -> None:
    merger = StreamMerger()
    merger.merge("hello", T0)
    merger.reset()

    assert merger.committed_text == ""
    assert merger.merge("again", T0 + 5000) == "again"


def test_repetitive_fragments_keep_transcript_append_only() -> None:
    rng = random.Random(1234)
    vocabulary = ["la", "la", "la", "na", "la.", "LA"]
    merger = StreamMerger()
    received = ""
    now = T0

    for _ in range(300):
        fragment = " ".join(rng.choice(vocabulary) for _ in range(rng.randint(0, 8)))
        before = merger.committed_text
        now += rng.choice([100, 800, 3500])
        delta = merger.merge(fragment, now)

        assert merger.committed_text.startswith(before)
        assert merger.committed_text == before + delta
        received += delta

    assert received == merger.committed_text
