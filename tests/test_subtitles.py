"""Tests for caption chunking, interval filtering and SRT output."""

from __future__ import annotations

import pytest

from reelsmith.core.ir import SubtitleChunk, Word
from reelsmith.core.subtitles import chunk_words, generate_srt, words_in_interval


# ---------------------------------------------------------------------------
# chunk_words
# ---------------------------------------------------------------------------


class TestChunkWords:

    def test_groups_of_four(self, words):
        chunks = chunk_words(words[:6], scene_start=0.0)
        assert [c.text for c in chunks] == [
            "Octopuses have three hearts",
            "and blue",
        ]

    def test_times_come_from_first_and_last_word(self, words):
        chunks = chunk_words(words[:6], scene_start=0.0)
        assert chunks[0].start == words[0].start
        assert chunks[0].end == words[3].end
        assert chunks[1].start == words[4].start
        assert chunks[1].end == words[5].end

    def test_ids_unique_within_scene(self, words):
        chunks = chunk_words(words[6:12], scene_start=3.0)
        assert [c.id for c in chunks] == ["sub_3.000_0", "sub_3.000_1"]

    def test_custom_chunk_size(self, words):
        chunks = chunk_words(words[:6], scene_start=0.0, words_per_chunk=2)
        assert len(chunks) == 3
        assert chunks[2].text == "and blue"

    def test_strips_word_whitespace(self):
        chunk = chunk_words([Word(" hello ", 0.0, 0.4), Word(" world", 0.5, 0.9)], 0.0)[0]
        assert chunk.text == "hello world"

    def test_empty_input(self):
        assert chunk_words([], scene_start=1.0) == []

    def test_rejects_non_positive_chunk_size(self, words):
        with pytest.raises(ValueError):
            chunk_words(words, 0.0, words_per_chunk=0)


# ---------------------------------------------------------------------------
# words_in_interval
# ---------------------------------------------------------------------------


class TestWordsInInterval:

    def test_selects_words_inside_interval(self, words):
        selected = words_in_interval(words, 3.0, 6.0)
        assert [w.text for w in selected] == [w.text for w in words[6:12]]

    def test_word_starting_at_end_belongs_to_next_interval(self):
        word = Word("edge", 2.0, 2.4)
        assert words_in_interval([word], 0.0, 2.0) == []
        assert words_in_interval([word], 2.0, 4.0) == [word]

    def test_straddling_word_is_in_neither_interval(self):
        word = Word("across", 2.8, 3.2)
        assert words_in_interval([word], 0.0, 3.0) == []
        assert words_in_interval([word], 3.0, 6.0) == []

    def test_include_end_admits_zero_length_final_word(self):
        word = Word("end", 9.0, 9.0)
        assert words_in_interval([word], 6.0, 9.0) == []
        assert words_in_interval([word], 6.0, 9.0, include_end=True) == [word]

    def test_every_word_lands_in_exactly_one_scene(self, words):
        bounds = [(0.0, 3.0), (3.0, 6.0), (6.0, 9.0)]
        assigned = [
            w for i, (s, e) in enumerate(bounds)
            for w in words_in_interval(words, s, e, include_end=i == 2)
        ]
        assert assigned == words


# ---------------------------------------------------------------------------
# generate_srt
# ---------------------------------------------------------------------------


class TestGenerateSrt:

    def test_numbered_cues_separated_by_blank_line(self):
        chunks = [
            SubtitleChunk("a", 0.0, 1.5, "Hello world"),
            SubtitleChunk("b", 1.5, 3.0, "second cue"),
        ]
        assert generate_srt(chunks) == (
            "1\n00:00:00,000 --> 00:00:01,500\nHello world\n"
            "\n"
            "2\n00:00:01,500 --> 00:00:03,000\nsecond cue\n"
        )

    def test_empty(self):
        assert generate_srt([]) == ""
