#!/usr/bin/env python3
"""Tests for word pacing and ORP placement."""

import pytest

from pacing import orp_index, word_delay


# ─── word_delay tests ─────────────────────────────────────────────────


class TestWordDelay:
    def test_plain_word_uses_base_rate(self):
        assert word_delay("ordinary", 250) == pytest.approx(240)

    def test_sentence_end_doubles(self):
        assert word_delay("end.", 250) == pytest.approx(480)

    def test_exclamation_and_question(self):
        assert word_delay("wow!", 250) == pytest.approx(480)
        assert word_delay("why?", 250) == pytest.approx(480)

    def test_clause_break_one_and_a_half(self):
        assert word_delay("end,", 250) == pytest.approx(360)
        assert word_delay("end;", 250) == pytest.approx(360)
        assert word_delay("end:", 250) == pytest.approx(360)

    def test_long_word_stacks_after_punctuation(self):
        assert word_delay("extraordinary.", 250) == pytest.approx(576)

    def test_long_word_without_punctuation(self):
        assert word_delay("extraordinary", 250) == pytest.approx(288)

    def test_ten_characters_is_not_long(self):
        assert word_delay("abcdefghij", 600) == pytest.approx(100)

    @pytest.mark.parametrize("word", ['end."', "end.)", "end.']", 'end.")', "end.'"])
    def test_closing_punctuation_ignored(self, word):
        assert word_delay(word, 250) == pytest.approx(word_delay("end.", 250))

    def test_closer_without_terminator(self):
        assert word_delay('(aside)', 250) == pytest.approx(240)

    def test_comma_inside_quote(self):
        assert word_delay('said,"', 250) == pytest.approx(360)

    @pytest.mark.parametrize("wpm", [60, 250, 600, 1000])
    @pytest.mark.parametrize(
        "word", ["a", "end.", "end,", "extraordinarily", "(x)", "quoted.\"", "—"]
    )
    def test_never_shorter_than_base(self, word, wpm):
        assert word_delay(word, wpm) >= 60000 / wpm


# ─── orp_index tests ──────────────────────────────────────────────────


class TestOrpIndex:
    def test_short_words_anchor_first_letter(self):
        assert orp_index("a") == 0
        assert orp_index("an") == 0

    def test_thirty_percent_in(self):
        assert orp_index("the") == 0
        assert orp_index("word") == 1
        assert orp_index("reading") == 2
        assert orp_index("extraordinary") == 3

    def test_empty_word(self):
        assert orp_index("") == 0

    def test_always_inside_word(self):
        for n in range(1, 40):
            assert 0 <= orp_index("x" * n) < n
