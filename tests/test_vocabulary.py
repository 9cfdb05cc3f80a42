"""
Tests for the approved-language checks.
"""

import pytest

from tempo.contracts.vocabulary import (
    APPROVED_LANGUAGE,
    FORBIDDEN_WORDS,
    CompassionateMessage,
    forbidden_words_in,
    soften_language,
    validate_language,
)
from tempo.reshuffle.evening import EveningDecision, EveningRecommendation
from tempo.reshuffle.processors import DEFER_REASON
from tempo.schedule.changes import ActionKind
from tests.fixtures import at, habit


class TestValidateLanguage:
    @pytest.mark.parametrize("word", FORBIDDEN_WORDS)
    def test_each_forbidden_word(self, word):
        assert not validate_language(f"You {word} this one")

    def test_case_insensitive(self):
        assert not validate_language("OVERDUE")

    def test_substring_match(self):
        # plain substring check: "latest" contains a forbidden word
        assert not validate_language("the latest slot")
        assert forbidden_words_in("the latest slot") == ["late"]

    def test_clean_text(self):
        assert validate_language("Your day has been adjusted.")


class TestOwnWording:
    """Everything the core writes itself is clean."""

    def test_compassionate_messages(self):
        messages = [
            v for k, v in vars(CompassionateMessage).items() if not k.startswith("_")
        ]
        assert len(messages) == 5
        assert all(validate_language(m) for m in messages)

    def test_display_names_and_reasons(self):
        assert all(validate_language(kind.display_name) for kind in ActionKind)
        assert validate_language(DEFER_REASON)

    def test_evening_messages(self):
        for recommendation in EveningRecommendation:
            decision = EveningDecision(1, "x", recommendation, False, minimum_free_minutes=150)
            assert validate_language(decision.message)
            assert validate_language(recommendation.display_name)

    def test_full_day_situation(self):
        reading = habit("reading", at(21))
        assert validate_language(EveningDecision.full_day_disruption(reading).situation)


class TestSoften:
    def test_replaces_whole_words(self):
        assert soften_language("You missed it, and it is overdue") == (
            "You adjusted it, and it is carried forward"
        )

    def test_keeps_capitalisation(self):
        assert soften_language("Skipped yoga") == "Deferred yoga"

    def test_leaves_other_words(self):
        assert soften_language("the latest slot") == "the latest slot"

    def test_every_word_has_a_replacement(self):
        assert set(APPROVED_LANGUAGE) == set(FORBIDDEN_WORDS)
