"""
Approved language.

Generated text never frames a change as a shortfall. validate_language() is
a plain substring check, so words such as "latest" or "translate" are
rejected too; generated strings avoid them.
"""

import re

FORBIDDEN_WORDS: tuple[str, ...] = (
    "missed",
    "skipped",
    "failed",
    "behind schedule",
    "late",
    "overdue",
    "incomplete",
)

APPROVED_LANGUAGE: dict[str, str] = {
    "missed": "adjusted",
    "skipped": "deferred",
    "failed": "rescheduled",
    "behind schedule": "adjusted timeline",
    "late": "shifted",
    "overdue": "carried forward",
    "incomplete": "in progress",
}


class CompassionateMessage:
    DAY_ADJUSTED = "Your day has been adjusted. Showing up in any form counts."
    HABIT_COMPRESSED = "Your habit is protected, just in a smaller form today."
    TASK_DEFERRED = "This can wait. Today's priorities come first."
    FULL_DAY_DISRUPTION = "Some days are harder. You're still showing up."
    ON_TRACK = "You're on track. Keep going!"


def validate_language(text: str) -> bool:
    """True when ``text`` contains none of the forbidden words (case-insensitive)."""
    lowered = text.lower()
    return not any(word in lowered for word in FORBIDDEN_WORDS)


def forbidden_words_in(text: str) -> list[str]:
    lowered = text.lower()
    return [word for word in FORBIDDEN_WORDS if word in lowered]


_WORD_PATTERN = re.compile(
    r"\b(" + "|".join(re.escape(w) for w in sorted(APPROVED_LANGUAGE, key=len, reverse=True)) + r")\b",
    re.IGNORECASE,
)


def soften_language(text: str) -> str:
    """Replace whole forbidden words with their approved counterparts."""

    def _swap(match: re.Match) -> str:
        replacement = APPROVED_LANGUAGE[match.group(0).lower()]
        if match.group(0)[0].isupper():
            return replacement[0].upper() + replacement[1:]
        return replacement

    return _WORD_PATTERN.sub(_swap, text)
