"""
Plan contracts: invariants every ReshuffleResult must satisfy and the
approved vocabulary for generated text.
"""

from .invariants import (
    InvariantViolation,
    check_compression_floor,
    check_identity_habits_kept,
    check_no_past_placement,
    check_non_negotiables_untouched,
    check_one_change_per_item,
    check_plan,
    check_vocabulary,
)
from .vocabulary import (
    APPROVED_LANGUAGE,
    FORBIDDEN_WORDS,
    CompassionateMessage,
    soften_language,
    validate_language,
)

__all__ = [
    "APPROVED_LANGUAGE",
    "CompassionateMessage",
    "FORBIDDEN_WORDS",
    "InvariantViolation",
    "check_compression_floor",
    "check_identity_habits_kept",
    "check_no_past_placement",
    "check_non_negotiables_untouched",
    "check_one_change_per_item",
    "check_plan",
    "check_vocabulary",
    "soften_language",
    "validate_language",
]
