"""
Test fixtures for deterministic testing.

This module provides:
- DAY / at(): a pinned calendar day (Monday 2026-10-19) and clock helper
- schedule builders: one helper per task category
"""

from .schedules import (
    DAY,
    TOMORROW,
    at,
    flexible,
    habit,
    make_item,
    non_negotiable,
    optional,
)

__all__ = [
    "DAY",
    "TOMORROW",
    "at",
    "flexible",
    "habit",
    "make_item",
    "non_negotiable",
    "optional",
]
