"""
Reshuffle core.

Pure analysis over a snapshot of one day: overflow detection, the evening
decision, per-category processors, Fix My Day for past items, conflict
resolution and the summary. Nothing here writes to a repository.
"""

from .context import ReshuffleContext, create_context
from .engine import ReshuffleEngine, analyze, needs_reshuffle
from .evening import EveningDecision, EveningRecommendation, analyze_evening
from .fix_my_day import fix_past_item
from .overflow import OverflowAnalysis, StrategyKind, detect_overflow
from .processors import PROCESSORS
from .resolver import find_conflicts, suggest_resolution
from .slot_finder import find_multiple_slots, find_next_available_slot
from .summary import generate_summary, quick_summary

__all__ = [
    "EveningDecision",
    "EveningRecommendation",
    "OverflowAnalysis",
    "PROCESSORS",
    "ReshuffleContext",
    "ReshuffleEngine",
    "StrategyKind",
    "analyze",
    "analyze_evening",
    "create_context",
    "detect_overflow",
    "find_conflicts",
    "find_multiple_slots",
    "find_next_available_slot",
    "fix_past_item",
    "generate_summary",
    "needs_reshuffle",
    "quick_summary",
    "suggest_resolution",
]
