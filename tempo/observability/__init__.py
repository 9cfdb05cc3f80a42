"""
Observability for the reshuffle core.

Every analysis runs inside an AnalysisContext so log records emitted while it
runs can be correlated.
"""

from .context import (
    AnalysisContext,
    AnalysisScope,
    generate_analysis_id,
    get_analysis_id,
    get_scope,
)
from .logging import HumanFormatter, JSONFormatter, configure_logging, get_logger

__all__ = [
    "AnalysisContext",
    "AnalysisScope",
    "HumanFormatter",
    "JSONFormatter",
    "configure_logging",
    "generate_analysis_id",
    "get_analysis_id",
    "get_logger",
    "get_scope",
]
