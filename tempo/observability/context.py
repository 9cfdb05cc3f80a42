"""
Analysis scope kept in context-local storage.

Each analyze / suggest_resolution call runs inside one AnalysisContext. The
scope it installs names the call (``rsh-`` for an analysis, ``rsv-`` for a
conflict resolution), the day it is about, and the clock reading it was
pinned to, so log records from deep inside the core can be tied back to the
plan they shaped.
"""

import contextvars
import uuid
from dataclasses import dataclass
from datetime import date, datetime

ANALYZE_PREFIX = "rsh"
RESOLVE_PREFIX = "rsv"


@dataclass(frozen=True)
class AnalysisScope:
    analysis_id: str
    target_date: date | None = None
    now: datetime | None = None

    def log_fields(self) -> dict[str, str]:
        fields = {"analysis_id": self.analysis_id}
        if self.target_date is not None:
            fields["target_date"] = self.target_date.isoformat()
        if self.now is not None:
            fields["clock"] = self.now.isoformat(timespec="minutes")
        return fields


_scope_var: contextvars.ContextVar[AnalysisScope | None] = contextvars.ContextVar(
    "analysis_scope", default=None
)


def get_scope() -> AnalysisScope | None:
    """The scope of the analysis currently running, if any."""
    return _scope_var.get()


def get_analysis_id() -> str | None:
    scope = _scope_var.get()
    return scope.analysis_id if scope else None


def generate_analysis_id(prefix: str = ANALYZE_PREFIX) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:16]}"


class AnalysisContext:
    """
    Context manager for one analyze / suggest_resolution call.

    Usage:
        with AnalysisContext(target_date=day, now=now) as ctx:
            logger.info("Analyzing %s", day)
            # records carry ctx.analysis_id, the day and the clock

        # Or with an existing ID:
        with AnalysisContext(analysis_id="rsh-abc123"):
            ...
    """

    def __init__(
        self,
        analysis_id: str | None = None,
        prefix: str = ANALYZE_PREFIX,
        target_date: date | None = None,
        now: datetime | None = None,
    ):
        self.scope = AnalysisScope(analysis_id or generate_analysis_id(prefix), target_date, now)
        self._token: contextvars.Token | None = None

    @property
    def analysis_id(self) -> str:
        return self.scope.analysis_id

    def __enter__(self) -> "AnalysisContext":
        self._token = _scope_var.set(self.scope)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._token is not None:
            _scope_var.reset(self._token)
            self._token = None
