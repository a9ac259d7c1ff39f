"""
Gap-Fill & Merge Guard

Each freshly computed day starts as PROPOSED and ends as either
COMMITTED (upserted, replacing the stored row) or SUPPRESSED (discarded,
stored row left untouched).

A proposal is SUPPRESSED when its core metrics (revenue, orders, units)
are all zero while the stored row for that day has any non-zero core
metric, unless the caller forces the write. This keeps a narrowed or
failed upstream fetch from wiping backfilled history with zeros.

A second guard clamps the window: without force, the start is pulled
forward to today - max_lookback_days.
"""
from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple

from profit_ledger.services.profit_calculator import CORE_METRICS, ProfitSummary
from profit_ledger.utils.helpers import to_number
from profit_ledger.utils.logger import log


class GuardState(str, Enum):
    PROPOSED = "proposed"
    COMMITTED = "committed"
    SUPPRESSED = "suppressed"


@dataclass(frozen=True)
class GuardDecision:
    date: date
    state: GuardState
    reason: str


def has_core_activity(row: Optional[Mapping[str, Any]]) -> bool:
    """True if any of revenue / orders / units is non-zero"""
    if not row:
        return False
    return any(to_number(row.get(metric)) != 0 for metric in CORE_METRICS)


def decide(proposed: ProfitSummary, existing: Optional[Mapping[str, Any]], force: bool = False) -> GuardDecision:
    """Transition one PROPOSED day to COMMITTED or SUPPRESSED"""
    if force:
        return GuardDecision(proposed.date, GuardState.COMMITTED, "forced")
    if proposed.core_is_zero and has_core_activity(existing):
        return GuardDecision(proposed.date, GuardState.SUPPRESSED, "zero proposal over stored activity")
    if existing is None:
        return GuardDecision(proposed.date, GuardState.COMMITTED, "new day")
    return GuardDecision(proposed.date, GuardState.COMMITTED, "replace")


class MergeGuard:
    """
    Usage:
        guard = MergeGuard(force=False)
        to_write, decisions = guard.review(proposals, existing_by_date)

    `existing_by_date` must be read inside the same transaction as the
    write so the decision is made against the latest stored state.
    """

    def __init__(self, force: bool = False):
        self.force = force

    def review(
        self,
        proposals: List[ProfitSummary],
        existing_by_date: Dict[date, Mapping[str, Any]],
    ) -> Tuple[List[ProfitSummary], List[GuardDecision]]:
        to_write = []
        decisions = []

        for proposal in proposals:
            decision = decide(proposal, existing_by_date.get(proposal.date), self.force)
            decisions.append(decision)
            if decision.state == GuardState.COMMITTED:
                to_write.append(proposal)
            else:
                log.info(f"Suppressed zero overwrite for {proposal.client_id} on {proposal.date.isoformat()}")

        return to_write, decisions


@dataclass(frozen=True)
class WindowClamp:
    start: date
    end: date
    requested_start: date
    clamped: bool

    @property
    def is_empty(self) -> bool:
        return self.start > self.end


def clamp_window(
    start: date,
    end: date,
    today: date,
    max_lookback_days: int,
    force: bool = False,
) -> WindowClamp:
    """Pull the start forward to the lookback cutoff unless forced"""
    cutoff = today - timedelta(days=max_lookback_days)
    if force or start >= cutoff:
        return WindowClamp(start=start, end=end, requested_start=start, clamped=False)

    log.info(
        f"Window start {start.isoformat()} predates lookback cutoff "
        f"{cutoff.isoformat()}; starting at cutoff"
    )
    return WindowClamp(start=cutoff, end=end, requested_start=start, clamped=True)
