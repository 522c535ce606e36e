"""Per-repository summaries and organization-wide folding."""

from __future__ import annotations

import datetime as dt
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from prcost.retrieval.collectors import RepoHarvest

from .tokens import CostEstimate


def months_span(first: Optional[dt.datetime], last: Optional[dt.datetime]) -> int:
    """Inclusive count of months between two PR creation dates.

    ``(y2 - y1) * 12 + (m2 - m1)``, plus one when the last day-of-month is
    earlier than the first, never less than 1. Returns 0 if either date is
    missing.
    """
    if first is None or last is None:
        return 0
    months = (last.year - first.year) * 12 + (last.month - first.month)
    if last.day < first.day:
        months += 1
    return max(months, 1)


@dataclass
class TimeRange:
    first_created_at: Optional[dt.datetime] = None
    last_created_at: Optional[dt.datetime] = None

    def observe(self, first: Optional[dt.datetime], last: Optional[dt.datetime]) -> None:
        """Tighten the range with another min/max pair; ``None`` bounds are ignored."""
        if first is not None and (self.first_created_at is None or first < self.first_created_at):
            self.first_created_at = first
        if last is not None and (self.last_created_at is None or last > self.last_created_at):
            self.last_created_at = last

    @property
    def months_span(self) -> int:
        return months_span(self.first_created_at, self.last_created_at)


@dataclass(frozen=True)
class RepoSummary:
    name: str
    total_prs: int
    total_diff_chars: int
    avg_diff_chars_per_pr: float

    @classmethod
    def from_harvest(cls, harvest: RepoHarvest) -> "RepoSummary":
        avg = harvest.diff_chars / harvest.pr_count if harvest.pr_count else 0.0
        return cls(
            name=harvest.name,
            total_prs=harvest.pr_count,
            total_diff_chars=harvest.diff_chars,
            avg_diff_chars_per_pr=avg,
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class OrgSummary:
    repo_count: int
    total_prs: int
    total_diff_chars: int
    months_span: int
    avg_monthly_prs: float
    avg_monthly_diff_chars: float
    avg_monthly_tokens: int
    cost_model_a: float
    cost_model_b: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class OrgAggregator:
    """Folds repository harvests into organization totals, one repo at a time."""

    repos: List[RepoSummary] = field(default_factory=list)
    total_prs: int = 0
    total_diff_chars: int = 0
    time_range: TimeRange = field(default_factory=TimeRange)

    def add(self, harvest: RepoHarvest) -> RepoSummary:
        summary = RepoSummary.from_harvest(harvest)
        self.repos.append(summary)
        self.total_prs += summary.total_prs
        self.total_diff_chars += summary.total_diff_chars
        self.time_range.observe(harvest.first_created_at, harvest.last_created_at)
        return summary

    def monthly_rates(self) -> Tuple[int, float, float]:
        """Return ``(months_span, avg_monthly_prs, avg_monthly_diff_chars)``."""
        span = self.time_range.months_span
        if span == 0:
            return 0, 0.0, 0.0
        return span, self.total_prs / span, self.total_diff_chars / span

    def summarize(self, repo_count: int, estimate: CostEstimate) -> OrgSummary:
        span, avg_prs, avg_chars = self.monthly_rates()
        return OrgSummary(
            repo_count=repo_count,
            total_prs=self.total_prs,
            total_diff_chars=self.total_diff_chars,
            months_span=span,
            avg_monthly_prs=avg_prs,
            avg_monthly_diff_chars=avg_chars,
            avg_monthly_tokens=estimate.avg_monthly_tokens,
            cost_model_a=estimate.cost_model_a,
            cost_model_b=estimate.cost_model_b,
        )


__all__ = ["months_span", "TimeRange", "RepoSummary", "OrgSummary", "OrgAggregator"]
