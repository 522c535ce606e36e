"""Entry points for harvesting an organization and writing the cost report."""

from __future__ import annotations

import datetime as dt
import sys
import time
from typing import Callable, List, Optional, Tuple

import requests

from prcost.estimation.aggregate import OrgAggregator
from prcost.estimation.tokens import MODEL_A_LABEL, MODEL_B_LABEL, Encoding, estimate_costs
from prcost.retrieval.collectors import SampleBudget, TimeWindow, harvest_repo, list_org_repos
from prcost.retrieval.config import SAMPLE_BUDGET_BYTES
from prcost.retrieval.http_client import CallExecutor, ListingError, build_session

from .config import RunSettings, parse_args, resolve_settings
from .report import ReportData, save_json, write_html_report

PREVIEW_LIMIT = 5


def make_cancel_check(max_runtime: Optional[float],
                      clock: Callable[[], float] = time.monotonic) -> Callable[[], bool]:
    """Return a callable that reports True once ``max_runtime`` seconds have passed."""
    if not max_runtime:
        return lambda: False
    deadline = clock() + max_runtime
    return lambda: clock() >= deadline


def harvest_organization(executor: CallExecutor,
                         org: str,
                         window: TimeWindow,
                         budget: SampleBudget) -> Tuple[int, OrgAggregator]:
    """Walk every repository of ``org`` in listing order.

    A repository listing failure propagates; a PR listing failure only skips
    that repository.
    """
    repos = list_org_repos(executor, org)
    print(f"Discovered {len(repos)} repositories in org {org}")
    aggregator = OrgAggregator()
    for repo in repos:
        name = repo.get("name") if isinstance(repo, dict) else None
        if not name:
            continue
        print(f"  harvesting {org}/{name}...")
        try:
            harvest = harvest_repo(executor, org, name, window, budget)
        except (ListingError, requests.RequestException) as exc:
            print(f"[warn] failed to compute diff stats for {name}: {exc}", file=sys.stderr)
            continue
        aggregator.add(harvest)
    return len(repos), aggregator


def build_report(settings: RunSettings,
                 executor: CallExecutor,
                 encoding: Optional[Encoding] = None,
                 budget: Optional[SampleBudget] = None) -> ReportData:
    """Harvest the organization and fold everything into the report data."""
    budget = budget if budget is not None else SampleBudget(SAMPLE_BUDGET_BYTES)
    repo_count, aggregator = harvest_organization(executor, settings.org, settings.window, budget)

    _, _, avg_monthly_chars = aggregator.monthly_rates()
    estimate = estimate_costs(budget.sample, avg_monthly_chars, encoding)
    return ReportData(
        org_name=settings.org,
        window=settings.window.describe(),
        generated_at=dt.datetime.now(dt.timezone.utc).isoformat(timespec="seconds"),
        org=aggregator.summarize(repo_count, estimate),
        repos=list(aggregator.repos),
        time_range=aggregator.time_range,
    )


def print_summary(data: ReportData) -> None:
    org = data.org
    print(f"\nSummary for {data.org_name} (window: {data.window})")
    print(f" - Repositories analyzed: {org.repo_count}")
    print(f" - Total PRs: {org.total_prs}")
    print(f" - Total diff chars: {org.total_diff_chars}")
    if org.total_prs == 0 or data.time_range is None:
        print(" - No PRs found in the specified window.")
        return
    print(f" - First PR created at: {data.time_range.first_created_at.isoformat()}")
    print(f" - Last PR created at: {data.time_range.last_created_at.isoformat()}")
    print(f" - Months span (inclusive): {org.months_span}")
    print(f" - Avg monthly PRs: {org.avg_monthly_prs:.2f}")
    print(f" - Avg monthly diff chars: {org.avg_monthly_diff_chars:.0f}")
    print(f" - Avg monthly tokens (est): {org.avg_monthly_tokens}")
    print(f" - Est. monthly cost ({MODEL_A_LABEL}): ${org.cost_model_a:.2f}")
    print(f" - Est. monthly cost ({MODEL_B_LABEL}): ${org.cost_model_b:.2f}")


def print_repo_preview(data: ReportData) -> None:
    if not data.repos:
        return
    print("\nPer-repo sample:")
    for repo in data.repos[:PREVIEW_LIMIT]:
        print(f" - {repo.name}: PRs={repo.total_prs}, diff chars={repo.total_diff_chars}, "
              f"avg/PR={repo.avg_diff_chars_per_pr:.0f}")


def main(argv: Optional[List[str]] = None) -> None:
    """CLI entry point; exits non-zero on listing or report-write failure."""
    settings = resolve_settings(parse_args(argv))
    executor = CallExecutor(
        settings.policy,
        build_session(settings.token),
        cancelled=make_cancel_check(settings.max_runtime),
    )

    try:
        data = build_report(settings, executor)
    except (ListingError, requests.RequestException) as exc:
        print(f"Error listing repositories for org {settings.org}: {exc}", file=sys.stderr)
        sys.exit(1)

    print_summary(data)
    try:
        write_html_report(settings.out, data)
        if settings.json_out:
            save_json(settings.json_out, data.to_dict())
    except OSError as exc:
        print(f"Error writing report to {settings.out}: {exc}", file=sys.stderr)
        sys.exit(1)
    print(f"\nHTML report written to {settings.out}")
    if settings.json_out:
        print(f"JSON summary written to {settings.json_out}")
    print_repo_preview(data)


if __name__ == "__main__":
    main()
