"""Command-line configuration for an estimation run."""

from __future__ import annotations

import argparse
import datetime as dt
import re
import sys
from dataclasses import dataclass
from typing import List, Optional

from prcost.retrieval.collectors import TimeWindow
from prcost.retrieval.http_client import CallPolicy
from prcost.secrets import resolve_github_token

DEFAULT_MAX_WAIT_RESET = "60m"
DEFAULT_SLEEP_MIN_MS = 200
DEFAULT_SLEEP_MAX_MS = 800
DEFAULT_RETRIES_NON_RATE = 10

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|s|m|h)")
_UNIT_SECONDS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}


@dataclass(frozen=True)
class RunSettings:
    """Resolved runtime settings for one estimation run."""

    org: str
    out: str
    token: Optional[str]
    window: TimeWindow
    policy: CallPolicy
    json_out: Optional[str] = None
    max_runtime: Optional[float] = None


def warn(message: str) -> None:
    print(f"[warn] {message}", file=sys.stderr)


def parse_duration(value: str) -> float:
    """Parse ``90s``, ``30m``, ``2h`` or ``1h30m`` into seconds.

    A bare ``0`` is accepted; anything else without a unit raises ``ValueError``.
    """
    text = value.strip()
    if text == "0":
        return 0.0
    if not text:
        raise ValueError("empty duration")
    total = 0.0
    pos = 0
    for match in _DURATION_PART.finditer(text):
        if match.start() != pos:
            break
        total += float(match.group(1)) * _UNIT_SECONDS[match.group(2)]
        pos = match.end()
    if pos != len(text):
        raise ValueError(f"invalid duration {value!r}")
    return total


def parse_date(value: str) -> dt.datetime:
    """``YYYY-MM-DD`` at midnight UTC."""
    return dt.datetime.strptime(value.strip(), "%Y-%m-%d").replace(tzinfo=dt.timezone.utc)


def resolve_date(raw: Optional[str], flag: str) -> Optional[dt.datetime]:
    if not raw:
        return None
    try:
        return parse_date(raw)
    except ValueError as exc:
        warn(f"invalid {flag} format, expected YYYY-MM-DD: {exc}")
        return None


def resolve_max_wait(raw: Optional[str]) -> float:
    """Cap for a single quota wait in seconds; an empty value means no cap."""
    if raw is None or not raw.strip():
        return 0.0
    try:
        return parse_duration(raw)
    except ValueError as exc:
        warn(f"invalid --max-wait-reset, using default {DEFAULT_MAX_WAIT_RESET}: {exc}")
        return parse_duration(DEFAULT_MAX_WAIT_RESET)


def resolve_max_runtime(raw: Optional[str]) -> Optional[float]:
    if not raw:
        return None
    try:
        seconds = parse_duration(raw)
    except ValueError as exc:
        warn(f"invalid --max-runtime, running without a deadline: {exc}")
        return None
    return seconds or None


def build_arg_parser() -> argparse.ArgumentParser:
    """Return the CLI parser used by the estimator entry point."""

    parser = argparse.ArgumentParser(
        description="Estimate monthly AI review cost from a GitHub organization's PR diffs.",
    )
    parser.add_argument("--org", required=True, help="GitHub organization to analyze")
    parser.add_argument("--out", required=True, help="Output HTML report path")
    parser.add_argument("--github-token", default="", help="GitHub token (or set GITHUB_TOKEN env)")
    parser.add_argument("--since", default="", help="Start of the analysis window (YYYY-MM-DD)")
    parser.add_argument("--until", default="", help="End of the analysis window (YYYY-MM-DD)")
    parser.add_argument(
        "--eventual-complete",
        action="store_true",
        help="Wait through rate limit resets and retry until completion",
    )
    parser.add_argument(
        "--max-wait-reset",
        default=DEFAULT_MAX_WAIT_RESET,
        help="Maximum wait for a rate-limit reset (e.g. 30m, 2h). Empty for no limit",
    )
    parser.add_argument("--sleep-min-ms", type=int, default=DEFAULT_SLEEP_MIN_MS)
    parser.add_argument("--sleep-max-ms", type=int, default=DEFAULT_SLEEP_MAX_MS)
    parser.add_argument(
        "--retries-nonrate",
        type=int,
        default=DEFAULT_RETRIES_NON_RATE,
        help="Retry attempts for non-rate-limit transient errors",
    )
    parser.add_argument("--json-out", default=None, help="Also write the summaries as JSON")
    parser.add_argument("--max-runtime", default="", help="Stop retrying after this long (e.g. 3h)")
    return parser


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments; accepts argv overrides for testing."""

    parser = build_arg_parser()
    return parser.parse_args(argv)


def resolve_settings(args: argparse.Namespace) -> RunSettings:
    """Turn parsed arguments into immutable settings, degrading bad optional values."""

    policy = CallPolicy(
        eventual_complete=bool(args.eventual_complete),
        max_wait_reset=resolve_max_wait(args.max_wait_reset),
        sleep_min=max(0, args.sleep_min_ms) / 1000.0,
        sleep_max=max(0, args.sleep_max_ms) / 1000.0,
        retries_non_rate=int(args.retries_nonrate),
    )
    window = TimeWindow(
        since=resolve_date(args.since, "--since"),
        until=resolve_date(args.until, "--until"),
    )
    return RunSettings(
        org=args.org,
        out=args.out,
        token=resolve_github_token(args.github_token or None),
        window=window,
        policy=policy,
        json_out=args.json_out or None,
        max_runtime=resolve_max_runtime(args.max_runtime),
    )


__all__ = [
    "DEFAULT_MAX_WAIT_RESET",
    "DEFAULT_SLEEP_MIN_MS",
    "DEFAULT_SLEEP_MAX_MS",
    "DEFAULT_RETRIES_NON_RATE",
    "RunSettings",
    "parse_duration",
    "parse_date",
    "resolve_date",
    "resolve_max_wait",
    "resolve_max_runtime",
    "build_arg_parser",
    "parse_args",
    "resolve_settings",
]
