"""Central configuration constants for the GitHub harvesting workflow."""

from __future__ import annotations

import os

USER_AGENT = "pr-review-cost-estimator/0.1"
BASE_URL = os.getenv("GITHUB_API_URL", "https://api.github.com").rstrip("/")
PER_PAGE = 100
REQUEST_TIMEOUT = int(os.getenv("REQUEST_TIMEOUT", "90"))

# Quota handling
DEFAULT_WAIT_CAP_SEC = 2 * 60  # used when not in eventual mode and no cap is set
MIN_RESET_WAIT_SEC = 5
SKIPPABLE_STATUSES = frozenset({403, 404, 410, 451})

# Non-quota retries on the diff path
BACKOFF_START_SEC = 1.0
BACKOFF_CEILING_SEC = 2 * 60

# Bytes of diff text kept for the chars-per-token estimate, across the whole run
SAMPLE_BUDGET_BYTES = int(os.getenv("SAMPLE_BUDGET_BYTES", "200000"))

__all__ = [
    "USER_AGENT",
    "BASE_URL",
    "PER_PAGE",
    "REQUEST_TIMEOUT",
    "DEFAULT_WAIT_CAP_SEC",
    "MIN_RESET_WAIT_SEC",
    "SKIPPABLE_STATUSES",
    "BACKOFF_START_SEC",
    "BACKOFF_CEILING_SEC",
    "SAMPLE_BUDGET_BYTES",
]
