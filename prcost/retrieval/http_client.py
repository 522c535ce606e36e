"""Quota-aware HTTP execution for the GitHub REST API.

Every remote call goes through :class:`CallExecutor`, which decides per
response whether to return it, wait for the quota to reset and re-issue the
same request, back off and retry, skip the item, or fail the collection.

The decision is an explicit state machine::

    request -> DONE | SKIPPED | FATAL
    request -> WAITING (quota) -> request | SKIPPED (cancelled)
    request -> RETRYING (backoff) -> request | SKIPPED

Quota waits never consume the non-quota retry budget.
"""

from __future__ import annotations

import enum
import random
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

import requests

from .config import (
    BACKOFF_CEILING_SEC,
    BACKOFF_START_SEC,
    DEFAULT_WAIT_CAP_SEC,
    MIN_RESET_WAIT_SEC,
    REQUEST_TIMEOUT,
    SKIPPABLE_STATUSES,
    USER_AGENT,
)


@dataclass(frozen=True)
class CallPolicy:
    """Wait/retry/jitter behaviour, fixed for the lifetime of a run."""

    eventual_complete: bool = False
    max_wait_reset: float = DEFAULT_WAIT_CAP_SEC  # seconds, 0 = no explicit cap
    sleep_min: float = 0.0
    sleep_max: float = 0.0
    retries_non_rate: int = 1


class CallState(enum.Enum):
    WAITING = "waiting"
    RETRYING = "retrying"
    SKIPPED = "skipped"
    FATAL = "fatal"
    DONE = "done"


class ListingError(RuntimeError):
    """A page of a collection could not be fetched for a non-quota reason."""

    def __init__(self, url: str, status: Optional[int] = None, message: str = "") -> None:
        self.url = url
        self.status = status
        self.message = message
        detail = f"HTTP {status}" if status is not None else "request failed"
        if message:
            detail = f"{detail}: {message}"
        super().__init__(f"{detail} ({url})")


def build_session(token: Optional[str] = None) -> requests.Session:
    """Return a session with GitHub headers, authenticated when a token is given."""
    session = requests.Session()
    session.headers.update(
        {
            "Accept": "application/vnd.github+json",
            "User-Agent": USER_AGENT,
        }
    )
    if token:
        session.headers["Authorization"] = f"Bearer {token}"
    return session


def _error_message(resp: requests.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return (resp.text or "")[:300]
    if isinstance(body, dict):
        return str(body.get("message") or body.get("error") or "")
    return ""


def log_http_error(resp: requests.Response, url: str) -> None:
    """Print a short, human-readable message when GitHub returns an error."""
    print(f"[error] HTTP {resp.status_code} for {url}\n  -> {_error_message(resp)}")


def is_quota_exhausted(resp: Optional[requests.Response]) -> bool:
    """429, or 403 with a zero remaining-quota header."""
    if resp is None:
        return False
    if resp.status_code == 429:
        return True
    if resp.status_code == 403:
        return (resp.headers or {}).get("X-RateLimit-Remaining") == "0"
    return False


def is_skippable(resp: Optional[requests.Response]) -> bool:
    """Client errors that mark an item as absent rather than worth retrying."""
    if resp is None or resp.status_code not in SKIPPABLE_STATUSES:
        return False
    if resp.status_code == 403:
        return not is_quota_exhausted(resp)
    return True


def quota_wait_seconds(resp: requests.Response, now: Optional[float] = None) -> Optional[float]:
    """Seconds to wait before re-issuing a quota-limited request.

    ``Retry-After`` wins when it is a positive integer; otherwise the reset
    instant gives ``max(reset - now, 5)``. ``None`` means the response carries
    no usable hint and must not be treated as a quota wait.
    """
    headers = resp.headers or {}
    retry_after = str(headers.get("Retry-After") or "").strip()
    if retry_after.isdigit() and int(retry_after) > 0:
        return float(int(retry_after))

    reset = str(headers.get("X-RateLimit-Reset") or "").strip()
    if reset.isdigit():
        current = time.time() if now is None else now
        return max(float(reset) - current, float(MIN_RESET_WAIT_SEC))
    return None


def capped_wait(wait: float, policy: CallPolicy) -> float:
    cap = policy.max_wait_reset
    if not policy.eventual_complete and cap <= 0:
        cap = DEFAULT_WAIT_CAP_SEC
    if cap > 0 and wait > cap:
        return float(cap)
    return wait


def jitter_seconds(policy: CallPolicy,
                   uniform: Optional[Callable[[float, float], float]] = None) -> float:
    """Random inter-call delay in [sleep_min, sleep_max]; 0 when sleep_max is 0."""
    if policy.sleep_max <= 0:
        return 0.0
    low = max(0.0, policy.sleep_min)
    high = max(low, policy.sleep_max)
    if high == low:
        return low
    return (uniform or random.uniform)(low, high)


class CallExecutor:
    """Runs GET requests under a :class:`CallPolicy`.

    ``sleep``, ``clock`` and ``cancelled`` are injectable so the retry logic
    can be exercised without real delays.
    """

    def __init__(
        self,
        policy: CallPolicy,
        session: Optional[requests.Session] = None,
        *,
        timeout: float = REQUEST_TIMEOUT,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.time,
        cancelled: Optional[Callable[[], bool]] = None,
    ) -> None:
        self.policy = policy
        self.session = session if session is not None else build_session()
        self.timeout = timeout
        self.sleep = sleep
        self.clock = clock
        self.cancelled = cancelled or (lambda: False)

    def jitter(self) -> None:
        delay = jitter_seconds(self.policy)
        if delay > 0:
            self.sleep(delay)

    def _classify(self, resp: Optional[requests.Response],
                  on_error: CallState) -> Tuple[CallState, float]:
        if resp is not None and 200 <= resp.status_code < 300:
            return CallState.DONE, 0.0
        if is_quota_exhausted(resp):
            wait = quota_wait_seconds(resp, self.clock())
            if wait is not None:
                return CallState.WAITING, capped_wait(wait, self.policy)
        if on_error is CallState.RETRYING and is_skippable(resp):
            return CallState.SKIPPED, 0.0
        return on_error, 0.0

    def _wait_for_quota(self, resp: requests.Response, url: str, wait: float) -> None:
        print(f"[rate-limit] HTTP {resp.status_code} for {url}; waiting {wait:.0f}s before retrying")
        self.sleep(wait)
        print("  done sleeping, resuming harvest...")

    def fetch_page(self, url: str, params: Optional[Dict[str, object]] = None) -> requests.Response:
        """Fetch one page of a collection.

        Quota exhaustion re-issues the same request; any other failure raises
        :class:`ListingError`. Network errors propagate as
        ``requests.RequestException``.
        """
        while True:
            resp = self.session.request("GET", url, params=params, timeout=self.timeout)
            state, wait = self._classify(resp, on_error=CallState.FATAL)
            if state is CallState.DONE:
                return resp
            if state is CallState.WAITING:
                self._wait_for_quota(resp, url, wait)
                continue
            log_http_error(resp, url)
            raise ListingError(url, resp.status_code, _error_message(resp))

    def fetch_optional(self, url: str,
                       headers: Optional[Dict[str, str]] = None) -> Optional[requests.Response]:
        """Fetch a single item, returning ``None`` when it is absent or unreachable.

        Skippable client errors return ``None`` straight away. Other failures
        are retried with exponential backoff (1s doubling to a 2 minute ceiling)
        up to ``retries_non_rate`` attempts; exhaustion also returns ``None``.
        Cancellation is checked before every further attempt, after quota
        waits included.
        """
        attempts = max(1, self.policy.retries_non_rate)
        backoff = BACKOFF_START_SEC
        while True:
            try:
                resp = self.session.request("GET", url, headers=headers, timeout=self.timeout)
            except requests.RequestException as exc:
                resp, reason = None, str(exc)
            else:
                reason = f"HTTP {resp.status_code}"

            state, wait = self._classify(resp, on_error=CallState.RETRYING)
            if state is CallState.DONE:
                return resp
            if state is CallState.WAITING:
                self._wait_for_quota(resp, url, wait)
                if self.cancelled():
                    print(f"[skip] run cancelled while waiting on quota for {url}")
                    return None
                continue
            if state is CallState.SKIPPED:
                print(f"[skip] {reason} for {url}")
                return None

            attempts -= 1
            if attempts <= 0 or self.cancelled():
                print(f"[skip] giving up on {url} after {reason}")
                return None
            print(f"[retry] {reason} for {url} -> sleep {backoff:.1f}s ({attempts} left)")
            self.sleep(backoff)
            backoff = min(backoff * 2, BACKOFF_CEILING_SEC)


__all__ = [
    "CallPolicy",
    "CallState",
    "CallExecutor",
    "ListingError",
    "build_session",
    "log_http_error",
    "is_quota_exhausted",
    "is_skippable",
    "quota_wait_seconds",
    "capped_wait",
    "jitter_seconds",
]
