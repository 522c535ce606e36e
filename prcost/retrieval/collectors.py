"""Collection walkers and the per-repository diff harvester."""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional
from urllib.parse import quote

import requests
from requests.utils import parse_header_links

from .config import BASE_URL, PER_PAGE, SAMPLE_BUDGET_BYTES
from .http_client import CallExecutor, ListingError

DIFF_MEDIA_TYPE = "application/vnd.github.v3.diff"


@dataclass
class SampleBudget:
    """Run-wide, capped buffer of diff text used for the token ratio."""

    remaining: int = SAMPLE_BUDGET_BYTES
    buffer: bytearray = field(default_factory=bytearray)

    def take(self, data: bytes) -> int:
        """Append up to ``remaining`` leading bytes of ``data``; return the count."""
        if self.remaining <= 0 or not data:
            return 0
        count = min(self.remaining, len(data))
        self.buffer.extend(data[:count])
        self.remaining -= count
        return count

    @property
    def sample(self) -> bytes:
        return bytes(self.buffer)


@dataclass(frozen=True)
class TimeWindow:
    """Optional creation-time bounds, both inclusive."""

    since: Optional[dt.datetime] = None
    until: Optional[dt.datetime] = None

    def contains(self, created: dt.datetime) -> bool:
        if self.since is not None and created < self.since:
            return False
        if self.until is not None and created > self.until:
            return False
        return True

    def describe(self) -> str:
        if self.since is None and self.until is None:
            return "all time"
        since = self.since.strftime("%Y-%m-%d") if self.since else "beginning"
        until = self.until.strftime("%Y-%m-%d") if self.until else "now"
        return f"{since} to {until}"


@dataclass
class RepoHarvest:
    """Running counters for one repository while its PRs are walked."""

    name: str
    pr_count: int = 0
    diff_chars: int = 0
    first_created_at: Optional[dt.datetime] = None
    last_created_at: Optional[dt.datetime] = None

    def observe(self, created: dt.datetime) -> None:
        self.pr_count += 1
        if self.first_created_at is None or created < self.first_created_at:
            self.first_created_at = created
        if self.last_created_at is None or created > self.last_created_at:
            self.last_created_at = created


def parse_github_timestamp(value: Optional[str]) -> Optional[dt.datetime]:
    """Parse GitHub's ``2024-01-10T12:00:00Z`` into an aware datetime."""
    if not value:
        return None
    try:
        parsed = dt.datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=dt.timezone.utc)
    return parsed


def next_page_url(resp: requests.Response) -> Optional[str]:
    """Return the ``rel="next"`` URL from the Link header, if any."""
    link = (resp.headers or {}).get("Link")
    if not link:
        return None
    for entry in parse_header_links(link):
        if entry.get("rel") == "next" and entry.get("url"):
            return entry["url"]
    return None


def iter_pages(executor: CallExecutor, url: str,
               params: Optional[Dict[str, Any]] = None) -> Iterator[Dict[str, Any]]:
    """Yield items page by page until GitHub stops returning a next link.

    The first request carries ``params``; later requests use the next URL
    verbatim since it already embeds the query string.
    """
    page_url: Optional[str] = url
    page_params: Optional[Dict[str, Any]] = {**(params or {}), "per_page": PER_PAGE}
    while page_url:
        resp = executor.fetch_page(page_url, page_params)
        batch = resp.json()
        if not isinstance(batch, list):
            raise ListingError(page_url, resp.status_code, "expected a JSON list")
        yield from batch

        page_url = next_page_url(resp)
        page_params = None
        if page_url:
            executor.jitter()


def paged_get(executor: CallExecutor, url: str,
              params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
    """Collect every item of a paginated collection, in API order."""
    return list(iter_pages(executor, url, params))


def list_org_repos(executor: CallExecutor, org: str) -> List[Dict[str, Any]]:
    return paged_get(executor, f"{BASE_URL}/orgs/{quote(org)}/repos", {"type": "all"})


def iter_pull_requests(executor: CallExecutor, owner: str, repo: str) -> Iterator[Dict[str, Any]]:
    """All PRs of a repository, oldest first."""
    url = f"{BASE_URL}/repos/{quote(owner)}/{quote(repo)}/pulls"
    params = {"state": "all", "sort": "created", "direction": "asc"}
    return iter_pages(executor, url, params)


def fetch_pr_diff(executor: CallExecutor, owner: str, repo: str, number: int) -> bytes:
    """Raw diff bytes for a PR; empty when the diff is absent or unreachable."""
    url = f"{BASE_URL}/repos/{quote(owner)}/{quote(repo)}/pulls/{number}"
    resp = executor.fetch_optional(url, headers={"Accept": DIFF_MEDIA_TYPE})
    if resp is None:
        return b""
    return resp.content or b""


def harvest_repo(executor: CallExecutor,
                 owner: str,
                 repo: str,
                 window: TimeWindow,
                 budget: SampleBudget) -> RepoHarvest:
    """Walk a repository's PRs, sum in-window diff sizes and feed the sample.

    A PR listing failure propagates (``ListingError`` or
    ``requests.RequestException``) so the caller can skip the repository.
    """
    harvest = RepoHarvest(name=repo)
    for pr in iter_pull_requests(executor, owner, repo):
        number = pr.get("number")
        created = parse_github_timestamp(pr.get("created_at"))
        if number is None or created is None or not window.contains(created):
            continue
        harvest.observe(created)

        diff = fetch_pr_diff(executor, owner, repo, number)
        harvest.diff_chars += len(diff)
        budget.take(diff)
        executor.jitter()
    return harvest


__all__ = [
    "DIFF_MEDIA_TYPE",
    "SampleBudget",
    "TimeWindow",
    "RepoHarvest",
    "parse_github_timestamp",
    "next_page_url",
    "iter_pages",
    "paged_get",
    "list_org_repos",
    "iter_pull_requests",
    "fetch_pr_diff",
    "harvest_repo",
]
