"""Static HTML and JSON output for a finished estimation run."""

from __future__ import annotations

import html
import json
import os
from dataclasses import dataclass, field
from string import Template
from typing import Any, Dict, List, Optional

from prcost.estimation.aggregate import OrgSummary, RepoSummary, TimeRange
from prcost.estimation.tokens import MODEL_A_LABEL, MODEL_B_LABEL


@dataclass
class ReportData:
    org_name: str
    window: str
    generated_at: str
    org: OrgSummary
    repos: List[RepoSummary] = field(default_factory=list)
    time_range: Optional[TimeRange] = None

    def to_dict(self) -> Dict[str, Any]:
        first = last = None
        if self.time_range is not None:
            if self.time_range.first_created_at is not None:
                first = self.time_range.first_created_at.isoformat()
            if self.time_range.last_created_at is not None:
                last = self.time_range.last_created_at.isoformat()
        return {
            "org_name": self.org_name,
            "window": self.window,
            "generated_at": self.generated_at,
            "first_pr_created_at": first,
            "last_pr_created_at": last,
            "org": self.org.to_dict(),
            "repos": [repo.to_dict() for repo in self.repos],
        }


REPORT_TEMPLATE = Template("""<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8" />
  <meta name="viewport" content="width=device-width, initial-scale=1" />
  <title>$org_name - PR Activity &amp; AI Review Cost Report</title>
  <style>
    body { font-family: -apple-system, BlinkMacSystemFont, Segoe UI, Roboto, Helvetica, Arial, sans-serif; margin: 2rem; color: #222; }
    h1 { font-size: 1.8rem; margin-bottom: 0.2rem; }
    .sub { color: #555; margin-bottom: 1.2rem; }
    .card { border: 1px solid #eee; border-radius: 8px; padding: 1rem; margin: 1rem 0; }
    .grid { display: grid; grid-template-columns: repeat(auto-fit, minmax(220px, 1fr)); gap: 0.8rem; }
    .metric { background: #fafafa; border: 1px solid #eee; border-radius: 8px; padding: 0.8rem; }
    .metric .label { color: #666; font-size: 0.9rem; }
    .metric .value { font-weight: 600; font-size: 1.1rem; }
    table { width: 100%; border-collapse: collapse; font-size: 0.95rem; }
    th, td { text-align: left; padding: 8px; border-bottom: 1px solid #eee; }
    th { background: #f6f6f6; }
    .mono { font-family: ui-monospace, SFMono-Regular, Menlo, Consolas, "Liberation Mono", monospace; }
  </style>
</head>
<body>
  <h1>$org_name - PR Activity &amp; AI Review Cost Report</h1>
  <div class="sub">Window: $window &middot; Generated at: $generated_at</div>

  <div class="card">
    <h2>Organization Summary</h2>
    <div class="grid">
$metrics
    </div>
  </div>

  <div class="card">
    <h2>Per-Repository Stats</h2>
    <table>
      <thead>
        <tr>
          <th>Repository</th>
          <th>Total PRs</th>
          <th>Total diff (chars)</th>
          <th>Avg diff per PR (chars)</th>
        </tr>
      </thead>
      <tbody>
$rows
      </tbody>
    </table>
  </div>

  <div class="sub">Estimates are based on the GitHub REST API and a tiktoken sample of diff text.</div>
</body>
</html>
""")


def _metric(label: str, value: str, mono: bool = False) -> str:
    css = "value mono" if mono else "value"
    return (f'      <div class="metric"><div class="label">{html.escape(label)}</div>'
            f'<div class="{css}">{html.escape(value)}</div></div>')


def _repo_row(repo: RepoSummary) -> str:
    return (
        "        <tr>"
        f'<td class="mono">{html.escape(repo.name)}</td>'
        f"<td>{repo.total_prs}</td>"
        f'<td class="mono">{repo.total_diff_chars}</td>'
        f'<td class="mono">{repo.avg_diff_chars_per_pr:.0f}</td>'
        "</tr>"
    )


def render_html(data: ReportData) -> str:
    org = data.org
    metrics = [
        _metric("Repositories", str(org.repo_count)),
        _metric("Total PRs", str(org.total_prs)),
        _metric("Total diff (chars)", str(org.total_diff_chars), mono=True),
        _metric("Months (first PR to last PR)", str(org.months_span)),
        _metric("Avg monthly PRs", f"{org.avg_monthly_prs:.2f}"),
        _metric("Avg monthly diff (chars)", f"{org.avg_monthly_diff_chars:.0f}", mono=True),
        _metric("Avg monthly diff (tokens, est.)", str(org.avg_monthly_tokens), mono=True),
        _metric(f"Est. monthly cost ({MODEL_A_LABEL})", f"${org.cost_model_a:.2f}"),
        _metric(f"Est. monthly cost ({MODEL_B_LABEL})", f"${org.cost_model_b:.2f}"),
    ]
    return REPORT_TEMPLATE.substitute(
        org_name=html.escape(data.org_name),
        window=html.escape(data.window),
        generated_at=html.escape(data.generated_at),
        metrics="\n".join(metrics),
        rows="\n".join(_repo_row(repo) for repo in data.repos),
    )


def ensure_dir(path: str) -> None:
    """Create the parent directory of an output file when it is missing."""
    directory = os.path.dirname(path)
    if directory and directory != ".":
        os.makedirs(directory, exist_ok=True)


def write_html_report(path: str, data: ReportData) -> None:
    ensure_dir(path)
    with open(path, "w", encoding="utf-8") as f:
        f.write(render_html(data))


def save_json(path: str, data: Any) -> None:
    """Write JSON to disk using UTF-8 and deterministic formatting."""
    ensure_dir(path)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)


__all__ = [
    "ReportData",
    "REPORT_TEMPLATE",
    "render_html",
    "ensure_dir",
    "write_html_report",
    "save_json",
]
