"""Tests for prcost.pipeline.report covering HTML rendering and file output.

Run with:
    pytest tests/test_report.py --maxfail=1 -v --cov=prcost.pipeline.report --cov-report=term-missing
"""

import datetime as dt
import json

from prcost.estimation.aggregate import OrgSummary, RepoSummary, TimeRange
from prcost.pipeline import report


def _data(repos=None):
    org = OrgSummary(
        repo_count=2,
        total_prs=3,
        total_diff_chars=600,
        months_span=3,
        avg_monthly_prs=1.0,
        avg_monthly_diff_chars=200.0,
        avg_monthly_tokens=1_234_567,
        cost_model_a=6.172835,
        cost_model_b=3.703701,
    )
    first = dt.datetime(2024, 1, 10, tzinfo=dt.timezone.utc)
    last = dt.datetime(2024, 3, 5, tzinfo=dt.timezone.utc)
    return report.ReportData(
        org_name="acme",
        window="all time",
        generated_at="2024-04-01T00:00:00+00:00",
        org=org,
        repos=repos if repos is not None else [RepoSummary("api", 3, 600, 200.0), RepoSummary("docs", 0, 0, 0.0)],
        time_range=TimeRange(first, last),
    )


def test_render_html_contains_metrics_and_rows():
    page = report.render_html(_data())
    assert "<title>acme - PR Activity &amp; AI Review Cost Report</title>" in page
    assert "Window: all time" in page
    assert "$6.17" in page and "$3.70" in page
    assert "1234567" in page
    assert '<td class="mono">api</td><td>3</td><td class="mono">600</td><td class="mono">200</td>' in page
    assert '<td class="mono">docs</td>' in page


def test_render_html_escapes_names():
    page = report.render_html(_data([RepoSummary("<script>", 1, 1, 1.0)]))
    assert "<script>" not in page
    assert "&lt;script&gt;" in page


def test_write_html_report_creates_directories(tmp_path):
    target = tmp_path / "nested" / "dir" / "report.html"
    report.write_html_report(str(target), _data())
    assert target.read_text(encoding="utf-8").startswith("<!doctype html>")


def test_save_json_round_trip(tmp_path):
    target = tmp_path / "out" / "summary.json"
    report.save_json(str(target), _data().to_dict())
    loaded = json.loads(target.read_text(encoding="utf-8"))
    assert loaded["org"]["months_span"] == 3
    assert loaded["first_pr_created_at"] == "2024-01-10T00:00:00+00:00"
    assert loaded["repos"][0] == {
        "name": "api",
        "total_prs": 3,
        "total_diff_chars": 600,
        "avg_diff_chars_per_pr": 200.0,
    }


def test_to_dict_without_time_range():
    data = _data()
    data.time_range = None
    exported = data.to_dict()
    assert exported["first_pr_created_at"] is None
    assert exported["last_pr_created_at"] is None
