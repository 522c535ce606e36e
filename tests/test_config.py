"""Tests for prcost.pipeline.config ensuring defaults, durations and degraded inputs work.

Run with coverage to validate configuration handling:
    pytest tests/test_config.py --maxfail=1 -v --cov=prcost.pipeline.config --cov-report=term-missing
"""

import datetime as dt

import pytest

from prcost.pipeline import config


@pytest.mark.parametrize(
    "raw, seconds",
    [("90s", 90), ("30m", 1800), ("2h", 7200), ("1h30m", 5400), ("500ms", 0.5), ("1.5h", 5400), ("0", 0)],
)
def test_parse_duration(raw, seconds):
    assert config.parse_duration(raw) == pytest.approx(seconds)


@pytest.mark.parametrize("raw", ["abc", "10", "5x", "m5", "1h 30m", ""])
def test_parse_duration_rejects_garbage(raw):
    with pytest.raises(ValueError):
        config.parse_duration(raw)


def test_resolve_max_wait_empty_means_uncapped():
    assert config.resolve_max_wait("") == 0
    assert config.resolve_max_wait(None) == 0


def test_resolve_max_wait_invalid_falls_back_with_warning(capsys):
    assert config.resolve_max_wait("soon") == 3600
    assert "--max-wait-reset" in capsys.readouterr().err


def test_resolve_date_valid_and_invalid(capsys):
    assert config.resolve_date("2024-02-29", "--since") == dt.datetime(2024, 2, 29, tzinfo=dt.timezone.utc)
    assert config.resolve_date("", "--since") is None
    assert config.resolve_date("29/02/2024", "--until") is None
    assert "--until" in capsys.readouterr().err


def test_resolve_max_runtime():
    assert config.resolve_max_runtime("") is None
    assert config.resolve_max_runtime("2h") == 7200
    assert config.resolve_max_runtime("0") is None
    assert config.resolve_max_runtime("forever") is None


def test_missing_required_flags_exit_with_usage():
    with pytest.raises(SystemExit) as excinfo:
        config.parse_args(["--out", "report.html"])
    assert excinfo.value.code == 2


def test_resolve_settings_defaults(monkeypatch):
    monkeypatch.setenv("GITHUB_TOKEN", "env-token")
    settings = config.resolve_settings(config.parse_args(["--org", "acme", "--out", "r.html"]))
    assert settings.org == "acme"
    assert settings.token == "env-token"
    assert settings.window.since is None and settings.window.until is None
    assert settings.policy.eventual_complete is False
    assert settings.policy.max_wait_reset == 3600
    assert settings.policy.sleep_min == pytest.approx(0.2)
    assert settings.policy.sleep_max == pytest.approx(0.8)
    assert settings.policy.retries_non_rate == 10
    assert settings.json_out is None
    assert settings.max_runtime is None


def test_resolve_settings_overrides(monkeypatch):
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)
    args = config.parse_args([
        "--org", "acme", "--out", "r.html",
        "--github-token", "flag-token",
        "--since", "2024-01-01", "--until", "bad-date",
        "--eventual-complete", "--max-wait-reset", "",
        "--sleep-min-ms", "0", "--sleep-max-ms", "0",
        "--retries-nonrate", "3",
        "--json-out", "out/summary.json",
        "--max-runtime", "45m",
    ])
    settings = config.resolve_settings(args)
    assert settings.token == "flag-token"
    assert settings.window.since == dt.datetime(2024, 1, 1, tzinfo=dt.timezone.utc)
    assert settings.window.until is None
    assert settings.policy.eventual_complete is True
    assert settings.policy.max_wait_reset == 0
    assert settings.policy.sleep_max == 0
    assert settings.policy.retries_non_rate == 3
    assert settings.json_out == "out/summary.json"
    assert settings.max_runtime == 2700
