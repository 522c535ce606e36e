"""Tests for prcost.secrets token lookup order.

Run with:
    pytest tests/test_secrets.py --maxfail=1 -v --cov=prcost.secrets --cov-report=term-missing
"""

import json

from prcost import secrets


def test_load_local_secrets_missing_file(tmp_path):
    assert secrets.load_local_secrets(tmp_path / "nope.json") == {}


def test_load_local_secrets_reads_dict(tmp_path):
    path = tmp_path / "local_secrets.json"
    path.write_text(json.dumps({"github_tokens": ["abc"]}), encoding="utf-8")
    assert secrets.load_local_secrets(path) == {"github_tokens": ["abc"]}


def test_load_local_secrets_invalid_json(tmp_path, capsys):
    path = tmp_path / "local_secrets.json"
    path.write_text("{not json", encoding="utf-8")
    assert secrets.load_local_secrets(path) == {}
    assert "[warn]" in capsys.readouterr().err


def test_resolve_github_token_precedence(monkeypatch):
    monkeypatch.setenv("GITHUB_TOKEN", "env")
    assert secrets.resolve_github_token("flag", {"github_tokens": ["file"]}) == "flag"
    assert secrets.resolve_github_token(None, {"github_tokens": ["file"]}) == "env"
    monkeypatch.delenv("GITHUB_TOKEN")
    assert secrets.resolve_github_token(None, {"github_tokens": ["", "file"]}) == "file"
    assert secrets.resolve_github_token(None, {}) is None
