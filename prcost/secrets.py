"""Utilities for loading local (gitignored) credentials."""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path
from typing import Any, Dict, Optional

DEFAULT_SECRETS_FILENAME = "local_secrets.json"


def _default_secrets_path() -> Path:
    root = Path(__file__).resolve().parents[1]
    return root / DEFAULT_SECRETS_FILENAME


def load_local_secrets(path: Optional[str | Path] = None) -> Dict[str, Any]:
    """Load secrets from a JSON file; return {} when unavailable or unreadable."""

    candidate = path or os.getenv("LOCAL_SECRETS_FILE") or _default_secrets_path()
    secrets_path = Path(candidate).expanduser()
    if not secrets_path.exists():
        return {}
    try:
        with secrets_path.open("r", encoding="utf-8") as handle:
            data = json.load(handle)
    except (OSError, ValueError) as exc:
        print(f"[warn] ignoring unreadable secrets file {secrets_path}: {exc}", file=sys.stderr)
        return {}
    return data if isinstance(data, dict) else {}


def resolve_github_token(explicit: Optional[str] = None,
                         secrets: Optional[Dict[str, Any]] = None) -> Optional[str]:
    """Pick the token from the CLI flag, then GITHUB_TOKEN, then the secrets file."""
    if explicit:
        return explicit
    env_token = os.getenv("GITHUB_TOKEN")
    if env_token:
        return env_token
    if secrets is None:
        secrets = load_local_secrets()
    tokens = secrets.get("github_tokens") or []
    if isinstance(tokens, list):
        for token in tokens:
            if token:
                return str(token)
    return None


__all__ = ["load_local_secrets", "resolve_github_token", "DEFAULT_SECRETS_FILENAME"]
