"""Token ratio estimation from the diff sample and monthly cost projection."""

from __future__ import annotations

import math
import os
import sys
from dataclasses import dataclass
from typing import Any, Optional, Protocol, Sequence

import tiktoken

TOKENIZER_MODEL = "gpt-4o"
FALLBACK_ENCODING = "cl100k_base"

# USD per million input tokens
PRICE_MODEL_A_PER_MTOK = float(os.getenv("PRICE_MODEL_A_PER_MTOK", "5.0"))  # GPT-4o
PRICE_MODEL_B_PER_MTOK = float(os.getenv("PRICE_MODEL_B_PER_MTOK", "3.0"))  # Claude Sonnet
MODEL_A_LABEL = "GPT-4o"
MODEL_B_LABEL = "Claude 3.5 Sonnet"


class Encoding(Protocol):
    def encode(self, text: str, **kwargs: Any) -> Sequence[int]: ...


@dataclass(frozen=True)
class CostEstimate:
    tokens_per_byte: float = 0.0
    avg_monthly_tokens: int = 0
    cost_model_a: float = 0.0
    cost_model_b: float = 0.0


def load_encoding(model: str = TOKENIZER_MODEL) -> Optional[Encoding]:
    """Return the model's tiktoken encoding, or ``cl100k_base`` for unknown models.

    ``None`` when no encoding can be loaded (e.g. offline with a cold cache).
    """
    try:
        try:
            return tiktoken.encoding_for_model(model)
        except KeyError:
            return tiktoken.get_encoding(FALLBACK_ENCODING)
    except (ValueError, OSError) as exc:
        print(f"[warn] tokenizer unavailable, token estimate set to 0: {exc}", file=sys.stderr)
        return None


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def project_cost(tokens: int, usd_per_mtok: float) -> float:
    return tokens / 1_000_000 * usd_per_mtok


def tokens_per_byte(sample: bytes, encoding: Encoding) -> float:
    if not sample:
        return 0.0
    # Bytes cut at the budget boundary may split a UTF-8 sequence.
    text = sample.decode("utf-8", errors="replace")
    # Diffs may contain literal special-token text such as <|endoftext|>.
    tokens = encoding.encode(text, disallowed_special=())
    return len(tokens) / len(sample)


def estimate_costs(sample: bytes,
                   avg_monthly_diff_chars: float,
                   encoding: Optional[Encoding] = None,
                   *,
                   rate_a: float = PRICE_MODEL_A_PER_MTOK,
                   rate_b: float = PRICE_MODEL_B_PER_MTOK) -> CostEstimate:
    """Project monthly tokens and cost from the sample's token/byte ratio.

    Everything is 0 when the sample is empty, the monthly char rate is 0, the
    sample yields no tokens or no tokenizer can be loaded.
    """
    if not sample or avg_monthly_diff_chars <= 0:
        return CostEstimate()
    if encoding is None:
        encoding = load_encoding()
        if encoding is None:
            return CostEstimate()

    ratio = tokens_per_byte(sample, encoding)
    if ratio <= 0:
        return CostEstimate()
    tokens = round_half_up(ratio * avg_monthly_diff_chars)
    return CostEstimate(
        tokens_per_byte=ratio,
        avg_monthly_tokens=tokens,
        cost_model_a=project_cost(tokens, rate_a),
        cost_model_b=project_cost(tokens, rate_b),
    )


__all__ = [
    "TOKENIZER_MODEL",
    "FALLBACK_ENCODING",
    "PRICE_MODEL_A_PER_MTOK",
    "PRICE_MODEL_B_PER_MTOK",
    "MODEL_A_LABEL",
    "MODEL_B_LABEL",
    "CostEstimate",
    "load_encoding",
    "round_half_up",
    "project_cost",
    "tokens_per_byte",
    "estimate_costs",
]
