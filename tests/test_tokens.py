"""Tests for prcost.estimation.tokens with an injected encoding (no tokenizer download).

Run with:
    pytest tests/test_tokens.py --maxfail=1 -v --cov=prcost.estimation.tokens --cov-report=term-missing
"""

from unittest.mock import MagicMock, patch

import pytest

from prcost.estimation import tokens


class FakeEncoding:
    """One token per four characters, rounded up."""

    def __init__(self):
        self.calls = []

    def encode(self, text, **kwargs):
        self.calls.append((text, kwargs))
        return list(range((len(text) + 3) // 4))


def test_tokens_per_byte_uses_sample_length():
    enc = FakeEncoding()
    assert tokens.tokens_per_byte(b"a" * 400, enc) == pytest.approx(0.25)
    assert enc.calls[0][1] == {"disallowed_special": ()}
    assert tokens.tokens_per_byte(b"", enc) == 0


def test_tokens_per_byte_tolerates_truncated_utf8():
    # the last byte is half of a two-byte sequence
    sample = "é".encode("utf-8") * 3 + b"\xc3"
    assert tokens.tokens_per_byte(sample, FakeEncoding()) > 0


def test_estimate_costs_projects_tokens_and_both_models():
    estimate = tokens.estimate_costs(b"x" * 400, 2_000_000, FakeEncoding(), rate_a=5.0, rate_b=3.0)
    assert estimate.avg_monthly_tokens == 500_000
    assert estimate.cost_model_a == pytest.approx(2.5)
    assert estimate.cost_model_b == pytest.approx(1.5)


def test_estimate_costs_rounds_half_up():
    # ratio 0.25, 10 chars -> 2.5 tokens -> 3
    estimate = tokens.estimate_costs(b"x" * 400, 10, FakeEncoding())
    assert estimate.avg_monthly_tokens == 3


@pytest.mark.parametrize("sample, chars", [(b"", 1000.0), (b"abc", 0.0)])
def test_estimate_costs_zero_when_nothing_to_measure(sample, chars):
    enc = MagicMock()
    estimate = tokens.estimate_costs(sample, chars, enc)
    assert estimate == tokens.CostEstimate()
    enc.encode.assert_not_called()


def test_estimate_costs_zero_tokens_is_not_an_error():
    enc = MagicMock()
    enc.encode.return_value = []
    assert tokens.estimate_costs(b"abc", 1000.0, enc) == tokens.CostEstimate()


@patch("prcost.estimation.tokens.load_encoding", return_value=None)
def test_estimate_costs_without_tokenizer(mock_load):
    assert tokens.estimate_costs(b"abc", 1000.0) == tokens.CostEstimate()
    mock_load.assert_called_once()


def test_project_cost_is_linear():
    assert tokens.project_cost(1_000_000, 5.0) == 5.0
    assert tokens.project_cost(0, 3.0) == 0


@patch("prcost.estimation.tokens.tiktoken")
def test_load_encoding_prefers_model(mock_tiktoken):
    mock_tiktoken.encoding_for_model.return_value = "o200k"
    assert tokens.load_encoding() == "o200k"
    mock_tiktoken.encoding_for_model.assert_called_once_with("gpt-4o")
    mock_tiktoken.get_encoding.assert_not_called()


@patch("prcost.estimation.tokens.tiktoken")
def test_load_encoding_falls_back_for_unknown_model(mock_tiktoken):
    mock_tiktoken.encoding_for_model.side_effect = KeyError("unknown")
    mock_tiktoken.get_encoding.return_value = "cl100k"
    assert tokens.load_encoding("mystery-model") == "cl100k"
    mock_tiktoken.get_encoding.assert_called_once_with("cl100k_base")


@patch("prcost.estimation.tokens.tiktoken")
def test_load_encoding_returns_none_when_unavailable(mock_tiktoken, capsys):
    mock_tiktoken.encoding_for_model.side_effect = OSError("offline")
    assert tokens.load_encoding() is None
    assert "[warn]" in capsys.readouterr().err
