"""Estimate the monthly cost of AI pull-request review for a GitHub organization."""

__version__ = "0.1.0"
