"""Quota-aware retrieval of repositories, pull requests and diffs from GitHub."""
