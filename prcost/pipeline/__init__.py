"""Estimation pipeline: configuration, orchestration and report output."""

from .runner import build_report, harvest_organization, main

__all__ = ["main", "build_report", "harvest_organization"]
