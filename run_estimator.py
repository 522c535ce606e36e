"""Convenience shim to run the estimator without installing the package."""

from __future__ import annotations

import sys

from prcost.pipeline.runner import main as estimator_main


if __name__ == "__main__":
    estimator_main(sys.argv[1:])
