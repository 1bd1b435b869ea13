#!/usr/bin/env python
"""Dramatiq worker entry point."""

import os
import shutil
import sys

import structlog

from fleetplan.logging import setup_logging

setup_logging()
logger = structlog.get_logger(__name__)


def main() -> None:
    """Start Dramatiq workers for the fleetplan.tasks package."""
    # Exec into dramatiq CLI with any additional args
    # sys.argv[0] is this script, pass the rest to dramatiq
    # When running via `uv run`, the virtualenv's bin is in PATH
    dramatiq_path = shutil.which("dramatiq")
    if dramatiq_path is None:
        logger.error("Dramatiq executable not found in PATH")
        sys.exit(1)

    logger.info("Starting Dramatiq workers", args=sys.argv[1:])
    os.execv(dramatiq_path, [dramatiq_path, "fleetplan.tasks", *sys.argv[1:]])


if __name__ == "__main__":
    main()
