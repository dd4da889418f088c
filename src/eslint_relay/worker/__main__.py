# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Entry point for ``python -m eslint_relay.worker``."""

from __future__ import annotations

import logging
import os
import sys

from ..logging import configure_logging
from .loop import serve

LOG_LEVEL_ENV = "ESLINT_RELAY_LOG_LEVEL"


def main() -> int:
    level_name = os.environ.get(LOG_LEVEL_ENV, "WARNING").upper()
    configure_logging(logging.getLevelNamesMapping().get(level_name, logging.WARNING), use_color=False)
    # The supervisor speaks UTF-8 whatever the locale says.
    sys.stdin.reconfigure(encoding="utf-8")
    sys.stdout.reconfigure(encoding="utf-8")
    return serve(sys.stdin, sys.stdout)


if __name__ == "__main__":
    sys.exit(main())
