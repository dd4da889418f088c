# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Per-project ESLint resolution and a persistent lint/fix worker."""

from __future__ import annotations

from importlib import metadata as importlib_metadata

try:
    __version__ = importlib_metadata.version("eslint-relay")
except importlib_metadata.PackageNotFoundError:
    __version__ = "0.0.0"

__all__ = ["__version__"]
