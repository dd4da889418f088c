# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Out-of-process worker that owns engine resolution and runs jobs."""

from __future__ import annotations

from .loop import serve
from .runner import FIX_COMPLETE, FIX_INCOMPLETE, JobRunner

__all__ = ["FIX_COMPLETE", "FIX_INCOMPLETE", "JobRunner", "serve"]
