# © Copyright 2025 Stuart Parmenter
# SPDX-License-Identifier: MIT

"""Utility modules for config field definitions and metrics."""

from .fields import FieldDef
from .metrics import PipelineTracker, RateMeter


__all__ = [
    # Fields
    "FieldDef",
    # Metrics
    "PipelineTracker",
    "RateMeter",
]
