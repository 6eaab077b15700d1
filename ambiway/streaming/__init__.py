# © Copyright 2025 Stuart Parmenter
# SPDX-License-Identifier: MIT

"""Streaming module for ambiway.

This module handles the per-capture-source pipelines:
- Pipeline options built from the validated settings
- Fixed-cadence extract + dispatch ticks
- Orchestration, failure escalation and ordered teardown
"""

from .core import Pipeline, PipelineState, StreamOrchestrator, open_frame_source
from .options import PipelineOptions


__all__ = ["Pipeline", "PipelineOptions", "PipelineState", "StreamOrchestrator", "open_frame_source"]
