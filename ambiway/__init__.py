# © Copyright 2025 Stuart Parmenter
# SPDX-License-Identifier: MIT

"""Ambient LED lighting from captured screen frames."""

__version__ = "0.1.0"
