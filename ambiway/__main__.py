# © Copyright 2025 Stuart Parmenter
# SPDX-License-Identifier: MIT

import sys

from .main import run


sys.exit(run())
