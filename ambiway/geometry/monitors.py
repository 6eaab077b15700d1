# © Copyright 2025 Stuart Parmenter
# SPDX-License-Identifier: MIT

import logging
from typing import Any

import mss
from mss.exception import ScreenShotError

from ..exceptions import ConfigurationError, NoDisplayServer
from .regions import MonitorGeometry


def _from_override(entries: list[Any]) -> list[MonitorGeometry]:
    monitors = []
    for i, entry in enumerate(entries):
        try:
            width = int(entry["width"])
            height = int(entry["height"])
        except (KeyError, TypeError, ValueError) as e:
            raise ConfigurationError(f"display.monitors[{i}] needs integer width and height", "display.monitors") from e
        if width <= 0 or height <= 0:
            raise ConfigurationError(f"display.monitors[{i}] has invalid size {width}x{height}", "display.monitors")
        monitors.append(MonitorGeometry(width, height))
    return monitors


def list_monitors(override: list[Any] | None = None) -> list[MonitorGeometry]:
    """Pixel dimensions of every attached display, in display-server order.

    A non-empty override (from display.monitors) replaces the query, for
    headless setups where the capture card feeds a screen this host cannot see.
    """
    if override:
        monitors = _from_override(override)
        logging.getLogger("geometry").info(
            f"using configured monitors: {', '.join(f'{m.width}x{m.height}' for m in monitors)}"
        )
        return monitors

    try:
        with mss.mss() as sct:
            # Index 0 is the virtual screen spanning all monitors
            raw = list(sct.monitors[1:])
    except ScreenShotError as e:
        raise NoDisplayServer(f"cannot query monitors: {e}") from e

    if not raw:
        raise NoDisplayServer("display server reported no monitors")

    monitors = [MonitorGeometry(int(m["width"]), int(m["height"])) for m in raw]
    logging.getLogger("geometry").info(f"found monitors: {', '.join(f'{m.width}x{m.height}' for m in monitors)}")
    return monitors
