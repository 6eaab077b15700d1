# © Copyright 2025 Stuart Parmenter
# SPDX-License-Identifier: MIT

"""Error hierarchy for the capture-to-LED pipeline.

Every error carries the pipeline stage it belongs to, so the process-level
handler in main.py can report which stage failed without inspecting types.

Design Pattern:
    Diagnostic detail (device paths, zone ids, underlying errors) is logged where
    the failure happens. The attributes here exist for routing and policy
    decisions (fatal vs. transient), not for logging.
"""


class AmbiwayError(Exception):
    """Base exception for all ambiway errors.

    Attributes:
        stage: Short name of the pipeline stage that failed
        fatal: Whether the error should terminate the process
    """

    stage = "runtime"
    fatal = True


class ConfigurationError(AmbiwayError):
    """Invalid or inconsistent configuration.

    Raised for:
    - Zero or negative LED counts
    - Indentation that leaves no sampling span on an edge
    - Malformed or unreadable configuration files
    - Values failing field validation

    Always raised at startup, before any device or sink is opened.
    """

    stage = "configuration"

    def __init__(self, message: str, key: str | None = None):
        super().__init__(message)
        self.key = key


class NoDisplayServer(AmbiwayError):
    """Monitor geometry could not be read from the display server."""

    stage = "geometry"


class DeviceUnavailable(AmbiwayError):
    """A capture device could not be opened, or failed unrecoverably.

    Attributes:
        source_id: Capture source identifier from configuration
    """

    stage = "device open"

    def __init__(self, message: str, source_id: int | str | None = None):
        super().__init__(message)
        self.source_id = source_id


class CaptureReadError(AmbiwayError):
    """Transient failure reading a single frame.

    Never fatal: the frame source publishes an empty snapshot for the cycle
    and retries.
    """

    stage = "capture"
    fatal = False


class SinkConnectionError(AmbiwayError):
    """The lighting controller refused or dropped the connection at startup."""

    stage = "sink connect"


class SinkError(AmbiwayError):
    """A zone update was rejected or could not be delivered.

    Attributes:
        zone_id: Destination zone of the failed update
    """

    stage = "sink dispatch"

    def __init__(self, message: str, zone_id: int | None = None):
        super().__init__(message)
        self.zone_id = zone_id
