# © Copyright 2025 Stuart Parmenter
# SPDX-License-Identifier: MIT

import contextlib
import logging
from collections.abc import Iterator
from pathlib import Path
from typing import Any

import av
import numpy as np
from av.error import FFmpegError
from av.video.frame import VideoFrame

from ..exceptions import CaptureReadError, DeviceUnavailable
from .protocol import CaptureDevice


def resolve_source(source_id: int | str, device_format: str | None) -> tuple[str, str | None]:
    """Map a configured capture source to (url, demuxer format).

    Integers (and all-digit strings) name V4L2-style device nodes and use the
    configured demuxer; anything else is a path or URL whose format PyAV detects itself.
    """
    if isinstance(source_id, int) or (isinstance(source_id, str) and source_id.strip().isdigit()):
        return f"/dev/video{int(source_id)}", device_format
    if source_id.startswith("file://"):
        return source_id[len("file://") :], None
    return source_id, None


def open_stream(url: str, device_format: str | None, options: dict[str, str] | None = None):
    """Open a capture container and its first video stream."""
    options = options or {}

    # Local paths: check existence first to avoid an opaque demuxer error
    if "://" not in url and not Path(url).exists():
        raise DeviceUnavailable(f"cannot open capture source: {url} does not exist", url)

    try:
        container = av.open(url, mode="r", format=device_format, options=options)
    except (FFmpegError, OSError) as e:
        raise DeviceUnavailable(f"cannot open capture source {url}: {e}", url) from e

    vstream = next((s for s in container.streams if s.type == "video"), None)
    if vstream is None:
        with contextlib.suppress(Exception):
            container.close()
        raise DeviceUnavailable(f"no video stream in capture source {url}", url)

    vstream.thread_type = "AUTO"
    return container, vstream


class PyAvCaptureDevice(CaptureDevice):
    """Capture device backed by PyAV (V4L2 capture cards, cameras, files, streams)."""

    def __init__(self, source_id: int | str, options: dict[str, Any] | None = None, device_format: str | None = "v4l2"):
        super().__init__(source_id, options)
        self.url, self.device_format = resolve_source(source_id, device_format)
        self._container = None
        self._vstream = None
        self._frames: Iterator[VideoFrame] | None = None
        self._frames_decoded = 0

    def describe(self) -> str:
        return self.url

    def open(self) -> None:
        str_opts = {str(k): str(v) for k, v in self.options.items()}
        self._container, self._vstream = open_stream(self.url, self.device_format, str_opts)
        self._frames = self._container.decode(self._vstream)

        cc = getattr(self._vstream, "codec_context", None)
        logging.getLogger("capture").info(
            f"opened {self.url} format={self._container.format.name if self._container.format else 'auto'} "
            f"codec={getattr(cc, 'name', 'unknown')} size={getattr(cc, 'width', '?')}x{getattr(cc, 'height', '?')}"
        )

    def _restart_decoder(self) -> None:
        assert self._container is not None and self._vstream is not None
        self._frames = self._container.decode(self._vstream)

    def _rewind(self) -> None:
        """Seek a finite input back to its start so it behaves like a live feed."""
        assert self._container is not None
        try:
            self._container.seek(0)
        except FFmpegError as e:
            raise DeviceUnavailable(f"capture source {self.url} ended and cannot seek: {e}", self.source_id) from e
        self._restart_decoder()

    def read(self) -> np.ndarray:
        if self._frames is None:
            raise CaptureReadError(f"capture source {self.url} is not open")

        try:
            frame = next(self._frames)
        except StopIteration:
            logging.getLogger("capture").debug(
                f"{self.url} reached end after {self._frames_decoded} frames, rewinding"
            )
            self._rewind()
            raise CaptureReadError(f"end of stream on {self.url}") from None
        except FFmpegError as e:
            # A raising generator is finished; start a fresh one for the retry
            self._restart_decoder()
            raise CaptureReadError(f"decode error on {self.url}: {e}") from e

        self._frames_decoded += 1
        # to_ndarray always returns a newly allocated array
        return frame.to_ndarray(format="bgr24")

    def close(self) -> None:
        container, self._container = self._container, None
        self._frames = None
        self._vstream = None
        if container is not None:
            with contextlib.suppress(Exception):
                container.close()
            logging.getLogger("capture").info(f"closed {self.url} after {self._frames_decoded} frames")
