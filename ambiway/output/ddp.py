# © Copyright 2025 Stuart Parmenter
# SPDX-License-Identifier: MIT

import asyncio
import contextlib
import logging
import socket
import struct
from collections.abc import Iterator

import numpy as np

from ..exceptions import SinkConnectionError, SinkError
from .protocol import LightingSink, SinkFactory, SinkTarget


# Max payload per DDP packet. 1440 keeps UDP datagrams < 1500B MTU
# (IP+UDP+DDP header overhead), reducing fragmentation on typical links.
DDP_MAX_DATA = 1440

# DDP header layout (big-endian):
#   flags: 0x40 => header present, 0x01 => PUSH (end-of-frame)
#   seq:   1..15 sequence number
#   cfg:   pixel config, 0x0B = RGB888 (TTT=001[RGB], SSS=011[8-bit])
#   dest:  destination id; 0 is reserved, 1 is the default output, so zone n -> n + 1
#   offset: byte offset within the zone buffer
#   length: payload bytes in this packet
DDP_HDR = struct.Struct("!BBB B I H")
DDP_PIXEL_CFG_RGB888 = 0x0B
DDP_DEFAULT_PORT = 4048
DDP_MAX_DEST_ID = 249  # 250+ are reserved (config, status, ...)


class DDPSender(asyncio.DatagramProtocol):
    """UDP protocol for sending DDP packets."""

    def __init__(self) -> None:
        self.transport: asyncio.DatagramTransport | None = None
        self.packets_sent = 0
        self.last_error: BaseException | None = None

    def connection_made(self, transport: asyncio.BaseTransport) -> None:
        self.transport = transport  # type: ignore[assignment]  # asyncio DatagramTransport compatibility

    def error_received(self, exc: BaseException) -> None:
        # ICMP port unreachable and friends arrive here, after the send that caused them
        logging.getLogger("ddp").debug(f"error_received: {exc!r}")
        self.last_error = exc

    def connection_lost(self, exc: BaseException | None) -> None:
        if exc:
            logging.getLogger("ddp").error(f"connection_lost: {exc!r}")
        self.transport = None

    def sendto(self, data: bytes, addr) -> None:
        if self.transport is None:
            raise SinkError("DDP transport is closed")
        self.transport.sendto(data, addr)
        self.packets_sent += 1


def ddp_iter_packets(rgb_bytes: bytes, dest_id: int, seq: int) -> Iterator[tuple[bytes, int]]:
    """Generate DDP packets for one zone update with incrementing sequence numbers.

    Yields tuples of (packet_bytes, next_sequence_number).
    Sequence numbers wrap in range 1-15.
    """
    payload = memoryview(rgb_bytes)
    total = len(payload)
    off = 0
    push_mask = 0x01
    ddp_base_flags = 0x40  # header present
    current_seq = seq

    while off < total:
        end = min(off + DDP_MAX_DATA, total)
        chunk = payload[off:end]
        is_last = end >= total
        flags = ddp_base_flags | (push_mask if is_last else 0)
        payload_len = len(chunk)

        pkt = bytearray(DDP_HDR.size + payload_len)
        DDP_HDR.pack_into(pkt, 0, flags, current_seq, DDP_PIXEL_CFG_RGB888, dest_id & 0xFF, off, payload_len)
        pkt[DDP_HDR.size :] = chunk.tobytes()

        next_seq = (current_seq % 15) + 1
        yield (bytes(pkt), next_seq)

        current_seq = next_seq
        off = end


class DdpSink(LightingSink):
    """Sink sending each zone update as DDP RGB888 datagrams (WLED and compatible controllers)."""

    default_port = DDP_DEFAULT_PORT

    def __init__(self, target: SinkTarget):
        super().__init__(target)
        self.sender: DDPSender | None = None
        self.transport: asyncio.DatagramTransport | None = None
        self.socket: socket.socket | None = None
        self._addr: tuple | None = None
        self.seq = 1  # sequence 1-15 (0 = not used)

    async def connect(self) -> None:
        """Create the UDP transport."""
        loop = asyncio.get_running_loop()
        try:
            infos = await loop.getaddrinfo(self.target.host, self.port, family=socket.AF_INET, type=socket.SOCK_DGRAM)
            self._addr = infos[0][4]

            sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
            with contextlib.suppress(OSError):
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_SNDBUF, 1 << 20)
            sock.bind(("0.0.0.0", 0))

            self.sender = DDPSender()
            self.transport, _ = await loop.create_datagram_endpoint(  # type: ignore[type-var]  # asyncio transport/protocol tuple unpacking
                lambda: self.sender, sock=sock
            )
        except OSError as e:
            raise SinkConnectionError(f"cannot open DDP output to {self.describe()}: {e}") from e

        self.socket = sock
        logging.getLogger("ddp").info(f"started output to {self.target.host}:{self.port}")
        await super().connect()

    async def close(self) -> None:
        """Clean up UDP transport."""
        await super().close()

        if self.transport:
            self.transport.close()
            self.transport = None

        if self.socket:
            with contextlib.suppress(Exception):
                self.socket.close()
            self.socket = None

        logging.getLogger("ddp").info(
            f"stopped output to {self.target.host}:{self.port} "
            f"packets={self.sender.packets_sent if self.sender else 0} "
            f"updates={self.metrics.updates_sent} leds={self.metrics.leds_sent}"
        )

    async def _send_zone(self, zone_id: int, colors: np.ndarray) -> None:
        if self.sender is None or self._addr is None:
            raise SinkError("DDP sink is not connected", zone_id)

        pending, self.sender.last_error = self.sender.last_error, None
        if pending is not None:
            raise SinkError(f"DDP delivery to {self.describe()} failed: {pending}", zone_id)

        dest_id = zone_id + 1
        if not 1 <= dest_id <= DDP_MAX_DEST_ID:
            raise SinkError(f"zone {zone_id} has no DDP destination id (zones 0..{DDP_MAX_DEST_ID - 1})", zone_id)

        try:
            for pkt, next_seq in ddp_iter_packets(colors.tobytes(), dest_id, self.seq):
                self.sender.sendto(pkt, self._addr)
                self.seq = next_seq
        except OSError as e:
            raise SinkError(f"DDP send to {self.describe()} failed: {e}", zone_id) from e


# Register the DDP sink
SinkFactory.register("ddp", DdpSink)
