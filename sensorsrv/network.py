"""TCP command server that reports rates and streams samples to one client."""

from __future__ import annotations

import enum
import logging
import re
import select
import socket
import struct
import threading
import time
from dataclasses import dataclass
from typing import Iterable, Optional

from sensorsrv.models import DEFAULT_PORT, SensorId, sensor_from_name
from sensorsrv.ringbuffer import RingBuffer
from sensorsrv.sampler import SensorConfigTable

log = logging.getLogger(__name__)

CMD_BUF_SIZE = 1024
MAX_BATCH = 96
RATES_HEADER = b"RATES\n"
REPLY_OK = b"OK\n"
REPLY_ERR = b"ERR\n"

_RATE_STRUCT = struct.Struct("<II")
_RECV_TIMEOUT = 0.050
_EMPTY_BACKOFF = 0.0001
_ACCEPT_TIMEOUT = 0.2
_C_SPACE = " \t\n\v\f\r"
_NAME_RE = re.compile(r"[^ \t\n\v\f\r]{1,15}")
_UINT_RE = re.compile(r"[+-]?\d+")


class CommandKind(enum.Enum):
    START = "START"
    CONFIGURE = "CONFIGURE"
    STOP = "STOP"
    DISCONNECT = "DISCONNECT"
    SHUTDOWN = "SHUTDOWN"
    INVALID = "INVALID"
    UNKNOWN = "UNKNOWN"


@dataclass(frozen=True)
class Command:
    """A parsed client command; ``sensor`` and ``rate_hz`` only for CONFIGURE."""

    kind: CommandKind
    text: str = ""
    sensor: Optional[SensorId] = None
    rate_hz: Optional[int] = None


class StreamState(enum.Enum):
    IDLE = "idle"
    RUNNING = "running"
    DISCONNECT = "disconnect"


def _parse_configure(text: str) -> Command:
    invalid = Command(CommandKind.INVALID, text)
    rest = text[len("CONFIGURE"):].lstrip(_C_SPACE)
    name = _NAME_RE.match(rest)
    if name is None:
        return invalid
    number = _UINT_RE.match(rest[name.end():].lstrip(_C_SPACE))
    if number is None:
        return invalid
    rate = int(number.group()) % 2**32
    try:
        sensor = sensor_from_name(name.group())
    except ValueError:
        return invalid
    if rate == 0:
        return invalid
    return Command(CommandKind.CONFIGURE, text, sensor, rate)


def parse_command(line: str) -> Command:
    """Parse one command line; anything after the first line break is ignored."""
    text = re.split(r"[\r\n\0]", line, maxsplit=1)[0]
    if text in ("START", "STOP", "DISCONNECT", "SHUTDOWN"):
        return Command(CommandKind(text), text)
    if text.startswith("CONFIGURE"):
        return _parse_configure(text)
    return Command(CommandKind.UNKNOWN, text)


def encode_rates(rates: Iterable[tuple[int, int]]) -> bytes:
    """Encode (sensor id, rate) pairs as consecutive little-endian u32 pairs."""
    return b"".join(
        _RATE_STRUCT.pack(int(sensor_id), rate & 0xFFFFFFFF) for sensor_id, rate in rates
    )


class SensorServer:
    """Serves one client at a time until ``running`` is cleared."""

    def __init__(
        self,
        port: int = DEFAULT_PORT,
        buffer: Optional[RingBuffer] = None,
        table: Optional[SensorConfigTable] = None,
        running: Optional[threading.Event] = None,
    ) -> None:
        if buffer is None or table is None:
            raise ValueError("a ring buffer and a sensor table are required")
        self.port = port
        self.host = ""
        self.buffer = buffer
        self.table = table
        if running is None:
            running = threading.Event()
            running.set()
        self.running = running
        self.listening = threading.Event()
        self.address: Optional[tuple] = None

    def serve(self) -> None:
        """Listen on the port and handle clients; raises OSError if binding fails."""
        log.info("Network thread initialized...")
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as server:
            server.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            server.bind((self.host, self.port))
            server.listen(socket.SOMAXCONN)
            server.settimeout(_ACCEPT_TIMEOUT)
            self.address = server.getsockname()
            self.listening.set()
            log.info("Server listening to port %d...", self.address[1])
            while self.running.is_set():
                try:
                    conn, _peer = server.accept()
                except socket.timeout:
                    continue
                except OSError as exc:
                    if not self.running.is_set():
                        break
                    log.warning("Client connection failed to server port %d: %s",
                                self.address[1], exc)
                    continue
                log.info("Client connected...")
                self.handle_client(conn)

    def handle_client(self, conn: socket.socket) -> None:
        """Run the command and streaming loop for one connection, then close it."""
        state = StreamState.IDLE
        with conn:
            conn.settimeout(None)
            while True:
                state = self._receive(conn, state)
                if state is StreamState.RUNNING:
                    state = self._stream_batch(conn)
                if state is StreamState.DISCONNECT:
                    log.info("Closing client connection...")
                    try:
                        conn.shutdown(socket.SHUT_RDWR)
                    except OSError:
                        pass
                    return

    def _receive(self, conn: socket.socket, state: StreamState) -> StreamState:
        try:
            readable, _, _ = select.select([conn], [], [], _RECV_TIMEOUT)
            if not readable:
                return state
            data = conn.recv(CMD_BUF_SIZE - 1)
        except OSError as exc:
            log.error("recv failed: %s", exc)
            return StreamState.DISCONNECT
        if not data:
            return StreamState.DISCONNECT
        command = parse_command(data.decode("utf-8", errors="replace"))
        log.info("Received command: %s", command.text)
        return self._dispatch(conn, command, state)

    def _dispatch(self, conn: socket.socket, command: Command, state: StreamState) -> StreamState:
        kind = command.kind
        if kind is CommandKind.START:
            rates = self.table.rates()
            for sensor_id, rate in rates:
                log.debug("  Sensor ID %d -> %d Hz", sensor_id, rate)
            self._reply(conn, RATES_HEADER)
            self._reply(conn, encode_rates(rates))
            return StreamState.RUNNING
        if kind is CommandKind.CONFIGURE:
            self.table.configure(command.sensor, command.rate_hz)
            self._reply(conn, REPLY_OK)
            return state
        if kind is CommandKind.INVALID:
            self._reply(conn, REPLY_ERR)
            return state
        if kind is CommandKind.STOP:
            return StreamState.IDLE
        if kind is CommandKind.DISCONNECT:
            return StreamState.DISCONNECT
        if kind is CommandKind.SHUTDOWN:
            self.running.clear()
            return StreamState.DISCONNECT
        log.warning("Unknown command: %s", command.text)
        return state

    @staticmethod
    def _reply(conn: socket.socket, payload: bytes) -> None:
        try:
            conn.sendall(payload)
        except OSError as exc:
            log.error("send failed: %s", exc)

    def _stream_batch(self, conn: socket.socket) -> StreamState:
        batch = self.buffer.drain(MAX_BATCH)
        if not batch:
            time.sleep(_EMPTY_BACKOFF)
            return StreamState.RUNNING
        for sample in batch:
            log.debug("[NET TX] id=%d val=%d ts=%d",
                      sample.sensor_id, sample.value, sample.timestamp)
        try:
            conn.sendall(b"".join(sample.pack() for sample in batch))
        except OSError as exc:
            log.error("send failed: %s", exc)
            return StreamState.DISCONNECT
        return StreamState.RUNNING