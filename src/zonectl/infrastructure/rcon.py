"""Source RCON client implementing :class:`CommandChannel`.

Packet layout (little-endian)::

    int32 length   # bytes that follow this field
    int32 request_id
    int32 type     # 3 = auth, 2 = command (and auth response), 0 = response
    bytes payload  # UTF-8
    b"\\x00\\x00"

A failed authentication answers with request id ``-1``.
"""

from __future__ import annotations

import logging
import socket
import struct
import threading
from typing import NamedTuple

from zonectl.infrastructure.channel import ChannelError

logger = logging.getLogger(__name__)

PACKET_AUTH = 3
PACKET_COMMAND = 2
PACKET_AUTH_RESPONSE = 2
PACKET_RESPONSE = 0

_LENGTH = struct.Struct("<i")
# id + type + two terminators
_MIN_BODY = 10
_MAX_BODY = 4096 + _MIN_BODY


class Packet(NamedTuple):
    request_id: int
    type: int
    payload: str


def encode_packet(request_id: int, packet_type: int, payload: str) -> bytes:
    """Serialize one RCON packet."""
    body = payload.encode("utf-8") + b"\x00\x00"
    return _LENGTH.pack(8 + len(body)) + struct.pack("<ii", request_id, packet_type) + body


def decode_packet(data: bytes) -> Packet:
    """Parse a packet body (everything after the length field).

    Raises:
        ChannelError: If the body is shorter than the fixed header.
    """
    if len(data) < _MIN_BODY:
        msg = f"RCON packet too short: {len(data)} bytes"
        raise ChannelError(msg)
    request_id, packet_type = struct.unpack_from("<ii", data)
    payload = data[8:-2].decode("utf-8", errors="replace")
    return Packet(request_id=request_id, type=packet_type, payload=payload)


class RconChannel:
    """Authenticated RCON connection with one reconnect-and-retry per command."""

    def __init__(
        self,
        host: str,
        port: int,
        password: str,
        *,
        timeout: float = 5.0,
    ) -> None:
        self._host = host
        self._port = port
        self._password = password
        self._timeout = timeout
        self._sock: socket.socket | None = None
        self._request_id = 0
        self._lock = threading.Lock()

    def connect(self) -> None:
        """Open the socket and authenticate.

        Raises:
            ChannelError: On connection failure or rejected password.
        """
        self._disconnect()
        try:
            self._sock = socket.create_connection((self._host, self._port), timeout=self._timeout)
            auth_id = self._send(PACKET_AUTH, self._password)
            response = self._read()
        except OSError as exc:
            self._disconnect()
            msg = f"RCON connection to {self._host}:{self._port} failed: {exc}"
            raise ChannelError(msg) from exc
        if response.request_id == -1 or response.request_id != auth_id:
            self._disconnect()
            msg = "RCON authentication failed"
            raise ChannelError(msg)
        logger.debug("RCON authenticated to %s:%s", self._host, self._port)

    def execute(self, command: str) -> str:
        with self._lock:
            if self._sock is None:
                self.connect()
            try:
                return self._roundtrip(command)
            except (OSError, ChannelError):
                logger.warning("RCON command failed, reconnecting once", exc_info=True)
            self.connect()
            try:
                return self._roundtrip(command)
            except (OSError, ChannelError) as exc:
                self._disconnect()
                msg = f"RCON command failed after reconnect: {exc}"
                raise ChannelError(msg) from exc

    def close(self) -> None:
        with self._lock:
            self._disconnect()

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _roundtrip(self, command: str) -> str:
        self._send(PACKET_COMMAND, command)
        return self._read().payload

    def _send(self, packet_type: int, payload: str) -> int:
        if self._sock is None:
            msg = "RCON socket is not connected"
            raise ChannelError(msg)
        self._request_id += 1
        self._sock.sendall(encode_packet(self._request_id, packet_type, payload))
        return self._request_id

    def _read(self) -> Packet:
        length = _LENGTH.unpack(self._recv_exactly(_LENGTH.size))[0]
        if not _MIN_BODY <= length <= _MAX_BODY:
            msg = f"RCON packet length out of range: {length}"
            raise ChannelError(msg)
        return decode_packet(self._recv_exactly(length))

    def _recv_exactly(self, size: int) -> bytes:
        if self._sock is None:
            msg = "RCON socket is not connected"
            raise ChannelError(msg)
        chunks: list[bytes] = []
        remaining = size
        while remaining:
            chunk = self._sock.recv(remaining)
            if not chunk:
                msg = "RCON connection closed by server"
                raise ChannelError(msg)
            chunks.append(chunk)
            remaining -= len(chunk)
        return b"".join(chunks)

    def _disconnect(self) -> None:
        if self._sock is not None:
            try:
                self._sock.close()
            except OSError:
                logger.debug("Error closing RCON socket", exc_info=True)
            self._sock = None
