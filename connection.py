"""
Blocking TCP stream carrying length-prefixed text messages.
Used by the echo client for its one outbound connection and by the echo
server for every accepted client.
"""

from __future__ import annotations

import logging
import socket
from typing import Tuple

from message import HDR_LEN, decode_utf, pack_message, unpack_length

log = logging.getLogger(__name__)


class Connection:
    """Exclusively owned, duplex stream to one peer."""

    # ------------------------------------------------------------------
    # Construction / state
    # ------------------------------------------------------------------

    def __init__(self, sock: socket.socket):
        self._sock = sock
        self._closed = False
        try:
            self.remote_addr: Tuple[str, int] | None = sock.getpeername()[:2]
        except OSError:
            self.remote_addr = None

    @classmethod
    def open(cls, host: str, port: int) -> "Connection":
        # no timeout: every call blocks until it completes or fails
        sock = socket.create_connection((host, port))
        log.debug("connected to %s:%d", host, port)
        return cls(sock)

    @property
    def closed(self) -> bool:
        return self._closed

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def send(self, data: bytes):
        if self._closed:
            raise OSError("Connection closed")
        self._sock.sendall(data)

    def receive(self, nbytes: int) -> bytes:
        """Read exactly *nbytes*, raising EOFError if the peer closes first."""
        output = bytearray()
        while len(output) < nbytes:
            chunk = self._sock.recv(nbytes - len(output))
            if not chunk:
                raise EOFError(f"connection closed after {len(output)} of {nbytes} bytes")
            output += chunk
        return bytes(output)

    def write_utf(self, text: str):
        blob = pack_message(text)
        self.send(blob)
        log.debug("TX %r (%d bytes)", text, len(blob))

    def read_utf(self) -> str:
        length = unpack_length(self.receive(HDR_LEN))
        text = decode_utf(self.receive(length))
        log.debug("RX %r (%d bytes)", text, HDR_LEN + length)
        return text

    def close(self):
        if self._closed:
            return
        self._closed = True
        self._sock.close()
        log.debug("closed connection to %s", self.remote_addr)

    def shutdown(self):
        """End both directions so a thread blocked in receive() sees EOF."""
        if self._closed:
            return
        self._sock.shutdown(socket.SHUT_RDWR)

    def __repr__(self) -> str:  # pragma: no cover
        state = "closed" if self._closed else "open"
        return f"<Connection {self.remote_addr} {state}>"
