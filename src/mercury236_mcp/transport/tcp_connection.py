"""TCP connection to a meter behind an RS-485/Ethernet converter.

The converter forwards bytes transparently, so one request produces one
response frame on the socket.  Frames carry no length field; the end of
a response is detected by a short gap in the incoming data.
"""

from __future__ import annotations

import logging
import socket

from ..errors import TransportError
from ..protocol.framing import MAX_RESPONSE_LENGTH

logger = logging.getLogger(__name__)

DEFAULT_TCP_PORT = 4196
READ_TIMEOUT = 1.0
INTER_FRAME_TIMEOUT = 0.05


class TCPConnection:
    """Manages the TCP socket to the converter.

    The socket is opened lazily by the first exchange and closed after
    any I/O failure, so the next exchange reconnects.

    Usage::

        conn = TCPConnection("192.168.1.200", 4196)
        response = conn.send_and_receive(frame_bytes)
        conn.close()
    """

    def __init__(
        self,
        host: str,
        port: int = DEFAULT_TCP_PORT,
        timeout: float = READ_TIMEOUT,
        inter_frame_timeout: float = INTER_FRAME_TIMEOUT,
    ) -> None:
        self._host = host
        self._port = port
        self._timeout = timeout
        self._inter_frame_timeout = inter_frame_timeout
        self._socket: socket.socket | None = None

    @property
    def connected(self) -> bool:
        return self._socket is not None

    @property
    def endpoint(self) -> str:
        return f"{self._host}:{self._port}"

    def open(self) -> None:
        """Connect to the converter if not already connected.

        Raises:
            TransportError: If the connection cannot be established.
        """
        if self._socket is not None:
            return

        try:
            self._socket = socket.create_connection(
                (self._host, self._port), timeout=self._timeout
            )
        except OSError as e:
            raise TransportError(f"connect error: {self.endpoint}: {e}") from e

        logger.info("Connected to %s", self.endpoint)

    def close(self) -> None:
        """Close the socket."""
        if self._socket is None:
            return

        try:
            self._socket.close()
        except OSError as e:
            logger.warning("Error closing socket: %s", e)
        finally:
            self._socket = None
            logger.info("Disconnected from %s", self.endpoint)

    def send_and_receive(self, data: bytes) -> bytes:
        """Send one request frame and read back one response frame.

        Waits up to ``timeout`` seconds for the first bytes, then keeps
        reading until the line stays quiet for ``inter_frame_timeout``
        seconds or the maximum frame length is reached.

        Raises:
            TransportError: On connect, write or read failure, or if the
                meter does not answer.
        """
        self.open()
        sock = self._socket

        try:
            sock.settimeout(self._timeout)
            sock.sendall(data)
            response = self._read_frame(sock)
        except OSError as e:
            self.close()
            raise TransportError(f"i/o error: {self.endpoint}: {e}") from e

        if not response:
            self.close()
            raise TransportError(f"no response from {self.endpoint}")
        return response

    def _read_frame(self, sock: socket.socket) -> bytes:
        try:
            chunk = sock.recv(MAX_RESPONSE_LENGTH)
        except socket.timeout:
            return b""
        if not chunk:
            raise ConnectionResetError("connection closed by peer")

        buf = bytearray(chunk)
        sock.settimeout(self._inter_frame_timeout)
        while len(buf) < MAX_RESPONSE_LENGTH:
            try:
                chunk = sock.recv(MAX_RESPONSE_LENGTH - len(buf))
            except socket.timeout:
                break
            if not chunk:
                break
            buf += chunk
        return bytes(buf)
