"""Serial (RS-485 / optical port) connection to the meter.

Wraps pyserial.  The line is half-duplex: stale input is discarded
before each request, and a response ends when no byte arrives for
``inter_byte_timeout`` seconds.
"""

from __future__ import annotations

import logging

import serial

from ..errors import TransportError
from ..protocol.framing import MAX_RESPONSE_LENGTH

logger = logging.getLogger(__name__)

DEFAULT_BAUDRATE = 9600
READ_TIMEOUT = 1.0
INTER_BYTE_TIMEOUT = 0.05


class SerialConnection:
    """Manages the serial port to the meter.

    Usage::

        conn = SerialConnection("/dev/ttyUSB0", 9600)
        response = conn.send_and_receive(frame_bytes)
        conn.close()
    """

    def __init__(
        self,
        port: str,
        baudrate: int = DEFAULT_BAUDRATE,
        timeout: float = READ_TIMEOUT,
        inter_byte_timeout: float = INTER_BYTE_TIMEOUT,
    ) -> None:
        self._port = port
        self._baudrate = baudrate
        self._timeout = timeout
        self._inter_byte_timeout = inter_byte_timeout
        self._serial: serial.Serial | None = None

    @property
    def connected(self) -> bool:
        return self._serial is not None and self._serial.is_open

    @property
    def port(self) -> str:
        return self._port

    def open(self) -> None:
        """Open the serial port (8N1) if it is not already open.

        Raises:
            TransportError: If the port cannot be opened.
        """
        if self.connected:
            return

        try:
            self._serial = serial.Serial(
                self._port,
                self._baudrate,
                bytesize=serial.EIGHTBITS,
                parity=serial.PARITY_NONE,
                stopbits=serial.STOPBITS_ONE,
                timeout=self._timeout,
                inter_byte_timeout=self._inter_byte_timeout,
            )
        except serial.SerialException as e:
            self._serial = None
            raise TransportError(f"connect error: {self._port}: {e}") from e

        logger.info("Opened %s at %d baud", self._port, self._baudrate)

    def close(self) -> None:
        """Close the serial port."""
        if self._serial is None:
            return

        try:
            self._serial.close()
        except serial.SerialException as e:
            logger.warning("Error closing %s: %s", self._port, e)
        finally:
            self._serial = None
            logger.info("Closed %s", self._port)

    def send_and_receive(self, data: bytes) -> bytes:
        """Send one request frame and read back one response frame.

        Raises:
            TransportError: On open, write or read failure, or if the
                meter does not answer within ``timeout``.
        """
        self.open()
        ser = self._serial

        try:
            ser.reset_input_buffer()
            ser.write(data)
            ser.flush()
            response = ser.read(MAX_RESPONSE_LENGTH)
        except serial.SerialException as e:
            self.close()
            raise TransportError(f"i/o error: {self._port}: {e}") from e

        if not response:
            raise TransportError(f"no response on {self._port}")
        return bytes(response)
