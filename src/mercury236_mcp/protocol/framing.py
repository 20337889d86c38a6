"""Request frame builder and response frame parser.

Frame layout::

    Request:   +---------+---------+------------------+--------+--------+
               | Address | Command |      Params      | CRC lo | CRC hi |
               | 1 byte  | 1 byte  |  0..N bytes      | 1 byte | 1 byte |
               +---------+---------+------------------+--------+--------+

    Response:  +---------+------------------+--------+--------+
               | Address |     Payload      | CRC lo | CRC hi |
               | 1 byte  |  0..N bytes      | 1 byte | 1 byte |
               +---------+------------------+--------+--------+

- Address: device network address, echoed back by the meter
- CRC: CRC-16 (poly 0xA001) over everything before it, little-endian
"""

from __future__ import annotations

from dataclasses import dataclass

from ..errors import WrongAddress, WrongCrc, WrongLength
from ..utils.crc import crc16_bytes, crc_matches

CRC_LENGTH = 2
MIN_RESPONSE_LENGTH = 2 + CRC_LENGTH
MAX_RESPONSE_LENGTH = 256 + CRC_LENGTH
MAX_REQUEST_LENGTH = MAX_RESPONSE_LENGTH

# Single-byte payload meaning "open the channel first"
NEEDS_INIT = 0x05


@dataclass
class Frame:
    """A validated response frame."""

    address: int
    payload: bytes

    def __repr__(self) -> str:
        return (
            f"Frame(address={self.address}, "
            f"payload={self.payload.hex(' ') if self.payload else '(empty)'})"
        )


def build_frame(address: int, command: int, params: bytes = b"") -> bytes:
    """Build a request frame ready to be written to the transport.

    Args:
        address: Device address (0-255).
        command: Single-byte command code.
        params: Command-specific parameter bytes.

    Raises:
        ValueError: If address or command do not fit in a byte, or the
            frame would exceed the protocol maximum.
    """
    body = bytes([address, command]) + bytes(params)
    if len(body) + CRC_LENGTH > MAX_REQUEST_LENGTH:
        raise ValueError(
            f"Frame must be at most {MAX_REQUEST_LENGTH} bytes, "
            f"got {len(body) + CRC_LENGTH}"
        )
    return body + crc16_bytes(body)


def decode_frame(data: bytes) -> Frame:
    """Check length bounds and CRC of a raw response and split it.

    Raises:
        WrongLength: If the response is shorter than 4 or longer than
            258 bytes.
        WrongCrc: If the trailing checksum does not match.
    """
    if len(data) < MIN_RESPONSE_LENGTH or len(data) > MAX_RESPONSE_LENGTH:
        raise WrongLength(
            f"wrong length: response is {len(data)} bytes, expected "
            f"{MIN_RESPONSE_LENGTH}-{MAX_RESPONSE_LENGTH}"
        )

    body = bytes(data[:-CRC_LENGTH])
    if not crc_matches(data[-CRC_LENGTH:], crc16_bytes(body)):
        raise WrongCrc()

    return Frame(address=body[0], payload=body[1:])


def parse_frame(data: bytes, expected_address: int) -> bytes:
    """Validate a raw response and return its payload.

    The address byte and the CRC are stripped.  Checks run in the order
    length, CRC, address.

    Raises:
        WrongLength, WrongCrc: See :func:`decode_frame`.
        WrongAddress: If the echoed address differs from *expected_address*.
    """
    frame = decode_frame(data)
    if frame.address != expected_address:
        raise WrongAddress(
            f"wrong address: expected {expected_address}, got {frame.address}"
        )
    return frame.payload


def is_needs_init(payload: bytes) -> bool:
    """True if *payload* is the one-byte "channel not open" reply."""
    return len(payload) == 1 and payload[0] == NEEDS_INIT
