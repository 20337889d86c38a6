"""CRC-16 checksum used by the Mercury 236 wire protocol.

Reflected polynomial 0xA001, initial value 0xFFFF, no final XOR.  The
checksum travels on the wire low byte first.
"""

from __future__ import annotations

CRC_POLY = 0xA001
CRC_INIT = 0xFFFF


def crc16(data: bytes) -> int:
    """Compute the CRC-16 register value over *data*.

    Bit-serial implementation, each byte processed LSB first.  Frames
    are never longer than a few hundred bytes so a lookup table buys
    nothing here.
    """
    crc = CRC_INIT
    for byte in data:
        crc ^= byte
        for _ in range(8):
            if crc & 0x0001:
                crc = (crc >> 1) ^ CRC_POLY
            else:
                crc >>= 1
    return crc


def crc16_bytes(data: bytes) -> bytes:
    """Return the CRC of *data* as it appears on the wire: ``[low, high]``."""
    crc = crc16(data)
    return bytes([crc & 0xFF, crc >> 8])


def crc_matches(candidate: bytes, computed: bytes) -> bool:
    """Compare two 2-byte checksums, low byte then high byte."""
    return candidate[0] == computed[0] and candidate[1] == computed[1]
