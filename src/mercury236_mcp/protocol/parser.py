"""Response payload decoding.

Multi-byte values use the meter's own byte-lane order, which is neither
big nor little endian.  For a 3-byte field ``b0 b1 b2``::

    value = (b0 & 0x3F) << 16 | b2 << 8 | b1

and for a 4-byte field ``b0 b1 b2 b3``::

    value = (b1 & 0x3F) << 24 | b0 << 16 | b3 << 8 | b2

The top two bits of the masked byte carry direction flags and are not
part of the magnitude.
"""

from __future__ import annotations

from datetime import datetime

from ..errors import WrongData, WrongLength
from ..models.readings import (
    EnergyReading,
    FrequencyReading,
    PhaseReading,
    PhaseSumReading,
)

STATUS_LENGTH = 1
TIME_LENGTH = 8
ENERGY_LENGTH = 16
PHASES_LENGTH = 9
PHASES_WITH_SUM_LENGTH = 12
FREQUENCY_LENGTH = 3

ENERGY_SCALE = 1000
VOLTAGE_SCALE = 100
CURRENT_SCALE = 100
COS_F_SCALE = 1000
ANGLE_SCALE = 100
FREQUENCY_SCALE = 100
POWER_SCALE = 100
REACTIVE_POWER_SCALE = 100


def decode_be3(data: bytes, offset: int = 0, scale: int = 1) -> float:
    """Decode a 3-byte fixed-point field starting at *offset*."""
    value = (
        ((data[offset] & 0x3F) << 16)
        | data[offset + 1]
        | (data[offset + 2] << 8)
    )
    return value / scale


def decode_be4(data: bytes, offset: int = 0, scale: int = 1) -> float:
    """Decode a 4-byte fixed-point field starting at *offset*."""
    value = (
        (data[offset] << 16)
        | ((data[offset + 1] & 0x3F) << 24)
        | data[offset + 2]
        | (data[offset + 3] << 8)
    )
    return value / scale


def check_length(payload: bytes, expected: int) -> None:
    """Raise WrongLength unless *payload* is exactly *expected* bytes."""
    if len(payload) != expected:
        raise WrongLength(
            f"wrong length: payload is {len(payload)} bytes, expected {expected}"
        )


def decode_bcd(value: int) -> int:
    """Read the hex digits of a byte as a decimal number (0x59 -> 59)."""
    try:
        return int(f"{value:x}", 10)
    except ValueError:
        raise WrongData(f"wrong data: not a BCD byte: 0x{value:02X}") from None


def parse_status(payload: bytes) -> bool:
    """Parse a one-byte status reply; 0 means success."""
    check_length(payload, STATUS_LENGTH)
    return payload[0] == 0


def parse_time(payload: bytes) -> datetime:
    """Parse the 8-byte clock reply.

    Layout: seconds, minutes, hours, weekday, day, month, year (offset
    from 2000), season flag.  All fields are BCD; weekday and season
    are ignored.

    Raises:
        WrongLength: If the reply is not 8 bytes.
        WrongData: If a field is not BCD or the date does not exist.
    """
    check_length(payload, TIME_LENGTH)
    parts = [decode_bcd(b) for b in payload]
    try:
        return datetime(
            year=2000 + parts[6],
            month=parts[5],
            day=parts[4],
            hour=parts[2],
            minute=parts[1],
            second=parts[0],
        )
    except ValueError as e:
        raise WrongData(f"wrong data: invalid clock reading: {e}") from e


def parse_energy(payload: bytes) -> EnergyReading:
    """Parse the 16-byte energy reply into four registers."""
    check_length(payload, ENERGY_LENGTH)
    return EnergyReading(
        active=decode_be4(payload, 0, ENERGY_SCALE),
        reverse_active=decode_be4(payload, 4, ENERGY_SCALE),
        reactive=decode_be4(payload, 8, ENERGY_SCALE),
        reverse_reactive=decode_be4(payload, 12, ENERGY_SCALE),
    )


def parse_phases(payload: bytes, scale: int) -> PhaseReading:
    """Parse three consecutive 3-byte per-phase values."""
    check_length(payload, PHASES_LENGTH)
    return PhaseReading(
        p1=decode_be3(payload, 0, scale),
        p2=decode_be3(payload, 3, scale),
        p3=decode_be3(payload, 6, scale),
    )


def parse_phases_with_sum(payload: bytes, scale: int) -> PhaseSumReading:
    """Parse an aggregate followed by three per-phase values."""
    check_length(payload, PHASES_WITH_SUM_LENGTH)
    return PhaseSumReading(
        p1=decode_be3(payload, 3, scale),
        p2=decode_be3(payload, 6, scale),
        p3=decode_be3(payload, 9, scale),
        sum=decode_be3(payload, 0, scale),
    )


def parse_frequency(payload: bytes) -> FrequencyReading:
    """Parse the 3-byte frequency reply."""
    check_length(payload, FREQUENCY_LENGTH)
    return FrequencyReading(frequency=decode_be3(payload, 0, FREQUENCY_SCALE))
