"""Command codes, measurement selectors and parameter builders.

Each request carries a single-byte command code; queries under
``Command.READ_PARAMS`` are further narrowed by a 2-byte selector.
"""

from __future__ import annotations

from enum import IntEnum

DEFAULT_PASSWORD = "111111"
PASSWORD_LENGTH = 6

# Access level sent with the open-channel request (1 = read only)
ACCESS_LEVEL_READ = 0x01


class Command(IntEnum):
    """Request command codes."""

    TEST_CHANNEL = 0x00
    OPEN_CHANNEL = 0x01
    CLOSE_CHANNEL = 0x02
    READ_TIME = 0x04
    READ_ENERGY = 0x05
    READ_PARAMS = 0x08


class EnergyPeriod(IntEnum):
    """Energy accumulation register selectors."""

    TOTAL = 0
    THIS_YEAR = 1
    LAST_YEAR = 2
    MONTH = 3
    TODAY = 4
    YESTERDAY = 5


# Selectors for Command.READ_PARAMS
SELECTOR_VOLTAGE = bytes([0x16, 0x11])
SELECTOR_CURRENT = bytes([0x16, 0x21])
SELECTOR_COS_F = bytes([0x16, 0x30])
SELECTOR_ANGLE = bytes([0x16, 0x51])
SELECTOR_FREQUENCY = bytes([0x16, 0x40])
SELECTOR_POWER = bytes([0x16, 0x00])
SELECTOR_REACTIVE_POWER = bytes([0x16, 0x08])
SELECTOR_SNAPSHOT = bytes([0x14, 0xA0])

# Parameter for Command.READ_TIME: current time
TIME_CURRENT = bytes([0x00])


def open_channel_params(password: str = DEFAULT_PASSWORD) -> bytes:
    """Build the open-channel parameters: access level, then password digits.

    Each password character is sent as its numeric value, not its ASCII
    code, so ``"111111"`` becomes ``01 01 01 01 01 01``.

    Raises:
        ValueError: If the password is not six decimal digits.
    """
    if len(password) != PASSWORD_LENGTH or not password.isdigit():
        raise ValueError(
            f"Password must be {PASSWORD_LENGTH} digits, got {password!r}"
        )
    return bytes([ACCESS_LEVEL_READ] + [int(c) for c in password])


def energy_params(period: int = 0, month: int = 0, tariff: int = 0) -> bytes:
    """Build the read-energy parameters.

    Args:
        period: An :class:`EnergyPeriod` value (0-15).
        month: Month 1-12 for ``EnergyPeriod.MONTH``, otherwise 0.
        tariff: Tariff number, 0 for the sum over all tariffs.
    """
    if not 0 <= period <= 0x0F:
        raise ValueError(f"Energy period must be 0-15, got {period}")
    if not 0 <= tariff <= 0xFF:
        raise ValueError(f"Tariff must be 0-255, got {tariff}")
    return bytes([(period << 4) | (month & 0x0F), tariff])
