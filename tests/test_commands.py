"""Tests for command codes and parameter builders."""

import pytest

from mercury236_mcp.protocol.commands import (
    DEFAULT_PASSWORD,
    SELECTOR_SNAPSHOT,
    SELECTOR_VOLTAGE,
    Command,
    EnergyPeriod,
    energy_params,
    open_channel_params,
)


def test_command_values():
    """Verify command codes against the wire protocol."""
    assert Command.TEST_CHANNEL == 0x00
    assert Command.OPEN_CHANNEL == 0x01
    assert Command.CLOSE_CHANNEL == 0x02
    assert Command.READ_TIME == 0x04
    assert Command.READ_ENERGY == 0x05
    assert Command.READ_PARAMS == 0x08


def test_selectors():
    assert SELECTOR_VOLTAGE == b"\x16\x11"
    assert SELECTOR_SNAPSHOT == b"\x14\xa0"


def test_energy_period_values():
    assert EnergyPeriod.TOTAL == 0
    assert EnergyPeriod.THIS_YEAR == 1
    assert EnergyPeriod.LAST_YEAR == 2
    assert EnergyPeriod.MONTH == 3
    assert EnergyPeriod.TODAY == 4
    assert EnergyPeriod.YESTERDAY == 5


def test_open_channel_default_password():
    """Access level 1 followed by the digit values, not ASCII codes."""
    assert DEFAULT_PASSWORD == "111111"
    assert open_channel_params() == bytes([1, 1, 1, 1, 1, 1, 1])


def test_open_channel_custom_password():
    assert open_channel_params("123456") == bytes([1, 1, 2, 3, 4, 5, 6])


@pytest.mark.parametrize("password", ["11111", "1111111", "abcdef", ""])
def test_open_channel_bad_password(password):
    with pytest.raises(ValueError):
        open_channel_params(password)


def test_energy_params_month():
    """Period in the high nibble, month in the low nibble, then tariff."""
    assert energy_params(EnergyPeriod.MONTH, 10, 1) == bytes([0x3A, 0x01])


def test_energy_params_today():
    assert energy_params(EnergyPeriod.TODAY) == bytes([0x40, 0x00])


def test_energy_params_masks_month():
    assert energy_params(EnergyPeriod.MONTH, 0x1C) == bytes([0x3C, 0x00])


def test_energy_params_bounds():
    with pytest.raises(ValueError):
        energy_params(16)
    with pytest.raises(ValueError):
        energy_params(0, 0, 256)
