"""MCP server entry point for Mercury 236 electricity meters.

Exposes tools, resources, and prompts via the Model Context Protocol
using the official Python MCP SDK with stdio transport.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from mcp.server.fastmcp import FastMCP

from .errors import Mercury236Error
from .meter import Mercury236
from .protocol.commands import DEFAULT_PASSWORD, EnergyPeriod
from .transport.serial_connection import DEFAULT_BAUDRATE, SerialConnection
from .transport.tcp_connection import DEFAULT_TCP_PORT, TCPConnection

logger = logging.getLogger(__name__)

mcp = FastMCP(
    "mercury236",
    instructions="MCP server for Mercury 236 three-phase electricity meters",
)

# Global connection state
_meter: Mercury236 | None = None

ENERGY_PERIODS = (
    "total",
    "this_year",
    "last_year",
    "month",
    "this_month",
    "last_month",
    "today",
    "yesterday",
)


def _get_meter() -> Mercury236:
    """Get the active meter session, raising if not connected."""
    if _meter is None:
        raise RuntimeError(
            "Not connected to a meter. Use the 'connect' tool first."
        )
    return _meter


# ─── CONNECTION TOOLS ─────────────────────────────────────────────────

@mcp.tool()
def connect(
    host: str | None = None,
    port: int = DEFAULT_TCP_PORT,
    serial_port: str | None = None,
    baudrate: int = DEFAULT_BAUDRATE,
    address: int = 0,
    password: str = DEFAULT_PASSWORD,
) -> dict[str, Any]:
    """Connect to a meter over TCP or a serial port and open the channel.

    Give either ``host`` (an RS-485/Ethernet converter) or
    ``serial_port`` (e.g. /dev/ttyUSB0).

    Args:
        host: Converter hostname or IP address.
        port: Converter TCP port (default 4196).
        serial_port: Serial device path.
        baudrate: Serial baud rate (default 9600).
        address: Meter network address; odd values are rounded down.
        password: Six-digit read password.
    """
    global _meter
    if (host is None) == (serial_port is None):
        return {"error": "Give exactly one of 'host' or 'serial_port'"}
    if not password.isdigit() or len(password) != 6:
        return {"error": "Password must be 6 digits"}

    if _meter is not None:
        _release(_meter)
        _meter = None

    if host is not None:
        transport = TCPConnection(host, port)
        endpoint = transport.endpoint
    else:
        transport = SerialConnection(serial_port, baudrate)
        endpoint = transport.port

    meter = Mercury236(transport, address=address, password=password)
    try:
        opened = meter.open_channel()
    except Mercury236Error:
        transport.close()
        raise

    _meter = meter
    logger.info("Meter %d on %s: channel open=%s", meter.address, endpoint, opened)
    return {
        "connected": True,
        "endpoint": endpoint,
        "address": meter.address,
        "channel_open": opened,
    }


def _release(meter: Mercury236) -> None:
    """Close the channel if possible, then always close the transport."""
    try:
        meter.close_channel()
    except Mercury236Error as e:
        logger.warning("Error closing channel: %s", e)
    finally:
        meter.transport.close()


@mcp.tool()
def disconnect() -> dict[str, bool]:
    """Close the meter channel and the underlying connection."""
    global _meter
    if _meter is None:
        return {"disconnected": True}
    _release(_meter)
    _meter = None
    return {"disconnected": True}


# ─── CHANNEL TOOLS ───────────────────────────────────────────────────

@mcp.tool()
def open_channel(address: int | None = None) -> dict[str, Any]:
    """(Re)open the authenticated channel, optionally at a new address.

    Args:
        address: New meter network address; keeps the current one if omitted.
    """
    meter = _get_meter()
    opened = meter.open_channel(address)
    return {"channel_open": opened, "address": meter.address}


@mcp.tool()
def close_channel() -> dict[str, Any]:
    """Close the authenticated channel but keep the connection."""
    return {"channel_closed": _get_meter().close_channel()}


@mcp.tool()
def test_channel() -> dict[str, Any]:
    """Check that the meter answers at the current address."""
    meter = _get_meter()
    return {"ok": meter.test_channel(), "address": meter.address}


# ─── READING TOOLS ───────────────────────────────────────────────────

@mcp.tool()
def get_time() -> dict[str, str]:
    """Read the meter's internal clock."""
    return {"time": _get_meter().get_time().isoformat()}


@mcp.tool()
def get_energy(
    period: str = "total", month: int | None = None, tariff: int = 0
) -> dict[str, Any]:
    """Read accumulated energy (kWh / kvarh).

    Args:
        period: One of total, this_year, last_year, month, this_month,
            last_month, today, yesterday.
        month: Month 1-12, required when period is 'month'.
        tariff: Tariff number 1-4, or 0 for the sum over all tariffs.
    """
    if period not in ENERGY_PERIODS:
        return {"error": f"Unknown period '{period}'. Valid: {list(ENERGY_PERIODS)}"}
    if not 0 <= tariff <= 4:
        return {"error": "Tariff must be 0-4"}

    meter = _get_meter()
    if period == "month":
        if month is None or not 1 <= month <= 12:
            return {"error": "Month must be 1-12 when period is 'month'"}
        reading = meter.get_month_energy(month, tariff)
    elif period == "this_month":
        reading = meter.get_current_month_energy(tariff)
    elif period == "last_month":
        reading = meter.get_last_month_energy(tariff)
    else:
        reading = meter.get_energy(EnergyPeriod[period.upper()], 0, tariff)

    result = reading.to_dict()
    result["period"] = period
    result["tariff"] = tariff
    return result


@mcp.tool()
def get_voltage() -> dict[str, float]:
    """Per-phase voltage in volts."""
    return _get_meter().get_voltage().to_dict()


@mcp.tool()
def get_current() -> dict[str, float]:
    """Per-phase current in amperes."""
    return _get_meter().get_current().to_dict()


@mcp.tool()
def get_power_factor() -> dict[str, float]:
    """Power factor (cos φ) per phase and overall."""
    return _get_meter().get_cos_f().to_dict()


@mcp.tool()
def get_angle() -> dict[str, float]:
    """Angles between phase voltages in degrees."""
    return _get_meter().get_angle().to_dict()


@mcp.tool()
def get_frequency() -> dict[str, float]:
    """Mains frequency in hertz."""
    return _get_meter().get_frequency().to_dict()


@mcp.tool()
def get_power() -> dict[str, float]:
    """Active power per phase and total, in watts."""
    return _get_meter().get_power().to_dict()


@mcp.tool()
def get_reactive_power() -> dict[str, float]:
    """Reactive power per phase and total, in var."""
    return _get_meter().get_reactive_power().to_dict()


@mcp.tool()
def get_snapshot() -> dict[str, Any]:
    """Raw dump of all instantaneous parameters, as hex."""
    data = _get_meter().get_all()
    return {"length": len(data), "raw_hex": data.hex(" ")}


@mcp.tool()
def get_all_measurements() -> dict[str, Any]:
    """Read every instantaneous measurement in one go."""
    return _read_measurements(_get_meter())


def _read_measurements(meter: Mercury236) -> dict[str, Any]:
    return {
        "voltage": meter.get_voltage().to_dict(),
        "current": meter.get_current().to_dict(),
        "power_factor": meter.get_cos_f().to_dict(),
        "angle": meter.get_angle().to_dict(),
        "frequency": meter.get_frequency().frequency,
        "power": meter.get_power().to_dict(),
        "reactive_power": meter.get_reactive_power().to_dict(),
    }


# ─── RESOURCES ───────────────────────────────────────────────────────

@mcp.resource("mercury://meter/status")
def resource_meter_status() -> str:
    """Connection status and address of the current meter."""
    if _meter is None:
        return json.dumps({"connected": False})
    return json.dumps({
        "connected": True,
        "address": _meter.address,
        "state": _meter.state.value,
    })


@mcp.resource("mercury://meter/measurements")
def resource_measurements() -> str:
    """Current instantaneous measurements as JSON."""
    return json.dumps(_read_measurements(_get_meter()), indent=2)


# ─── PROMPTS ─────────────────────────────────────────────────────────

@mcp.prompt()
def energy_report(period: str = "this_month") -> str:
    """Summarize energy consumption for a period.

    Args:
        period: Energy period, e.g. "today", "this_month", "this_year".
    """
    return f"""Use get_energy with period="{period}" for tariff 0 and for each of
tariffs 1-4. Then read get_all_measurements.

Report:
- Total active and reactive energy for the period, and the split per tariff
- Current load per phase and whether the phases are balanced
- Power factor and any phase below 0.9
- Voltage per phase and any deviation beyond ±10% of 230 V"""


# ─── ENTRY POINT ─────────────────────────────────────────────────────

def main():
    """Run the MCP server with stdio transport."""
    logging.basicConfig(level=logging.INFO)
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
