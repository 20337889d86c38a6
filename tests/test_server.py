"""Tests for the MCP server tools."""

from __future__ import annotations

import json
import sys
from unittest.mock import MagicMock, patch

import pytest

from mercury236_mcp.errors import TransportError
from mercury236_mcp.meter import Mercury236
from mercury236_mcp.protocol.framing import build_frame

from conftest import FakeTransport, make_response

ADDR = 154
OK = make_response(ADDR, b"\x00")


def _get_server_module():
    """Import server module with FastMCP mocked to avoid init issues."""
    mock_fastmcp_cls = MagicMock()
    mock_fastmcp_instance = MagicMock()
    # Make the @mcp.tool() decorator a no-op that returns the function unchanged
    mock_fastmcp_instance.tool.return_value = lambda fn: fn
    mock_fastmcp_instance.resource.return_value = lambda fn: fn
    mock_fastmcp_instance.prompt.return_value = lambda fn: fn
    mock_fastmcp_cls.return_value = mock_fastmcp_instance

    with patch.dict(sys.modules, {}):
        with patch("mcp.server.fastmcp.FastMCP", mock_fastmcp_cls):
            # Remove cached server module so it re-imports with our mock
            sys.modules.pop("mercury236_mcp.server", None)
            import mercury236_mcp.server as server_mod

    return server_mod


def _connected_server(*responses: bytes):
    server = _get_server_module()
    transport = FakeTransport(list(responses))
    server._meter = Mercury236(transport, address=ADDR)
    return server, transport


def test_connect_requires_one_endpoint():
    server = _get_server_module()
    assert "error" in server.connect()
    assert "error" in server.connect(host="10.0.0.5", serial_port="/dev/ttyUSB0")


def test_connect_rejects_bad_password():
    server = _get_server_module()
    assert "error" in server.connect(host="10.0.0.5", password="abc")


def test_connect_over_tcp_opens_channel():
    server = _get_server_module()
    transport = FakeTransport([OK])
    transport.endpoint = "10.0.0.5:4196"

    with patch.object(server, "TCPConnection", return_value=transport) as mock_tcp:
        result = server.connect(host="10.0.0.5", address=155)

    mock_tcp.assert_called_once_with("10.0.0.5", 4196)
    assert result == {
        "connected": True,
        "endpoint": "10.0.0.5:4196",
        "address": ADDR,
        "channel_open": True,
    }
    assert transport.sent[0][:2] == bytes([ADDR, 0x01])
    assert server._meter is not None


def test_connect_over_serial():
    server = _get_server_module()
    transport = FakeTransport([OK])
    transport.port = "/dev/ttyUSB0"

    with patch.object(server, "SerialConnection", return_value=transport) as mock_ser:
        result = server.connect(serial_port="/dev/ttyUSB0", baudrate=19200, address=ADDR)

    mock_ser.assert_called_once_with("/dev/ttyUSB0", 19200)
    assert result["endpoint"] == "/dev/ttyUSB0"


def test_connect_failure_closes_transport():
    server = _get_server_module()
    transport = MagicMock()
    transport.send_and_receive.side_effect = TransportError("no response")

    with patch.object(server, "TCPConnection", return_value=transport):
        with pytest.raises(TransportError):
            server.connect(host="10.0.0.5")

    transport.close.assert_called_once()
    assert server._meter is None


def test_disconnect_closes_channel_and_transport():
    server, transport = _connected_server(OK)
    assert server.disconnect() == {"disconnected": True}
    assert transport.sent == [build_frame(ADDR, 0x02)]
    assert transport.closed
    assert server._meter is None


def test_disconnect_releases_transport_on_channel_error():
    server, transport = _connected_server(make_response(ADDR + 2, b"\x00"))
    assert server.disconnect() == {"disconnected": True}
    assert transport.closed


def test_tools_require_connection():
    server = _get_server_module()
    with pytest.raises(RuntimeError):
        server.get_voltage()


def test_get_voltage():
    server, _ = _connected_server(make_response(ADDR, bytes([0x00, 0x64, 0x00] * 3)))
    assert server.get_voltage() == {"p1": 1.0, "p2": 1.0, "p3": 1.0}


def test_get_energy_today():
    server, transport = _connected_server(make_response(ADDR, bytes(16)))
    result = server.get_energy(period="today", tariff=1)
    assert result["period"] == "today"
    assert result["active"] == 0.0
    assert transport.sent == [build_frame(ADDR, 0x05, bytes([0x40, 0x01]))]


def test_get_energy_month():
    server, transport = _connected_server(make_response(ADDR, bytes(16)))
    server.get_energy(period="month", month=7)
    assert transport.sent[0][2] == 0x37


def test_get_energy_validation():
    server, transport = _connected_server()
    assert "error" in server.get_energy(period="decade")
    assert "error" in server.get_energy(period="month")
    assert "error" in server.get_energy(tariff=9)
    assert transport.sent == []


def test_get_snapshot():
    server, _ = _connected_server(make_response(ADDR, b"\x01\x02\xff"))
    assert server.get_snapshot() == {"length": 3, "raw_hex": "01 02 ff"}


def test_get_time():
    payload = bytes([0x00, 0x00, 0x08, 0x01, 0x01, 0x01, 0x26, 0x00])
    server, _ = _connected_server(make_response(ADDR, payload))
    assert server.get_time() == {"time": "2026-01-01T08:00:00"}


def test_get_all_measurements():
    three = bytes([0x00, 0x64, 0x00])
    server, transport = _connected_server(
        make_response(ADDR, three * 3),   # voltage
        make_response(ADDR, three * 3),   # current
        make_response(ADDR, three * 4),   # cos f
        make_response(ADDR, three * 3),   # angle
        make_response(ADDR, bytes([0x00, 0x88, 0x13])),  # frequency
        make_response(ADDR, three * 4),   # power
        make_response(ADDR, three * 4),   # reactive power
    )
    result = server.get_all_measurements()
    assert result["frequency"] == 50.0
    assert result["power_factor"]["sum"] == 0.1
    assert len(transport.sent) == 7


def test_resource_status():
    server = _get_server_module()
    assert json.loads(server.resource_meter_status()) == {"connected": False}

    server, _ = _connected_server()
    status = json.loads(server.resource_meter_status())
    assert status == {"connected": True, "address": ADDR, "state": "idle"}


def test_energy_report_prompt():
    server = _get_server_module()
    assert 'period="today"' in server.energy_report("today")


def test_open_channel_tool():
    server, transport = _connected_server(make_response(156, b"\x00"))
    assert server.open_channel(address=157) == {"channel_open": True, "address": 156}
    assert transport.sent[0][:2] == bytes([156, 0x01])


def test_close_channel_tool():
    server, transport = _connected_server(OK)
    assert server.close_channel() == {"channel_closed": True}
    assert transport.sent == [build_frame(ADDR, 0x02)]


def test_test_channel_tool():
    server, transport = _connected_server(OK)
    assert server.test_channel() == {"ok": True, "address": ADDR}
    assert transport.sent == [build_frame(ADDR, 0x00)]


def test_get_power_factor():
    payload = bytes([0x00, 0xE8, 0x03] + [0x00, 0x84, 0x03] * 3)
    server, transport = _connected_server(make_response(ADDR, payload))
    assert server.get_power_factor() == {"p1": 0.9, "p2": 0.9, "p3": 0.9, "sum": 1.0}
    assert transport.sent == [build_frame(ADDR, 0x08, b"\x16\x30")]


def test_resource_measurements():
    three = bytes([0x00, 0x64, 0x00])
    server, transport = _connected_server(
        make_response(ADDR, three * 3),
        make_response(ADDR, three * 3),
        make_response(ADDR, three * 4),
        make_response(ADDR, three * 3),
        make_response(ADDR, bytes([0x00, 0x88, 0x13])),
        make_response(ADDR, three * 4),
        make_response(ADDR, three * 4),
    )
    data = json.loads(server.resource_measurements())
    assert data["voltage"] == {"p1": 1.0, "p2": 1.0, "p3": 1.0}
    assert data["frequency"] == 50.0
    assert data["power"]["sum"] == 1.0
    assert len(transport.sent) == 7
