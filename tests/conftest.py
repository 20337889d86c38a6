"""Shared helpers for mercury236_mcp tests."""

from mercury236_mcp.utils.crc import crc16_bytes


def make_response(address: int, payload: bytes) -> bytes:
    """Build a valid response frame: address + payload + CRC."""
    body = bytes([address]) + bytes(payload)
    return body + crc16_bytes(body)


class FakeTransport:
    """Test double for a transport: canned responses, records sent frames."""

    def __init__(self, responses: list[bytes]):
        self._responses = list(responses)
        self.sent = []
        self.closed = False

    def send_and_receive(self, data: bytes) -> bytes:
        self.sent.append(bytes(data))
        if not self._responses:
            raise AssertionError("unexpected exchange: no canned response left")
        return self._responses.pop(0)

    def close(self) -> None:
        self.closed = True
