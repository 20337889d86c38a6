"""Interface shared by the transports."""

from __future__ import annotations

from typing import Protocol


class Transport(Protocol):
    """What the session needs from a transport.

    One call sends one request frame and returns one complete response
    frame.  Failures are raised as ``TransportError``.
    """

    def send_and_receive(self, data: bytes) -> bytes:
        ...
