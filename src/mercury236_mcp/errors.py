"""Exceptions raised by the protocol layer and the transports."""

from __future__ import annotations


class Mercury236Error(Exception):
    """Base class for every error reported by this package."""

    default_message = "meter error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)


class WrongLength(Mercury236Error):
    """Response byte count is outside protocol bounds or not what the command expects."""

    default_message = "wrong length"


class WrongCrc(Mercury236Error):
    """Response checksum does not match its contents."""

    default_message = "wrong crc"


class WrongAddress(Mercury236Error):
    """Response came back with a different device address."""

    default_message = "wrong address"


class InitProblem(Mercury236Error):
    """Device keeps asking for channel initialization after a re-open."""

    default_message = "init problem"


class TransportError(Mercury236Error):
    """The byte-stream transport failed to deliver a request or a response."""

    default_message = "transport error"


class WrongData(Mercury236Error):
    """Response has the right shape but its contents cannot be decoded."""

    default_message = "wrong data"
