"""Byte-stream transports carrying protocol frames to the meter."""

from .base import Transport
from .tcp_connection import TCPConnection
from .serial_connection import SerialConnection
