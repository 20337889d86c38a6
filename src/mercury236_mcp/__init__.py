"""Mercury 236 electricity meter client and MCP server."""

__version__ = "0.1.0"

from .errors import (
    Mercury236Error,
    WrongLength,
    WrongCrc,
    WrongAddress,
    InitProblem,
    TransportError,
    WrongData,
)
from .meter import Mercury236
