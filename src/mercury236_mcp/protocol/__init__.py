"""Protocol layer: framing, command codes and response decoding."""

from .framing import build_frame, parse_frame
from .commands import Command, EnergyPeriod
