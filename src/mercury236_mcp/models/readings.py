"""Decoded meter readings."""

from __future__ import annotations

from dataclasses import asdict, dataclass


@dataclass(frozen=True)
class PhaseReading:
    """Per-phase values (voltage, current, phase angle)."""

    p1: float
    p2: float
    p3: float

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class PhaseSumReading:
    """Per-phase values plus the aggregate the meter reports first.

    Used for active power, reactive power and cos φ.
    """

    p1: float
    p2: float
    p3: float
    sum: float

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class FrequencyReading:
    """Mains frequency in Hz."""

    frequency: float

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class EnergyReading:
    """Accumulated energy registers, kWh / kvarh."""

    active: float
    reverse_active: float
    reactive: float
    reverse_reactive: float

    def to_dict(self) -> dict:
        return asdict(self)
