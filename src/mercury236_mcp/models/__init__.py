"""Data models for decoded meter readings."""

from .readings import (
    PhaseReading,
    PhaseSumReading,
    FrequencyReading,
    EnergyReading,
)
