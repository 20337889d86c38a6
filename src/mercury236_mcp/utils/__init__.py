"""Shared helpers."""

from .crc import crc16, crc16_bytes, crc_matches
