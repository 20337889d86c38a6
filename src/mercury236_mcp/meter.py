"""Request/response session with a Mercury 236 meter.

The session owns the device address and the read password; the
transport owns the connection.  One exchange is in flight at a time and
callers are expected to wait for each call to return before issuing the
next.

Usage::

    meter = Mercury236(TCPConnection("192.168.1.200"), address=154)
    meter.open_channel()
    voltage = meter.get_voltage()
    meter.close_channel()
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from enum import Enum

from .errors import InitProblem
from .models.readings import (
    EnergyReading,
    FrequencyReading,
    PhaseReading,
    PhaseSumReading,
)
from .protocol.commands import (
    DEFAULT_PASSWORD,
    SELECTOR_ANGLE,
    SELECTOR_COS_F,
    SELECTOR_CURRENT,
    SELECTOR_FREQUENCY,
    SELECTOR_POWER,
    SELECTOR_REACTIVE_POWER,
    SELECTOR_SNAPSHOT,
    SELECTOR_VOLTAGE,
    TIME_CURRENT,
    Command,
    EnergyPeriod,
    energy_params,
    open_channel_params,
)
from .protocol.framing import build_frame, is_needs_init, parse_frame
from .protocol.parser import (
    ANGLE_SCALE,
    COS_F_SCALE,
    CURRENT_SCALE,
    POWER_SCALE,
    REACTIVE_POWER_SCALE,
    VOLTAGE_SCALE,
    parse_energy,
    parse_frequency,
    parse_phases,
    parse_phases_with_sum,
    parse_status,
    parse_time,
)
from .transport.base import Transport

logger = logging.getLogger(__name__)


class SessionState(Enum):
    """Where the session is within a single exchange."""

    IDLE = "idle"
    SENDING = "sending"
    AWAITING_RESPONSE = "awaiting_response"
    VALIDATING = "validating"
    NEEDS_INIT = "needs_init"


class Attempt(Enum):
    """Whether an exchange is the caller's request or the post-reinit retry."""

    FIRST = 1
    AFTER_REINIT = 2


def mask_address(address: int) -> int:
    """Clear the low bit; meter addresses are always even."""
    return int(address) & 0xFE


class Mercury236:
    """Client for one meter behind a byte-stream transport.

    Args:
        transport: Object with ``send_and_receive(data) -> bytes``
            returning one complete response frame.
        address: Device network address. Odd values are rounded down.
        password: Six-digit read password.
    """

    def __init__(
        self,
        transport: Transport,
        address: int = 0,
        password: str = DEFAULT_PASSWORD,
    ) -> None:
        self._transport = transport
        self._address = mask_address(address)
        # Validate early so a bad password fails at construction
        open_channel_params(password)
        self._password = password
        self._state = SessionState.IDLE

    @property
    def address(self) -> int:
        return self._address

    @address.setter
    def address(self, value: int) -> None:
        self._address = mask_address(value)

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def transport(self) -> Transport:
        return self._transport

    # ─── EXCHANGE ────────────────────────────────────────────────────

    def _set_state(self, state: SessionState) -> None:
        # The re-open and the retry run under NEEDS_INIT until recovery ends
        if self._state is not SessionState.NEEDS_INIT:
            self._state = state

    def exchange(
        self,
        address: int,
        command: int,
        params: bytes = b"",
        attempt: Attempt = Attempt.FIRST,
    ) -> bytes:
        """Send one request and return the validated response payload.

        If the meter answers with the "channel not open" byte, the
        channel at *address* is opened and the request is repeated once.
        The session address is left untouched.

        Raises:
            WrongLength, WrongCrc, WrongAddress: Invalid response frame.
            InitProblem: The meter still wants initialization after a
                re-open, or refused the re-open.
            TransportError: The transport failed.
        """
        self._set_state(SessionState.SENDING)
        try:
            frame = build_frame(address, command, params)
            logger.debug("-> %s", frame.hex(" "))
            self._set_state(SessionState.AWAITING_RESPONSE)
            response = self._transport.send_and_receive(frame)
            logger.debug("<- %s", bytes(response).hex(" "))

            self._set_state(SessionState.VALIDATING)
            payload = parse_frame(response, address)
        except BaseException:
            self._set_state(SessionState.IDLE)
            raise

        if not is_needs_init(payload):
            self._set_state(SessionState.IDLE)
            return payload

        # Opening the channel cannot itself require an open channel
        if attempt is not Attempt.FIRST or command == Command.OPEN_CHANNEL:
            self._set_state(SessionState.IDLE)
            raise InitProblem("init problem: channel still closed after re-open")

        self._state = SessionState.NEEDS_INIT
        try:
            logger.info(
                "Meter %d requires channel initialization, reopening", address
            )
            if not self._open_channel_at(address):
                raise InitProblem("init problem: meter refused to open the channel")
            return self.exchange(address, command, params, Attempt.AFTER_REINIT)
        finally:
            self._state = SessionState.IDLE

    # ─── CHANNEL ─────────────────────────────────────────────────────

    def _open_channel_at(self, address: int) -> bool:
        response = self.exchange(
            address,
            Command.OPEN_CHANNEL,
            open_channel_params(self._password),
        )
        return parse_status(response)

    def open_channel(self, address: int | None = None) -> bool:
        """Authenticate with the meter, optionally switching address first.

        Returns:
            True if the meter accepted the password.
        """
        if address is not None:
            self.address = address
        return self._open_channel_at(self._address)

    def close_channel(self) -> bool:
        """End the authenticated session."""
        return parse_status(self.exchange(self._address, Command.CLOSE_CHANNEL))

    def test_channel(self) -> bool:
        """Check that the meter answers at the current address."""
        return parse_status(self.exchange(self._address, Command.TEST_CHANNEL))

    # ─── CLOCK ───────────────────────────────────────────────────────

    def get_time(self) -> datetime:
        """Read the meter's clock (local time, no timezone)."""
        response = self.exchange(self._address, Command.READ_TIME, TIME_CURRENT)
        return parse_time(response)

    # ─── ENERGY ──────────────────────────────────────────────────────

    def get_energy(
        self, period: int = 0, month: int = 0, tariff: int = 0
    ) -> EnergyReading:
        """Read an energy accumulation register.

        Args:
            period: An :class:`EnergyPeriod` value.
            month: Month 1-12, only meaningful for ``EnergyPeriod.MONTH``.
            tariff: Tariff number, 0 for all tariffs.
        """
        response = self.exchange(
            self._address,
            Command.READ_ENERGY,
            energy_params(period, month, tariff),
        )
        return parse_energy(response)

    def get_month_energy(self, month: int, tariff: int = 0) -> EnergyReading:
        if not 1 <= month <= 12:
            raise ValueError(f"Month must be 1-12, got {month}")
        return self.get_energy(EnergyPeriod.MONTH, month, tariff)

    def get_current_month_energy(self, tariff: int = 0) -> EnergyReading:
        return self.get_month_energy(date.today().month, tariff)

    def get_last_month_energy(self, tariff: int = 0) -> EnergyReading:
        month = date.today().month - 1 or 12
        return self.get_month_energy(month, tariff)

    def get_today_energy(self, tariff: int = 0) -> EnergyReading:
        return self.get_energy(EnergyPeriod.TODAY, 0, tariff)

    def get_yesterday_energy(self, tariff: int = 0) -> EnergyReading:
        return self.get_energy(EnergyPeriod.YESTERDAY, 0, tariff)

    def get_year_energy(self, tariff: int = 0) -> EnergyReading:
        return self.get_energy(EnergyPeriod.THIS_YEAR, 0, tariff)

    def get_last_year_energy(self, tariff: int = 0) -> EnergyReading:
        return self.get_energy(EnergyPeriod.LAST_YEAR, 0, tariff)

    # ─── MEASUREMENTS ────────────────────────────────────────────────

    def _read_params(self, selector: bytes) -> bytes:
        return self.exchange(self._address, Command.READ_PARAMS, selector)

    def get_voltage(self) -> PhaseReading:
        """Per-phase voltage, V."""
        return parse_phases(self._read_params(SELECTOR_VOLTAGE), VOLTAGE_SCALE)

    def get_current(self) -> PhaseReading:
        """Per-phase current, A."""
        return parse_phases(self._read_params(SELECTOR_CURRENT), CURRENT_SCALE)

    def get_cos_f(self) -> PhaseSumReading:
        """Power factor per phase and overall."""
        return parse_phases_with_sum(
            self._read_params(SELECTOR_COS_F), COS_F_SCALE
        )

    def get_angle(self) -> PhaseReading:
        """Angle between phase voltages, degrees."""
        return parse_phases(self._read_params(SELECTOR_ANGLE), ANGLE_SCALE)

    def get_frequency(self) -> FrequencyReading:
        return parse_frequency(self._read_params(SELECTOR_FREQUENCY))

    def get_power(self) -> PhaseSumReading:
        """Active power per phase and total, W."""
        return parse_phases_with_sum(
            self._read_params(SELECTOR_POWER), POWER_SCALE
        )

    def get_reactive_power(self) -> PhaseSumReading:
        """Reactive power per phase and total, var."""
        return parse_phases_with_sum(
            self._read_params(SELECTOR_REACTIVE_POWER), REACTIVE_POWER_SCALE
        )

    def get_all(self) -> bytes:
        """Raw snapshot of every parameter; the layout is model-specific."""
        return self._read_params(SELECTOR_SNAPSHOT)
