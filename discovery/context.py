"""Context signal detector: samples the environment into a UserContext."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Protocol

from discovery.models import (
    BatteryLevel,
    DeviceType,
    NetworkSpeed,
    Season,
    TimeOfDay,
    UserContext,
)

logger = logging.getLogger(__name__)

# Viewport breakpoints (CSS pixels): below MOBILE is mobile, below TABLET is tablet.
DEFAULT_MOBILE_MAX_WIDTH = 768
DEFAULT_TABLET_MAX_WIDTH = 1024

DEFAULT_REFRESH_INTERVAL_SECONDS = 60 * 60

# (exclusive upper hour, time of day); hours >= 22 wrap back to night
_TIME_OF_DAY_TABLE = [
    (6, TimeOfDay.NIGHT),
    (12, TimeOfDay.MORNING),
    (18, TimeOfDay.AFTERNOON),
    (22, TimeOfDay.EVENING),
]

_SEASON_BY_MONTH = {
    12: Season.WINTER, 1: Season.WINTER, 2: Season.WINTER, 3: Season.WINTER,
    4: Season.SPRING, 5: Season.SPRING, 6: Season.SPRING,
    7: Season.SUMMER, 8: Season.SUMMER, 9: Season.SUMMER,
    10: Season.FALL, 11: Season.FALL,
}

_WEEKDAY_NAMES = (
    "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday",
)


class EnvironmentProbe(Protocol):
    """Read-only access to device and environment signals.

    Every method may return ``None`` (or raise) when the capability is
    unavailable; the detector then omits the corresponding field.
    """

    def viewport_width(self) -> int | None: ...

    def network_effective_type(self) -> str | None: ...

    async def battery_level(self) -> float | None: ...


@dataclass(frozen=True)
class StaticEnvironmentProbe:
    """Probe returning fixed values, e.g. taken from configuration.

    Attributes:
        width: Viewport width in CSS pixels.
        effective_type: Connection type hint such as ``"4g"`` or ``"3g"``.
        battery: Battery charge in [0, 1].
    """

    width: int | None = None
    effective_type: str | None = None
    battery: float | None = None

    def viewport_width(self) -> int | None:
        return self.width

    def network_effective_type(self) -> str | None:
        return self.effective_type

    async def battery_level(self) -> float | None:
        return self.battery


# ---------------------------------------------------------------------------
# Boundary tables
# ---------------------------------------------------------------------------


def time_of_day_for_hour(hour: int) -> TimeOfDay:
    for upper, label in _TIME_OF_DAY_TABLE:
        if hour < upper:
            return label
    return TimeOfDay.NIGHT


def season_for_month(month: int) -> Season:
    """Map a calendar month (1-12) to a season.

    Raises:
        ValueError: If *month* is outside 1-12.
    """
    try:
        return _SEASON_BY_MONTH[month]
    except KeyError:
        raise ValueError(f"Month must be 1-12, got {month!r}") from None


def device_type_for_width(
    width: int,
    mobile_max_width: int = DEFAULT_MOBILE_MAX_WIDTH,
    tablet_max_width: int = DEFAULT_TABLET_MAX_WIDTH,
) -> DeviceType:
    if width < mobile_max_width:
        return DeviceType.MOBILE
    if width < tablet_max_width:
        return DeviceType.TABLET
    return DeviceType.DESKTOP


def network_speed_for_type(effective_type: str) -> NetworkSpeed:
    return NetworkSpeed.FAST if "4g" in effective_type.lower() else NetworkSpeed.SLOW


def battery_level_for_charge(charge: float) -> BatteryLevel:
    if charge < 0.2:
        return BatteryLevel.LOW
    if charge < 0.5:
        return BatteryLevel.MEDIUM
    return BatteryLevel.HIGH


# ---------------------------------------------------------------------------
# Detector
# ---------------------------------------------------------------------------


class ContextDetector:
    """Builds :class:`~discovery.models.UserContext` snapshots.

    :meth:`sample` reads the clock and the probe once and returns a fresh
    immutable value. :meth:`start_refresh_loop` resamples on a fixed
    interval and hands each new snapshot to a callback; the previous
    snapshot is simply replaced by the caller.

    Args:
        probe: Source of device and environment signals.
        clock: Returns the current local time. Defaults to
            :meth:`datetime.now`.
        refresh_interval_seconds: Seconds between refreshes (default: 1 hour).
        mobile_max_width: Viewport widths below this are ``mobile``.
        tablet_max_width: Viewport widths below this (and not mobile) are
            ``tablet``.
    """

    def __init__(
        self,
        probe: EnvironmentProbe,
        clock: Callable[[], datetime] = datetime.now,
        refresh_interval_seconds: float = DEFAULT_REFRESH_INTERVAL_SECONDS,
        mobile_max_width: int = DEFAULT_MOBILE_MAX_WIDTH,
        tablet_max_width: int = DEFAULT_TABLET_MAX_WIDTH,
    ) -> None:
        self._probe = probe
        self._clock = clock
        self._refresh_interval = refresh_interval_seconds
        self._mobile_max_width = mobile_max_width
        self._tablet_max_width = tablet_max_width
        self._refresh_task: asyncio.Task | None = None

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    async def sample(self) -> UserContext:
        """Read every signal once and return a new context snapshot.

        Clock-derived fields are always present. Device, network and battery
        fields are ``None`` when the probe cannot supply them.
        """
        now = self._clock()
        weekday = now.weekday()
        return UserContext(
            time_of_day=time_of_day_for_hour(now.hour),
            day_of_week=_WEEKDAY_NAMES[weekday],
            season=season_for_month(now.month),
            is_weekend=weekday >= 5,
            device_type=self._read_device_type(),
            network_speed=self._read_network_speed(),
            battery_level=await self._read_battery_level(),
        )

    def start_refresh_loop(self, on_context: Callable[[UserContext], None]) -> None:
        """Start a task that resamples every refresh interval.

        Must be called from a running event loop. Safe to call multiple
        times: only one refresh task is ever running.

        Args:
            on_context: Called with each new snapshot.
        """
        if self._refresh_task is not None and not self._refresh_task.done():
            return
        self._refresh_task = asyncio.get_running_loop().create_task(
            self._refresh_loop(on_context), name="context-refresh"
        )
        logger.debug(
            "Context refresh loop started (interval=%ss).", self._refresh_interval
        )

    async def stop_refresh_loop(self) -> None:
        """Cancel the refresh task, if any, and wait for it to finish."""
        task, self._refresh_task = self._refresh_task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _read_device_type(self) -> DeviceType | None:
        try:
            width = self._probe.viewport_width()
        except Exception:
            logger.debug("Viewport width unavailable.", exc_info=True)
            return None
        if width is None:
            return None
        return device_type_for_width(width, self._mobile_max_width, self._tablet_max_width)

    def _read_network_speed(self) -> NetworkSpeed | None:
        try:
            effective_type = self._probe.network_effective_type()
        except Exception:
            logger.debug("Network type unavailable.", exc_info=True)
            return None
        if not effective_type:
            return None
        return network_speed_for_type(effective_type)

    async def _read_battery_level(self) -> BatteryLevel | None:
        try:
            charge = await self._probe.battery_level()
        except Exception:
            logger.debug("Battery status unavailable.", exc_info=True)
            return None
        if charge is None:
            return None
        return battery_level_for_charge(charge)

    async def _refresh_loop(self, on_context: Callable[[UserContext], None]) -> None:
        """Resample on every tick. Runs as an asyncio task."""
        while True:
            await asyncio.sleep(self._refresh_interval)
            try:
                on_context(await self.sample())
            except Exception:
                logger.exception("Context refresh failed; keeping previous context.")
