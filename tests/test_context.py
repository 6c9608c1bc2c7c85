"""Tests for discovery.context.ContextDetector and its boundary tables."""

from __future__ import annotations

import asyncio
from datetime import datetime
from unittest.mock import AsyncMock, MagicMock

import pytest

from conftest import AUTUMN_EVENING
from discovery.context import (
    ContextDetector,
    StaticEnvironmentProbe,
    device_type_for_width,
    season_for_month,
    time_of_day_for_hour,
)
from discovery.models import (
    BatteryLevel,
    DeviceType,
    NetworkSpeed,
    Season,
    TimeOfDay,
    UserContext,
)


def _detector(probe=None, when: datetime = AUTUMN_EVENING, **kwargs) -> ContextDetector:
    return ContextDetector(
        probe=probe or StaticEnvironmentProbe(),
        clock=lambda: when,
        **kwargs,
    )


# ---------------------------------------------------------------------------
# Boundary tables
# ---------------------------------------------------------------------------


class TestTimeOfDay:
    @pytest.mark.parametrize(
        "hour, expected",
        [
            (0, TimeOfDay.NIGHT),
            (5, TimeOfDay.NIGHT),
            (6, TimeOfDay.MORNING),
            (11, TimeOfDay.MORNING),
            (12, TimeOfDay.AFTERNOON),
            (17, TimeOfDay.AFTERNOON),
            (18, TimeOfDay.EVENING),
            (21, TimeOfDay.EVENING),
            (22, TimeOfDay.NIGHT),
            (23, TimeOfDay.NIGHT),
        ],
    )
    def test_hour_boundaries(self, hour: int, expected: TimeOfDay) -> None:
        assert time_of_day_for_hour(hour) == expected


class TestSeason:
    @pytest.mark.parametrize(
        "month, expected",
        [
            (12, Season.WINTER),
            (1, Season.WINTER),
            (3, Season.WINTER),
            (4, Season.SPRING),
            (6, Season.SPRING),
            (7, Season.SUMMER),
            (9, Season.SUMMER),
            (10, Season.FALL),
            (11, Season.FALL),
        ],
    )
    def test_month_boundaries(self, month: int, expected: Season) -> None:
        assert season_for_month(month) == expected

    def test_invalid_month_rejected(self) -> None:
        with pytest.raises(ValueError):
            season_for_month(13)


class TestDeviceType:
    def test_breakpoints(self) -> None:
        assert device_type_for_width(375) == DeviceType.MOBILE
        assert device_type_for_width(767) == DeviceType.MOBILE
        assert device_type_for_width(768) == DeviceType.TABLET
        assert device_type_for_width(1023) == DeviceType.TABLET
        assert device_type_for_width(1024) == DeviceType.DESKTOP

    def test_custom_breakpoints(self) -> None:
        assert device_type_for_width(800, mobile_max_width=900) == DeviceType.MOBILE


# ---------------------------------------------------------------------------
# Sampling
# ---------------------------------------------------------------------------


class TestSample:
    def test_clock_fields(self) -> None:
        ctx = asyncio.run(_detector().sample())
        assert ctx.time_of_day == TimeOfDay.EVENING
        assert ctx.season == Season.FALL
        assert ctx.day_of_week == "Wednesday"
        assert ctx.is_weekend is False

    def test_weekend_detected(self) -> None:
        saturday = datetime(2025, 10, 18, 10, 0)
        ctx = asyncio.run(_detector(when=saturday).sample())
        assert ctx.is_weekend is True
        assert ctx.day_of_week == "Saturday"
        assert ctx.time_of_day == TimeOfDay.MORNING

    def test_all_signals_present(self) -> None:
        probe = StaticEnvironmentProbe(width=1440, effective_type="4g", battery=0.9)
        ctx = asyncio.run(_detector(probe).sample())
        assert ctx.device_type == DeviceType.DESKTOP
        assert ctx.network_speed == NetworkSpeed.FAST
        assert ctx.battery_level == BatteryLevel.HIGH

    def test_slow_network_and_low_battery(self) -> None:
        probe = StaticEnvironmentProbe(width=390, effective_type="3g", battery=0.1)
        ctx = asyncio.run(_detector(probe).sample())
        assert ctx.device_type == DeviceType.MOBILE
        assert ctx.network_speed == NetworkSpeed.SLOW
        assert ctx.battery_level == BatteryLevel.LOW

    def test_medium_battery(self) -> None:
        probe = StaticEnvironmentProbe(battery=0.35)
        ctx = asyncio.run(_detector(probe).sample())
        assert ctx.battery_level == BatteryLevel.MEDIUM

    def test_unavailable_signals_are_omitted(self) -> None:
        ctx = asyncio.run(_detector(StaticEnvironmentProbe()).sample())
        assert ctx.device_type is None
        assert ctx.network_speed is None
        assert ctx.battery_level is None

    def test_failing_reads_are_omitted_not_raised(self) -> None:
        probe = MagicMock()
        probe.viewport_width.side_effect = RuntimeError("no window")
        probe.network_effective_type.side_effect = RuntimeError("no navigator")
        probe.battery_level = AsyncMock(side_effect=RuntimeError("no battery api"))
        ctx = asyncio.run(_detector(probe).sample())
        assert ctx.device_type is None
        assert ctx.network_speed is None
        assert ctx.battery_level is None
        assert ctx.time_of_day == TimeOfDay.EVENING

    def test_one_failure_does_not_hide_other_signals(self) -> None:
        probe = MagicMock()
        probe.viewport_width.return_value = 800
        probe.network_effective_type.return_value = "4g"
        probe.battery_level = AsyncMock(side_effect=RuntimeError("denied"))
        ctx = asyncio.run(_detector(probe).sample())
        assert ctx.device_type == DeviceType.TABLET
        assert ctx.network_speed == NetworkSpeed.FAST
        assert ctx.battery_level is None


# ---------------------------------------------------------------------------
# Refresh loop
# ---------------------------------------------------------------------------


class TestRefreshLoop:
    def test_delivers_fresh_snapshots(self) -> None:
        received: list[UserContext] = []

        async def scenario() -> None:
            detector = _detector(refresh_interval_seconds=0.01)
            detector.start_refresh_loop(received.append)
            await asyncio.sleep(0.05)
            await detector.stop_refresh_loop()

        asyncio.run(scenario())
        assert len(received) >= 2
        assert all(ctx.season == Season.FALL for ctx in received)

    def test_idempotent_start(self) -> None:
        async def scenario() -> None:
            detector = _detector(refresh_interval_seconds=9999)
            detector.start_refresh_loop(lambda ctx: None)
            first = detector._refresh_task
            detector.start_refresh_loop(lambda ctx: None)
            assert detector._refresh_task is first
            await detector.stop_refresh_loop()
            assert detector._refresh_task is None

        asyncio.run(scenario())

    def test_callback_error_keeps_loop_running(self) -> None:
        calls = []

        def flaky(ctx: UserContext) -> None:
            calls.append(ctx)
            if len(calls) == 1:
                raise RuntimeError("view crashed")

        async def scenario() -> None:
            detector = _detector(refresh_interval_seconds=0.01)
            detector.start_refresh_loop(flaky)
            await asyncio.sleep(0.05)
            await detector.stop_refresh_loop()

        asyncio.run(scenario())
        assert len(calls) >= 2
