from __future__ import annotations

import asyncio

import pytest

from rfctl.core.accessory import AccessoryContext
from rfctl.core.errors import ConfigError
from rfctl.core.model import CharacteristicKind, PositionState, WindowCoveringConfig
from rfctl.core.window_covering import WindowCoveringController

OPEN = bytes.fromhex("d1")
CLOSE = bytes.fromhex("d0")
STOP = bytes.fromhex("d2")


class FakeTransport:
    def __init__(self) -> None:
        self.sent: list[bytes] = []

    async def send(self, payload: bytes) -> None:
        self.sent.append(payload)


def _cover(transport: FakeTransport, data: dict | None = None, **options) -> WindowCoveringController:
    options.setdefault("total_duration_open", 0.2)
    options.setdefault("total_duration_close", 0.2)
    options.setdefault("initial_delay", 0.01)
    if data is None:
        data = {"open": OPEN, "close": CLOSE, "stop": STOP}
    config = WindowCoveringConfig(name="Blinds", data=data, **options)
    return WindowCoveringController(config, AccessoryContext.build(config, transport))


def test_full_open_schedules_travel_and_ticks() -> None:
    async def scenario() -> None:
        transport = FakeTransport()
        cover = _cover(transport, total_duration_open=60, total_duration_close=60)

        first = cover.context.registry.set_characteristic(CharacteristicKind.TARGET_POSITION, 100)
        await asyncio.sleep(0.05)

        auto_stop = cover.timers.get("auto_stop")
        tick = cover.timers.get("position_update")
        assert auto_stop.duration == 60
        assert tick.duration == pytest.approx(0.6)
        assert cover.state.position_state == PositionState.INCREASING
        assert cover.state.current_position == 1
        assert transport.sent == [OPEN]

        second = cover.context.registry.set_characteristic(CharacteristicKind.TARGET_POSITION, 50)
        await asyncio.sleep(0.05)

        assert auto_stop.cancelled
        assert tick.cancelled
        assert first.done()
        assert cover.timers.get("auto_stop") is not auto_stop
        assert cover.timers.get("auto_stop").duration == pytest.approx(49 / 100 * 60)

        cover.reset()
        await asyncio.wait_for(second, timeout=1)
        assert transport.sent == [OPEN, OPEN]

    asyncio.run(scenario())


def test_travel_to_middle_stops_and_publishes_target() -> None:
    async def scenario() -> None:
        transport = FakeTransport()
        cover = _cover(transport)

        await cover.context.registry.set_characteristic(CharacteristicKind.TARGET_POSITION, 50)
        await asyncio.wait_for(cover.context.registry.wait_idle(), timeout=2)

        assert transport.sent == [OPEN, STOP]
        assert cover.state.current_position == 50
        assert cover.state.position_state == PositionState.STOPPED
        assert cover.timers.pending() == []

    asyncio.run(scenario())


def test_endpoint_stop_only_when_configured() -> None:
    async def scenario() -> None:
        quiet = FakeTransport()
        cover = _cover(quiet)
        await cover.context.registry.set_characteristic(CharacteristicKind.TARGET_POSITION, 100)
        assert quiet.sent == [OPEN]
        assert cover.state.current_position == 100

        loud = FakeTransport()
        cover = _cover(loud, send_stop_at_100=True)
        await cover.context.registry.set_characteristic(CharacteristicKind.TARGET_POSITION, 100)
        assert loud.sent == [OPEN, STOP]

    asyncio.run(scenario())


def test_closing_decreases_position() -> None:
    async def scenario() -> None:
        transport = FakeTransport()
        cover = _cover(transport, send_stop_at_0=True)
        cover.state.update(current_position=60, target_position=60)
        positions: list[int] = []
        cover.context.registry.add_listener(
            lambda kind, value: positions.append(value) if kind == CharacteristicKind.CURRENT_POSITION else None
        )

        await cover.context.registry.set_characteristic(CharacteristicKind.TARGET_POSITION, 0)

        assert transport.sent == [CLOSE, STOP]
        assert positions[0] == 59
        assert positions == sorted(positions, reverse=True)
        assert cover.state.current_position == 0

    asyncio.run(scenario())


def test_position_advances_while_travelling() -> None:
    async def scenario() -> None:
        transport = FakeTransport()
        cover = _cover(transport, total_duration_open=1.0, total_duration_close=1.0)

        task = cover.context.registry.set_characteristic(CharacteristicKind.TARGET_POSITION, 100)
        await asyncio.sleep(0.3)

        assert 1 < cover.state.current_position < 100
        assert cover.state.position_state == PositionState.INCREASING

        await asyncio.wait_for(task, timeout=2)
        assert cover.state.current_position == 100
        assert cover.state.position_state == PositionState.STOPPED

    asyncio.run(scenario())


def test_open_completely_signal_bypasses_timing() -> None:
    async def scenario() -> None:
        transport = FakeTransport()
        full_open = bytes.fromhex("e1")
        cover = _cover(transport, data={"open": OPEN, "close": CLOSE, "stop": STOP, "openCompletely": full_open})

        await cover.context.registry.set_characteristic(CharacteristicKind.TARGET_POSITION, 100)

        assert transport.sent == [full_open]
        assert cover.state.current_position == 100
        assert cover.state.position_state == PositionState.STOPPED
        assert cover.timers.pending() == []

    asyncio.run(scenario())


def test_unchanged_target_is_ignored() -> None:
    async def scenario() -> None:
        transport = FakeTransport()
        cover = _cover(transport)

        await cover.set_target_position(None, cover.state.target_position)

        assert transport.sent == []
        assert cover.timers.pending() == []

    asyncio.run(scenario())


def test_new_target_during_initial_delay_supersedes() -> None:
    async def scenario() -> None:
        transport = FakeTransport()
        cover = _cover(transport, initial_delay=0.05)
        registry = cover.context.registry

        first = registry.set_characteristic(CharacteristicKind.TARGET_POSITION, 30)
        await asyncio.sleep(0.01)
        registry.set_characteristic(CharacteristicKind.TARGET_POSITION, 0)
        await asyncio.wait_for(first, timeout=1)
        await asyncio.wait_for(registry.wait_idle(), timeout=2)

        assert OPEN not in transport.sent
        assert cover.state.current_position == 0

    asyncio.run(scenario())


def test_positions_are_clamped() -> None:
    cover = _cover(FakeTransport())
    cover.state.update(current_position=150, target_position=-5)
    assert cover.state.current_position == 100
    assert cover.state.target_position == 0

    cover.state.update(position_state=PositionState.INCREASING)
    assert cover.up_to_date_position() == 100


def test_missing_travel_duration_is_config_error() -> None:
    with pytest.raises(ConfigError):
        _cover(FakeTransport(), total_duration_open=0)


def test_reset_after_tick_elapsed_stops_tracking() -> None:
    async def scenario() -> None:
        transport = FakeTransport()
        cover = _cover(transport, total_duration_open=2, total_duration_close=2)

        task = cover.context.registry.set_characteristic(CharacteristicKind.TARGET_POSITION, 100)
        while cover.timers.get("position_update") is None:
            await asyncio.sleep(0)
        tick = cover.timers.get("position_update")
        while not tick.done:
            await asyncio.sleep(0)

        cover.reset()
        position = cover.state.current_position
        await asyncio.sleep(0.1)

        assert cover.timers.pending() == []
        assert cover.state.current_position == position
        await asyncio.wait_for(task, timeout=1)
        await asyncio.wait_for(cover.context.registry.wait_idle(), timeout=1)

    asyncio.run(scenario())


def test_stop_tracking_publishes_stopped() -> None:
    async def scenario() -> None:
        transport = FakeTransport()
        cover = _cover(transport, total_duration_open=2, total_duration_close=2)
        updates: list[object] = []
        cover.context.registry.add_listener(lambda kind, value: updates.append((kind, value)))

        task = cover.context.registry.set_characteristic(CharacteristicKind.TARGET_POSITION, 100)
        await asyncio.sleep(0.05)
        assert cover.state.position_state == PositionState.INCREASING

        cover.stop_tracking()
        await asyncio.wait_for(task, timeout=1)

        assert cover.state.position_state == PositionState.STOPPED
        assert updates[-1] == (CharacteristicKind.POSITION_STATE, PositionState.STOPPED)
        assert cover.timers.pending() == []
        assert transport.sent == [OPEN]

    asyncio.run(scenario())
