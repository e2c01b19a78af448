"""Window-covering virtual position tracking.

The motor never reports where it is. Position is estimated from the time
elapsed since the open/close signal was sent, assuming the covering moves at
a constant speed over its configured full-travel duration.
"""

from __future__ import annotations

import logging
from typing import Any

from rfctl.core.accessory import AccessoryContext
from rfctl.core.errors import ConfigError
from rfctl.core.model import CharacteristicKind, Payload, PositionState, WindowCoveringConfig
from rfctl.core.timers import TimerHandle

LOGGER = logging.getLogger(__name__)

INITIAL_DELAY = "initial_delay"
POSITION_UPDATE = "position_update"
AUTO_STOP = "auto_stop"

_DESCRIPTIONS = {
    PositionState.INCREASING: "opening",
    PositionState.DECREASING: "closing",
    PositionState.STOPPED: "stopped",
}


class WindowCoveringController:
    def __init__(self, config: WindowCoveringConfig, context: AccessoryContext) -> None:
        for key in ("total_duration_open", "total_duration_close"):
            value = getattr(config, key)
            if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
                raise ConfigError(f"{config.name}: `{key}` is required and should be a positive number.")

        self.config = config
        self.context = context
        self.name = config.name
        self.data = config.data
        self.state = context.state
        self.timers = context.timers
        self.state.update(current_position=0, target_position=0, position_state=PositionState.STOPPED)
        self.setup_characteristics()

    def setup_characteristics(self) -> None:
        registry = self.context.registry
        registry.add_characteristic(CharacteristicKind.CURRENT_POSITION, "current_position")
        registry.add_characteristic(CharacteristicKind.POSITION_STATE, "position_state")
        registry.add_characteristic(
            CharacteristicKind.TARGET_POSITION,
            "target_position",
            setter=self.set_target_position,
        )

    def reset(self) -> None:
        self.context.reset()

    def stop_tracking(self) -> None:
        """Abandon any travel estimate without sending a signal."""
        self.reset()
        if self.state.position_state != PositionState.STOPPED:
            self.state.update(position_state=PositionState.STOPPED)
            self.context.refresh_characteristic_ui(CharacteristicKind.POSITION_STATE)

    async def set_target_position(self, payload: Payload = None, previous_value: Any = None) -> None:
        state = self.state
        self.reset()

        if state.target_position == previous_value and not self.config.allow_resend:
            return

        # Staggers accessories updated together so their RF signals don't collide.
        if not await self.timers.start(INITIAL_DELAY, self.config.initial_delay):
            return

        if await self.check_open_or_close_completely():
            return

        LOGGER.info("%s setTargetPosition: (set new position)", self.name)

        difference = state.target_position - state.current_position
        if difference > 0:
            position_state = PositionState.INCREASING
            payload = self.data.get("open")
        elif difference < 0:
            position_state = PositionState.DECREASING
            payload = self.data.get("close")
        else:
            position_state = PositionState.STOPPED
            payload = self.data.get("stop")
        state.update(position_state=position_state)

        await self.open_or_close(payload)

    def full_open_close_time(self, position_state: PositionState) -> float:
        if position_state == PositionState.INCREASING:
            return self.config.total_duration_open
        if position_state == PositionState.DECREASING:
            return self.config.total_duration_close
        return 0

    def duration_per_percent(self) -> float:
        return self.full_open_close_time(self.state.position_state) / 100

    def up_to_date_position(self) -> int:
        position = self.state.current_position or 0
        if self.state.position_state == PositionState.INCREASING:
            position += 1
        elif self.state.position_state == PositionState.DECREASING:
            position -= 1
        return max(0, min(100, position))

    async def open_or_close(self, payload: Payload) -> None:
        state = self.state
        self.context.refresh_characteristic_ui(CharacteristicKind.POSITION_STATE)

        difference = abs(state.target_position - state.current_position)
        full_open_close_time = self.full_open_close_time(state.position_state)
        total_time = difference / 100 * full_open_close_time

        LOGGER.info(
            "%s setTargetPosition: position change %s%% -> %s%% (%s)",
            self.name,
            state.current_position,
            state.target_position,
            _DESCRIPTIONS[state.position_state],
        )
        LOGGER.info(
            "%s setTargetPosition: %.2fs ((%s / 100) * %s) until auto-stop",
            self.name,
            total_time,
            difference,
            full_open_close_time,
        )

        await self.context.perform_send(payload)

        if state.position_state != PositionState.STOPPED:
            # The first tick only fires after one percent of travel, so publish
            # that percent now and skip it in the tick loop.
            self.context.set_characteristic(CharacteristicKind.CURRENT_POSITION, self.up_to_date_position())
            self.start_updating_current_position()

        if not await self.timers.start(AUTO_STOP, total_time):
            return

        await self.stop_window_covering()
        self.context.set_characteristic(CharacteristicKind.CURRENT_POSITION, state.target_position)

    def start_updating_current_position(self) -> None:
        handle = self.timers.start(POSITION_UPDATE, self.duration_per_percent())
        self.context.registry.spawn(self._update_position_at_intervals(handle))

    async def _update_position_at_intervals(self, handle: TimerHandle) -> None:
        skip_update = True
        while await handle:
            if not skip_update:
                position = self.up_to_date_position()
                self.context.set_characteristic(CharacteristicKind.CURRENT_POSITION, position)
                LOGGER.debug(
                    "%s setTargetPosition: updated position to %s (%s)",
                    self.name,
                    position,
                    _DESCRIPTIONS[self.state.position_state],
                )
            skip_update = False

            if self.state.position_state == PositionState.STOPPED:
                return
            handle = self.timers.start(POSITION_UPDATE, self.duration_per_percent())

    async def stop_window_covering(self) -> None:
        config = self.config
        target = self.state.target_position
        stop = self.data.get("stop")

        LOGGER.info("%s setTargetPosition: (stop window covering)", self.name)
        self.reset()

        if target == 100 and config.send_stop_at_100:
            await self.context.perform_send(stop)
        if target == 0 and config.send_stop_at_0:
            await self.context.perform_send(stop)
        if target not in (0, 100):
            await self.context.perform_send(stop)

        self.state.update(position_state=PositionState.STOPPED)
        self.context.refresh_characteristic_ui(CharacteristicKind.POSITION_STATE)

    async def check_open_or_close_completely(self) -> bool:
        target = self.state.target_position
        if target == 0:
            signal = self.data.get("closeCompletely")
        elif target == 100:
            signal = self.data.get("openCompletely")
        else:
            signal = None

        if not signal:
            return False

        self.context.set_characteristic(CharacteristicKind.CURRENT_POSITION, target)
        await self.context.perform_send(signal)
        await self.stop_window_covering()
        return True
