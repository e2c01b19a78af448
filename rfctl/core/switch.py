"""On/off lifecycle: auto-on, auto-off and liveness-probe debounce."""

from __future__ import annotations

import logging
from collections.abc import Callable

from rfctl.core.accessory import AccessoryContext
from rfctl.core.model import CharacteristicKind, Payload, SwitchConfig
from rfctl.core.probe import LivenessProbe
from rfctl.core.timers import TimerHandle

LOGGER = logging.getLogger(__name__)

PING_GRACE = "ping_grace"
AUTO_OFF = "auto_off"
AUTO_ON = "auto_on"


class SwitchController:
    def __init__(self, config: SwitchConfig, context: AccessoryContext) -> None:
        self.config = config
        self.context = context
        self.name = config.name
        self.data = config.data
        self.state = context.state
        self.timers = context.timers
        self.state_change_in_progress = False
        self.probe: LivenessProbe | None = None
        self.setup_characteristics()

    def setup_characteristics(self) -> None:
        registry = self.context.registry
        registry.add_characteristic(
            CharacteristicKind.ON,
            "switch_state",
            setter=self.set_switch_state,
            on_data=self.data.get("on"),
            off_data=self.data.get("off"),
        )
        if self.context.history is not None:
            registry.add_characteristic(
                CharacteristicKind.LAST_ACTIVATION,
                "last_activation",
                getter=self.context.history.last_activation_seconds,
            )

    def reset(self) -> None:
        self.context.reset()
        self.state_change_in_progress = True

    async def set_switch_state(self, payload: Payload = None, previous_value: object = None) -> None:
        self.state_change_in_progress = True
        self.reset()

        if payload:
            await self.context.perform_send(payload)

        if self.config.stateless:
            self.state.update(switch_state=False)
            self.context.refresh_characteristic_ui(CharacteristicKind.ON)
        else:
            self.check_auto_on_off()

    def check_auto_on_off(self) -> None:
        self.reset()
        self.check_ping_grace()
        self.check_auto_on()
        self.check_auto_off()

    def check_ping_grace(self) -> None:
        ping_grace = self.config.ping_grace
        if not ping_grace:
            self.state_change_in_progress = False
            return

        handle = self.timers.start(PING_GRACE, ping_grace)
        self._after(handle, self._end_ping_grace)

    def _end_ping_grace(self) -> None:
        self.state_change_in_progress = False

    def check_auto_off(self) -> None:
        if not (self.state.switch_state and self.config.enable_auto_off):
            return

        on_duration = self.config.on_duration
        LOGGER.info("%s setSwitchState: (automatically turn off in %s seconds)", self.name, on_duration)
        handle = self.timers.start(AUTO_OFF, on_duration)
        self._after(handle, lambda: self.context.set_characteristic(CharacteristicKind.ON, False))

    def check_auto_on(self) -> None:
        if self.state.switch_state or not self.config.enable_auto_on:
            return

        off_duration = self.config.off_duration
        LOGGER.info("%s setSwitchState: (automatically turn on in %s seconds)", self.name, off_duration)
        handle = self.timers.start(AUTO_ON, off_duration)
        self._after(handle, lambda: self.context.set_characteristic(CharacteristicKind.ON, True))

    def _after(self, handle: TimerHandle, action: Callable[[], None]) -> None:
        async def _wait() -> None:
            if await handle:
                action()

        self.context.registry.spawn(_wait())

    def ping_callback(self, active: bool) -> None:
        if self.state_change_in_progress:
            return

        if self.config.ping_state_only:
            self.state.update(switch_state=bool(active))
            self.context.refresh_characteristic_ui(CharacteristicKind.ON)
            return

        self.context.set_characteristic(CharacteristicKind.ON, bool(active))

    def start_probe(self) -> LivenessProbe | None:
        if not self.config.ping_ip_address:
            return None
        self.probe = LivenessProbe(
            self.config.ping_ip_address,
            self.config.ping_frequency,
            self.ping_callback,
            use_arp=self.config.ping_use_arp,
        )
        self.probe.start()
        return self.probe

    def stop_probe(self) -> None:
        if self.probe is not None:
            self.probe.stop()
            self.probe = None
