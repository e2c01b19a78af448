"""Light control: exclusivity, closest-match signals and stepped transitions."""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from rfctl.core.accessory import AccessoryContext
from rfctl.core.errors import ConfigError
from rfctl.core.model import CharacteristicKind, LightConfig, Payload, SendStep
from rfctl.core.switch import SwitchController

LOGGER = logging.getLogger(__name__)

ON_DELAY = "on_delay"

COLOR_TEMPERATURE_MIN = 140
COLOR_TEMPERATURE_MAX = 500


def data_values(data: Mapping[str, Any], prefix: str) -> list[int]:
    """Numeric suffixes of ``prefix<value>`` keys, in table order."""
    values: list[int] = []
    for key in data:
        if not key.startswith(prefix):
            continue
        suffix = key[len(prefix):]
        try:
            values.append(int(suffix))
        except ValueError:
            continue
    return values


def closest_value(values: Sequence[int], requested: float, *, dimension: str = "value") -> int:
    """Value nearest to ``requested``; on a tie the earlier value wins."""
    if not values:
        raise ConfigError(f"{dimension} keys need to be set.")
    closest = values[0]
    for candidate in values[1:]:
        if abs(candidate - requested) < abs(closest - requested):
            closest = candidate
    return closest


def stepped_indices(
    previous: float | None,
    target: float,
    steps: int,
    *,
    minimum: float = 0,
    maximum: float = 100,
) -> tuple[int, int]:
    """Bucket indices of ``previous`` and ``target`` over ``steps + 1`` buckets.

    Values are rescaled from ``minimum..maximum`` onto 0..100 first; a value
    at or below the bottom of the range maps to bucket 0.
    """
    n = steps + 1
    r = 100 % n
    delta = (100 - r) / n

    def index(value: float | None) -> int:
        if value is None:
            return 0
        scaled = (value - minimum) / (maximum - minimum) * 100
        if scaled <= 0:
            return 0
        return math.floor((scaled - r) / delta)

    return index(previous), index(target)


class LightController(SwitchController):
    config: LightConfig

    def __init__(self, config: LightConfig, context: AccessoryContext) -> None:
        self.exclusives: list[LightController] = []
        self.last_brightness: int | None = None
        super().__init__(config, context)
        self._stepped_config("brightness")
        self._stepped_config("colorTemperature")
        self.state.update(color_temperature=config.default_color_temperature)

    def setup_characteristics(self) -> None:
        super().setup_characteristics()
        registry = self.context.registry
        registry.add_characteristic(
            CharacteristicKind.BRIGHTNESS,
            "brightness",
            setter=self.set_brightness,
            ignore_previous_value=True,
        )
        if self.has_dimension("colorTemperature"):
            registry.add_characteristic(
                CharacteristicKind.COLOR_TEMPERATURE,
                "color_temperature",
                setter=self.set_color_temperature,
                ignore_previous_value=True,
            )
        if data_values(self.data, "hue"):
            registry.add_characteristic(
                CharacteristicKind.HUE,
                "hue",
                setter=self.set_hue,
                ignore_previous_value=True,
            )
            registry.add_characteristic(
                CharacteristicKind.SATURATION,
                "saturation",
                setter=self.set_saturation,
                ignore_previous_value=True,
            )

    def has_dimension(self, dimension: str) -> bool:
        if data_values(self.data, dimension):
            return True
        return any(key in self.data for key in _stepped_keys(dimension))

    def _stepped_config(self, dimension: str) -> tuple[bytes, bytes, int] | None:
        increment_key, decrement_key, steps_key = _stepped_keys(dimension)
        increment = self.data.get(increment_key)
        decrement = self.data.get(decrement_key)
        steps = self.data.get(steps_key)
        if not (increment or decrement or steps):
            return None
        if not (increment and decrement and steps):
            raise ConfigError(
                f"{self.name}: {increment_key}, {decrement_key} and {steps_key} need to be set."
            )
        return increment, decrement, int(steps)

    def set_exclusives_off(self) -> None:
        for peer in self.exclusives:
            if not peer.state.switch_state:
                continue
            LOGGER.info("%s setSwitchState: (%s is configured to be turned off)", self.name, peer.name)
            peer.reset()
            peer.state.update(switch_state=False)
            peer.last_brightness = None
            peer.context.refresh_characteristic_ui(CharacteristicKind.ON)

    async def set_switch_state(self, payload: Payload = None, previous_value: object = None) -> None:
        config = self.config
        state = self.state
        self.reset()

        if not state.switch_state:
            self.last_brightness = None
            if payload:
                await self.context.perform_send(payload)
            self.check_auto_on_off()
            return

        self.set_exclusives_off()
        if config.use_last_known_brightness and state.brightness > 0:
            brightness = state.brightness
        else:
            brightness = config.default_brightness
        if config.use_last_known_color_temperature:
            color_temperature = state.color_temperature
        else:
            color_temperature = config.default_color_temperature

        if brightness != state.brightness or previous_value != state.switch_state:
            LOGGER.info("%s setSwitchState: (brightness: %s)", self.name, brightness)
            state.update(switch_state=False, brightness=brightness)
            update = self.context.set_characteristic(CharacteristicKind.BRIGHTNESS, brightness)
            if update is not None:
                await update

            # Skipped when a newer command turned the light off or changed brightness meanwhile.
            if not self.has_dimension("colorTemperature"):
                return
            if not state.switch_state or state.brightness != brightness:
                return
            LOGGER.info("%s setSwitchState: (color temperature: %s)", self.name, color_temperature)
            update = self.context.set_characteristic(CharacteristicKind.COLOR_TEMPERATURE, color_temperature)
            if update is not None:
                await update
            return

        if payload:
            await self.context.perform_send(payload)
        self.check_auto_on_off()

    async def _turn_on(self, action: str) -> bool:
        """Switch on before a data signal; ``False`` when the on-delay was cancelled."""
        if self.state.switch_state:
            return True

        self.state.update(switch_state=True)
        self.context.refresh_characteristic_ui(CharacteristicKind.ON)
        self.set_exclusives_off()

        on = self.data.get("on")
        if not on:
            return True

        on_delay = self.config.on_delay
        LOGGER.info("%s %s: (turn on, wait %ss then send data)", self.name, action, on_delay)
        await self.context.perform_send(on)
        return await self.timers.start(ON_DELAY, on_delay)

    async def set_saturation(self, payload: Payload = None, previous_value: object = None) -> None:
        return None

    async def set_hue(self, payload: Payload = None, previous_value: object = None) -> None:
        state = self.state
        self.reset()

        if not await self._turn_on("setHue"):
            return

        white = self.data.get("white")
        if state.saturation < 10 and white:
            LOGGER.info("%s setHue: (closest: white)", self.name)
            await self.context.perform_send(white)
        else:
            closest = closest_value(data_values(self.data, "hue"), state.hue, dimension="hue")
            LOGGER.info("%s setHue: (closest: hue%s)", self.name, closest)
            await self.context.perform_send(self.data[f"hue{closest}"])

        self.check_auto_on_off()

    async def set_brightness(self, payload: Payload = None, previous_value: Any = None) -> None:
        state = self.state

        if self.last_brightness == state.brightness:
            if state.brightness > 0:
                state.update(switch_state=True)
            self.check_auto_on_off()
            return

        self.last_brightness = state.brightness
        self.reset()

        if state.brightness <= 0:
            LOGGER.info("%s setBrightness: (off)", self.name)
            await self.context.perform_send(self.data.get("off"))
            self.check_auto_on_off()
            return

        if not await self._turn_on("setBrightness"):
            return

        stepped = self._stepped_config("brightness")
        if stepped is not None:
            await self._send_stepped("setBrightness", stepped, previous_value, state.brightness)
        else:
            closest = closest_value(
                data_values(self.data, "brightness"), state.brightness, dimension="brightness"
            )
            LOGGER.info("%s setBrightness: (closest: %s)", self.name, closest)
            await self.context.perform_send(self.data[f"brightness{closest}"])

        self.check_auto_on_off()

    async def set_color_temperature(self, payload: Payload = None, previous_value: Any = None) -> None:
        state = self.state
        self.reset()

        if not await self._turn_on("setColorTemperature"):
            return

        stepped = self._stepped_config("colorTemperature")
        if stepped is not None:
            await self._send_stepped(
                "setColorTemperature",
                stepped,
                previous_value,
                state.color_temperature,
                minimum=COLOR_TEMPERATURE_MIN,
                maximum=COLOR_TEMPERATURE_MAX,
            )
        else:
            closest = closest_value(
                data_values(self.data, "colorTemperature"),
                state.color_temperature,
                dimension="colorTemperature",
            )
            LOGGER.info("%s setColorTemperature: (closest: %s)", self.name, closest)
            await self.context.perform_send(self.data[f"colorTemperature{closest}"])

        self.check_auto_on_off()

    async def _send_stepped(
        self,
        action: str,
        stepped: tuple[bytes, bytes, int],
        previous: Any,
        target_value: float,
        *,
        minimum: float = 0,
        maximum: float = 100,
    ) -> None:
        increment, decrement, steps = stepped
        previous_value = previous if isinstance(previous, (int, float)) else None
        current, target = stepped_indices(
            previous_value, target_value, steps, minimum=minimum, maximum=maximum
        )
        on_delay = self.config.on_delay
        LOGGER.info(
            "%s %s: (current:%s(%s) target:%s(%s) increment:%s interval:%ss)",
            self.name,
            action,
            previous,
            current,
            target_value,
            target,
            target - current,
            on_delay,
        )
        if current == target:
            return
        await self.context.perform_send(
            [
                SendStep(
                    data=increment if target > current else decrement,
                    interval=on_delay,
                    send_count=abs(target - current),
                )
            ]
        )


def _stepped_keys(dimension: str) -> tuple[str, str, str]:
    capitalized = dimension[0].upper() + dimension[1:]
    return f"{dimension}+", f"{dimension}-", f"available{capitalized}Steps"


def link_exclusives(controllers: Iterable[Any]) -> list[str]:
    """Make exclusivity symmetric between lights; returns warnings for bad references."""
    by_name = {controller.name: controller for controller in controllers}
    warnings: list[str] = []
    for controller in by_name.values():
        if not isinstance(controller, LightController):
            continue
        for peer_name in controller.config.exclusives:
            peer = by_name.get(peer_name)
            if not isinstance(peer, LightController) or peer is controller:
                warning = (
                    f"{controller.name}: No light accessory could be found with the name "
                    f"'{peer_name}'. Update the 'exclusives' value or add a matching light."
                )
                LOGGER.warning(warning)
                warnings.append(warning)
                continue
            if peer not in controller.exclusives:
                controller.exclusives.append(peer)
            if controller not in peer.exclusives:
                peer.exclusives.append(controller)
    return warnings
