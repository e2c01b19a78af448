"""Core data models used across loader, controllers, service, and CLI."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field, fields
from enum import Enum, IntEnum
from typing import Any, Union


class PositionState(IntEnum):
    DECREASING = 0
    INCREASING = 1
    STOPPED = 2


class CharacteristicKind(str, Enum):
    ON = "on"
    BRIGHTNESS = "brightness"
    COLOR_TEMPERATURE = "colorTemperature"
    HUE = "hue"
    SATURATION = "saturation"
    CURRENT_POSITION = "currentPosition"
    TARGET_POSITION = "targetPosition"
    POSITION_STATE = "positionState"
    LAST_ACTIVATION = "lastActivation"


@dataclass(frozen=True)
class SendStep:
    """Send ``data`` ``send_count`` times, ``interval`` seconds apart."""

    data: bytes
    interval: float
    send_count: int


Payload = Union[bytes, list[SendStep], None]

DataTable = Mapping[str, Any]


@dataclass(frozen=True)
class SwitchConfig:
    name: str
    data: DataTable
    type: str = "switch"
    ping_ip_address: str | None = None
    ping_use_arp: bool = False
    ping_state_only: bool = False
    ping_frequency: float = 1
    ping_grace: float = 10
    on_duration: float = 60
    off_duration: float = 60
    enable_auto_on: bool = False
    enable_auto_off: bool = False
    stateless: bool = False
    allow_resend: bool = False
    history: bool = False


@dataclass(frozen=True)
class LightConfig(SwitchConfig):
    type: str = "light"
    on_delay: float = 0.1
    default_brightness: int = 100
    default_color_temperature: int = 140
    use_last_known_brightness: bool = False
    use_last_known_color_temperature: bool = False
    exclusives: tuple[str, ...] = ()


@dataclass(frozen=True)
class WindowCoveringConfig:
    name: str
    data: DataTable
    total_duration_open: float
    total_duration_close: float
    type: str = "window-covering"
    initial_delay: float = 0.1
    send_stop_at_0: bool = False
    send_stop_at_100: bool = False
    allow_resend: bool = False
    history: bool = False


AccessoryConfig = Union[SwitchConfig, LightConfig, WindowCoveringConfig]

StateObserver = Callable[[str, Any, Any], None]


def _clamp_position(value: int) -> int:
    return max(0, min(100, int(value)))


@dataclass
class DeviceState:
    """Mutable per-accessory state, written only by the owning controller."""

    switch_state: bool = False
    brightness: int = 0
    color_temperature: int = 140
    hue: int = 0
    saturation: int = 0
    current_position: int = 0
    target_position: int = 0
    position_state: PositionState = PositionState.STOPPED
    last_activation: int | None = None
    observers: list[StateObserver] = field(default_factory=list, repr=False, compare=False)

    def update(self, **changes: Any) -> None:
        names = {f.name for f in fields(self)} - {"observers"}
        for key, value in changes.items():
            if key not in names:
                raise AttributeError(f"DeviceState has no field '{key}'")
            if key in ("current_position", "target_position"):
                value = _clamp_position(value)
            old = getattr(self, key)
            setattr(self, key, value)
            for observer in list(self.observers):
                observer(key, old, value)

    def add_observer(self, observer: StateObserver) -> None:
        self.observers.append(observer)
