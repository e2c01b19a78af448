"""Stable public API for building tooling on top of rfctl.

This module is the supported integration surface for third-party callers.
Avoid importing from private/internal modules unless intentionally depending on
non-stable internals.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from rfctl.core.errors import (
    AccessoryNotFoundError,
    CharacteristicError,
    ConfigError,
    ConfigLoadError,
    ConfigValidationError,
    RfctlError,
    TransportConnectError,
    TransportError,
    TransportSendError,
)
from rfctl.core.light import LightController, closest_value, stepped_indices
from rfctl.core.model import (
    AccessoryConfig,
    CharacteristicKind,
    DeviceState,
    LightConfig,
    PositionState,
    SendStep,
    SwitchConfig,
    WindowCoveringConfig,
)
from rfctl.core.service import AccessoryService, Controller
from rfctl.core.switch import SwitchController
from rfctl.core.timers import CancellableDelay, TimerHandle
from rfctl.core.window_covering import WindowCoveringController
from rfctl.transports.base import Transport
from rfctl.transports.ble_gatt import BLEGATTTransport
from rfctl.transports.log import LogTransport

__all__ = [
    "RfctlError",
    "ConfigError",
    "ConfigLoadError",
    "ConfigValidationError",
    "AccessoryNotFoundError",
    "CharacteristicError",
    "TransportError",
    "TransportConnectError",
    "TransportSendError",
    "AccessoryConfig",
    "CharacteristicKind",
    "DeviceState",
    "LightConfig",
    "PositionState",
    "SendStep",
    "SwitchConfig",
    "WindowCoveringConfig",
    "CancellableDelay",
    "TimerHandle",
    "SwitchController",
    "LightController",
    "WindowCoveringController",
    "closest_value",
    "stepped_indices",
    "BLEGATTTransport",
    "LogTransport",
    "Client",
]


class Client:
    """Public client for driving configured accessories.

    Must be used from inside a running event loop: setters run as background
    tasks on that loop and timers are scheduled on it.
    """

    def __init__(
        self,
        configs: Mapping[str, AccessoryConfig] | None = None,
        *,
        transport: Transport | None = None,
        config_path: Path | str | None = None,
    ) -> None:
        self._service = AccessoryService(configs, transport=transport, config_path=config_path)

    @property
    def warnings(self) -> tuple[str, ...]:
        return self._service.warnings

    def list_accessories(self) -> list[Controller]:
        return self._service.list_accessories()

    def get_accessory(self, name: str) -> Controller:
        return self._service.get(name)

    def get_characteristics(self, name: str) -> dict[CharacteristicKind, Any]:
        return self._service.characteristics(name)

    def set_characteristic(
        self,
        name: str,
        characteristic: str | CharacteristicKind,
        value: Any,
    ) -> asyncio.Task[None] | None:
        return self._service.set_value(name, characteristic, value)

    async def send_key(self, name: str, key: str) -> bytes:
        return await self._service.send_key(name, key)

    async def wait_idle(self, name: str | None = None) -> None:
        await self._service.wait_idle(name)

    def start_probes(self) -> int:
        return self._service.start_probes()

    def shutdown(self) -> None:
        self._service.shutdown()

    async def close(self) -> None:
        await self._service.close()
