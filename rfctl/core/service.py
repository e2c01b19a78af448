"""Service layer used by CLI and future frontends."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Union

from rfctl.core.accessory import AccessoryContext
from rfctl.core.config_loader import load_accessories
from rfctl.core.errors import AccessoryNotFoundError, CharacteristicError, ConfigError
from rfctl.core.light import LightController, link_exclusives
from rfctl.core.model import (
    AccessoryConfig,
    CharacteristicKind,
    LightConfig,
    SwitchConfig,
    WindowCoveringConfig,
)
from rfctl.core.switch import SwitchController
from rfctl.core.window_covering import WindowCoveringController
from rfctl.transports.base import Transport
from rfctl.transports.log import LogTransport

LOGGER = logging.getLogger(__name__)

Controller = Union[SwitchController, LightController, WindowCoveringController]

_TRUE_VALUES = {"1", "true", "on", "yes"}
_FALSE_VALUES = {"0", "false", "off", "no"}


def build_controller(config: AccessoryConfig, transport: Transport) -> Controller:
    context = AccessoryContext.build(config, transport)
    if isinstance(config, WindowCoveringConfig):
        return WindowCoveringController(config, context)
    if isinstance(config, LightConfig):
        return LightController(config, context)
    if isinstance(config, SwitchConfig):
        return SwitchController(config, context)
    raise TypeError(f"Unsupported accessory config {type(config).__name__}")


def parse_kind(characteristic: str | CharacteristicKind) -> CharacteristicKind:
    if isinstance(characteristic, CharacteristicKind):
        return characteristic
    lowered = characteristic.replace("_", "").replace("-", "").lower()
    for kind in CharacteristicKind:
        if kind.value.lower() == lowered or kind.name.replace("_", "").lower() == lowered:
            return kind
    available = ", ".join(kind.value for kind in CharacteristicKind)
    raise CharacteristicError(f"Unknown characteristic '{characteristic}'. Available: {available}")


def coerce_value(kind: CharacteristicKind, value: Any) -> Any:
    if kind == CharacteristicKind.ON:
        if isinstance(value, bool):
            return value
        lowered = str(value).strip().lower()
        if lowered in _TRUE_VALUES:
            return True
        if lowered in _FALSE_VALUES:
            return False
        raise CharacteristicError(f"'{value}' is not a valid on/off value")
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise CharacteristicError(f"'{value}' is not a valid {kind.value} value") from exc


class AccessoryService:
    def __init__(
        self,
        configs: Mapping[str, AccessoryConfig] | None = None,
        *,
        transport: Transport | None = None,
        config_path: Path | str | None = None,
    ) -> None:
        load_warnings: tuple[str, ...] = ()
        if configs is None:
            loaded = load_accessories(config_path)
            configs = loaded.configs
            load_warnings = loaded.warnings
        self.transport = transport or LogTransport()
        self.controllers: dict[str, Controller] = {}
        setup_warnings: list[str] = []
        for name, config in configs.items():
            try:
                self.controllers[name] = build_controller(config, self.transport)
            except ConfigError as exc:
                LOGGER.error("Skipping accessory %s: %s", name, exc)
                setup_warnings.append(f"Skipped accessory '{name}': {exc}")
        self.warnings = (
            load_warnings + tuple(setup_warnings) + tuple(link_exclusives(self.controllers.values()))
        )

    def list_accessories(self) -> list[Controller]:
        return sorted(self.controllers.values(), key=lambda c: c.name)

    def get(self, name: str) -> Controller:
        controller = self.controllers.get(name)
        if controller is None:
            lowered = name.lower()
            matches = [c for c in self.controllers.values() if c.name.lower() == lowered]
            if len(matches) == 1:
                return matches[0]
            available = ", ".join(sorted(self.controllers))
            raise AccessoryNotFoundError(f"No accessory named '{name}'. Available: {available}")
        return controller

    def keys(self, name: str) -> tuple[str, ...]:
        return tuple(sorted(self.get(name).data.keys()))

    def characteristics(self, name: str) -> dict[CharacteristicKind, Any]:
        registry = self.get(name).context.registry
        return {kind: registry.get_characteristic(kind) for kind in registry.kinds()}

    def set_value(
        self,
        name: str,
        characteristic: str | CharacteristicKind,
        value: Any,
    ) -> asyncio.Task[None] | None:
        controller = self.get(name)
        kind = parse_kind(characteristic)
        registry = controller.context.registry
        if not registry.has(kind):
            available = ", ".join(k.value for k in registry.kinds())
            raise CharacteristicError(
                f"Accessory '{controller.name}' has no characteristic '{kind.value}'. Available: {available}"
            )
        LOGGER.info("%s set %s -> %s", controller.name, kind.value, value)
        return registry.set_characteristic(kind, coerce_value(kind, value))

    async def send_key(self, name: str, key: str) -> bytes:
        controller = self.get(name)
        payload = controller.data.get(key)
        if not isinstance(payload, bytes):
            available = ", ".join(k for k, v in sorted(controller.data.items()) if isinstance(v, bytes))
            raise CharacteristicError(
                f"Accessory '{controller.name}' has no signal '{key}'. Available: {available}"
            )
        await controller.context.perform_send(payload)
        return payload

    async def wait_idle(self, name: str | None = None) -> None:
        controllers = [self.get(name)] if name else list(self.controllers.values())
        for controller in controllers:
            await controller.context.registry.wait_idle()

    def start_probes(self) -> int:
        started = 0
        for controller in self.controllers.values():
            if isinstance(controller, SwitchController) and controller.start_probe() is not None:
                started += 1
        return started

    def shutdown(self) -> None:
        for controller in self.controllers.values():
            if isinstance(controller, WindowCoveringController):
                controller.stop_tracking()
                continue
            controller.stop_probe()
            controller.reset()

    async def close(self) -> None:
        """Shut down and release the transport, when it holds a connection."""
        self.shutdown()
        close = getattr(self.transport, "close", None)
        if close is not None:
            await close()
