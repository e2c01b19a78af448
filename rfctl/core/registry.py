"""Characteristic registry standing in for the accessory/characteristic layer.

Each accessory owns one registry. A client write (``set_characteristic``)
stores the value on the accessory state and then hands the payload and the
previous value to the bound controller setter, which runs as a background
task. Controllers call ``set_characteristic`` on their own registry to
trigger follow-up transitions (auto-off, turning on through brightness) and
``refresh_characteristic_ui`` to announce values they wrote directly.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from rfctl.core.errors import CharacteristicError
from rfctl.core.model import CharacteristicKind, DeviceState, Payload

LOGGER = logging.getLogger(__name__)

Setter = Callable[[Payload, Any], Awaitable[None]]
Listener = Callable[[CharacteristicKind, Any], None]


@dataclass(frozen=True)
class Binding:
    kind: CharacteristicKind
    field: str
    setter: Setter | None = None
    on_data: Payload = None
    off_data: Payload = None
    ignore_previous_value: bool = False
    getter: Callable[[], Any] | None = None


class CharacteristicRegistry:
    def __init__(
        self,
        name: str,
        state: DeviceState,
        *,
        send: Callable[[Payload], Awaitable[None]] | None = None,
        allow_resend: bool = False,
    ) -> None:
        self.name = name
        self.state = state
        self.allow_resend = allow_resend
        self._send = send
        self._bindings: dict[CharacteristicKind, Binding] = {}
        self._listeners: list[Listener] = []
        self._tasks: set[asyncio.Task[None]] = set()

    def add_characteristic(
        self,
        kind: CharacteristicKind,
        field: str,
        *,
        setter: Setter | None = None,
        on_data: Payload = None,
        off_data: Payload = None,
        ignore_previous_value: bool = False,
        getter: Callable[[], Any] | None = None,
    ) -> None:
        self._bindings[kind] = Binding(
            kind=kind,
            field=field,
            setter=setter,
            on_data=on_data,
            off_data=off_data,
            ignore_previous_value=ignore_previous_value,
            getter=getter,
        )

    def has(self, kind: CharacteristicKind) -> bool:
        return kind in self._bindings

    def kinds(self) -> tuple[CharacteristicKind, ...]:
        return tuple(self._bindings)

    def add_listener(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def _binding(self, kind: CharacteristicKind) -> Binding:
        binding = self._bindings.get(kind)
        if binding is None:
            available = ", ".join(k.value for k in self._bindings)
            raise CharacteristicError(
                f"Accessory '{self.name}' has no characteristic '{kind.value}'. Available: {available}"
            )
        return binding

    def get_characteristic(self, kind: CharacteristicKind) -> Any:
        binding = self._binding(kind)
        if binding.getter is not None:
            return binding.getter()
        return getattr(self.state, binding.field)

    def set_characteristic(self, kind: CharacteristicKind, value: Any) -> asyncio.Task[None] | None:
        binding = self._binding(kind)
        if binding.setter is None and binding.getter is not None:
            raise CharacteristicError(f"Characteristic '{kind.value}' of '{self.name}' is read-only")

        previous = getattr(self.state, binding.field)
        if previous == value and not binding.ignore_previous_value and not self.allow_resend:
            return None

        self.state.update(**{binding.field: value})
        self._notify(kind)

        payload = binding.on_data if value else binding.off_data
        if binding.setter is not None:
            return self.spawn(binding.setter(payload, previous))
        if payload and self._send is not None:
            return self.spawn(self._send(payload))
        return None

    def refresh_characteristic_ui(self, kind: CharacteristicKind) -> None:
        self._notify(kind)

    def _notify(self, kind: CharacteristicKind) -> None:
        value = self.get_characteristic(kind)
        for listener in list(self._listeners):
            listener(kind, value)

    def spawn(self, coro: Awaitable[None]) -> asyncio.Task[None]:
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    def _task_done(self, task: asyncio.Task[None]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            LOGGER.error("%s: characteristic update failed: %s", self.name, exc, exc_info=exc)

    async def wait_idle(self) -> None:
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
