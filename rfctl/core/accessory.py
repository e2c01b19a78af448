"""Timed-operation capability shared by every controller."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from rfctl.core.dispatch import SendDispatcher
from rfctl.core.history import SwitchHistory
from rfctl.core.model import AccessoryConfig, CharacteristicKind, DeviceState, Payload
from rfctl.core.registry import CharacteristicRegistry
from rfctl.core.timers import TimerSlots
from rfctl.transports.base import Transport

LOGGER = logging.getLogger(__name__)


@dataclass
class AccessoryContext:
    """State, named timer slots, dispatch and registry for one accessory."""

    name: str
    state: DeviceState
    timers: TimerSlots
    registry: CharacteristicRegistry
    dispatcher: SendDispatcher
    history: SwitchHistory | None = None

    @classmethod
    def build(cls, config: AccessoryConfig, transport: Transport) -> AccessoryContext:
        state = DeviceState()
        dispatcher = SendDispatcher(transport, name=config.name)
        registry = CharacteristicRegistry(
            config.name,
            state,
            send=dispatcher.perform_send,
            allow_resend=config.allow_resend,
        )
        history = SwitchHistory(state) if config.history else None
        return cls(
            name=config.name,
            state=state,
            timers=TimerSlots(),
            registry=registry,
            dispatcher=dispatcher,
            history=history,
        )

    def reset(self) -> None:
        self.timers.cancel_all()

    async def perform_send(self, payload: Payload) -> None:
        await self.dispatcher.perform_send(payload)

    def set_characteristic(self, kind: CharacteristicKind, value: object) -> asyncio.Task[None] | None:
        return self.registry.set_characteristic(kind, value)

    def refresh_characteristic_ui(self, kind: CharacteristicKind) -> None:
        self.registry.refresh_characteristic_ui(kind)
