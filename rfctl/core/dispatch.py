"""Fire-and-forget payload dispatch on top of a transport."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence

from rfctl.core.model import Payload, SendStep
from rfctl.transports.base import Transport

LOGGER = logging.getLogger(__name__)


class SendDispatcher:
    def __init__(self, transport: Transport, *, name: str = "") -> None:
        self.transport = transport
        self.name = name

    async def perform_send(self, payload: Payload) -> None:
        if not payload:
            LOGGER.debug("%s performSend: nothing to send", self.name)
            return

        if isinstance(payload, (bytes, bytearray)):
            LOGGER.debug("%s performSend: %s", self.name, bytes(payload).hex())
            await self.transport.send(bytes(payload))
            return

        await self._send_steps(payload)

    async def _send_steps(self, steps: Sequence[SendStep]) -> None:
        for step in steps:
            LOGGER.debug(
                "%s performSend: %s x%d every %ss",
                self.name,
                step.data.hex(),
                step.send_count,
                step.interval,
            )
            for index in range(step.send_count):
                if index > 0 and step.interval > 0:
                    await asyncio.sleep(step.interval)
                await self.transport.send(step.data)
