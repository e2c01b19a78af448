"""Transport that records payloads instead of transmitting them."""

from __future__ import annotations

import logging

LOGGER = logging.getLogger(__name__)


class LogTransport:
    def __init__(self) -> None:
        self.sent: list[bytes] = []

    async def send(self, payload: bytes) -> None:
        LOGGER.info("dry-run send %s", payload.hex())
        self.sent.append(payload)
