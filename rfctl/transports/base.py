"""Transport interfaces."""

from __future__ import annotations

from typing import Protocol


class Transport(Protocol):
    async def send(self, payload: bytes) -> None:
        """Transmit a single payload. No acknowledgment is expected."""


# Transports that keep a connection open also provide ``async close()``;
# AccessoryService.close awaits it when present.
