from __future__ import annotations

import asyncio

from rfctl.core.dispatch import SendDispatcher
from rfctl.core.model import SendStep


class FakeTransport:
    def __init__(self) -> None:
        self.sent: list[tuple[bytes, float]] = []

    async def send(self, payload: bytes) -> None:
        self.sent.append((payload, asyncio.get_running_loop().time()))


def test_single_payload_sent_once() -> None:
    async def scenario() -> None:
        transport = FakeTransport()
        await SendDispatcher(transport).perform_send(b"\x01\x02")
        assert [payload for payload, _ in transport.sent] == [b"\x01\x02"]

    asyncio.run(scenario())


def test_empty_payload_is_noop() -> None:
    async def scenario() -> None:
        transport = FakeTransport()
        dispatcher = SendDispatcher(transport)
        await dispatcher.perform_send(None)
        await dispatcher.perform_send(b"")
        assert transport.sent == []

    asyncio.run(scenario())


def test_repeated_steps_are_spaced_by_interval() -> None:
    async def scenario() -> None:
        transport = FakeTransport()
        await SendDispatcher(transport).perform_send(
            [SendStep(data=b"\x10", interval=0.02, send_count=3), SendStep(data=b"\x11", interval=0, send_count=1)]
        )

        assert [payload for payload, _ in transport.sent] == [b"\x10", b"\x10", b"\x10", b"\x11"]
        times = [at for _, at in transport.sent[:3]]
        assert times[2] - times[0] >= 0.035

    asyncio.run(scenario())
