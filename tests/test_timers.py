from __future__ import annotations

import asyncio

from rfctl.core.timers import CancellableDelay, TimerHandle, TimerSlots


async def _await(handle: TimerHandle) -> bool:
    return await handle


def test_handle_resolves_true_when_elapsed() -> None:
    async def scenario() -> None:
        handle = CancellableDelay.start(0.01)
        assert await handle is True
        assert handle.done
        assert not handle.cancelled
        # awaiting again returns the same outcome
        assert await handle is True

    asyncio.run(scenario())


def test_cancel_resolves_waiter_false_without_raising() -> None:
    async def scenario() -> None:
        handle = CancellableDelay.start(10)
        waiter = asyncio.ensure_future(_await(handle))
        await asyncio.sleep(0)

        handle.cancel()
        handle.cancel()

        assert await asyncio.wait_for(waiter, timeout=1) is False
        assert handle.cancelled

    asyncio.run(scenario())


def test_cancel_after_elapse_before_waiter_resumes_reads_false() -> None:
    async def scenario() -> None:
        handle = CancellableDelay.start(0)
        waiter = asyncio.ensure_future(_await(handle))
        while not handle.done:
            await asyncio.sleep(0)

        handle.cancel()

        assert await asyncio.wait_for(waiter, timeout=1) is False
        assert await handle is False
        assert handle.cancelled

    asyncio.run(scenario())


def test_slot_start_replaces_previous_handle() -> None:
    async def scenario() -> None:
        slots = TimerSlots()
        first = slots.start("auto_off", 10)
        second = slots.start("auto_off", 10)

        assert first.cancelled
        assert slots.get("auto_off") is second
        assert slots.pending() == ["auto_off"]
        slots.cancel_all()

    asyncio.run(scenario())


def test_cancel_all_leaves_no_pending_handles() -> None:
    async def scenario() -> None:
        slots = TimerSlots()
        handles = [slots.start(name, 10) for name in ("ping_grace", "auto_on", "auto_off")]
        assert slots.pending() == ["auto_off", "auto_on", "ping_grace"]

        slots.cancel_all()

        assert slots.pending() == []
        assert all(handle.cancelled for handle in handles)
        assert slots.get("auto_on") is None

    asyncio.run(scenario())


def test_independent_slots_run_concurrently() -> None:
    async def scenario() -> None:
        first = TimerSlots()
        second = TimerSlots()
        a = first.start("position_update", 0.01)
        b = second.start("position_update", 10)

        assert await a is True
        assert not b.done
        second.cancel_all()

    asyncio.run(scenario())
