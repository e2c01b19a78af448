from __future__ import annotations

import asyncio

import pytest

from rfctl.core import probe as probe_module
from rfctl.core.probe import LivenessProbe, parse_arp_output


def test_parse_arp_output() -> None:
    assert parse_arp_output("192.168.1.5 dev eth0 lladdr aa:bb:cc:dd:ee:ff REACHABLE\n") is True
    assert parse_arp_output("192.168.1.5 dev eth0 FAILED\n") is False
    assert parse_arp_output("") is False


def test_ping_probe_reports_exit_status(monkeypatch: pytest.MonkeyPatch) -> None:
    calls: list[list[str]] = []

    async def fake_run(cmd):
        calls.append(list(cmd))
        return (0, "") if cmd[-1] == "10.0.0.2" else (1, "")

    monkeypatch.setattr(probe_module, "_run_probe_command", fake_run)

    async def scenario() -> None:
        assert await LivenessProbe("10.0.0.2", 1, lambda active: None).probe_once() is True
        assert await LivenessProbe("10.0.0.3", 1, lambda active: None).probe_once() is False

    asyncio.run(scenario())
    assert calls[0][0] == "ping"


def test_missing_probe_binary_is_inactive(monkeypatch: pytest.MonkeyPatch) -> None:
    async def fake_run(cmd):
        return None

    monkeypatch.setattr(probe_module, "_run_probe_command", fake_run)

    async def scenario() -> None:
        assert await LivenessProbe("10.0.0.2", 1, lambda active: None, use_arp=True).probe_once() is False

    asyncio.run(scenario())


def test_probe_polls_callback_until_stopped(monkeypatch: pytest.MonkeyPatch) -> None:
    async def fake_run(cmd):
        return (0, "10.0.0.2 dev eth0 lladdr aa:bb:cc:dd:ee:ff STALE")

    monkeypatch.setattr(probe_module, "_run_probe_command", fake_run)
    readings: list[bool] = []

    async def scenario() -> None:
        probe = LivenessProbe("10.0.0.2", 0.01, readings.append, use_arp=True)
        probe.start()
        await asyncio.sleep(0.05)
        probe.stop()
        count = len(readings)
        await asyncio.sleep(0.03)
        assert len(readings) == count

    asyncio.run(scenario())
    assert readings
    assert all(readings)
