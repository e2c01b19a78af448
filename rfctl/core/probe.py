"""Periodic ping/ARP liveness probing feeding a boolean callback."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence

LOGGER = logging.getLogger(__name__)

_ARP_INACTIVE = ("FAILED", "INCOMPLETE")


def _ping_command(address: str) -> list[str]:
    return ["ping", "-c", "1", "-W", "1", address]


def _arp_command(address: str) -> list[str]:
    return ["ip", "neigh", "show", address]


def parse_arp_output(output: str) -> bool:
    for line in output.splitlines():
        line = line.strip()
        if not line:
            continue
        if any(marker in line for marker in _ARP_INACTIVE):
            continue
        return True
    return False


async def _run_probe_command(cmd: Sequence[str]) -> tuple[int, str] | None:
    try:
        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.DEVNULL,
        )
    except FileNotFoundError:
        return None
    stdout, _ = await process.communicate()
    return process.returncode or 0, stdout.decode(errors="replace")


class LivenessProbe:
    """Polls ``address`` every ``frequency`` seconds and reports whether it answered."""

    def __init__(
        self,
        address: str,
        frequency: float,
        callback: Callable[[bool], None],
        *,
        use_arp: bool = False,
    ) -> None:
        self.address = address
        self.frequency = frequency
        self.callback = callback
        self.use_arp = use_arp
        self._task: asyncio.Task[None] | None = None

    async def probe_once(self) -> bool:
        if self.use_arp:
            result = await _run_probe_command(_arp_command(self.address))
            return result is not None and result[0] == 0 and parse_arp_output(result[1])

        result = await _run_probe_command(_ping_command(self.address))
        return result is not None and result[0] == 0

    async def _run(self) -> None:
        while True:
            active = await self.probe_once()
            LOGGER.debug("probe %s -> %s", self.address, "active" if active else "inactive")
            self.callback(active)
            await asyncio.sleep(self.frequency)

    def start(self) -> None:
        if self._task is None or self._task.done():
            self._task = asyncio.ensure_future(self._run())

    def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None
