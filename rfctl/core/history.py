"""In-memory switch history kept by a state-change observer."""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from rfctl.core.model import DeviceState


@dataclass(frozen=True)
class HistoryEntry:
    time: int
    status: int


class SwitchHistory:
    """Appends an entry whenever ``switch_state`` changes and stamps ``last_activation``."""

    def __init__(self, state: DeviceState, *, clock: Callable[[], float] = time.time) -> None:
        self._state = state
        self._clock = clock
        self.entries: list[HistoryEntry] = [
            HistoryEntry(time=self._now(), status=1 if state.switch_state else 0)
        ]
        state.add_observer(self)

    def _now(self) -> int:
        return round(self._clock())

    def __call__(self, key: str, old: Any, new: Any) -> None:
        if key != "switch_state" or old == new:
            return
        now = self._now()
        self.entries.append(HistoryEntry(time=now, status=1 if new else 0))
        self._state.last_activation = now

    @property
    def initial_time(self) -> int:
        return self.entries[0].time

    def last_activation_seconds(self) -> int:
        if self._state.last_activation is None:
            return 0
        return max(0, self._state.last_activation - self.initial_time)
