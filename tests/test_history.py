from __future__ import annotations

from rfctl.core.history import HistoryEntry, SwitchHistory
from rfctl.core.model import DeviceState


class FakeClock:
    def __init__(self, now: float) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def test_history_records_switch_changes_only() -> None:
    clock = FakeClock(1000.0)
    state = DeviceState()
    history = SwitchHistory(state, clock=clock)

    clock.now = 1030.4
    state.update(switch_state=True)
    state.update(switch_state=True)
    state.update(brightness=40)
    clock.now = 1090.0
    state.update(switch_state=False)

    assert history.entries == [
        HistoryEntry(time=1000, status=0),
        HistoryEntry(time=1030, status=1),
        HistoryEntry(time=1090, status=0),
    ]
    assert state.last_activation == 1090
    assert history.last_activation_seconds() == 90


def test_last_activation_is_zero_before_first_change() -> None:
    history = SwitchHistory(DeviceState(), clock=FakeClock(50.0))
    assert history.initial_time == 50
    assert history.last_activation_seconds() == 0
