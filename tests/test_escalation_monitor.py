import logging
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from app.defects import normalize_defects
from app.escalation import (
    EscalationMonitor,
    NotificationResult,
    ThresholdState,
    crossed_level,
)


class RecordingNotifier:
    def __init__(self, result=None, error=None):
        self.events = []
        self.result = result or NotificationResult(success=True, message_id="msg-1")
        self.error = error

    def notify(self, event):
        self.events.append(event)
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def monitor(notifier):
    return EscalationMonitor(notifier, ThresholdState())


@pytest.mark.parametrize(
    "previous, current, expected",
    [(0, 2, None), (2, 3, 3), (3, 4, None), (4, 5, 5), (2, 8, 7), (0, 7, 7), (8, 3, None), (7, 9, None)],
)
def test_crossed_level(previous, current, expected):
    assert crossed_level(previous, current) == expected


def test_jump_over_every_threshold_fires_once_at_highest(monitor, notifier):
    monitor.observe("Alice", 2)
    event = monitor.observe("Alice", 8)

    assert event.threshold_level == 7
    assert event.previous_count == 2
    assert [e.threshold_level for e in notifier.events] == [7]


def test_same_count_does_not_refire(monitor, notifier):
    monitor.observe("Alice", 3)
    assert monitor.observe("Alice", 3) is None
    assert monitor.observe("Alice", 4) is None
    assert monitor.observe("Alice", 5).threshold_level == 5
    assert [e.threshold_level for e in notifier.events] == [3, 5]


def test_drop_then_rise_fires_again(monitor, notifier):
    monitor.observe("Alice", 4)
    monitor.observe("Alice", 1)
    event = monitor.observe("Alice", 3)

    assert event.threshold_level == 3
    assert len(notifier.events) == 2


def test_notifier_failure_keeps_state(caplog):
    failing = RecordingNotifier(error=RuntimeError("endpoint down"))
    state = ThresholdState()
    monitor = EscalationMonitor(failing, state)

    with caplog.at_level(logging.ERROR):
        event = monitor.observe("Bob", 5)

    assert event.threshold_level == 5
    assert state.get("Bob") == 5
    assert "endpoint down" in caplog.text
    assert monitor.observe("Bob", 5) is None


def test_unsuccessful_result_is_logged(caplog):
    refusing = RecordingNotifier(result=NotificationResult(success=False, error="smtp refused"))
    monitor = EscalationMonitor(refusing, ThresholdState())

    with caplog.at_level(logging.ERROR):
        monitor.observe("Bob", 3)

    assert "smtp refused" in caplog.text


def test_monitor_all_observes_operator_sums(monitor, notifier):
    records = normalize_defects(
        [
            {"operator_name": "A", "occurrence_count": 2, "defect_nature": "X", "matricule": "M7"},
            {"operator_name": "A", "occurrence_count": 2, "defect_nature": "Y"},
            {"operator_name": "A", "occurrence_count": 1, "defect_nature": "Y"},
            {"operator_name": "B", "occurrence_count": 2},
            {"operator_name": "", "occurrence_count": 9},
        ]
    )

    events = monitor.monitor_all(records)

    assert [(e.operator_name, e.threshold_level, e.defect_type) for e in events] == [("A", 5, "Y")]
    assert events[0].operator_id == "M7"
    assert monitor.state.snapshot() == {"A": 5, "B": 2}
    assert monitor.monitor_all(records) == []


def test_state_is_shared_between_monitors(notifier):
    state = ThresholdState()
    EscalationMonitor(notifier, state).observe("A", 3)

    assert EscalationMonitor(notifier, state).observe("A", 3) is None


def test_force_escalation_ignores_history(monitor, notifier):
    monitor.observe("A", 9)

    event = monitor.force_escalation("A", 9)
    low = monitor.force_escalation("B", 1)

    assert event.threshold_level == 7
    assert low.threshold_level == 3
    assert len(notifier.events) == 3
    assert monitor.state.get("B") == 0


def test_force_escalation_keeps_explicit_level(monitor, notifier):
    event = monitor.force_escalation("A", 1, level=7, operator_id="M1")

    assert event.threshold_level == 7
    assert notifier.events[-1].operator_id == "M1"
    with pytest.raises(ValueError):
        monitor.force_escalation("A", 1, level=4)
    assert len(notifier.events) == 1


def test_clear_resets_state(monitor):
    monitor.observe("A", 3)
    monitor.state.clear()

    assert monitor.state.snapshot() == {}
    assert monitor.observe("A", 3).threshold_level == 3
