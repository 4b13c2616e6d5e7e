"""Per-operator threshold tracking and escalation dispatch."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable, Mapping, Optional, Protocol, Sequence

from config.escalation import escalation_thresholds

from .aggregation import operator_totals
from .defects import defect_type, occurrence_count, operator_name
from .timestamps import utc_now


@dataclass(frozen=True)
class EscalationEvent:
    operator_name: str
    defect_count: int
    threshold_level: int
    previous_count: int = 0
    defect_type: Optional[str] = None
    operator_id: Optional[str] = None
    occurred_at: datetime = field(default_factory=utc_now)


@dataclass(frozen=True)
class NotificationResult:
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None


class EscalationNotifier(Protocol):
    def notify(self, event: EscalationEvent) -> NotificationResult: ...


def crossed_level(
    previous: int,
    current: int,
    levels: Sequence[int] | None = None,
) -> int | None:
    """Return the highest level with ``previous < level <= current``.

    Only one level is reported even when a single update jumps over
    several of them.
    """

    for level in sorted(levels or escalation_thresholds(), reverse=True):
        if current >= level and previous < level:
            return level
    return None


class ThresholdState:
    """Last-seen defect count per operator.

    A single instance is shared by every monitoring pass of the process.
    Updates are not synchronised across concurrent passes.
    """

    def __init__(self) -> None:
        self._counts: dict[str, int] = {}

    def get(self, operator: str) -> int:
        return self._counts.get(operator, 0)

    def set(self, operator: str, count: int) -> None:
        self._counts[operator] = count

    def snapshot(self) -> dict[str, int]:
        return dict(self._counts)

    def clear(self) -> None:
        self._counts.clear()

    def __len__(self) -> int:
        return len(self._counts)


class EscalationMonitor:
    """Fire escalation events when an operator crosses a threshold."""

    def __init__(
        self,
        notifier: EscalationNotifier,
        state: ThresholdState,
        *,
        levels: Sequence[int] | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.notifier = notifier
        self.state = state
        self.levels = tuple(levels) if levels else None
        self.logger = logger or logging.getLogger(__name__)

    def _dispatch(self, event: EscalationEvent) -> None:
        try:
            result = self.notifier.notify(event)
        except Exception as exc:
            self.logger.error(
                "Escalation notification for %s failed: %s", event.operator_name, exc
            )
            return
        if result is None or not result.success:
            self.logger.error(
                "Escalation notification for %s failed: %s",
                event.operator_name,
                getattr(result, "error", None) or "no result",
            )
        else:
            self.logger.info(
                "Escalation notification for %s sent (%s).",
                event.operator_name,
                result.message_id,
            )

    def observe(
        self,
        operator: str,
        current_count: int,
        *,
        defect_type: str | None = None,
        operator_id: str | None = None,
        occurred_at: datetime | None = None,
    ) -> EscalationEvent | None:
        """Record ``current_count`` for ``operator`` and escalate on a crossing.

        The new count is stored before the notifier runs and is kept even
        when the notification fails.
        """

        previous = self.state.get(operator)
        self.state.set(operator, current_count)

        level = crossed_level(previous, current_count, self.levels)
        if level is None:
            return None

        event = EscalationEvent(
            operator_name=operator,
            defect_count=current_count,
            threshold_level=level,
            previous_count=previous,
            defect_type=defect_type,
            operator_id=operator_id,
            occurred_at=occurred_at or utc_now(),
        )
        self.logger.warning(
            "Operator %s crossed escalation level %s (%s -> %s).",
            operator,
            level,
            previous,
            current_count,
        )
        self._dispatch(event)
        return event

    def monitor_all(self, records: Iterable[Mapping[str, Any]]) -> list[EscalationEvent]:
        """Observe the current total of every operator in ``records``."""

        records = list(records)
        main_types: dict[str, dict[str, int]] = {}
        operator_ids: dict[str, str] = {}
        for record in records:
            name = operator_name(record)
            if not name:
                continue
            if record.get("matricule") and name not in operator_ids:
                operator_ids[name] = str(record["matricule"])
            types = main_types.setdefault(name, {})
            kind = defect_type(record)
            types[kind] = types.get(kind, 0) + occurrence_count(record.get("occurrence_count"))

        events = []
        for name, total in operator_totals(records).items():
            types = main_types.get(name) or {}
            heaviest = max(types, key=types.get) if types else None
            event = self.observe(
                name, total, defect_type=heaviest, operator_id=operator_ids.get(name)
            )
            if event is not None:
                events.append(event)
        self.logger.info("Monitored %s operators, %s escalations.", len(main_types), len(events))
        return events

    def force_escalation(
        self,
        operator: str,
        count: int,
        *,
        level: int | None = None,
        defect_type: str | None = None,
        operator_id: str | None = None,
    ) -> EscalationEvent:
        """Send an escalation regardless of the recorded history.

        ``level`` must be one of the configured levels; without it the
        highest level reached from zero is used, else the lowest level.
        The notifier sends the level to the endpoint as is.
        """

        levels = sorted(self.levels or escalation_thresholds())
        if level is None:
            level = crossed_level(0, count, levels) or levels[0]
        elif level not in levels:
            raise ValueError(f"Unknown escalation level: {level}")
        event = EscalationEvent(
            operator_name=operator,
            defect_count=count,
            threshold_level=level,
            previous_count=0,
            defect_type=defect_type,
            operator_id=operator_id,
        )
        self.logger.warning("Forced escalation level %s for %s.", level, operator)
        self._dispatch(event)
        return event


__all__ = [
    "EscalationEvent",
    "EscalationMonitor",
    "EscalationNotifier",
    "NotificationResult",
    "ThresholdState",
    "crossed_level",
]
