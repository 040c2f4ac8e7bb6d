"""Named cron schedules and the meters that are queried on each of them."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Any

log = logging.getLogger(__name__)

# Computes the next run time (seconds since the epoch) of a cron expression
# after the given time; raises ValueError for an invalid expression.
NextTimeT = Callable[[str, float], float]


class ScheduleError(Exception):
    """A schedule definition or a reference to a schedule is invalid."""


def format_time(t: float) -> str:
    """Render a time as ``DD.MM.YYYY hh:mm:ss`` in UTC, with a zero-based month."""
    tm = time.gmtime(t)
    return (
        f"{tm.tm_mday:02d}.{tm.tm_mon - 1:02d}.{tm.tm_year:04d} "
        f"{tm.tm_hour:02d}:{tm.tm_min:02d}:{tm.tm_sec:02d}"
    )


@dataclass
class Schedule:
    """A cron expression, its member meters and the time it is next due."""

    name: str | None
    expression: str
    members: list[Any] = field(default_factory=list)
    next_query_time: float = 0.0

    @property
    def display_name(self) -> str:
        return self.name if self.name is not None else "default"

    def is_due(self, now: float) -> bool:
        """True once ``now`` has reached the next query time."""
        return now >= self.next_query_time


class ScheduleTable:
    """All schedules in definition order; the one named None is the default."""

    def __init__(self, next_time: NextTimeT) -> None:
        self._next_time = next_time
        self.schedules: list[Schedule] = []
        self._schedule_counts: dict[int, int] = {}

    def __iter__(self):
        return iter(self.schedules)

    def __len__(self) -> int:
        return len(self.schedules)

    def _check_expression(self, expression: str) -> None:
        try:
            self._next_time(expression, 0.0)
        except ValueError as exc:
            raise ScheduleError(
                f'Error in cron expression: "{expression}": {exc}'
            ) from exc

    def find(self, name: str | None) -> Schedule | None:
        """The schedule with the given name (None for the default), or None."""
        for schedule in self.schedules:
            if schedule.name == name:
                return schedule
        return None

    def add(self, name: str | None, expression: str) -> Schedule:
        """Define a schedule; a second default replaces the first with a warning."""
        existing = self.find(name)
        if existing is not None:
            if name is not None:
                raise ScheduleError(f'multiple definitions for cron entry "{name}"')
            log.warning(
                "Overwriting previously defined default cron entry (%s) with (%s)",
                existing.expression,
                expression,
            )
            self._check_expression(expression)
            existing.expression = expression
            return existing
        self._check_expression(expression)
        schedule = Schedule(name=name, expression=expression)
        self.schedules.append(schedule)
        return schedule

    def add_meter(self, schedule: Schedule, meter: Any) -> None:
        """Make a meter a member of a schedule."""
        schedule.members.append(meter)
        if schedule.name is not None:
            key = id(meter)
            self._schedule_counts[key] = self._schedule_counts.get(key, 0) + 1

    def add_meter_by_name(self, name: str | None, meter: Any) -> None:
        """Make a meter a member of the schedule with the given name."""
        schedule = self.find(name)
        if schedule is None:
            raise ScheduleError(f'cron name "{name}" not defined')
        self.add_meter(schedule, meter)

    def schedule_count(self, meter: Any) -> int:
        """Number of named schedules the meter belongs to."""
        return self._schedule_counts.get(id(meter), 0)

    def set_default(self, meters: Iterable[Any], now: float) -> None:
        """Put meters without a named schedule on the default one and set all next times."""
        for meter in meters:
            if not self.schedule_count(meter):
                self.add_meter_by_name(None, meter)
        for schedule in self.schedules:
            schedule.next_query_time = self._next_time(schedule.expression, now)

    def due_meters(self, now: float) -> list[Any]:
        """Meters of all due schedules, each once; due schedules get their next time."""
        due: list[Any] = []
        seen: set[int] = set()
        for schedule in self.schedules:
            if not schedule.is_due(now) or not schedule.members:
                continue
            schedule.next_query_time = self._next_time(schedule.expression, now)
            active = [m for m in schedule.members if not getattr(m, "disabled", False)]
            log.info(
                'Schedule "%s" is due: %s, next query: %s',
                schedule.display_name,
                ",".join(str(getattr(m, "name", m)) for m in active),
                format_time(schedule.next_query_time),
            )
            for meter in active:
                if id(meter) not in seen:
                    seen.add(id(meter))
                    due.append(meter)
        return due

    def describe(self) -> str:
        """A table of all schedules, their members and next query times."""
        lines = [
            "Schedules\n",
            "Name                Definition\n",
            "-" * 78 + "\n",
        ]
        for schedule in self.schedules:
            text = f"{schedule.display_name:<20}{schedule.expression:<30}\n{'':<20}"
            if schedule.members:
                names = ",".join(str(getattr(m, "name", m)) for m in schedule.members)
                text += f"Members: [{names}] "
            text += f"next query: {format_time(schedule.next_query_time)}\n"
            lines.append(text)
        return "".join(lines)