"""
Survey Pulse - Trigger-Set Generator
Picks one random prompt time per block of the active window
"""

import random
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import Enum
from typing import List, Optional, Union

from agency.daily_survey.schedule_config import ScheduleConfig
from agency.daily_survey.time_utils import (
    as_day,
    format_time_list,
    format_trigger_time,
    window_start,
)


# Redraws allowed per block before sampling directly from the feasible range
MAX_REJECTION_DRAWS = 1000

ONE_MS = timedelta(milliseconds=1)


class EntryStatus(Enum):
    """Lifecycle states for a trigger entry."""
    PENDING = "pending"    # Not yet fired
    CONSUMED = "consumed"  # Fired, or skipped because it had already passed


@dataclass
class TriggerEntry:
    """
    One prompt time inside a block.

    Attributes:
        block_index: Which block of the day this entry belongs to
        trigger_at: When the prompt should fire (kept after consumption)
        status: pending or consumed
    """
    block_index: int
    trigger_at: datetime
    status: EntryStatus = EntryStatus.PENDING

    @property
    def is_pending(self) -> bool:
        return self.status == EntryStatus.PENDING

    def consume(self) -> None:
        self.status = EntryStatus.CONSUMED


@dataclass
class TriggerSet:
    """
    The prompt times generated for one day, one entry per block.

    Entries stay in generation order, which is ascending by construction.
    """
    day: date
    entries: List[TriggerEntry] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self):
        return iter(self.entries)

    def first_pending(self) -> Optional[TriggerEntry]:
        """First pending entry in array order, or None if all are consumed."""
        for entry in self.entries:
            if entry.is_pending:
                return entry
        return None

    def is_exhausted(self) -> bool:
        return self.first_pending() is None

    def pending_times(self) -> List[datetime]:
        return [entry.trigger_at for entry in self.entries if entry.is_pending]

    def consume_before(self, now: datetime) -> int:
        """
        Consume every pending entry strictly before now, without firing.

        Returns:
            Number of entries consumed
        """
        missed = 0
        for entry in self.entries:
            if entry.is_pending and entry.trigger_at < now:
                entry.consume()
                missed += 1
        return missed

    def describe(self) -> str:
        """Report text listing every trigger time, e.g. for the debug log."""
        times = []
        for entry in self.entries:
            formatted = format_trigger_time(entry.trigger_at)
            times.append(formatted if entry.is_pending else f"{formatted} (missed)")
        return f"Generated trigger time: {format_time_list(times)}"


def _random_instant(start: datetime, span_ms: int, rng: random.Random) -> datetime:
    """Uniform instant in [start, start + span_ms) at millisecond resolution."""
    return start + timedelta(milliseconds=rng.randrange(span_ms))


def _pick_after(
    block_start: datetime,
    block_length_ms: int,
    previous: datetime,
    min_spacing: timedelta,
    rng: random.Random
) -> datetime:
    """
    Pick an instant in the block at least min_spacing after previous.

    Candidates are redrawn until one is far enough from the previous
    prompt. After MAX_REJECTION_DRAWS misses the instant is drawn from
    the feasible part of the block directly, which has the same
    distribution as the accepted candidates.
    """
    for _ in range(MAX_REJECTION_DRAWS):
        candidate = _random_instant(block_start, block_length_ms, rng)
        if candidate - previous >= min_spacing:
            return candidate

    earliest = max(block_start, previous + min_spacing)
    remaining_ms = block_length_ms - (earliest - block_start) // ONE_MS
    return _random_instant(earliest, remaining_ms, rng)


def generate_trigger_set(
    day: Union[date, datetime],
    schedule: ScheduleConfig,
    rng: Optional[random.Random] = None
) -> TriggerSet:
    """
    Generate the prompt times for a day.

    The window between schedule.window_start_hour and window_end_hour is
    cut into schedule.block_count blocks of block_length_ms each, and one
    random instant is picked per block, no closer than min_spacing to the
    instant picked for the previous block.

    Args:
        day: The calendar day (a datetime's time of day is ignored; its tzinfo is kept)
        schedule: Validated schedule configuration
        rng: Random source (a fresh random.Random if omitted)

    Returns:
        TriggerSet with block_count pending entries, ascending
    """
    if rng is None:
        rng = random.Random()

    block_length_ms = schedule.block_length_ms
    block_length = schedule.block_length
    block_start = window_start(day, schedule.window_start_hour)

    entries: List[TriggerEntry] = []
    previous: Optional[datetime] = None

    for index in range(schedule.block_count):
        if previous is None:
            trigger_at = _random_instant(block_start, block_length_ms, rng)
        else:
            trigger_at = _pick_after(
                block_start, block_length_ms, previous, schedule.min_spacing, rng
            )

        entries.append(TriggerEntry(block_index=index, trigger_at=trigger_at))
        previous = trigger_at
        block_start += block_length

    return TriggerSet(day=as_day(day), entries=entries)
