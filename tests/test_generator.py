"""
Tests for trigger-set generation.

Verifies block coverage, minimum spacing, ordering, and the bounded
redraw fallback.
"""

import random
import unittest
from datetime import date, datetime, timedelta, timezone

from agency.daily_survey.generator import (
    MAX_REJECTION_DRAWS,
    EntryStatus,
    TriggerEntry,
    TriggerSet,
    generate_trigger_set,
)
from agency.daily_survey.schedule_config import ScheduleConfig


DAY = date(2026, 10, 19)
TWO_HOURS = timedelta(hours=2)
TWO_HOURS_MS = 2 * 60 * 60 * 1000


class ScriptedRandom:
    """randrange stand-in: the first call returns the top of the range, later calls 0."""

    def __init__(self):
        self.calls = 0

    def randrange(self, stop):
        self.calls += 1
        if self.calls == 1:
            return stop - 1
        return 0


class TestBlockCoverage(unittest.TestCase):
    """Every block gets exactly one trigger time inside it."""

    def setUp(self):
        self.schedule = ScheduleConfig(3, 8, 20, TWO_HOURS_MS)

    def test_one_entry_per_block(self):
        for seed in range(50):
            trigger_set = generate_trigger_set(DAY, self.schedule, random.Random(seed))
            self.assertEqual(len(trigger_set), 3)
            self.assertEqual([e.block_index for e in trigger_set], [0, 1, 2])

    def test_entries_fall_inside_their_blocks(self):
        for seed in range(50):
            trigger_set = generate_trigger_set(DAY, self.schedule, random.Random(seed))
            for entry in trigger_set:
                block_start = datetime(2026, 10, 19, 8) + timedelta(hours=4 * entry.block_index)
                block_end = block_start + timedelta(hours=4)
                self.assertGreaterEqual(entry.trigger_at, block_start)
                self.assertLess(entry.trigger_at, block_end)

    def test_uneven_blocks_use_whole_hour_length(self):
        """With 7 blocks in 12 hours every block is one hour long."""
        schedule = ScheduleConfig(7, 8, 20, 0)
        block_length = timedelta(hours=1)
        for seed in range(20):
            trigger_set = generate_trigger_set(DAY, schedule, random.Random(seed))
            self.assertEqual(len(trigger_set), 7)
            for entry in trigger_set:
                block_start = datetime(2026, 10, 19, 8) + block_length * entry.block_index
                self.assertGreaterEqual(entry.trigger_at, block_start)
                self.assertLess(entry.trigger_at, block_start + block_length)

    def test_uneven_split_leaves_end_of_window_unused(self):
        """5 two-hour blocks from 08:00 never fire at or after 18:00."""
        schedule = ScheduleConfig(5, 8, 20, 0)
        latest = max(
            entry.trigger_at
            for seed in range(200)
            for entry in generate_trigger_set(DAY, schedule, random.Random(seed))
        )
        self.assertLess(latest, datetime(2026, 10, 19, 18))

    def test_all_entries_pending(self):
        trigger_set = generate_trigger_set(DAY, self.schedule, random.Random(1))
        self.assertTrue(all(e.status == EntryStatus.PENDING for e in trigger_set))
        self.assertEqual(len(trigger_set.pending_times()), 3)

    def test_datetime_day_ignores_time_of_day(self):
        trigger_set = generate_trigger_set(datetime(2026, 10, 19, 23, 59), self.schedule, random.Random(3))
        self.assertEqual(trigger_set.day, DAY)
        self.assertEqual(trigger_set.entries[0].trigger_at.date(), DAY)

    def test_aware_day_keeps_tzinfo(self):
        eastern = timezone(timedelta(hours=-5))
        trigger_set = generate_trigger_set(datetime(2026, 10, 19, 6, tzinfo=eastern), self.schedule, random.Random(3))
        first = trigger_set.entries[0].trigger_at
        self.assertIs(first.tzinfo, eastern)
        self.assertGreaterEqual(first, datetime(2026, 10, 19, 8, tzinfo=eastern))

    def test_default_random_source(self):
        trigger_set = generate_trigger_set(DAY, self.schedule)
        self.assertEqual(len(trigger_set), 3)

    def test_millisecond_resolution(self):
        trigger_set = generate_trigger_set(DAY, self.schedule, random.Random(5))
        for entry in trigger_set:
            self.assertEqual(entry.trigger_at.microsecond % 1000, 0)


class TestSpacingAndOrder(unittest.TestCase):
    """Consecutive trigger times respect the minimum spacing and ascend."""

    def test_spacing_invariant(self):
        schedule = ScheduleConfig(3, 8, 20, TWO_HOURS_MS)
        for seed in range(200):
            times = [e.trigger_at for e in generate_trigger_set(DAY, schedule, random.Random(seed))]
            for earlier, later in zip(times, times[1:]):
                self.assertGreaterEqual(later - earlier, TWO_HOURS, f"seed {seed}: {times}")

    def test_strictly_ascending(self):
        schedule = ScheduleConfig(6, 6, 22, 0)
        for seed in range(100):
            times = [e.trigger_at for e in generate_trigger_set(DAY, schedule, random.Random(seed))]
            self.assertEqual(times, sorted(times))
            self.assertEqual(len(set(times)), len(times))

    def test_tight_spacing_terminates(self):
        """Spacing equal to the block length still yields a valid day."""
        schedule = ScheduleConfig(3, 8, 20, 4 * 60 * 60 * 1000)
        for seed in range(20):
            times = [e.trigger_at for e in generate_trigger_set(DAY, schedule, random.Random(seed))]
            for earlier, later in zip(times, times[1:]):
                self.assertGreaterEqual(later - earlier, timedelta(hours=4))

    def test_same_seed_same_day(self):
        schedule = ScheduleConfig(3, 8, 20, TWO_HOURS_MS)
        first = generate_trigger_set(DAY, schedule, random.Random(99))
        second = generate_trigger_set(DAY, schedule, random.Random(99))
        self.assertEqual(first.pending_times(), second.pending_times())


class TestRedrawFallback(unittest.TestCase):
    """After MAX_REJECTION_DRAWS misses the time comes from the feasible range."""

    def test_fallback_lands_in_feasible_range(self):
        schedule = ScheduleConfig(3, 8, 20, 4 * 60 * 60 * 1000)
        rng = ScriptedRandom()

        trigger_set = generate_trigger_set(DAY, schedule, rng)
        times = [e.trigger_at for e in trigger_set]

        # Block 0 takes the last millisecond of its block
        self.assertEqual(times[0], datetime(2026, 10, 19, 11, 59, 59, 999000))
        # Candidates at the block start are always too close; the only
        # feasible instant is exactly four hours later
        self.assertEqual(times[1], datetime(2026, 10, 19, 15, 59, 59, 999000))
        self.assertEqual(times[2], datetime(2026, 10, 19, 19, 59, 59, 999000))

        # 1 draw for block 0, then every redraw plus one fallback draw per later block
        self.assertEqual(rng.calls, 1 + 2 * (MAX_REJECTION_DRAWS + 1))


class TestTriggerSet(unittest.TestCase):
    """TriggerSet helpers."""

    def make_set(self, *hours):
        entries = [
            TriggerEntry(block_index=i, trigger_at=datetime(2026, 10, 19, h))
            for i, h in enumerate(hours)
        ]
        return TriggerSet(day=DAY, entries=entries)

    def test_consume_before_is_strict(self):
        trigger_set = self.make_set(9, 13, 17)
        missed = trigger_set.consume_before(datetime(2026, 10, 19, 13))
        self.assertEqual(missed, 1)
        self.assertEqual(trigger_set.pending_times(), [datetime(2026, 10, 19, 13), datetime(2026, 10, 19, 17)])

    def test_first_pending_and_exhausted(self):
        trigger_set = self.make_set(9, 13)
        self.assertEqual(trigger_set.first_pending().block_index, 0)
        trigger_set.entries[0].consume()
        self.assertEqual(trigger_set.first_pending().block_index, 1)
        trigger_set.entries[1].consume()
        self.assertIsNone(trigger_set.first_pending())
        self.assertTrue(trigger_set.is_exhausted())

    def test_describe_marks_missed_entries(self):
        trigger_set = self.make_set(9, 13)
        trigger_set.entries[0].consume()
        self.assertEqual(
            trigger_set.describe(),
            "Generated trigger time: 2026-10-19 09:00:00 (missed), 2026-10-19 13:00:00"
        )


if __name__ == '__main__':
    unittest.main()
