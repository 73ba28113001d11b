"""
Tests for the trigger-state tracker: initialization, poll decisions,
and day rollover.
"""

import random
import unittest
from datetime import date, datetime, timedelta, timezone

from agency.daily_survey.generator import TriggerEntry, TriggerSet, generate_trigger_set
from agency.daily_survey.schedule_config import ScheduleConfig
from agency.daily_survey.tracker import (
    NOT_DUE_MESSAGE,
    UNINITIALIZED_NOTE,
    TriggerState,
    PollResult,
)


TODAY = date(2026, 10, 19)
TOMORROW = date(2026, 10, 20)
SCHEDULE = ScheduleConfig(3, 8, 20, 2 * 60 * 60 * 1000, survey_id=1)


def at(hour: int, minute: int = 0, day: date = TODAY) -> datetime:
    return datetime(day.year, day.month, day.day, hour, minute)


def make_set(day: date, *hours) -> TriggerSet:
    return TriggerSet(
        day=day,
        entries=[TriggerEntry(block_index=i, trigger_at=at(h, day=day)) for i, h in enumerate(hours)]
    )


class StubGenerator:
    """Returns a fixed 9/13/17 o'clock set for whatever day it's asked for."""

    def __init__(self, hours=(9, 13, 17)):
        self.hours = hours
        self.days = []

    def __call__(self, day, schedule, rng):
        day = day.date() if isinstance(day, datetime) else day
        self.days.append(day)
        return make_set(day, *self.hours)


class TestInitialize(unittest.TestCase):
    """initialize() builds today's set and trims passed trigger times."""

    def test_before_window_keeps_everything(self):
        state = TriggerState(SCHEDULE, generator=StubGenerator())
        result = state.initialize(at(7))

        self.assertFalse(result.rolled_to_next_day)
        self.assertEqual(result.trigger_set.day, TODAY)
        self.assertEqual(len(result.trigger_set.pending_times()), 3)
        self.assertIs(state.current_set, result.trigger_set)

    def test_passed_times_are_consumed_not_fired(self):
        state = TriggerState(SCHEDULE, generator=StubGenerator())
        result = state.initialize(at(14))

        self.assertFalse(result.rolled_to_next_day)
        self.assertEqual(result.trigger_set.pending_times(), [at(17)])
        self.assertEqual(result.message.count("(missed)"), 2)
        self.assertTrue(result.message.startswith("Generated trigger time: "))

    def test_time_equal_to_now_stays_pending(self):
        state = TriggerState(SCHEDULE, generator=StubGenerator())
        result = state.initialize(at(13))
        self.assertEqual(result.trigger_set.pending_times(), [at(13), at(17)])

    def test_all_passed_uses_tomorrow(self):
        """After the last trigger time, the set is tomorrow's, untouched."""
        generator = StubGenerator()
        state = TriggerState(SCHEDULE, generator=generator)
        result = state.initialize(at(21))

        self.assertTrue(result.rolled_to_next_day)
        self.assertEqual(result.trigger_set.day, TOMORROW)
        self.assertEqual(
            result.trigger_set.pending_times(),
            [at(9, day=TOMORROW), at(13, day=TOMORROW), at(17, day=TOMORROW)]
        )
        self.assertEqual(generator.days, [TODAY, TOMORROW])
        self.assertNotIn("(missed)", result.message)

    def test_all_passed_with_real_generator(self):
        state = TriggerState(SCHEDULE, rng=random.Random(7))
        result = state.initialize(at(20, 30))

        self.assertTrue(result.rolled_to_next_day)
        for trigger_at in result.trigger_set.pending_times():
            self.assertEqual(trigger_at.date(), TOMORROW)
        self.assertEqual(len(result.trigger_set.pending_times()), 3)


class TestPoll(unittest.TestCase):
    """poll() fires at most one due entry per call."""

    def setUp(self):
        self.generator = StubGenerator()
        self.state = TriggerState(SCHEDULE, generator=self.generator)
        self.state.initialize(at(7))

    def test_not_due(self):
        result = self.state.poll(at(8))

        self.assertIsInstance(result, PollResult)
        self.assertFalse(result.fire)
        self.assertIsNone(result.survey_id)
        self.assertEqual(result.message, NOT_DUE_MESSAGE)
        self.assertEqual(len(self.state.current_set.pending_times()), 3)

    def test_fires_earliest_due_entry(self):
        result = self.state.poll(at(10))

        self.assertTrue(result.fire)
        self.assertEqual(result.survey_id, 1)
        self.assertEqual(result.trigger_at, at(9))
        self.assertEqual(result.message, "Prompting now for 2026-10-19 09:00:00")
        self.assertEqual(self.state.current_set.pending_times(), [at(13), at(17)])

    def test_fires_when_exactly_due(self):
        result = self.state.poll(at(9))
        self.assertTrue(result.fire)
        self.assertEqual(result.trigger_at, at(9))

    def test_same_entry_never_fires_twice(self):
        first = self.state.poll(at(10))
        second = self.state.poll(at(10))

        self.assertTrue(first.fire)
        self.assertFalse(second.fire)
        self.assertEqual(second.message, NOT_DUE_MESSAGE)

    def test_one_fire_per_poll_when_several_overdue(self):
        """A late poll picks up overdue entries one call at a time."""
        late = at(18)
        fired = [self.state.poll(late) for _ in range(3)]

        self.assertTrue(all(r.fire for r in fired))
        self.assertEqual([r.trigger_at for r in fired], [at(9), at(13), at(17)])
        self.assertTrue(self.state.current_set.is_exhausted())

    def test_earliest_pending_gates_the_rest(self):
        """Scanning stops at the first pending entry, even out of order."""
        self.state.install(make_set(TODAY, 17, 9))
        result = self.state.poll(at(10))

        self.assertFalse(result.fire)
        self.assertEqual(result.message, NOT_DUE_MESSAGE)
        self.assertEqual(self.state.current_set.pending_times(), [at(17), at(9)])

    def test_skips_consumed_entries(self):
        self.state.current_set.entries[0].consume()
        result = self.state.poll(at(14))

        self.assertTrue(result.fire)
        self.assertEqual(result.trigger_at, at(13))


class TestRollover(unittest.TestCase):
    """Once a day's entries are used up, the next poll installs tomorrow's set."""

    def setUp(self):
        self.generator = StubGenerator()
        self.state = TriggerState(SCHEDULE, generator=self.generator)
        self.state.install(make_set(TODAY, 9, 13, 17))
        for entry in self.state.current_set:
            entry.consume()

    def test_rollover_poll_does_not_fire(self):
        result = self.state.poll(at(20, 5))

        self.assertFalse(result.fire)
        self.assertTrue(result.rolled_over)
        self.assertEqual(self.state.current_set.day, TOMORROW)
        self.assertEqual(len(self.state.current_set.pending_times()), 3)
        self.assertEqual(
            result.message,
            "Generated trigger time: 2026-10-20 09:00:00, 2026-10-20 13:00:00, 2026-10-20 17:00:00"
        )

    def test_next_day_fires_after_rollover(self):
        self.state.poll(at(20, 5))

        waiting = self.state.poll(at(8, day=TOMORROW))
        due = self.state.poll(at(9, 3, day=TOMORROW))

        self.assertFalse(waiting.fire)
        self.assertTrue(due.fire)
        self.assertEqual(due.trigger_at, at(9, day=TOMORROW))

    def test_rollover_is_relative_to_now(self):
        """The new set is for the day after the poll, not after the old set."""
        self.state.poll(datetime(2026, 10, 22, 6, 0))
        self.assertEqual(self.state.current_set.day, date(2026, 10, 23))


class TestLazyInitialization(unittest.TestCase):
    """poll() on an uninitialized tracker initializes first."""

    def test_lazy_init_then_scan(self):
        state = TriggerState(SCHEDULE, generator=StubGenerator())
        self.assertFalse(state.is_initialized)

        result = state.poll(at(7))

        self.assertTrue(state.is_initialized)
        self.assertFalse(result.fire)
        self.assertTrue(result.message.startswith(f"{UNINITIALIZED_NOTE} Generated trigger time: "))
        self.assertTrue(result.message.endswith(NOT_DUE_MESSAGE))

    def test_lazy_init_does_not_fire_missed_entries(self):
        """Entries already passed at initialization are missed, not fired."""
        state = TriggerState(SCHEDULE, generator=StubGenerator())
        result = state.poll(at(10))

        self.assertFalse(result.fire)
        self.assertEqual(state.current_set.pending_times(), [at(13), at(17)])

    def test_lazy_init_fires_entry_due_now(self):
        state = TriggerState(SCHEDULE, generator=StubGenerator())
        result = state.poll(at(9))

        self.assertTrue(result.fire)
        self.assertTrue(result.message.startswith(UNINITIALIZED_NOTE))
        self.assertTrue(result.message.endswith("Prompting now for 2026-10-19 09:00:00"))


class TestRealSchedule(unittest.TestCase):
    """End-to-end runs with the real generator."""

    def test_three_block_scenario(self):
        """3 blocks from 8 to 20 with 2h spacing, initialized at 07:00."""
        for seed in range(30):
            state = TriggerState(SCHEDULE, rng=random.Random(seed))
            init = state.initialize(at(7))

            times = init.trigger_set.pending_times()
            self.assertEqual(len(times), 3)
            for earlier, later in zip(times, times[1:]):
                self.assertGreaterEqual(later - earlier, timedelta(hours=2))

            first = state.poll(at(9))
            self.assertEqual(first.fire, times[0] <= at(9))

            # The block-1 entry is at 12:00 or later
            again = state.poll(at(9))
            self.assertFalse(again.fire)

    def test_advancing_clock_fires_each_entry_once(self):
        """Polling every 5 minutes for two days fires six distinct entries."""
        state = TriggerState(SCHEDULE, rng=random.Random(11))
        now = at(0)
        state.initialize(now)

        fired = []
        for _ in range(2 * 24 * 12):
            result = state.poll(now)
            if result.fire:
                self.assertLessEqual(result.trigger_at, now)
                fired.append(result.trigger_at)
            now += timedelta(minutes=5)

        self.assertEqual(len(fired), 6)
        self.assertEqual(len(set(fired)), 6)
        self.assertEqual(sorted(fired), fired)
        self.assertEqual([t.date() for t in fired], [TODAY] * 3 + [TOMORROW] * 3)

    def test_generator_output_is_what_tracker_installs(self):
        rng_a, rng_b = random.Random(3), random.Random(3)
        expected = generate_trigger_set(TODAY, SCHEDULE, rng_a)

        state = TriggerState(SCHEDULE, rng=rng_b)
        state.initialize(at(6))

        self.assertEqual(state.current_set.pending_times(), expected.pending_times())


class TestTimezoneAwareNow(unittest.TestCase):
    """Aware clocks produce aware trigger times that compare against them."""

    def test_aware_polls_across_rollover(self):
        state = TriggerState(SCHEDULE, rng=random.Random(5))
        now = datetime(2026, 10, 19, 7, 0, tzinfo=timezone.utc)

        init = state.initialize(now)
        for trigger_at in init.trigger_set.pending_times():
            self.assertIs(trigger_at.tzinfo, timezone.utc)

        fired = []
        for _ in range(2 * 24 * 12):
            result = state.poll(now)
            if result.fire:
                fired.append(result.trigger_at)
            now += timedelta(minutes=5)

        self.assertEqual(len(fired), 6)
        self.assertTrue(all(t.tzinfo is timezone.utc for t in fired))
        self.assertEqual(state.current_set.day, date(2026, 10, 21))

    def test_aware_lazy_init(self):
        state = TriggerState(SCHEDULE, rng=random.Random(2))
        result = state.poll(datetime(2026, 10, 19, 21, 0, tzinfo=timezone(timedelta(hours=2))))

        self.assertFalse(result.fire)
        self.assertEqual(state.current_set.day, TOMORROW)
        self.assertEqual(state.current_set.entries[0].trigger_at.utcoffset(), timedelta(hours=2))


if __name__ == '__main__':
    unittest.main()
