"""
Survey Pulse - Trigger-State Tracker
Holds the current day's trigger set and decides, poll by poll, when to prompt
"""

import random
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from agency.daily_survey.generator import TriggerSet, generate_trigger_set
from agency.daily_survey.schedule_config import ScheduleConfig
from agency.daily_survey.time_utils import format_trigger_time, next_day


UNINITIALIZED_NOTE = "Uninitialized trigger time."
NOT_DUE_MESSAGE = "Not the time to prompt."


@dataclass
class PollResult:
    """
    Outcome of one poll.

    Attributes:
        fire: Whether a survey should be issued now
        survey_id: Questionnaire to issue (None when not firing)
        message: Human-readable explanation for the report
        trigger_at: The trigger time that fired, if any
        rolled_over: Whether this poll installed the next day's set
    """
    fire: bool
    survey_id: Optional[int]
    message: str
    trigger_at: Optional[datetime] = None
    rolled_over: bool = False

    @classmethod
    def no_op(cls, message: str, rolled_over: bool = False) -> "PollResult":
        return cls(fire=False, survey_id=None, message=message, rolled_over=rolled_over)


@dataclass
class InitResult:
    """Outcome of initializing a schedule."""
    trigger_set: TriggerSet
    message: str
    rolled_to_next_day: bool = False


class TriggerState:
    """
    Trigger set of one schedule plus the poll decision logic.

    Pure decision logic: nothing here reports or logs. Callers own
    the side effects (see DailySurveyController).

    Not thread-safe; one initialize/poll call must finish before the
    next one starts.

    Trigger times take their tzinfo from the "now" that generated them.
    Pass either naive local times or aware times for a schedule, not a mix.
    """

    def __init__(
        self,
        schedule: ScheduleConfig,
        rng: Optional[random.Random] = None,
        generator: Callable[..., TriggerSet] = generate_trigger_set
    ):
        """
        Args:
            schedule: Validated schedule configuration
            rng: Random source shared by every generated day
            generator: Trigger-set generator (day, schedule, rng) -> TriggerSet
        """
        self.schedule = schedule
        self._rng = rng or random.Random()
        self._generate = generator
        self.current_set: Optional[TriggerSet] = None

    @property
    def is_initialized(self) -> bool:
        return self.current_set is not None

    def install(self, trigger_set: TriggerSet) -> None:
        """Replace the current trigger set wholesale."""
        self.current_set = trigger_set

    def initialize(self, now: datetime) -> InitResult:
        """
        Build the trigger set for the day containing now.

        Trigger times that already passed are consumed without firing.
        If that leaves nothing for today, tomorrow's set is used instead.

        Args:
            now: Current time

        Returns:
            InitResult with the installed set and its report text
        """
        trigger_set = self._generate(now, self.schedule, self._rng)
        trigger_set.consume_before(now)

        rolled = False
        if trigger_set.is_exhausted():
            trigger_set = self._generate(next_day(now), self.schedule, self._rng)
            rolled = True

        self.install(trigger_set)
        return InitResult(
            trigger_set=trigger_set,
            message=trigger_set.describe(),
            rolled_to_next_day=rolled
        )

    def poll(self, now: datetime) -> PollResult:
        """
        Decide whether a survey should be issued now.

        Entries are scanned in array order. The first pending entry decides:
        if it's still in the future nothing is due, otherwise it fires and
        is consumed. Overdue entries after it wait for later polls. Once
        every entry is consumed, the next day's set is installed and this
        poll doesn't fire.

        Args:
            now: Current time

        Returns:
            PollResult describing the decision
        """
        prefix = ""
        if self.current_set is None:
            init = self.initialize(now)
            prefix = f"{UNINITIALIZED_NOTE} {init.message}. "

        for entry in self.current_set.entries:
            if not entry.is_pending:
                continue

            if entry.trigger_at > now:
                return PollResult.no_op(prefix + NOT_DUE_MESSAGE)

            entry.consume()
            return PollResult(
                fire=True,
                survey_id=self.schedule.survey_id,
                message=f"{prefix}Prompting now for {format_trigger_time(entry.trigger_at)}",
                trigger_at=entry.trigger_at
            )

        # Every prompt for this set has been used up
        next_set = self._generate(next_day(now), self.schedule, self._rng)
        self.install(next_set)
        return PollResult.no_op(prefix + next_set.describe(), rolled_over=True)
