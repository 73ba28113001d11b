"""
Survey Pulse - Schedule Configuration
Block count, active window, and prompt spacing for one daily schedule
"""

from dataclasses import dataclass
from datetime import timedelta

import config


MS_PER_HOUR = 60 * 60 * 1000


class ScheduleConfigError(ValueError):
    """Raised when a schedule configuration can never produce a valid day."""
    pass


@dataclass(frozen=True)
class ScheduleConfig:
    """
    Immutable configuration of a daily survey schedule.

    The window from window_start_hour to window_end_hour is divided into
    block_count blocks of equal length; one prompt fires in each block.

    Attributes:
        block_count: Number of prompts per day
        window_start_hour: First hour of the active window (0-23)
        window_end_hour: Hour the active window closes (0-23, after start)
        min_spacing_ms: Minimum gap between two consecutive prompts
        survey_id: Questionnaire ID returned when a prompt fires
    """
    block_count: int
    window_start_hour: int
    window_end_hour: int
    min_spacing_ms: int
    survey_id: int = 1

    def __post_init__(self):
        self.validate()

    @property
    def block_length_ms(self) -> int:
        """Length of every block in ms; window hours / block_count, truncated to whole hours."""
        return (self.window_end_hour - self.window_start_hour) // self.block_count * MS_PER_HOUR

    @property
    def block_length(self) -> timedelta:
        return timedelta(milliseconds=self.block_length_ms)

    @property
    def min_spacing(self) -> timedelta:
        return timedelta(milliseconds=self.min_spacing_ms)

    def validate(self) -> None:
        """
        Reject configurations the generator can't satisfy.

        The spacing bound is min_spacing_ms <= block_length_ms: a prompt drawn
        at the last millisecond of one block still leaves room for a prompt
        min_spacing_ms later inside the next block.

        Raises:
            ScheduleConfigError: If the configuration is impossible
        """
        if self.block_count <= 0:
            raise ScheduleConfigError(f"block_count must be positive, got {self.block_count}")

        if not 0 <= self.window_start_hour <= 23:
            raise ScheduleConfigError(
                f"window_start_hour must be between 0 and 23, got {self.window_start_hour}"
            )

        if not 0 <= self.window_end_hour <= 23:
            raise ScheduleConfigError(
                f"window_end_hour must be between 0 and 23, got {self.window_end_hour}"
            )

        if self.window_start_hour >= self.window_end_hour:
            raise ScheduleConfigError(
                f"window_start_hour ({self.window_start_hour}) must be before "
                f"window_end_hour ({self.window_end_hour})"
            )

        if self.min_spacing_ms < 0:
            raise ScheduleConfigError(f"min_spacing_ms can't be negative, got {self.min_spacing_ms}")

        if self.block_length_ms <= 0:
            raise ScheduleConfigError(
                f"{self.block_count} blocks don't fit in a "
                f"{self.window_end_hour - self.window_start_hour}h window (each block needs a whole hour)"
            )

        if self.min_spacing_ms > self.block_length_ms:
            raise ScheduleConfigError(
                f"min_spacing_ms ({self.min_spacing_ms}) exceeds the block length "
                f"({self.block_length_ms}ms); consecutive prompts can't be spaced that far apart"
            )

    @classmethod
    def from_settings(cls) -> "ScheduleConfig":
        """Build the schedule from the DAILY_SURVEY_* settings in config."""
        return cls(
            block_count=config.DAILY_SURVEY_BLOCK_COUNT,
            window_start_hour=config.DAILY_SURVEY_START_HOUR,
            window_end_hour=config.DAILY_SURVEY_END_HOUR,
            min_spacing_ms=config.DAILY_SURVEY_MIN_SPACING_MS,
            survey_id=config.DAILY_SURVEY_SURVEY_ID,
        )

    def describe(self) -> str:
        """One-line human-readable summary for startup logs."""
        block_minutes = self.block_length_ms / 60000
        spacing_minutes = self.min_spacing_ms / 60000
        return (
            f"{self.block_count} prompts between {self.window_start_hour:02d}:00 and "
            f"{self.window_end_hour:02d}:00 ({block_minutes:g} min blocks, "
            f"min spacing {spacing_minutes:g} min)"
        )
