"""
Survey Pulse - Survey Scheduler
Background thread that polls the daily survey controller and fires surveys when due.
"""

import threading
from datetime import datetime
from typing import Callable, Optional

import config
from core.logger import log_info, log_error
from agency.daily_survey.controller import DailySurveyController, get_daily_survey_controller
from agency.daily_survey.tracker import PollResult


class SurveyScheduler:
    """
    Background scheduler that polls a DailySurveyController on a fixed interval.

    The controller doesn't manage its own timer; this thread is the host's
    timer. Each tick is one poll, so at most one survey fires per tick.

    Features:
    - Runs as daemon thread, polling every 5 minutes by default
    - Calls on_survey with the PollResult whenever a survey is due
    - Errors in a poll or in the callback are logged and the loop keeps going
    """

    def __init__(
        self,
        controller: Optional[DailySurveyController] = None,
        check_interval: Optional[float] = None,
        enabled: bool = True,
        on_survey: Optional[Callable[[PollResult], None]] = None,
        clock: Callable[[], datetime] = datetime.now
    ):
        """
        Initialize the survey scheduler.

        Args:
            controller: Controller to poll (the default schedule's if omitted)
            check_interval: Seconds between polls (config.DAILY_SURVEY_POLL_INTERVAL)
            enabled: Whether the scheduler is active
            on_survey: Callback when a survey fires (receives the PollResult)
            clock: Source of the current time
        """
        self._controller = controller
        self.check_interval = check_interval if check_interval is not None else config.DAILY_SURVEY_POLL_INTERVAL
        self.enabled = enabled
        self._on_survey = on_survey
        self._clock = clock

        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()

    @property
    def controller(self) -> DailySurveyController:
        if self._controller is None:
            self._controller = get_daily_survey_controller()
        return self._controller

    def start(self) -> None:
        """Start the survey scheduler thread."""
        if not self.enabled:
            log_info("Survey scheduler disabled", prefix="⏰")
            return

        if self._thread is not None and self._thread.is_alive():
            return

        self._stop_event.clear()

        # Trim today's already-passed prompts before the first tick
        if self.controller.trigger_set is None:
            self.controller.initialize(self._clock())

        self._thread = threading.Thread(
            target=self._scheduler_loop,
            daemon=True,
            name=f"SurveyScheduler-{self.controller.name}"
        )
        self._thread.start()
        log_info(f"Survey scheduler started (polling every {self.check_interval}s)", prefix="⏰")

    def stop(self) -> None:
        """Stop the survey scheduler thread."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=5.0)
            self._thread = None
        log_info("Survey scheduler stopped", prefix="⏰")

    def set_callback(self, callback: Callable[[PollResult], None]) -> None:
        """Set the callback function for when a survey fires."""
        self._on_survey = callback

    def is_running(self) -> bool:
        """Check if the scheduler thread is running."""
        return self._thread is not None and self._thread.is_alive()

    def _scheduler_loop(self) -> None:
        """Main scheduler loop - polls periodically until stopped."""
        while not self._stop_event.is_set():
            try:
                self.check_now()
            except Exception as e:
                log_error(f"Survey scheduler error: {e}")

            # Wait for next check interval (or until stop is requested)
            self._stop_event.wait(self.check_interval)

    def check_now(self) -> PollResult:
        """Poll once and fire the callback if a survey is due."""
        result = self.controller.poll(self._clock())

        if result.fire:
            log_info(f"Survey {result.survey_id} due ({self.controller.name})", prefix="⏰")

            if self._on_survey:
                try:
                    self._on_survey(result)
                except Exception as e:
                    log_error(f"Error in survey callback: {e}")

        return result


# Global scheduler instance
_survey_scheduler: Optional[SurveyScheduler] = None


def get_survey_scheduler() -> SurveyScheduler:
    """Get the global survey scheduler instance."""
    global _survey_scheduler
    if _survey_scheduler is None:
        _survey_scheduler = SurveyScheduler()
    return _survey_scheduler


def init_survey_scheduler(
    controller: Optional[DailySurveyController] = None,
    check_interval: Optional[float] = None,
    enabled: bool = True,
    on_survey: Optional[Callable[[PollResult], None]] = None
) -> SurveyScheduler:
    """
    Initialize the global survey scheduler.

    Args:
        controller: Controller to poll
        check_interval: Seconds between polls
        enabled: Whether scheduler is active
        on_survey: Callback when a survey fires

    Returns:
        The initialized SurveyScheduler instance
    """
    global _survey_scheduler
    _survey_scheduler = SurveyScheduler(
        controller=controller,
        check_interval=check_interval,
        enabled=enabled,
        on_survey=on_survey
    )
    return _survey_scheduler
