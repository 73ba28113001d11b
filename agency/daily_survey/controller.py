"""
Survey Pulse - Daily Survey Controller
Host-facing entry point: serializes calls, runs the tracker, sends reports
"""

import random
from datetime import datetime
from typing import Dict, Optional

import config
from agency.daily_survey.generator import TriggerSet
from agency.daily_survey.reporting import LogReportSink, Report, ReportSink
from agency.daily_survey.schedule_config import ScheduleConfig
from agency.daily_survey.tracker import InitResult, PollResult, TriggerState
from concurrency.locks import LockManager, get_lock_manager, schedule_lock_name
from core.build_info import get_build_version
from core.logger import log_error, log_info


class DailySurveyController:
    """
    Divides each day into blocks and triggers the survey at a random
    time in each block.

    The host calls initialize() once, then poll() periodically (roughly
    every 5 minutes). Every call produces exactly one report. Reporting
    failures are logged and never affect the scheduling decision.
    """

    def __init__(
        self,
        schedule: ScheduleConfig,
        name: str = "default",
        sink: Optional[ReportSink] = None,
        rng: Optional[random.Random] = None,
        version: Optional[str] = None,
        tag: Optional[str] = None,
        lock_manager: Optional[LockManager] = None
    ):
        """
        Initialize the controller.

        Args:
            schedule: Validated schedule configuration
            name: Schedule name (e.g. a participant ID); one lock per name
            sink: Where reports go (logged only if omitted)
            rng: Random source for trigger generation
            version: Build version for reports (looked up once if omitted)
            tag: Report tag (config.DAILY_SURVEY_REPORT_TAG if omitted)
            lock_manager: Lock manager (the global one if omitted)
        """
        self.name = name
        self.schedule = schedule
        self._state = TriggerState(schedule, rng=rng)
        self._sink = sink or LogReportSink()
        self._version = version if version is not None else get_build_version()
        self._tag = tag or config.DAILY_SURVEY_REPORT_TAG

        self._lock_manager = lock_manager or get_lock_manager()
        self._lock_name = schedule_lock_name(name)
        self._lock_manager.create_lock(self._lock_name)

    @property
    def version(self) -> str:
        return self._version

    @property
    def trigger_set(self) -> Optional[TriggerSet]:
        """The currently installed trigger set (None before the first call)."""
        return self._state.current_set

    def initialize(self, now: Optional[datetime] = None) -> InitResult:
        """
        Build the initial trigger set, skipping times that already passed.

        Args:
            now: Current time, naive local or aware (defaults to datetime.now())

        Returns:
            InitResult for the installed set
        """
        if now is None:
            now = datetime.now()

        with self._lock_manager.acquire(self._lock_name, timeout=config.SCHEDULE_LOCK_TIMEOUT):
            result = self._state.initialize(now)

        if result.rolled_to_next_day:
            log_info(f"Daily survey '{self.name}': today's prompts already passed, scheduling tomorrow", prefix="📋")

        self._send_report(result.message)
        return result

    def poll(self, now: Optional[datetime] = None) -> PollResult:
        """
        Check whether a survey should be issued now.

        Initializes lazily if initialize() was never called. Fires at most
        one survey per call.

        Args:
            now: Current time, naive local or aware (defaults to datetime.now())

        Returns:
            PollResult with the decision
        """
        if now is None:
            now = datetime.now()

        with self._lock_manager.acquire(self._lock_name, timeout=config.SCHEDULE_LOCK_TIMEOUT):
            result = self._state.poll(now)

        self._send_report(result.message)
        return result

    def _send_report(self, message: str) -> None:
        """Hand a report to the sink. Failures are logged, never raised."""
        report = Report(
            timestamp=datetime.now(),
            version=self._version,
            message=message,
            tag=self._tag,
            schedule_name=self.name
        )
        try:
            self._sink.send(report)
        except Exception as e:
            log_error(f"Daily survey '{self.name}': failed to send report: {e}")


# Controllers by schedule name
_controllers: Dict[str, DailySurveyController] = {}


def get_daily_survey_controller(name: Optional[str] = None) -> DailySurveyController:
    """
    Get a registered controller, creating one from config if needed.

    Args:
        name: Schedule name (config.DAILY_SURVEY_DEFAULT_SCHEDULE if omitted)
    """
    name = name or config.DAILY_SURVEY_DEFAULT_SCHEDULE
    if name not in _controllers:
        _controllers[name] = DailySurveyController(ScheduleConfig.from_settings(), name=name)
    return _controllers[name]


def init_daily_survey_controller(
    schedule: Optional[ScheduleConfig] = None,
    name: Optional[str] = None,
    sink: Optional[ReportSink] = None,
    rng: Optional[random.Random] = None
) -> DailySurveyController:
    """
    Create and register a controller, replacing any with the same name.

    Args:
        schedule: Schedule configuration (built from config if omitted)
        name: Schedule name (config.DAILY_SURVEY_DEFAULT_SCHEDULE if omitted)
        sink: Report sink
        rng: Random source

    Returns:
        The registered DailySurveyController

    Raises:
        ScheduleConfigError: If the configured schedule is impossible
    """
    name = name or config.DAILY_SURVEY_DEFAULT_SCHEDULE
    controller = DailySurveyController(
        schedule or ScheduleConfig.from_settings(),
        name=name,
        sink=sink,
        rng=rng
    )
    _controllers[name] = controller
    return controller


def reset_daily_survey_controllers() -> None:
    """Forget every registered controller."""
    _controllers.clear()
