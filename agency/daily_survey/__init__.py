"""
Survey Pulse - Daily Survey Scheduling
Randomized, block-based survey prompts across the day

Each day's active window is cut into equal blocks and one prompt fires at
a random time inside each block, with a minimum gap between consecutive
prompts. The host polls periodically; each poll fires at most one survey.

Layers:
    - schedule_config: validated block/window/spacing settings
    - generator: one random trigger time per block
    - tracker: per-poll fire/no-fire decisions (no side effects)
    - controller: locking and reporting around the tracker
    - scheduler: background thread that polls the controller
"""

from agency.daily_survey.schedule_config import (
    ScheduleConfig,
    ScheduleConfigError,
)

from agency.daily_survey.generator import (
    EntryStatus,
    TriggerEntry,
    TriggerSet,
    generate_trigger_set,
)

from agency.daily_survey.tracker import (
    TriggerState,
    PollResult,
    InitResult,
)

from agency.daily_survey.reporting import (
    Report,
    ReportSink,
    LogReportSink,
    DatabaseReportSink,
    CompositeReportSink,
    build_default_sink,
)

from agency.daily_survey.controller import (
    DailySurveyController,
    get_daily_survey_controller,
    init_daily_survey_controller,
)

from agency.daily_survey.scheduler import (
    SurveyScheduler,
    get_survey_scheduler,
    init_survey_scheduler,
)


__all__ = [
    # Configuration
    'ScheduleConfig',
    'ScheduleConfigError',

    # Generator
    'EntryStatus',
    'TriggerEntry',
    'TriggerSet',
    'generate_trigger_set',

    # Tracker
    'TriggerState',
    'PollResult',
    'InitResult',

    # Reporting
    'Report',
    'ReportSink',
    'LogReportSink',
    'DatabaseReportSink',
    'CompositeReportSink',
    'build_default_sink',

    # Controller
    'DailySurveyController',
    'get_daily_survey_controller',
    'init_daily_survey_controller',

    # Scheduler
    'SurveyScheduler',
    'get_survey_scheduler',
    'init_survey_scheduler',
]
