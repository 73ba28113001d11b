#!/usr/bin/env python3
"""
Survey Pulse - Main Entry Point
Daily survey scheduler with randomized, block-based prompts

Usage:
    python main.py              # Run the scheduler until Ctrl+C
    python main.py --preview    # Print one generated day without firing anything
    python main.py --once       # Initialize, poll once, and exit
    python main.py --reports 20 # Show the 20 most recent stored reports
"""

import sys
import signal
import threading
import argparse
from datetime import datetime
from pathlib import Path

# Ensure we can import from project root
sys.path.insert(0, str(Path(__file__).parent))

import config
from core.logger import (
    setup_logging,
    log_startup_banner,
    log_section,
    log_subsection,
    log_success,
    log_warning,
    log_error,
    log_info,
    log_ready,
)
from core.database import init_database, get_database
from concurrency.locks import init_lock_manager, get_lock_manager
from agency.daily_survey import (
    PollResult,
    ScheduleConfig,
    ScheduleConfigError,
    build_default_sink,
    generate_trigger_set,
    init_daily_survey_controller,
    init_survey_scheduler,
    get_survey_scheduler,
)
from agency.daily_survey.time_utils import format_trigger_time


# Global shutdown event
_shutdown_event = threading.Event()


def signal_handler(signum, frame):
    """Handle shutdown signals gracefully."""
    print()  # New line after ^C
    log_warning("Shutdown signal received...")
    _shutdown_event.set()


def on_survey_due(result: PollResult) -> None:
    """Survey delivery belongs to the host app; here we only announce it."""
    log_success(f"Survey {result.survey_id} due now (trigger {format_trigger_time(result.trigger_at)})")


def initialize_system() -> bool:
    """
    Initialize all system components.

    Returns:
        True if successful, False otherwise
    """
    config.LOGS_DIR.mkdir(parents=True, exist_ok=True)
    config.DATA_DIR.mkdir(parents=True, exist_ok=True)
    setup_logging(
        log_file_path=config.DIAGNOSTIC_LOG_PATH,
        level=config.LOG_LEVEL,
        log_to_file=config.LOG_TO_FILE,
        log_to_console=config.LOG_TO_CONSOLE
    )

    log_startup_banner(config.VERSION, config.PROJECT_NAME)

    init_lock_manager()

    # Reports still reach the log if the database is unavailable
    if config.REPORT_TO_DATABASE:
        database = init_database(
            db_path=config.DATABASE_PATH,
            busy_timeout_ms=config.DB_BUSY_TIMEOUT_MS
        )
        if not database.is_initialized:
            log_warning("Report database unavailable - reports will only be logged")

    try:
        schedule = ScheduleConfig.from_settings()
    except ScheduleConfigError as e:
        log_error(f"Invalid daily survey schedule: {e}")
        return False

    controller = init_daily_survey_controller(
        schedule=schedule,
        sink=build_default_sink()
    )
    init_survey_scheduler(
        controller=controller,
        enabled=config.DAILY_SURVEY_ENABLED,
        on_survey=on_survey_due
    )

    print_configuration(schedule)
    return True


def print_configuration(schedule: ScheduleConfig) -> None:
    """Print configuration summary."""
    log_section("Configuration", "📡")
    log_subsection(f"Diagnostic Log: {config.DIAGNOSTIC_LOG_PATH}")
    if config.REPORT_TO_DATABASE:
        log_subsection(f"Report Database: {config.DATABASE_PATH}")
    else:
        log_subsection("Report Database: DISABLED (log only)")

    log_section("Daily Survey", "📋")
    log_subsection(f"Schedule: {schedule.describe()}")
    log_subsection(f"Survey ID: {schedule.survey_id}")
    log_subsection(f"Poll Interval: {config.DAILY_SURVEY_POLL_INTERVAL:g}s")
    log_subsection(f"Report Tag: {config.DAILY_SURVEY_REPORT_TAG}")
    log_subsection(f"Scheduler: {'ENABLED' if config.DAILY_SURVEY_ENABLED else 'DISABLED'}")


def start_background_services() -> None:
    """Start all background services."""
    log_section("Starting Services", "🔧")

    scheduler = get_survey_scheduler()
    scheduler.start()
    if scheduler.is_running():
        log_subsection("Survey scheduler started")


def stop_background_services() -> None:
    """Stop all background services gracefully."""
    log_section("Stopping Services", "🛑")

    try:
        scheduler = get_survey_scheduler()
        scheduler.stop()
        log_subsection("Survey scheduler stopped")
    except Exception as e:
        log_error(f"Error stopping survey scheduler: {e}")

    # Log final lock stats
    try:
        get_lock_manager().log_stats()
    except Exception as e:
        log_error(f"Error logging lock stats: {e}")


def run_preview() -> int:
    """Generate and print one day's trigger times without touching any state."""
    try:
        schedule = ScheduleConfig.from_settings()
    except ScheduleConfigError as e:
        log_error(f"Invalid daily survey schedule: {e}")
        return 1

    trigger_set = generate_trigger_set(datetime.now(), schedule)
    log_section(f"Trigger times for {trigger_set.day.isoformat()}", "📅")
    log_subsection(schedule.describe())
    for entry in trigger_set:
        log_subsection(f"Block {entry.block_index + 1}: {format_trigger_time(entry.trigger_at)}")
    return 0


def run_once() -> int:
    """Initialize, perform a single poll, and exit."""
    if not initialize_system():
        log_error("System initialization failed")
        return 1

    scheduler = get_survey_scheduler()
    scheduler.controller.initialize()
    result = scheduler.check_now()
    if not result.fire:
        log_info(f"No survey due: {result.message}")
    return 0


def run_reports(limit: int) -> int:
    """Print the most recent stored reports."""
    setup_logging(
        log_file_path=config.DIAGNOSTIC_LOG_PATH,
        level=config.LOG_LEVEL,
        log_to_file=False
    )
    if not init_database(config.DATABASE_PATH, config.DB_BUSY_TIMEOUT_MS).is_initialized:
        return 1

    database = get_database()
    stats = database.get_stats()
    log_section(f"Recent reports ({stats['total_reports']} stored, {stats['pending_upload']} pending upload)", "📝")
    for row in reversed(database.get_recent_log_messages(limit)):
        log_subsection(f"{row['timestamp']} v{row['version']} {row['tag']} ({row['schedule_name']}): {row['message']}")
    return 0


def run_scheduler() -> int:
    """Run the background scheduler until a shutdown signal arrives."""
    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    try:
        if not initialize_system():
            log_error("System initialization failed")
            return 1

        start_background_services()
        log_ready(config.PROJECT_NAME)

        # Block until Ctrl+C / SIGTERM
        while not _shutdown_event.is_set():
            _shutdown_event.wait(1.0)

        stop_background_services()
        log_success("Survey Pulse shutdown complete")
        return 0

    except KeyboardInterrupt:
        log_warning("Interrupted")
        stop_background_services()
        return 130

    except Exception as e:
        log_error(f"Fatal error: {e}")
        import traceback
        traceback.print_exc()
        return 1


def main() -> int:
    """
    Main entry point.

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    parser = argparse.ArgumentParser(
        description="Survey Pulse - Daily Survey Scheduler",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument(
        "--preview", "-p",
        action="store_true",
        help="Print one day's generated trigger times and exit"
    )
    parser.add_argument(
        "--once", "-o",
        action="store_true",
        help="Initialize, poll once, and exit"
    )
    parser.add_argument(
        "--reports", "-r",
        type=int,
        metavar="N",
        help="Show the N most recent stored reports and exit"
    )
    args = parser.parse_args()

    if args.preview:
        return run_preview()

    if args.reports is not None:
        return run_reports(args.reports)

    if args.once:
        return run_once()

    return run_scheduler()


if __name__ == "__main__":
    sys.exit(main())
