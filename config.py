"""
Survey Pulse - Configuration
Feature flags, schedule constants, and intervals
"""

import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# =============================================================================
# PATHS
# =============================================================================
PROJECT_ROOT = Path(__file__).parent
DATA_DIR = PROJECT_ROOT / "data"
LOGS_DIR = PROJECT_ROOT / "logs"
DATABASE_PATH = DATA_DIR / "survey_pulse.db"
DIAGNOSTIC_LOG_PATH = LOGS_DIR / "diagnostic.log"

# =============================================================================
# VERSION
# =============================================================================
VERSION = "0.1.0"
PROJECT_NAME = "Survey Pulse"

# Distribution name used to look up the installed build version.
# If the lookup fails, reports carry BUILD_VERSION_FALLBACK instead.
PACKAGE_NAME = "survey-pulse"
BUILD_VERSION_FALLBACK = "0"

# =============================================================================
# DAILY SURVEY SCHEDULE
# =============================================================================
# The active window (START_HOUR to END_HOUR) is split into BLOCK_COUNT blocks of
# equal whole-hour length (any leftover hours at the end of the window stay
# unused), and one survey prompt is triggered at a random time inside
# each block. Two consecutive prompts are never closer than MIN_SPACING_MS.
#
# MIN_SPACING_MS must not exceed the block length:
#   (END_HOUR - START_HOUR) // BLOCK_COUNT whole hours
# Otherwise the schedule is rejected at startup.
DAILY_SURVEY_ENABLED = os.getenv("DAILY_SURVEY_ENABLED", "true").lower() == "true"
DAILY_SURVEY_BLOCK_COUNT = int(os.getenv("DAILY_SURVEY_BLOCK_COUNT", "3"))
DAILY_SURVEY_START_HOUR = int(os.getenv("DAILY_SURVEY_START_HOUR", "8"))
DAILY_SURVEY_END_HOUR = int(os.getenv("DAILY_SURVEY_END_HOUR", "20"))
DAILY_SURVEY_MIN_SPACING_MS = int(os.getenv("DAILY_SURVEY_MIN_SPACING_MS", str(2 * 60 * 60 * 1000)))

# Questionnaire ID returned when a prompt fires. Defined by the survey content,
# not computed by the scheduler.
DAILY_SURVEY_SURVEY_ID = int(os.getenv("DAILY_SURVEY_SURVEY_ID", "1"))

# How often the background scheduler polls (seconds)
DAILY_SURVEY_POLL_INTERVAL = float(os.getenv("DAILY_SURVEY_POLL_INTERVAL", "300"))  # 5 minutes

# Tag attached to every operation report
DAILY_SURVEY_REPORT_TAG = "SURVEY_PULSE:DSC"

# Name of the default schedule (one controller per schedule, e.g. per participant)
DAILY_SURVEY_DEFAULT_SCHEDULE = os.getenv("DAILY_SURVEY_DEFAULT_SCHEDULE", "default")

# =============================================================================
# REPORTING CONFIGURATION
# =============================================================================
# Reports are always echoed to the log. When REPORT_TO_DATABASE is on they are
# also stored in the log_messages table for later upload.
REPORT_TO_DATABASE = os.getenv("REPORT_TO_DATABASE", "true").lower() == "true"

# =============================================================================
# DATABASE CONFIGURATION
# =============================================================================
DB_BUSY_TIMEOUT_MS = 10000
DB_MAX_RETRIES = 5
DB_RETRY_INITIAL_DELAY = 0.1
DB_RETRY_BACKOFF_MULTIPLIER = 2.0

# =============================================================================
# LOGGING CONFIGURATION
# =============================================================================
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_TO_FILE = True
LOG_TO_CONSOLE = True

# =============================================================================
# CONCURRENCY CONFIGURATION
# =============================================================================
SCHEDULE_LOCK_TIMEOUT = 30.0  # Seconds to wait for a schedule lock before giving up
