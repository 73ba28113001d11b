"""
Survey Pulse - Reporting Sinks
Where the scheduler's per-operation status reports end up
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

import config
from core.database import Database, get_database
from core.logger import log_info, log_error
from concurrency.db_retry import db_retry
from concurrency.locks import get_lock_manager


@dataclass
class Report:
    """
    One status report, produced per initialize/poll call.

    Attributes:
        timestamp: When the report was produced
        version: Build version of the running app
        message: Human-readable status text
        tag: Fixed tag identifying the scheduler
        schedule_name: Schedule that produced the report
    """
    timestamp: datetime
    version: str
    message: str
    tag: str
    schedule_name: str = "default"


class ReportSink(ABC):
    """Receives reports. Delivery and storage are entirely up to the sink."""

    @abstractmethod
    def send(self, report: Report) -> None:
        pass


class LogReportSink(ReportSink):
    """Echoes reports to the console and the diagnostic log."""

    def send(self, report: Report) -> None:
        log_info(f"{report.tag} ({report.schedule_name}): {report.message}", prefix="📝")


class DatabaseReportSink(ReportSink):
    """Stores reports in the log_messages table so they can be uploaded later."""

    def __init__(self, database: Optional[Database] = None):
        """
        Args:
            database: Database to write to (the global database if omitted)
        """
        self._database = database
        self._lock_manager = get_lock_manager()

    @property
    def database(self) -> Database:
        return self._database or get_database()

    @db_retry()
    def send(self, report: Report) -> None:
        with self._lock_manager.acquire("database"):
            self.database.insert_log_message(
                timestamp=report.timestamp,
                version=report.version,
                message=report.message,
                tag=report.tag,
                schedule_name=report.schedule_name
            )


class CompositeReportSink(ReportSink):
    """Fans a report out to several sinks; one failing sink doesn't stop the rest."""

    def __init__(self, sinks: List[ReportSink]):
        self.sinks = list(sinks)

    def send(self, report: Report) -> None:
        for sink in self.sinks:
            try:
                sink.send(report)
            except Exception as e:
                log_error(f"{type(sink).__name__} failed to store report: {e}")


def build_default_sink(database: Optional[Database] = None) -> ReportSink:
    """
    Build the sink used by the app: log output, plus database storage
    when REPORT_TO_DATABASE is enabled and a database is available.
    """
    sinks: List[ReportSink] = [LogReportSink()]

    if config.REPORT_TO_DATABASE:
        if database is None:
            try:
                database = get_database()
            except RuntimeError:
                database = None
        if database is not None and database.is_initialized:
            sinks.append(DatabaseReportSink(database))

    if len(sinks) == 1:
        return sinks[0]
    return CompositeReportSink(sinks)
