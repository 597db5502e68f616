from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.rate_calculator import AttendanceRateCalculator
from .attendance.reconciler import AttendanceReconciler
from .attendance.service import AttendanceService
from .builders.mysql_builder_repository import MySQLBuilderRepository
from .class_calendar.mysql_cancelled_day_repository import MySQLCancelledDayRepository
from .class_calendar.service import ClassCalendar
from .core.settings import EngineSettings
from .database.connection import DBConfig, DatabaseConnection
from .notifications.coordinator import ChangeNotificationCoordinator
from .notifications.mysql_change_feed import MySQLPollingChangeFeed
from .recognition.enrollment import SignatureEnrollmentService
from .recognition.history import RecognitionHistory
from .recognition.matcher import IdentityMatcher
from .recognition.mysql_signature_repository import MySQLSignatureRepository
from .recognition.service import RecognitionService
from .reports.service import AttendanceReportService


@dataclass(frozen=True)
class Container:
    conn: DatabaseConnection
    settings: EngineSettings

    builders_repo: MySQLBuilderRepository
    attendance_repo: MySQLAttendanceRepository
    cancelled_days_repo: MySQLCancelledDayRepository
    signatures_repo: MySQLSignatureRepository

    calendar: ClassCalendar
    rate_calculator: AttendanceRateCalculator
    attendance_service: AttendanceService
    reconciler: AttendanceReconciler
    matcher: IdentityMatcher
    recognition_service: RecognitionService
    enrollment_service: SignatureEnrollmentService
    report_service: AttendanceReportService
    change_feed: MySQLPollingChangeFeed
    notifications: ChangeNotificationCoordinator


def build_container(*, db_config: dict, settings: Optional[EngineSettings] = None) -> Container:
    settings = settings or EngineSettings()
    conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))

    builders_repo = MySQLBuilderRepository(conn)
    attendance_repo = MySQLAttendanceRepository(conn)
    cancelled_days_repo = MySQLCancelledDayRepository(conn)
    signatures_repo = MySQLSignatureRepository(conn)

    calendar = ClassCalendar(
        cancelled_days_repo,
        excluded_weekday=settings.excluded_weekday,
        holidays=settings.holidays,
        ttl_seconds=settings.calendar_cache_ttl_seconds,
    )
    rate_calculator = AttendanceRateCalculator(calendar, epoch_start=settings.epoch_start)
    attendance_service = AttendanceService(attendance_repo, builders_repo)
    reconciler = AttendanceReconciler(builders_repo, attendance_repo, calendar)

    cooldown = timedelta(seconds=settings.recognition_cooldown_seconds)
    matcher = IdentityMatcher(
        RecognitionHistory(retention=cooldown, max_entries=settings.recognition_history_size),
        threshold=settings.match_threshold,
        cooldown=cooldown,
    )
    recognition_service = RecognitionService(
        signatures_repo,
        attendance_service,
        matcher,
        timeout_seconds=settings.match_timeout_seconds,
    )
    enrollment_service = SignatureEnrollmentService(signatures_repo, builders_repo)
    report_service = AttendanceReportService(
        attendance_repo,
        builders_repo,
        attendance_service,
        calendar,
        calculator=rate_calculator,
    )

    change_feed = MySQLPollingChangeFeed(conn, interval=settings.feed_poll_interval_seconds)
    notifications = ChangeNotificationCoordinator(
        change_feed,
        debounce=settings.notify_debounce_seconds,
        error_cooldown=settings.feed_error_cooldown_seconds,
    )

    return Container(
        conn=conn,
        settings=settings,
        builders_repo=builders_repo,
        attendance_repo=attendance_repo,
        cancelled_days_repo=cancelled_days_repo,
        signatures_repo=signatures_repo,
        calendar=calendar,
        rate_calculator=rate_calculator,
        attendance_service=attendance_service,
        reconciler=reconciler,
        matcher=matcher,
        recognition_service=recognition_service,
        enrollment_service=enrollment_service,
        report_service=report_service,
        change_feed=change_feed,
        notifications=notifications,
    )
