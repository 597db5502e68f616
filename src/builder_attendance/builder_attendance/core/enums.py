from __future__ import annotations

from enum import Enum


class AttendanceStatus(str, Enum):
    """Attendance status as stored in the datastore."""

    PRESENT = "present"
    LATE = "late"
    ABSENT = "absent"
    EXCUSED = "excused"
    PENDING = "pending"

    @property
    def counts_as_attended(self) -> bool:
        return self in (AttendanceStatus.PRESENT, AttendanceStatus.LATE)


class MatchReason(str, Enum):
    """Why a signature match did or did not produce an identity."""

    MATCHED = "matched"
    NO_ENROLLED_SIGNATURES = "no_enrolled_signatures"
    ABOVE_THRESHOLD = "above_threshold"


class CheckInStatus(str, Enum):
    """Outcome of a single recognition check-in attempt."""

    CHECKED_IN = "checked_in"
    ALREADY_RECORDED = "already_recorded"
    RECENTLY_MATCHED = "recently_matched"
    NO_MATCH = "no_match"
    NO_ENROLLED_SIGNATURES = "no_enrolled_signatures"
    TIMED_OUT = "timed_out"
    BUSY = "busy"
    FAILED = "failed"


class WriteOutcome(str, Enum):
    """Result of an upsert keyed on (builder, date)."""

    CREATED = "created"
    UPDATED = "updated"
    UNCHANGED = "unchanged"


class ChangeKind(str, Enum):
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"
