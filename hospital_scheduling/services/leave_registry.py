"""Read-only view of approved doctor leave."""

from collections.abc import Iterable
from datetime import date, timedelta

from sqlalchemy.orm import Session

from hospital_scheduling.database import storage_guard
from hospital_scheduling.models.leave_request import LEAVE_STATUS_APPROVED, LeaveRequest

LeaveRange = tuple[date, date]


def list_approved_leave(db: Session, doctor_id: int, window_start: date, window_end: date) -> list[LeaveRange]:
    """Approved leave ranges (inclusive) overlapping ``[window_start, window_end)``."""
    with storage_guard(db, f'list approved leave for doctor {doctor_id}'):
        rows = db.query(LeaveRequest.start_date, LeaveRequest.end_date).filter(
            LeaveRequest.doctor_id == doctor_id,
            LeaveRequest.status == LEAVE_STATUS_APPROVED,
            LeaveRequest.start_date < window_end,
            LeaveRequest.end_date >= window_start,
        ).order_by(LeaveRequest.start_date.asc()).all()
    return [(start_date, end_date) for start_date, end_date in rows]


def is_within_leave(value: date, leave_ranges: Iterable[LeaveRange]) -> bool:
    return any(start_date <= value <= end_date for start_date, end_date in leave_ranges)


def is_on_leave(db: Session, doctor_id: int, value: date) -> bool:
    return is_within_leave(value, list_approved_leave(db, doctor_id, value, value + timedelta(days=1)))
