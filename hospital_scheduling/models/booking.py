"""Booking model definitions."""

from datetime import datetime, timezone

from sqlalchemy import Column, Date, DateTime, ForeignKey, Index, Integer, String, text
from hospital_scheduling.database import Base

STATUS_CONFIRMED = 'CONFIRMED'
STATUS_CANCELLED = 'CANCELLED'

URGENCY_LEVELS = ('low', 'normal', 'high', 'emergency')
DEFAULT_URGENCY = 'normal'

_CONFIRMED_CLAUSE = text("status = 'CONFIRMED'")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Booking(Base):
    """A patient's claim on one calendar date of a slot template."""
    __tablename__ = "bookings"
    __table_args__ = (
        Index(
            'uq_bookings_confirmed_instance',
            'slot_template_id',
            'booking_date',
            unique=True,
            sqlite_where=_CONFIRMED_CLAUSE,
            postgresql_where=_CONFIRMED_CLAUSE,
        ),
        Index('idx_bookings_patient_date', 'patient_id', 'booking_date'),
    )

    id = Column(Integer, primary_key=True)
    slot_template_id = Column(Integer, ForeignKey("slot_templates.id"), nullable=False)
    patient_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    booking_date = Column(Date, nullable=False)
    reason = Column(String, nullable=False)
    urgency = Column(String, default=DEFAULT_URGENCY)
    status = Column(String, nullable=False, default=STATUS_CONFIRMED)
    created_at = Column(DateTime, default=_utcnow)
    cancelled_at = Column(DateTime)
