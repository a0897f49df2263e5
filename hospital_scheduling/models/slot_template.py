"""Slot template model definitions."""

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, text
from hospital_scheduling.database import Base

# AVAILABLE is the pending state: requested by a doctor, awaiting an admin decision.
STATUS_AVAILABLE = 'AVAILABLE'
STATUS_ASSIGNED = 'ASSIGNED'
STATUS_REJECTED = 'REJECTED'

TIME_SLOT_LABELS = ('8-12', '12-4', '4-8', '20-00')

_ACTIVE_CLAUSE = text("status != 'REJECTED'")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SlotTemplate(Base):
    """A doctor's recurring weekly window, e.g. every Monday 8-12."""
    __tablename__ = "slot_templates"
    __table_args__ = (
        Index(
            'uq_slot_templates_active',
            'doctor_id',
            'day_of_week',
            'time_slot',
            unique=True,
            sqlite_where=_ACTIVE_CLAUSE,
            postgresql_where=_ACTIVE_CLAUSE,
        ),
        Index('idx_slot_templates_doctor_status', 'doctor_id', 'status'),
    )

    id = Column(Integer, primary_key=True)
    doctor_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    day_of_week = Column(Integer, nullable=False)  # 0=Sunday
    time_slot = Column(String, nullable=False)
    status = Column(String, nullable=False, default=STATUS_AVAILABLE)
    notes = Column(String)
    rejection_reason = Column(String)
    requested_at = Column(DateTime, default=_utcnow)
    decided_at = Column(DateTime)
    decided_by = Column(Integer, ForeignKey("users.id"))

    @property
    def is_pending(self) -> bool:
        return self.status == STATUS_AVAILABLE

    @property
    def is_bookable(self) -> bool:
        return self.status == STATUS_ASSIGNED
