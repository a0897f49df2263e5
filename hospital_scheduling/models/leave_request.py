"""Leave request model definitions.

Rows are written by the leave management module; scheduling only reads the
approved ones.
"""

from sqlalchemy import Column, Date, ForeignKey, Index, Integer, String
from hospital_scheduling.database import Base

LEAVE_STATUS_PENDING = 'pending'
LEAVE_STATUS_APPROVED = 'approved'
LEAVE_STATUS_REJECTED = 'rejected'


class LeaveRequest(Base):
    """Represents a doctor's leave over an inclusive date range."""
    __tablename__ = "leave_requests"
    __table_args__ = (
        Index('idx_leave_requests_doctor_status', 'doctor_id', 'status'),
        Index('idx_leave_requests_range', 'start_date', 'end_date'),
    )

    id = Column(Integer, primary_key=True)
    doctor_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    leave_type = Column(String, default='other')
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    reason = Column(String)
    status = Column(String, nullable=False, default=LEAVE_STATUS_PENDING)
