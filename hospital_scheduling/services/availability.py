"""Which concrete dates a patient can currently book with a doctor.

The result is a snapshot for rendering choices. It is never proof of
availability: a booking can still lose to a concurrent one at commit time.
"""

from datetime import date, timedelta

from sqlalchemy.orm import Session

from hospital_scheduling.models.slot_template import SlotTemplate
from hospital_scheduling.models.user import User
from hospital_scheduling.services import booking_ledger, leave_registry, slot_templates
from hospital_scheduling.services.calendar import materialize_dates

ResolvedSlot = tuple[SlotTemplate, list[date]]


def _surviving_dates(template, window_start, window_end, leave_ranges, booked) -> list[date]:
    return [
        candidate
        for candidate in materialize_dates(template.day_of_week, window_start, window_end)
        if not leave_registry.is_within_leave(candidate, leave_ranges) and candidate not in booked
    ]


def resolve(db: Session, doctor_id: int, window_start: date, window_end: date) -> list[ResolvedSlot]:
    templates = slot_templates.list_assigned(db, doctor_id)
    if not templates or window_end <= window_start:
        return []

    leave_ranges = leave_registry.list_approved_leave(db, doctor_id, window_start, window_end)
    booked = booking_ledger.booked_dates(db, [template.id for template in templates], window_start, window_end)

    resolved: list[ResolvedSlot] = []
    for template in templates:
        dates = _surviving_dates(template, window_start, window_end, leave_ranges, booked.get(template.id, set()))
        if dates:
            resolved.append((template, dates))
    return resolved


def resolve_all(db: Session, window_start: date, window_end: date) -> list[tuple[User, list[ResolvedSlot]]]:
    """Open dates for every doctor with at least one assigned template.

    Doctors whose dates are all taken or on leave are left out.
    """
    doctors = []
    for doctor in slot_templates.list_doctors_with_assigned(db):
        resolved = resolve(db, doctor.id, window_start, window_end)
        if resolved:
            doctors.append((doctor, resolved))
    return doctors


def next_available_date(db: Session, template: SlotTemplate, today: date, horizon_days: int) -> date | None:
    if not template.is_bookable:
        return None

    window_end = today + timedelta(days=horizon_days)
    leave_ranges = leave_registry.list_approved_leave(db, template.doctor_id, today, window_end)
    booked = booking_ledger.booked_dates(db, [template.id], today, window_end)
    dates = _surviving_dates(template, today, window_end, leave_ranges, booked.get(template.id, set()))
    return dates[0] if dates else None
