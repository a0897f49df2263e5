"""The single write entry point for patient bookings.

Checks run in a fixed order so the same bad request always fails with the
same error:

1. the slot template exists and is ``ASSIGNED``  -> ``SlotNotBookable``
2. the date falls on the template's weekday      -> ``DateMismatch``
3. the doctor is not on approved leave that day  -> ``DoctorOnLeave``
4. a reason for the visit was given              -> ``MissingReason``
5. the urgency is one of the known levels       -> ``InvalidUrgency``
6. the ledger insert succeeds                    -> ``SlotAlreadyBooked``

The template is left untouched on success and stays bookable for other dates.
"""

import logging
from datetime import date

from sqlalchemy.orm import Session

from hospital_scheduling.core.errors import DateMismatch, DoctorOnLeave, InvalidUrgency, MissingReason, SlotNotBookable
from hospital_scheduling.models.booking import DEFAULT_URGENCY, URGENCY_LEVELS, Booking
from hospital_scheduling.services import booking_ledger, leave_registry, slot_templates
from hospital_scheduling.services.calendar import day_name, to_day_of_week

logger = logging.getLogger(__name__)


def book(
    db: Session,
    slot_template_id: int,
    booking_date: date,
    patient_id: int,
    reason: str | None,
    urgency: str = DEFAULT_URGENCY,
) -> Booking:
    template = slot_templates.get_template(db, slot_template_id)
    if template is None or not template.is_bookable:
        raise SlotNotBookable()

    if to_day_of_week(booking_date) != template.day_of_week:
        raise DateMismatch(
            f'{booking_date.isoformat()} is a {day_name(to_day_of_week(booking_date))}; '
            f'this slot runs on {day_name(template.day_of_week)}s.'
        )

    if leave_registry.is_on_leave(db, template.doctor_id, booking_date):
        raise DoctorOnLeave()

    normalized_reason = (reason or '').strip()
    if not normalized_reason:
        raise MissingReason()

    normalized_urgency = (urgency or DEFAULT_URGENCY).strip().lower()
    if normalized_urgency not in URGENCY_LEVELS:
        raise InvalidUrgency()

    logger.debug('Validated booking of slot template %s on %s for patient %s', slot_template_id, booking_date, patient_id)
    return booking_ledger.commit_booking(
        db,
        slot_template_id=template.id,
        booking_date=booking_date,
        patient_id=patient_id,
        reason=normalized_reason,
        urgency=normalized_urgency,
    )
