"""Concrete date bookings against slot templates.

At most one ``CONFIRMED`` booking may exist per slot template and date. The
guarantee comes from the partial unique index on ``bookings``, not from a
read before the insert: ``commit_booking`` inserts and lets the database
decide, so concurrent callers for the same slot instance see exactly one
success.
"""

import logging
from collections import defaultdict
from collections.abc import Iterable
from datetime import date, datetime, timezone

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from hospital_scheduling.core import events
from hospital_scheduling.core.errors import (
    BookingAccessDenied,
    BookingNotCancellable,
    BookingNotFound,
    SlotAlreadyBooked,
    UnknownReference,
)
from hospital_scheduling.database import storage_guard
from hospital_scheduling.models.booking import (
    DEFAULT_URGENCY,
    STATUS_CANCELLED,
    STATUS_CONFIRMED,
    Booking,
)
from hospital_scheduling.models.slot_template import SlotTemplate

logger = logging.getLogger(__name__)


def _payload(booking: Booking) -> dict:
    return {
        'booking_id': booking.id,
        'slot_template_id': booking.slot_template_id,
        'patient_id': booking.patient_id,
        'date': booking.booking_date.isoformat(),
        'urgency': booking.urgency,
        'status': booking.status,
    }


def is_booked(db: Session, slot_template_id: int, booking_date: date) -> bool:
    with storage_guard(db, f'check booking for slot template {slot_template_id} on {booking_date}'):
        existing = db.query(Booking.id).filter(
            Booking.slot_template_id == slot_template_id,
            Booking.booking_date == booking_date,
            Booking.status == STATUS_CONFIRMED,
        ).first()
    return existing is not None


def booked_dates(
    db: Session,
    slot_template_ids: Iterable[int],
    window_start: date,
    window_end: date,
) -> dict[int, set[date]]:
    """Confirmed booking dates in ``[window_start, window_end)``, per template."""
    template_ids = list(slot_template_ids)
    booked: dict[int, set[date]] = defaultdict(set)
    if not template_ids:
        return booked

    with storage_guard(db, 'load booked dates'):
        rows = db.query(Booking.slot_template_id, Booking.booking_date).filter(
            Booking.slot_template_id.in_(template_ids),
            Booking.status == STATUS_CONFIRMED,
            Booking.booking_date >= window_start,
            Booking.booking_date < window_end,
        ).all()

    for slot_template_id, booking_date in rows:
        booked[slot_template_id].add(booking_date)
    return booked


def commit_booking(
    db: Session,
    slot_template_id: int,
    booking_date: date,
    patient_id: int,
    reason: str,
    urgency: str = DEFAULT_URGENCY,
) -> Booking:
    booking = Booking(
        slot_template_id=slot_template_id,
        patient_id=patient_id,
        booking_date=booking_date,
        reason=reason,
        urgency=urgency or DEFAULT_URGENCY,
        status=STATUS_CONFIRMED,
        created_at=datetime.now(timezone.utc),
    )

    with storage_guard(db, f'book slot template {slot_template_id} on {booking_date}'):
        db.add(booking)
        try:
            db.commit()
        except IntegrityError as exc:
            db.rollback()
            # Only the confirmed-instance index means the slot was taken.
            if not is_booked(db, slot_template_id, booking_date):
                logger.warning(
                    'Booking of slot template %s on %s for patient %s violated a reference constraint',
                    slot_template_id,
                    booking_date,
                    patient_id,
                )
                raise UnknownReference('The patient or time slot for this booking does not exist.') from exc
            logger.warning(
                'Patient %s lost the race for slot template %s on %s',
                patient_id,
                slot_template_id,
                booking_date,
            )
            raise SlotAlreadyBooked() from exc
        db.refresh(booking)

    logger.info('Patient %s booked slot template %s on %s (booking %s)', patient_id, slot_template_id, booking_date, booking.id)
    events.publish(events.BOOKING_COMMITTED, _payload(booking))
    return booking


def get_booking(db: Session, booking_id: int) -> Booking | None:
    with storage_guard(db, f'load booking {booking_id}'):
        return db.get(Booking, booking_id)


def cancel_booking(db: Session, booking_id: int, patient_id: int) -> Booking:
    booking = get_booking(db, booking_id)
    if booking is None:
        raise BookingNotFound()
    if booking.patient_id != patient_id:
        raise BookingAccessDenied()

    with storage_guard(db, f'cancel booking {booking_id}'):
        updated = db.query(Booking).filter(
            Booking.id == booking_id,
            Booking.status == STATUS_CONFIRMED,
        ).update(
            {'status': STATUS_CANCELLED, 'cancelled_at': datetime.now(timezone.utc)},
            synchronize_session=False,
        )
        db.commit()
        booking = db.get(Booking, booking_id)

    if not updated:
        raise BookingNotCancellable()

    logger.info('Patient %s cancelled booking %s', patient_id, booking_id)
    events.publish(events.BOOKING_CANCELLED, _payload(booking))
    return booking


def list_by_doctor(db: Session, doctor_id: int, status: str | None = None) -> list[tuple[Booking, SlotTemplate]]:
    with storage_guard(db, f'list bookings for doctor {doctor_id}'):
        query = db.query(Booking, SlotTemplate).join(
            SlotTemplate, Booking.slot_template_id == SlotTemplate.id
        ).filter(SlotTemplate.doctor_id == doctor_id)
        if status is not None:
            query = query.filter(Booking.status == status)
        return query.order_by(Booking.booking_date.asc(), Booking.id.asc()).all()


def list_by_patient(db: Session, patient_id: int, status: str | None = None) -> list[tuple[Booking, SlotTemplate]]:
    with storage_guard(db, f'list bookings for patient {patient_id}'):
        query = db.query(Booking, SlotTemplate).join(
            SlotTemplate, Booking.slot_template_id == SlotTemplate.id
        ).filter(Booking.patient_id == patient_id)
        if status is not None:
            query = query.filter(Booking.status == status)
        return query.order_by(Booking.booking_date.asc(), Booking.id.asc()).all()
