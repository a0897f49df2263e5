"""Slot template store and the admin approval workflow.

A doctor's request creates a template in the pending state (stored as
``AVAILABLE``). An admin then either approves it (``ASSIGNED``, bookable) or
rejects it (``REJECTED``). Both decisions are final; a rejection frees the
doctor/day/time combination for a new request.
"""

import logging
from collections import Counter
from datetime import datetime, timezone

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from hospital_scheduling.core import events
from hospital_scheduling.core.errors import (
    DuplicateActiveSlot,
    InvalidSlotDefinition,
    InvalidTransition,
    SlotTemplateNotFound,
    UnknownReference,
)
from hospital_scheduling.database import storage_guard
from hospital_scheduling.models.slot_template import (
    STATUS_ASSIGNED,
    STATUS_AVAILABLE,
    STATUS_REJECTED,
    TIME_SLOT_LABELS,
    SlotTemplate,
)
from hospital_scheduling.models.user import User
from hospital_scheduling.services.calendar import day_name, time_slot_display, validate_day_of_week

logger = logging.getLogger(__name__)

DEFAULT_REJECTION_REASON = 'Rejected by admin'


def sort_key(template: SlotTemplate) -> tuple[int, int, int]:
    label_order = TIME_SLOT_LABELS.index(template.time_slot) if template.time_slot in TIME_SLOT_LABELS else len(TIME_SLOT_LABELS)
    return template.day_of_week, label_order, template.id or 0


def validate_slot_definition(day_of_week: int, time_slot: str) -> None:
    try:
        validate_day_of_week(day_of_week)
    except ValueError as exc:
        raise InvalidSlotDefinition('Invalid day of week (0-6).') from exc
    if time_slot not in TIME_SLOT_LABELS:
        raise InvalidSlotDefinition('Invalid time slot.')


def _describe(day_of_week: int, time_slot: str) -> str:
    return f'{day_name(day_of_week)} {time_slot_display(time_slot)}'


def _payload(template: SlotTemplate) -> dict:
    return {
        'slot_template_id': template.id,
        'doctor_id': template.doctor_id,
        'day_of_week': template.day_of_week,
        'time_slot': template.time_slot,
        'status': template.status,
        'decided_by': template.decided_by,
    }


def _has_active_template(db: Session, doctor_id: int, day_of_week: int, time_slot: str) -> bool:
    return db.query(SlotTemplate.id).filter(
        SlotTemplate.doctor_id == doctor_id,
        SlotTemplate.day_of_week == day_of_week,
        SlotTemplate.time_slot == time_slot,
        SlotTemplate.status != STATUS_REJECTED,
    ).first() is not None


def request_slot(
    db: Session,
    doctor_id: int,
    day_of_week: int,
    time_slot: str,
    notes: str | None = None,
) -> SlotTemplate:
    validate_slot_definition(day_of_week, time_slot)
    duplicate_message = f'You already have a request for {_describe(day_of_week, time_slot)}.'

    with storage_guard(db, 'request a time slot'):
        if _has_active_template(db, doctor_id, day_of_week, time_slot):
            raise DuplicateActiveSlot(duplicate_message)

        template = SlotTemplate(
            doctor_id=doctor_id,
            day_of_week=day_of_week,
            time_slot=time_slot,
            status=STATUS_AVAILABLE,
            notes=(notes or '').strip() or None,
            requested_at=datetime.now(timezone.utc),
        )
        db.add(template)
        try:
            db.commit()
        except IntegrityError as exc:
            db.rollback()
            # Lost a race with a concurrent request for the same combination.
            if _has_active_template(db, doctor_id, day_of_week, time_slot):
                raise DuplicateActiveSlot(duplicate_message) from exc
            raise UnknownReference('The requesting doctor does not exist.') from exc
        db.refresh(template)

    logger.info('Doctor %s requested %s (slot template %s)', doctor_id, _describe(day_of_week, time_slot), template.id)
    events.publish(events.SLOT_REQUESTED, _payload(template))
    return template


def _decide(
    db: Session,
    template_id: int,
    admin_id: int,
    new_status: str,
    rejection_reason: str | None = None,
) -> SlotTemplate:
    values = {
        'status': new_status,
        'decided_at': datetime.now(timezone.utc),
        'decided_by': admin_id,
    }
    if new_status == STATUS_REJECTED:
        values['rejection_reason'] = rejection_reason

    with storage_guard(db, f'move slot template {template_id} to {new_status}'):
        try:
            updated = db.query(SlotTemplate).filter(
                SlotTemplate.id == template_id,
                SlotTemplate.status == STATUS_AVAILABLE,
            ).update(values, synchronize_session=False)
            db.commit()
        except IntegrityError as exc:
            db.rollback()
            raise UnknownReference('The deciding admin does not exist.') from exc
        template = db.get(SlotTemplate, template_id)

    if template is None:
        raise SlotTemplateNotFound()
    if not updated:
        raise InvalidTransition(
            f'Time slot is {template.status} and is not in pending status; it cannot be moved to {new_status}.'
        )

    logger.info('Admin %s moved slot template %s to %s', admin_id, template_id, new_status)
    return template


def approve(db: Session, template_id: int, admin_id: int) -> SlotTemplate:
    template = _decide(db, template_id, admin_id, STATUS_ASSIGNED)
    events.publish(events.SLOT_APPROVED, _payload(template))
    return template


def reject(db: Session, template_id: int, admin_id: int, reason: str | None = None) -> SlotTemplate:
    normalized_reason = (reason or '').strip() or DEFAULT_REJECTION_REASON
    template = _decide(db, template_id, admin_id, STATUS_REJECTED, rejection_reason=normalized_reason)
    events.publish(events.SLOT_REJECTED, {**_payload(template), 'reason': normalized_reason})
    return template


def get_template(db: Session, template_id: int) -> SlotTemplate | None:
    with storage_guard(db, f'load slot template {template_id}'):
        return db.get(SlotTemplate, template_id)


def list_by_doctor(db: Session, doctor_id: int, status: str | None = None) -> list[SlotTemplate]:
    with storage_guard(db, f'list slot templates for doctor {doctor_id}'):
        query = db.query(SlotTemplate).filter(SlotTemplate.doctor_id == doctor_id)
        if status is not None:
            query = query.filter(SlotTemplate.status == status)
        templates = query.all()
    return sorted(templates, key=sort_key)


def list_assigned(db: Session, doctor_id: int) -> list[SlotTemplate]:
    return list_by_doctor(db, doctor_id, status=STATUS_ASSIGNED)


def list_doctors_with_assigned(db: Session) -> list[User]:
    with storage_guard(db, 'list doctors with assigned slot templates'):
        query = db.query(User).join(SlotTemplate, SlotTemplate.doctor_id == User.id).filter(
            SlotTemplate.status == STATUS_ASSIGNED
        )
        return query.distinct().order_by(User.name.asc(), User.id.asc()).all()


def list_all(db: Session, day_of_week: int | None = None) -> list[SlotTemplate]:
    with storage_guard(db, 'list slot templates'):
        query = db.query(SlotTemplate)
        if day_of_week is not None:
            query = query.filter(SlotTemplate.day_of_week == day_of_week)
        templates = query.all()
    return sorted(templates, key=sort_key)


def summarize(templates: list[SlotTemplate]) -> dict[str, int]:
    counts = Counter(template.status for template in templates)
    return {
        'pending': counts[STATUS_AVAILABLE],
        'assigned': counts[STATUS_ASSIGNED],
        'rejected': counts[STATUS_REJECTED],
        'total': len(templates),
    }
