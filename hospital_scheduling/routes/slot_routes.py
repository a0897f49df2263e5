from datetime import date, datetime

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, field_validator
from sqlalchemy.orm import Session

from hospital_scheduling.auth.dependencies import get_current_user, require_role
from hospital_scheduling.core import config
from hospital_scheduling.core.errors import SchedulingError, to_http_exception
from hospital_scheduling.models.slot_template import TIME_SLOT_LABELS, SlotTemplate
from hospital_scheduling.models.user import ROLE_ADMIN, ROLE_DOCTOR, User
from hospital_scheduling.routes.common import ensure_database_ready, get_db
from hospital_scheduling.services import availability, slot_templates
from hospital_scheduling.services.calendar import day_name, time_slot_display

router = APIRouter(tags=['slots'])

MAX_SLOT_NOTES_LENGTH = 300
MAX_REJECTION_REASON_LENGTH = 300


class CreateSlotRequest(BaseModel):
    day_of_week: int
    time_slot: str
    notes: str | None = None

    @field_validator('day_of_week')
    @classmethod
    def validate_day_of_week(cls, value: int) -> int:
        if not 0 <= value <= 6:
            raise ValueError('Invalid day of week (0-6).')
        return value

    @field_validator('time_slot')
    @classmethod
    def validate_time_slot(cls, value: str) -> str:
        normalized = value.strip()
        if normalized not in TIME_SLOT_LABELS:
            raise ValueError('Invalid time slot.')
        return normalized

    @field_validator('notes')
    @classmethod
    def validate_notes(cls, value: str | None) -> str | None:
        if value is None:
            return None

        normalized = value.strip()
        if not normalized:
            return None

        if len(normalized) > MAX_SLOT_NOTES_LENGTH:
            raise ValueError(f'Notes must be {MAX_SLOT_NOTES_LENGTH} characters or fewer.')

        return normalized


class RejectSlotRequest(BaseModel):
    reason: str | None = None

    @field_validator('reason')
    @classmethod
    def validate_reason(cls, value: str | None) -> str | None:
        if value is None:
            return None

        normalized = value.strip()
        if len(normalized) > MAX_REJECTION_REASON_LENGTH:
            raise ValueError(f'Reason must be {MAX_REJECTION_REASON_LENGTH} characters or fewer.')

        return normalized or None


class SlotTemplateResponse(BaseModel):
    id: int
    doctor_id: int
    day_of_week: int
    day_name: str
    time_slot: str
    time_slot_display: str
    status: str
    is_pending: bool
    notes: str | None = None
    rejection_reason: str | None = None
    requested_at: datetime | None = None
    decided_at: datetime | None = None
    decided_by: int | None = None
    next_available_date: date | None = None


class SlotSummaryResponse(BaseModel):
    pending: int
    assigned: int
    rejected: int
    total: int


class SlotListResponse(BaseModel):
    slots: list[SlotTemplateResponse]
    count: int
    summary: SlotSummaryResponse


def serialize_template(template: SlotTemplate, next_available_date: date | None = None) -> SlotTemplateResponse:
    return SlotTemplateResponse(
        id=template.id,
        doctor_id=template.doctor_id,
        day_of_week=template.day_of_week,
        day_name=day_name(template.day_of_week),
        time_slot=template.time_slot,
        time_slot_display=time_slot_display(template.time_slot),
        status=template.status,
        is_pending=template.is_pending,
        notes=template.notes,
        rejection_reason=template.rejection_reason,
        requested_at=template.requested_at,
        decided_at=template.decided_at,
        decided_by=template.decided_by,
        next_available_date=next_available_date,
    )


def build_slot_list(templates: list[SlotTemplate], db: Session | None = None) -> SlotListResponse:
    today = date.today()
    slots = [
        serialize_template(
            template,
            availability.next_available_date(db, template, today, config.BOOKING_HORIZON_DAYS)
            if db is not None and template.is_bookable
            else None,
        )
        for template in templates
    ]
    return SlotListResponse(
        slots=slots,
        count=len(slots),
        summary=SlotSummaryResponse(**slot_templates.summarize(templates)),
    )


@router.post('/requests', response_model=SlotTemplateResponse, status_code=status.HTTP_201_CREATED)
def request_time_slot(
    data: CreateSlotRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_role(ROLE_DOCTOR)),
):
    ensure_database_ready()

    try:
        template = slot_templates.request_slot(
            db,
            doctor_id=current_user.id,
            day_of_week=data.day_of_week,
            time_slot=data.time_slot,
            notes=data.notes,
        )
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc

    return serialize_template(template)


@router.get('/mine', response_model=SlotListResponse)
def list_my_time_slots(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_role(ROLE_DOCTOR)),
):
    ensure_database_ready()

    try:
        templates = slot_templates.list_by_doctor(db, current_user.id)
        return build_slot_list(templates, db)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc


@router.get('', response_model=SlotListResponse)
def list_all_time_slots(
    day_of_week: int | None = Query(default=None, ge=0, le=6),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_role(ROLE_ADMIN)),
):
    del current_user
    ensure_database_ready()

    try:
        templates = slot_templates.list_all(db, day_of_week=day_of_week)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc

    return build_slot_list(templates)


@router.get('/doctor/{doctor_id}', response_model=SlotListResponse)
def list_doctor_time_slots(
    doctor_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ensure_database_ready()

    try:
        if current_user.role == ROLE_ADMIN or current_user.id == doctor_id:
            templates = slot_templates.list_by_doctor(db, doctor_id)
        else:
            templates = slot_templates.list_assigned(db, doctor_id)
        return build_slot_list(templates, db)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc


@router.patch('/{template_id}/approve', response_model=SlotTemplateResponse)
def approve_time_slot(
    template_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_role(ROLE_ADMIN)),
):
    ensure_database_ready()

    try:
        template = slot_templates.approve(db, template_id, admin_id=current_user.id)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc

    return serialize_template(template)


@router.patch('/{template_id}/reject', response_model=SlotTemplateResponse)
def reject_time_slot(
    template_id: int,
    data: RejectSlotRequest | None = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_role(ROLE_ADMIN)),
):
    ensure_database_ready()

    reason = data.reason if data is not None else None
    try:
        template = slot_templates.reject(db, template_id, admin_id=current_user.id, reason=reason)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc

    return serialize_template(template)
