from datetime import date, datetime

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, field_validator
from sqlalchemy.orm import Session

from hospital_scheduling.auth.dependencies import get_current_user, require_role
from hospital_scheduling.core import config
from hospital_scheduling.core.errors import SchedulingError, to_http_exception
from hospital_scheduling.models.booking import DEFAULT_URGENCY, URGENCY_LEVELS, Booking
from hospital_scheduling.models.slot_template import SlotTemplate
from hospital_scheduling.models.user import ROLE_ADMIN, ROLE_DOCTOR, ROLE_PATIENT, User
from hospital_scheduling.routes.common import ensure_database_ready, get_db
from hospital_scheduling.services import availability, booking_handler, booking_ledger, slot_templates
from hospital_scheduling.services.calendar import (
    booking_horizon,
    day_name,
    partition_into_weeks,
    time_slot_display,
    to_day_of_week,
    week_label,
)

router = APIRouter(tags=['bookings'])


class CreateBookingRequest(BaseModel):
    slot_template_id: int
    date: date
    reason: str | None = None
    urgency: str = DEFAULT_URGENCY

    @field_validator('reason')
    @classmethod
    def validate_reason(cls, value: str | None) -> str | None:
        if value is None:
            return None

        normalized = value.strip()
        if len(normalized) > config.MAX_BOOKING_REASON_LENGTH:
            raise ValueError(f'Reason must be {config.MAX_BOOKING_REASON_LENGTH} characters or fewer.')

        return normalized

    @field_validator('urgency')
    @classmethod
    def validate_urgency(cls, value: str) -> str:
        normalized = value.strip().lower() or DEFAULT_URGENCY
        if normalized not in URGENCY_LEVELS:
            raise ValueError('Invalid urgency level.')
        return normalized


class AvailableDateResponse(BaseModel):
    date: date
    day_name: str
    week: int
    week_label: str


class AvailableSlotResponse(BaseModel):
    slot_template_id: int
    doctor_id: int
    day_of_week: int
    day_name: str
    time_slot: str
    time_slot_display: str
    available_dates: list[AvailableDateResponse]
    available_count: int


class AvailabilityResponse(BaseModel):
    doctor_id: int
    window_start: date
    window_end: date
    slots: list[AvailableSlotResponse]
    count: int


class DoctorAvailabilityResponse(BaseModel):
    doctor_id: int
    doctor_name: str | None = None
    slots: list[AvailableSlotResponse]
    available_count: int


class AllAvailabilityResponse(BaseModel):
    window_start: date
    window_end: date
    doctors: list[DoctorAvailabilityResponse]
    count: int


class BookingResponse(BaseModel):
    id: int
    slot_template_id: int
    doctor_id: int
    patient_id: int
    date: date
    day_name: str
    time_slot: str
    time_slot_display: str
    reason: str
    urgency: str
    status: str
    created_at: datetime | None = None
    cancelled_at: datetime | None = None


class BookingListResponse(BaseModel):
    bookings: list[BookingResponse]
    count: int


def serialize_booking(booking: Booking, template: SlotTemplate) -> BookingResponse:
    return BookingResponse(
        id=booking.id,
        slot_template_id=booking.slot_template_id,
        doctor_id=template.doctor_id,
        patient_id=booking.patient_id,
        date=booking.booking_date,
        day_name=day_name(to_day_of_week(booking.booking_date)),
        time_slot=template.time_slot,
        time_slot_display=time_slot_display(template.time_slot),
        reason=booking.reason,
        urgency=booking.urgency or DEFAULT_URGENCY,
        status=booking.status,
        created_at=booking.created_at,
        cancelled_at=booking.cancelled_at,
    )


def serialize_bookings(rows) -> BookingListResponse:
    bookings = [serialize_booking(booking, template) for booking, template in rows]
    return BookingListResponse(bookings=bookings, count=len(bookings))


def serialize_available_dates(
    template: SlotTemplate,
    dates: list[date],
    window_start: date,
    window_end: date,
) -> list[AvailableDateResponse]:
    weeks = -(-(window_end - window_start).days // 7)
    return [
        AvailableDateResponse(
            date=available_date,
            day_name=day_name(template.day_of_week),
            week=index + 1,
            week_label=week_label(index),
        )
        for index, bucket in enumerate(partition_into_weeks(window_start, dates, weeks))
        for available_date in bucket
    ]


def serialize_available_slots(resolved, window_start: date, window_end: date) -> list[AvailableSlotResponse]:
    return [
        AvailableSlotResponse(
            slot_template_id=template.id,
            doctor_id=template.doctor_id,
            day_of_week=template.day_of_week,
            day_name=day_name(template.day_of_week),
            time_slot=template.time_slot,
            time_slot_display=time_slot_display(template.time_slot),
            available_dates=serialize_available_dates(template, dates, window_start, window_end),
            available_count=len(dates),
        )
        for template, dates in resolved
    ]


def resolve_window(start_date: date | None, end_date: date | None) -> tuple[date, date]:
    try:
        window_start, default_end = booking_horizon(start_date or date.today(), config.BOOKING_HORIZON_DAYS)
    except OverflowError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='start_date is too far in the future.',
        ) from exc
    window_end = end_date or default_end

    if window_end <= window_start:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='end_date must be after start_date.',
        )

    if (window_end - window_start).days > config.MAX_AVAILABILITY_WINDOW_DAYS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f'The availability window cannot exceed {config.MAX_AVAILABILITY_WINDOW_DAYS} days.',
        )

    return window_start, window_end


@router.get('/availability', response_model=AllAvailabilityResponse)
def get_all_availability(
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    del current_user
    window_start, window_end = resolve_window(start_date, end_date)

    ensure_database_ready()

    try:
        resolved_by_doctor = availability.resolve_all(db, window_start, window_end)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc

    doctors = []
    for doctor, resolved in resolved_by_doctor:
        slots = serialize_available_slots(resolved, window_start, window_end)
        doctors.append(
            DoctorAvailabilityResponse(
                doctor_id=doctor.id,
                doctor_name=doctor.name,
                slots=slots,
                available_count=sum(slot.available_count for slot in slots),
            )
        )

    return AllAvailabilityResponse(
        window_start=window_start,
        window_end=window_end,
        doctors=doctors,
        count=len(doctors),
    )


@router.get('/availability/{doctor_id}', response_model=AvailabilityResponse)
def get_doctor_availability(
    doctor_id: int,
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    del current_user
    window_start, window_end = resolve_window(start_date, end_date)

    ensure_database_ready()

    try:
        resolved = availability.resolve(db, doctor_id, window_start, window_end)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc

    slots = serialize_available_slots(resolved, window_start, window_end)

    return AvailabilityResponse(
        doctor_id=doctor_id,
        window_start=window_start,
        window_end=window_end,
        slots=slots,
        count=len(slots),
    )


@router.post('', response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
def create_booking(
    data: CreateBookingRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_role(ROLE_PATIENT)),
):
    ensure_database_ready()

    try:
        booking = booking_handler.book(
            db,
            slot_template_id=data.slot_template_id,
            booking_date=data.date,
            patient_id=current_user.id,
            reason=data.reason,
            urgency=data.urgency,
        )
        template = slot_templates.get_template(db, booking.slot_template_id)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc

    return serialize_booking(booking, template)


@router.get('/mine', response_model=BookingListResponse)
def list_my_bookings(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_role(ROLE_PATIENT)),
):
    ensure_database_ready()

    try:
        return serialize_bookings(booking_ledger.list_by_patient(db, current_user.id))
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc


@router.get('/doctor/me', response_model=BookingListResponse)
def list_doctor_bookings(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_role(ROLE_DOCTOR)),
):
    ensure_database_ready()

    try:
        return serialize_bookings(booking_ledger.list_by_doctor(db, current_user.id))
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc


@router.get('/patient/{patient_id}', response_model=BookingListResponse)
def list_patient_bookings(
    patient_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_role(ROLE_DOCTOR, ROLE_ADMIN)),
):
    del current_user
    ensure_database_ready()

    try:
        return serialize_bookings(booking_ledger.list_by_patient(db, patient_id))
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc


@router.delete('/{booking_id}', response_model=BookingResponse)
def cancel_booking(
    booking_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_role(ROLE_PATIENT)),
):
    ensure_database_ready()

    try:
        booking = booking_ledger.cancel_booking(db, booking_id, patient_id=current_user.id)
        template = slot_templates.get_template(db, booking.slot_template_id)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc

    return serialize_booking(booking, template)
