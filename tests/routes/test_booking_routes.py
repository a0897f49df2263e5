from datetime import date, timedelta

import pytest
from fastapi import HTTPException
from pydantic import ValidationError

from hospital_scheduling.routes.booking_routes import (
    CreateBookingRequest,
    cancel_booking,
    create_booking,
    get_all_availability,
    get_doctor_availability,
    list_doctor_bookings,
    list_my_bookings,
    list_patient_bookings,
    resolve_window,
)
from hospital_scheduling.services import slot_templates

FIRST_MONDAY = date(2026, 1, 5)
WINDOW_END = FIRST_MONDAY + timedelta(days=28)


@pytest.fixture(autouse=True)
def database_ready(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr('hospital_scheduling.routes.booking_routes.ensure_database_ready', lambda: None)


def _book(db, template, patient, booking_date=FIRST_MONDAY, reason='Checkup', urgency='normal'):
    return create_booking(
        CreateBookingRequest(slot_template_id=template.id, date=booking_date, reason=reason, urgency=urgency),
        db=db,
        current_user=patient,
    )


def test_create_booking_request_normalizes_fields() -> None:
    request = CreateBookingRequest(slot_template_id=1, date=FIRST_MONDAY, reason='  Fever  ', urgency=' HIGH ')

    assert request.reason == 'Fever'
    assert request.urgency == 'high'


def test_create_booking_request_rejects_unknown_urgency() -> None:
    with pytest.raises(ValidationError):
        CreateBookingRequest(slot_template_id=1, date=FIRST_MONDAY, reason='Fever', urgency='whenever')


def test_resolve_window_defaults_to_booking_horizon() -> None:
    assert resolve_window(FIRST_MONDAY, None) == (FIRST_MONDAY, WINDOW_END)


def test_resolve_window_rejects_inverted_range() -> None:
    with pytest.raises(HTTPException) as exception_info:
        resolve_window(FIRST_MONDAY, FIRST_MONDAY)

    assert exception_info.value.status_code == 400


def test_resolve_window_rejects_start_past_calendar_end() -> None:
    with pytest.raises(HTTPException) as exception_info:
        resolve_window(date(9999, 12, 20), None)

    assert exception_info.value.status_code == 400
    assert exception_info.value.detail == 'start_date is too far in the future.'


def test_resolve_window_caps_window_length() -> None:
    assert resolve_window(FIRST_MONDAY, FIRST_MONDAY + timedelta(days=92)) == (FIRST_MONDAY, FIRST_MONDAY + timedelta(days=92))

    with pytest.raises(HTTPException) as exception_info:
        resolve_window(FIRST_MONDAY, date(9999, 12, 31))

    assert exception_info.value.status_code == 400
    assert exception_info.value.detail == 'The availability window cannot exceed 92 days.'


def test_availability_lists_four_mondays_with_week_labels(scheduling_db, doctor, monday_template, patient) -> None:
    response = get_doctor_availability(
        doctor.id,
        start_date=FIRST_MONDAY,
        end_date=WINDOW_END,
        db=scheduling_db,
        current_user=patient,
    )

    assert response.count == 1
    slot = response.slots[0]
    assert slot.slot_template_id == monday_template.id
    assert slot.available_count == 4
    assert [item.week_label for item in slot.available_dates] == ['This Week', 'Next Week', 'Week After', '4th Week']
    assert {item.day_name for item in slot.available_dates} == {'Monday'}


def test_create_booking_then_availability_excludes_date(scheduling_db, doctor, monday_template, patient) -> None:
    booking = _book(scheduling_db, monday_template, patient, urgency='emergency')

    response = get_doctor_availability(
        doctor.id,
        start_date=FIRST_MONDAY,
        end_date=WINDOW_END,
        db=scheduling_db,
        current_user=patient,
    )

    assert booking.status == 'CONFIRMED'
    assert booking.doctor_id == doctor.id
    assert booking.day_name == 'Monday'
    assert booking.urgency == 'emergency'
    assert FIRST_MONDAY not in [item.date for item in response.slots[0].available_dates]


def test_create_booking_conflict_flags_stale_availability(scheduling_db, monday_template, patient, other_patient) -> None:
    _book(scheduling_db, monday_template, patient)

    with pytest.raises(HTTPException) as exception_info:
        _book(scheduling_db, monday_template, other_patient)

    assert exception_info.value.status_code == 409
    assert exception_info.value.headers == {'X-Availability-Stale': 'true'}


@pytest.mark.parametrize(
    ('booking_date', 'reason', 'status_code', 'detail'),
    [
        (date(2026, 1, 6), 'Checkup', 400, '2026-01-06 is a Tuesday; this slot runs on Mondays.'),
        (FIRST_MONDAY, '   ', 400, 'A reason for the visit is required.'),
    ],
)
def test_create_booking_surfaces_validation_errors(
    scheduling_db,
    monday_template,
    patient,
    booking_date,
    reason,
    status_code,
    detail,
) -> None:
    with pytest.raises(HTTPException) as exception_info:
        _book(scheduling_db, monday_template, patient, booking_date=booking_date, reason=reason)

    assert exception_info.value.status_code == status_code
    assert exception_info.value.detail == detail


def test_create_booking_on_leave_returns_conflict(scheduling_db, doctor, monday_template, patient, add_leave) -> None:
    add_leave(doctor.id, FIRST_MONDAY, FIRST_MONDAY + timedelta(days=2))

    with pytest.raises(HTTPException) as exception_info:
        _book(scheduling_db, monday_template, patient)

    assert exception_info.value.status_code == 409
    assert exception_info.value.detail == 'The doctor is on leave on the selected date.'


def test_booking_lists_for_patient_and_doctor(scheduling_db, doctor, admin, monday_template, patient, other_patient) -> None:
    _book(scheduling_db, monday_template, patient)
    _book(scheduling_db, monday_template, other_patient, booking_date=FIRST_MONDAY + timedelta(days=7))

    mine = list_my_bookings(db=scheduling_db, current_user=patient)
    doctors = list_doctor_bookings(db=scheduling_db, current_user=doctor)
    by_admin = list_patient_bookings(other_patient.id, db=scheduling_db, current_user=admin)

    assert mine.count == 1
    assert mine.bookings[0].patient_id == patient.id
    assert [item.date for item in doctors.bookings] == [FIRST_MONDAY, FIRST_MONDAY + timedelta(days=7)]
    assert [item.patient_id for item in by_admin.bookings] == [other_patient.id]


def test_cancel_booking_reopens_date(scheduling_db, doctor, monday_template, patient) -> None:
    booking = _book(scheduling_db, monday_template, patient)

    cancelled = cancel_booking(booking.id, db=scheduling_db, current_user=patient)
    response = get_doctor_availability(
        doctor.id,
        start_date=FIRST_MONDAY,
        end_date=WINDOW_END,
        db=scheduling_db,
        current_user=patient,
    )

    assert cancelled.status == 'CANCELLED'
    assert cancelled.cancelled_at is not None
    assert response.slots[0].available_dates[0].date == FIRST_MONDAY


def test_cancel_booking_rejects_other_patient(scheduling_db, monday_template, patient, other_patient) -> None:
    booking = _book(scheduling_db, monday_template, patient)

    with pytest.raises(HTTPException) as exception_info:
        cancel_booking(booking.id, db=scheduling_db, current_user=other_patient)

    assert exception_info.value.status_code == 403
    assert exception_info.value.detail == 'Only the patient who booked this appointment can cancel it.'


def test_cancel_missing_booking_returns_not_found(scheduling_db, patient) -> None:
    with pytest.raises(HTTPException) as exception_info:
        cancel_booking(4321, db=scheduling_db, current_user=patient)

    assert exception_info.value.status_code == 404


def test_all_availability_groups_assigned_slots_by_doctor(
    scheduling_db,
    doctor,
    other_doctor,
    admin,
    monday_template,
    patient,
) -> None:
    friday = slot_templates.request_slot(scheduling_db, other_doctor.id, 5, '12-4')
    slot_templates.approve(scheduling_db, friday.id, admin.id)
    slot_templates.request_slot(scheduling_db, other_doctor.id, 2, '8-12')
    _book(scheduling_db, monday_template, patient)

    response = get_all_availability(
        start_date=FIRST_MONDAY,
        end_date=WINDOW_END,
        db=scheduling_db,
        current_user=patient,
    )

    assert response.count == 2
    assert [(item.doctor_name, item.available_count) for item in response.doctors] == [
        ('Dr. House', 3),
        ('Dr. Wilson', 4),
    ]
    assert [slot.slot_template_id for slot in response.doctors[1].slots] == [friday.id]
    assert response.doctors[1].slots[0].available_dates[0].date == date(2026, 1, 9)


def test_all_availability_omits_doctor_with_no_open_dates(
    scheduling_db,
    doctor,
    monday_template,
    patient,
    add_leave,
) -> None:
    add_leave(doctor.id, FIRST_MONDAY, WINDOW_END)

    response = get_all_availability(
        start_date=FIRST_MONDAY,
        end_date=WINDOW_END,
        db=scheduling_db,
        current_user=patient,
    )

    assert response.count == 0
    assert response.doctors == []
