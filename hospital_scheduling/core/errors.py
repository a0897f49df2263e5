"""Error kinds raised by the scheduling services.

Every error is recoverable by the caller. Each kind carries the HTTP status
the routes answer with and a message that can be shown to the user as is.
"""

from fastapi import HTTPException, status

from hospital_scheduling.core import config


class SchedulingError(Exception):
    status_code = status.HTTP_400_BAD_REQUEST
    code = 'SCHEDULING_ERROR'
    message = 'The scheduling request could not be completed.'
    retryable = False

    def __init__(self, message: str | None = None):
        super().__init__(message or self.message)
        self.message = message or self.message

    @property
    def headers(self) -> dict[str, str] | None:
        return None


class DuplicateActiveSlot(SchedulingError):
    status_code = status.HTTP_409_CONFLICT
    code = 'DUPLICATE_ACTIVE_SLOT'
    message = 'You already have a pending or approved request for this day and time slot.'


class InvalidTransition(SchedulingError):
    status_code = status.HTTP_409_CONFLICT
    code = 'INVALID_TRANSITION'
    message = 'Time slot is not in pending status.'


class InvalidSlotDefinition(SchedulingError):
    code = 'INVALID_SLOT_DEFINITION'
    message = 'Invalid day of week or time slot.'


class SlotTemplateNotFound(SchedulingError):
    status_code = status.HTTP_404_NOT_FOUND
    code = 'SLOT_TEMPLATE_NOT_FOUND'
    message = 'Time slot not found.'


class SlotNotBookable(SchedulingError):
    code = 'SLOT_NOT_BOOKABLE'
    message = 'This time slot is not open for booking.'


class DateMismatch(SchedulingError):
    code = 'DATE_MISMATCH'
    message = 'Appointment date does not match the slot day of week.'


class DoctorOnLeave(SchedulingError):
    status_code = status.HTTP_409_CONFLICT
    code = 'DOCTOR_ON_LEAVE'
    message = 'The doctor is on leave on the selected date.'


class MissingReason(SchedulingError):
    code = 'MISSING_REASON'
    message = 'A reason for the visit is required.'


class InvalidUrgency(SchedulingError):
    code = 'INVALID_URGENCY'
    message = 'Invalid urgency level.'


class SlotAlreadyBooked(SchedulingError):
    status_code = status.HTTP_409_CONFLICT
    code = 'SLOT_ALREADY_BOOKED'
    message = 'This time slot was just booked for the selected date. Refresh availability and choose another date.'

    @property
    def headers(self) -> dict[str, str]:
        return {'X-Availability-Stale': 'true'}


class BookingNotFound(SchedulingError):
    status_code = status.HTTP_404_NOT_FOUND
    code = 'BOOKING_NOT_FOUND'
    message = 'Appointment not found.'


class BookingAccessDenied(SchedulingError):
    status_code = status.HTTP_403_FORBIDDEN
    code = 'BOOKING_ACCESS_DENIED'
    message = 'Only the patient who booked this appointment can cancel it.'


class BookingNotCancellable(SchedulingError):
    status_code = status.HTTP_409_CONFLICT
    code = 'BOOKING_NOT_CANCELLABLE'
    message = 'Appointment is already cancelled.'


class UnknownReference(SchedulingError):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = 'UNKNOWN_REFERENCE'
    message = 'The request refers to a user or time slot that does not exist.'


class StorageUnavailable(SchedulingError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    code = 'STORAGE_UNAVAILABLE'
    message = 'Database unavailable. Please try again shortly.'
    retryable = True

    @property
    def headers(self) -> dict[str, str]:
        return {'Retry-After': str(config.STORAGE_RETRY_AFTER_SECONDS)}


def to_http_exception(exc: SchedulingError) -> HTTPException:
    return HTTPException(status_code=exc.status_code, detail=exc.message, headers=exc.headers)
