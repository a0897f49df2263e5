import os
from datetime import date

import pytest
from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker

os.environ.setdefault('DATABASE_URL', 'sqlite:///./test.db')

from hospital_scheduling.core import events  # noqa: E402
from hospital_scheduling.database import Base  # noqa: E402
from hospital_scheduling.models.booking import Booking  # noqa: E402
from hospital_scheduling.models.leave_request import LEAVE_STATUS_APPROVED, LeaveRequest  # noqa: E402
from hospital_scheduling.models.slot_template import SlotTemplate  # noqa: E402
from hospital_scheduling.models.user import ROLE_ADMIN, ROLE_DOCTOR, ROLE_PATIENT, User  # noqa: E402
from hospital_scheduling.services import slot_templates  # noqa: E402

SCHEDULING_TABLES = [User.__table__, SlotTemplate.__table__, Booking.__table__, LeaveRequest.__table__]


@pytest.fixture(autouse=True)
def isolated_events():
    events.clear_subscribers()
    yield
    events.clear_subscribers()


@pytest.fixture
def scheduling_db():
    engine = create_engine('sqlite:///:memory:')
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine, tables=SCHEDULING_TABLES)

    db = testing_session_local()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine, tables=list(reversed(SCHEDULING_TABLES)))
        engine.dispose()


@pytest.fixture
def enforce_foreign_keys(scheduling_db) -> None:
    scheduling_db.execute(text('PRAGMA foreign_keys=ON'))
    scheduling_db.commit()


def _add_user(db, email: str, name: str, role: str) -> User:
    user = User(email=email, name=name, role=role)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def doctor(scheduling_db) -> User:
    return _add_user(scheduling_db, 'house@hospital.org', 'Dr. House', ROLE_DOCTOR)


@pytest.fixture
def other_doctor(scheduling_db) -> User:
    return _add_user(scheduling_db, 'wilson@hospital.org', 'Dr. Wilson', ROLE_DOCTOR)


@pytest.fixture
def patient(scheduling_db) -> User:
    return _add_user(scheduling_db, 'patient@example.org', 'Pat Doe', ROLE_PATIENT)


@pytest.fixture
def other_patient(scheduling_db) -> User:
    return _add_user(scheduling_db, 'second@example.org', 'Sam Roe', ROLE_PATIENT)


@pytest.fixture
def admin(scheduling_db) -> User:
    return _add_user(scheduling_db, 'admin@hospital.org', 'Admin', ROLE_ADMIN)


@pytest.fixture
def monday_template(scheduling_db, doctor, admin) -> SlotTemplate:
    template = slot_templates.request_slot(scheduling_db, doctor.id, 1, '8-12', notes='Morning clinic')
    return slot_templates.approve(scheduling_db, template.id, admin.id)


@pytest.fixture
def add_leave(scheduling_db):
    def _add_leave(doctor_id: int, start_date: date, end_date: date, status: str = LEAVE_STATUS_APPROVED) -> LeaveRequest:
        leave = LeaveRequest(
            doctor_id=doctor_id,
            leave_type='vacation',
            start_date=start_date,
            end_date=end_date,
            reason='Conference',
            status=status,
        )
        scheduling_db.add(leave)
        scheduling_db.commit()
        return leave

    return _add_leave
