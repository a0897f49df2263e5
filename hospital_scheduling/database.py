import logging
from contextlib import contextmanager
from threading import Lock

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from hospital_scheduling.core import config
from hospital_scheduling.core.errors import StorageUnavailable


logger = logging.getLogger(__name__)

DATABASE_URL = config.DATABASE_URL

connect_args = {'check_same_thread': False} if DATABASE_URL.startswith('sqlite') else {}

engine = create_engine(DATABASE_URL, echo=config.DATABASE_ECHO, connect_args=connect_args)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()

_schema_lock = Lock()
_scheduling_schema_checked = False


def _upgrade_table(connection, inspector, table_name: str, migration_steps, index_statements) -> None:
    if table_name not in inspector.get_table_names():
        return

    existing_columns = {column['name'] for column in inspector.get_columns(table_name)}
    for column_name, statement in migration_steps:
        if column_name not in existing_columns:
            connection.execute(text(statement))
    for statement in index_statements:
        connection.execute(text(statement))


def ensure_scheduling_schema() -> None:
    global _scheduling_schema_checked

    if _scheduling_schema_checked:
        return

    with _schema_lock:
        if _scheduling_schema_checked:
            return

        inspector = inspect(engine)

        with engine.begin() as connection:
            _upgrade_table(
                connection,
                inspector,
                'slot_templates',
                [
                    ('notes', 'ALTER TABLE slot_templates ADD COLUMN notes VARCHAR'),
                    ('rejection_reason', 'ALTER TABLE slot_templates ADD COLUMN rejection_reason VARCHAR'),
                    ('decided_at', 'ALTER TABLE slot_templates ADD COLUMN decided_at TIMESTAMP'),
                    ('decided_by', 'ALTER TABLE slot_templates ADD COLUMN decided_by INTEGER'),
                ],
                [
                    'CREATE UNIQUE INDEX IF NOT EXISTS uq_slot_templates_active '
                    "ON slot_templates(doctor_id, day_of_week, time_slot) WHERE status != 'REJECTED'",
                    'CREATE INDEX IF NOT EXISTS idx_slot_templates_doctor_status ON slot_templates(doctor_id, status)',
                ],
            )
            _upgrade_table(
                connection,
                inspector,
                'bookings',
                [
                    ('urgency', "ALTER TABLE bookings ADD COLUMN urgency VARCHAR DEFAULT 'normal'"),
                    ('cancelled_at', 'ALTER TABLE bookings ADD COLUMN cancelled_at TIMESTAMP'),
                ],
                [
                    'CREATE UNIQUE INDEX IF NOT EXISTS uq_bookings_confirmed_instance '
                    "ON bookings(slot_template_id, booking_date) WHERE status = 'CONFIRMED'",
                    'CREATE INDEX IF NOT EXISTS idx_bookings_patient_date ON bookings(patient_id, booking_date)',
                ],
            )

        _scheduling_schema_checked = True


@contextmanager
def storage_guard(db: Session, action: str):
    """Roll back and re-raise any storage failure as ``StorageUnavailable``.

    Integrity errors that carry a domain meaning must be handled inside the
    block; anything reaching this guard is treated as the store being down.
    """
    try:
        yield
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Storage failure while trying to %s', action)
        raise StorageUnavailable() from exc
