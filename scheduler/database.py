from threading import Lock

from sqlalchemy import create_engine, event, inspect, text
from sqlalchemy.orm import declarative_base, sessionmaker

from scheduler.core import config


DATABASE_URL = config.DATABASE_URL


def enable_sqlite_write_locking(target_engine) -> None:
    """Open every SQLite transaction with ``BEGIN IMMEDIATE``.

    SQLite ignores ``SELECT ... FOR UPDATE`` and pysqlite defers ``BEGIN``
    until the first write, so two sessions could both pass the booking checks
    before either inserts. Taking the database write lock when the transaction
    starts makes the provider lock in ``services.appointments`` hold here too.
    """

    @event.listens_for(target_engine, 'connect')
    def _disable_pysqlite_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(target_engine, 'begin')
    def _begin_immediate(connection):
        connection.exec_driver_sql('BEGIN IMMEDIATE')


connect_args = {'check_same_thread': False} if DATABASE_URL.startswith('sqlite') else {}
engine = create_engine(DATABASE_URL, connect_args=connect_args)

if DATABASE_URL.startswith('sqlite'):
    enable_sqlite_write_locking(engine)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()

_schema_lock = Lock()
_scheduling_schema_checked = False

RANGE_INDEXES = {
    'appointments': [
        'CREATE INDEX IF NOT EXISTS idx_appointments_provider_range '
        'ON appointments(provider_id, start_at, end_at)',
        'CREATE INDEX IF NOT EXISTS idx_appointments_provider_status '
        'ON appointments(provider_id, status)',
    ],
    'blocked_ranges': [
        'CREATE INDEX IF NOT EXISTS idx_blocked_ranges_provider_range '
        'ON blocked_ranges(provider_id, start_at, end_at)',
    ],
    'availability_windows': [
        'CREATE INDEX IF NOT EXISTS idx_availability_windows_provider_day '
        'ON availability_windows(provider_id, day_of_week, start_minute)',
    ],
}


def ensure_scheduling_schema() -> None:
    global _scheduling_schema_checked

    if _scheduling_schema_checked:
        return

    with _schema_lock:
        if _scheduling_schema_checked:
            return

        inspector = inspect(engine)
        existing_tables = set(inspector.get_table_names())

        with engine.begin() as connection:
            for table_name, statements in RANGE_INDEXES.items():
                if table_name not in existing_tables:
                    continue
                for statement in statements:
                    connection.execute(text(statement))

        _scheduling_schema_checked = True
