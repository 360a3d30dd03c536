from threading import Lock

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.orm import declarative_base, sessionmaker

from backend.core import config


connect_args = {'check_same_thread': False} if config.DATABASE_URL.startswith('sqlite') else {}

engine = create_engine(config.DATABASE_URL, connect_args=connect_args)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()

_schema_lock = Lock()
_tutoring_schema_checked = False

INDEX_STATEMENTS = {
    'tutoring_requests': [
        'CREATE INDEX IF NOT EXISTS idx_requests_status_created ON tutoring_requests(status, created_at)',
        'CREATE INDEX IF NOT EXISTS idx_requests_student ON tutoring_requests(student_id)',
    ],
    'sessions': [
        'CREATE INDEX IF NOT EXISTS idx_sessions_tutor_status ON sessions(tutor_id, status)',
        'CREATE INDEX IF NOT EXISTS idx_sessions_student_status ON sessions(student_id, status)',
    ],
    'tutor_applications': [
        'CREATE INDEX IF NOT EXISTS idx_applications_status ON tutor_applications(status, applied_at)',
    ],
}


def ensure_tutoring_schema() -> None:
    global _tutoring_schema_checked

    if _tutoring_schema_checked:
        return

    with _schema_lock:
        if _tutoring_schema_checked:
            return

        existing_tables = set(inspect(engine).get_table_names())

        with engine.begin() as connection:
            for table_name, statements in INDEX_STATEMENTS.items():
                if table_name not in existing_tables:
                    continue
                for statement in statements:
                    connection.execute(text(statement))

        _tutoring_schema_checked = True


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
