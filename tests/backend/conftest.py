import os

import pytest
from fastapi import BackgroundTasks
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

os.environ.setdefault('DATABASE_URL', 'sqlite:///./test.db')
os.environ.setdefault('JWT_SECRET_KEY', 'test-secret-key-for-the-tutoring-suite-0123')

from backend.auth.passwords import hash_password  # noqa: E402
from backend.database import Base  # noqa: E402
from backend.models import session, tutor_application, tutoring_request  # noqa: E402,F401
from backend.models.tutor_application import APPLICATION_APPROVED, TutorApplication  # noqa: E402
from backend.models.user import ROLE_ADMIN, ROLE_STUDENT, ROLE_TUTOR, User  # noqa: E402

DEFAULT_PASSWORD = 'secret123'


@pytest.fixture
def db():
    engine = create_engine('sqlite:///:memory:')
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)

    db = testing_session_local()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def background_tasks() -> BackgroundTasks:
    return BackgroundTasks()


def _add_user(db, *, email: str, role: str, first_name: str = 'Test', last_name: str = 'User', **fields) -> User:
    user = User(
        first_name=first_name,
        last_name=last_name,
        email=email,
        hashed_password=hash_password(DEFAULT_PASSWORD),
        role=role,
        interests=fields.pop('interests', []),
        subjects=fields.pop('subjects', []),
        availability=fields.pop('availability', []),
        **fields,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def make_student(db):
    def factory(email: str = 'student@example.com', **fields) -> User:
        fields.setdefault('first_name', 'Sam')
        fields.setdefault('last_name', 'Student')
        return _add_user(db, email=email, role=ROLE_STUDENT, **fields)

    return factory


@pytest.fixture
def make_tutor(db):
    def factory(email: str = 'tutor@example.com', subjects=None, **fields) -> User:
        fields.setdefault('first_name', 'Terry')
        fields.setdefault('last_name', 'Tutor')
        user = _add_user(db, email=email, role=ROLE_TUTOR, subjects=subjects or ['Math'], **fields)
        db.add(TutorApplication(user=user, status=APPLICATION_APPROVED, subjects=list(user.subjects)))
        db.commit()
        db.refresh(user)
        return user

    return factory


@pytest.fixture
def make_admin(db):
    def factory(email: str = 'admin@example.com') -> User:
        return _add_user(db, email=email, role=ROLE_ADMIN, first_name='Ada', last_name='Admin')

    return factory
