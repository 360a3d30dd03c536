import logging
from datetime import datetime

from fastapi import APIRouter, BackgroundTasks, Depends, status
from pydantic import field_validator
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from backend.auth import jwt_handler, passwords
from backend.auth.dependencies import get_current_user, require_admin
from backend.core.errors import (
    DATABASE_UNAVAILABLE,
    AuthError,
    ConflictError,
    InternalError,
    InvalidInputError,
)
from backend.database import get_db
from backend.models.tutor_application import APPLICATION_PENDING, TutorApplication
from backend.models.user import ROLE_STUDENT, ROLE_TUTOR, User
from backend.notifications import mailer, messages
from backend.schemas import CamelModel, UserResponse

router = APIRouter(tags=['auth'])

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6
SIGNUP_USER_TYPES = {ROLE_STUDENT, ROLE_TUTOR}


def normalize_email(value: str | None) -> str | None:
    if value is None:
        return None
    return value.strip().lower()


class TutorProfileFields(CamelModel):
    subjects: list[str] = []
    bio: str | None = None
    experience: str | None = None
    motivation: str | None = None
    availability: list[str] = []

    @field_validator('subjects', 'availability')
    @classmethod
    def strip_entries(cls, value: list[str]) -> list[str]:
        return [entry.strip() for entry in value if entry and entry.strip()]


class SignupRequest(CamelModel):
    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    password: str | None = None
    user_type: str | None = None
    tutor_profile: TutorProfileFields | None = None

    @field_validator('email')
    @classmethod
    def validate_email(cls, value: str | None) -> str | None:
        return normalize_email(value)

    @field_validator('first_name', 'last_name', 'user_type')
    @classmethod
    def strip_text(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip()


class LoginRequest(CamelModel):
    email: str | None = None
    password: str | None = None

    @field_validator('email')
    @classmethod
    def validate_email(cls, value: str | None) -> str | None:
        return normalize_email(value)


class PreferencesRequest(CamelModel):
    grade: str | None = None
    interests: list[str] | None = None

    @field_validator('interests')
    @classmethod
    def strip_interests(cls, value: list[str] | None) -> list[str] | None:
        if value is None:
            return None
        return [interest.strip() for interest in value if interest and interest.strip()]


def auth_payload(user: User) -> dict:
    return {
        'success': True,
        'token': jwt_handler.create_access_token(user_id=user.id, email=user.email),
        'user': UserResponse.from_user(user),
    }


def validate_signup(data: SignupRequest) -> None:
    if not all([data.first_name, data.last_name, data.email, data.password, data.user_type]):
        raise InvalidInputError('All fields required')
    if '@' not in data.email:
        raise InvalidInputError('A valid email address is required')
    if len(data.password) < MIN_PASSWORD_LENGTH:
        raise InvalidInputError(f'Password must be at least {MIN_PASSWORD_LENGTH} characters')
    if data.user_type.lower() not in SIGNUP_USER_TYPES:
        raise InvalidInputError('User type must be student or tutor')


@router.post('/signup', status_code=status.HTTP_201_CREATED)
def signup(data: SignupRequest, background_tasks: BackgroundTasks, db: Session = Depends(get_db)):
    validate_signup(data)
    wants_tutor = data.user_type.lower() == ROLE_TUTOR

    try:
        if db.query(User).filter(User.email == data.email).first():
            raise ConflictError('Email already registered')

        # Tutor applicants start as students until an admin approves them.
        user = User(
            first_name=data.first_name,
            last_name=data.last_name,
            email=data.email,
            hashed_password=passwords.hash_password(data.password),
            role=ROLE_STUDENT,
            interests=[],
            subjects=[],
            availability=[],
        )
        db.add(user)

        application = None
        if wants_tutor:
            profile = data.tutor_profile or TutorProfileFields()
            application = TutorApplication(
                user=user,
                status=APPLICATION_PENDING,
                name=f'{data.first_name} {data.last_name}',
                subjects=profile.subjects,
                bio=profile.bio,
                experience=profile.experience,
                motivation=profile.motivation,
                availability=profile.availability,
                applied_at=datetime.now(),
            )
            db.add(application)

        db.commit()
        db.refresh(user)
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError('Email already registered') from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise InternalError(DATABASE_UNAVAILABLE) from exc

    logger.info('Created account %s (tutor applicant: %s)', user.id, wants_tutor)
    if application is not None:
        mailer.notify(
            background_tasks,
            messages.application_received(mailer.admin_recipients(db), user, application),
        )

    return auth_payload(user)


@router.post('/login')
def login(data: LoginRequest, db: Session = Depends(get_db)):
    if not data.email or not data.password:
        raise InvalidInputError('Email and password required')

    try:
        user = db.query(User).filter(User.email == data.email).first()
    except SQLAlchemyError as exc:
        raise InternalError(DATABASE_UNAVAILABLE) from exc

    # Pending and denied applicants still log in with their student role.
    if user is None or not passwords.verify_password(data.password, user.hashed_password):
        raise AuthError('Invalid credentials')

    return auth_payload(user)


@router.get('/profile')
def profile(current_user: User = Depends(get_current_user)):
    return {'success': True, 'user': UserResponse.from_user(current_user)}


@router.put('/preferences')
def update_preferences(
    data: PreferencesRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if data.grade is None and data.interests is None:
        raise InvalidInputError('Nothing to update')

    try:
        if data.grade is not None:
            current_user.grade = data.grade.strip() or None
        if data.interests is not None:
            current_user.interests = data.interests
        db.commit()
        db.refresh(current_user)
    except SQLAlchemyError as exc:
        db.rollback()
        raise InternalError(DATABASE_UNAVAILABLE) from exc

    return {'success': True, 'user': UserResponse.from_user(current_user)}


@router.get('/all-users')
def list_users(
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    try:
        users = db.query(User).order_by(User.created_at.desc(), User.id.desc()).all()
    except SQLAlchemyError as exc:
        raise InternalError(DATABASE_UNAVAILABLE) from exc

    return {'success': True, 'users': [UserResponse.from_user(user) for user in users]}
