import logging
from datetime import datetime

from fastapi import APIRouter, BackgroundTasks, Body, Depends
from pydantic import field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.auth.dependencies import get_current_user, require_admin
from backend.core.errors import (
    DATABASE_UNAVAILABLE,
    ConflictError,
    InternalError,
    InvalidInputError,
    NotFoundError,
)
from backend.database import get_db
from backend.models.tutor_application import (
    APPLICATION_APPROVED,
    APPLICATION_DENIED,
    APPLICATION_PENDING,
    PROFILE_FIELDS,
    TutorApplication,
)
from backend.models.user import ROLE_STUDENT, ROLE_TUTOR, User
from backend.notifications import mailer, messages
from backend.routes.auth_routes import TutorProfileFields
from backend.schemas import ApplicationResponse, CamelModel, PendingApplicationResponse, UserResponse

router = APIRouter(tags=['applications'])

logger = logging.getLogger(__name__)

MIN_TUTOR_AGE = 1
MAX_TUTOR_AGE = 120


class ApplyTutorRequest(TutorProfileFields):
    name: str | None = None
    age: int | None = None

    @field_validator('name')
    @classmethod
    def strip_name(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip() or None


class DecisionRequest(CamelModel):
    reason: str | None = None


def get_applicant(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise NotFoundError('User not found')
    if user.application is None:
        raise NotFoundError('No tutor application on file')
    return user


def require_pending(application: TutorApplication) -> None:
    if application.status != APPLICATION_PENDING:
        raise ConflictError(f'Application is already {application.status}')


def merge_profile(user: User, application: TutorApplication) -> None:
    # Fields the user set on their own profile win over the approved snapshot.
    for field_name in PROFILE_FIELDS:
        if not getattr(user, field_name):
            setattr(user, field_name, getattr(application, field_name))


@router.post('/apply-tutor')
def apply_tutor(
    data: ApplyTutorRequest,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if not data.name or data.age is None:
        raise InvalidInputError('Name and age required')
    if not MIN_TUTOR_AGE <= data.age <= MAX_TUTOR_AGE:
        raise InvalidInputError('Age is out of range')
    if current_user.role != ROLE_STUDENT:
        raise ConflictError('Only students can apply to become tutors')

    application = current_user.application
    if application is not None and application.status == APPLICATION_PENDING:
        raise ConflictError('Application already pending')

    try:
        if application is None:
            application = TutorApplication(user=current_user)
            db.add(application)

        # A denied applicant re-applies by resetting the same record.
        application.status = APPLICATION_PENDING
        application.name = data.name
        application.age = data.age
        application.subjects = data.subjects or list(current_user.subjects or [])
        application.bio = data.bio or current_user.bio
        application.experience = data.experience or current_user.experience
        application.motivation = data.motivation or current_user.motivation
        application.availability = data.availability or list(current_user.availability or [])
        application.applied_at = datetime.now()
        application.approved_at = None
        application.denied_at = None
        application.denial_reason = None

        db.commit()
        db.refresh(application)
    except SQLAlchemyError as exc:
        db.rollback()
        raise InternalError(DATABASE_UNAVAILABLE) from exc

    logger.info('User %s applied to become a tutor', current_user.id)
    mailer.notify(
        background_tasks,
        messages.application_received(mailer.admin_recipients(db), current_user, application),
    )

    return {
        'success': True,
        'message': 'Application submitted! Admin will review shortly.',
        'application': ApplicationResponse.model_validate(application),
    }


@router.get('/application-status')
def application_status(current_user: User = Depends(get_current_user)):
    application = current_user.application
    return {
        'success': True,
        'status': current_user.application_status,
        'application': ApplicationResponse.model_validate(application) if application else None,
        'userType': current_user.role,
    }


@router.post('/approve-tutor/{user_id}')
def approve_tutor(
    user_id: int,
    background_tasks: BackgroundTasks,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    user = get_applicant(db, user_id)
    application = user.application
    require_pending(application)

    try:
        application.status = APPLICATION_APPROVED
        application.approved_at = datetime.now()
        user.role = ROLE_TUTOR
        merge_profile(user, application)
        db.commit()
        db.refresh(user)
    except SQLAlchemyError as exc:
        db.rollback()
        raise InternalError(DATABASE_UNAVAILABLE) from exc

    logger.info('Admin %s approved tutor application for user %s', admin.id, user.id)
    mailer.notify(background_tasks, messages.application_approved(user))

    return {
        'success': True,
        'message': 'Tutor approved successfully',
        'user': UserResponse.from_user(user),
    }


@router.post('/deny-tutor/{user_id}')
def deny_tutor(
    user_id: int,
    background_tasks: BackgroundTasks,
    data: DecisionRequest | None = Body(default=None),
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    reason = (data.reason or '').strip() if data else ''
    user = get_applicant(db, user_id)
    application = user.application
    require_pending(application)

    try:
        application.status = APPLICATION_DENIED
        application.denied_at = datetime.now()
        application.denial_reason = reason or None
        db.commit()
        db.refresh(application)
    except SQLAlchemyError as exc:
        db.rollback()
        raise InternalError(DATABASE_UNAVAILABLE) from exc

    logger.info('Admin %s denied tutor application for user %s', admin.id, user.id)
    mailer.notify(background_tasks, messages.application_denied(user, reason or None))

    return {'success': True, 'message': 'Application denied'}


@router.get('/pending-applications')
def list_pending_applications(
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    try:
        applications = db.query(TutorApplication).filter(
            TutorApplication.status == APPLICATION_PENDING,
        ).order_by(TutorApplication.applied_at.asc()).all()
    except SQLAlchemyError as exc:
        raise InternalError(DATABASE_UNAVAILABLE) from exc

    return {
        'success': True,
        'applications': [
            PendingApplicationResponse(
                user=UserResponse.from_user(application.user),
                application=ApplicationResponse.model_validate(application),
            )
            for application in applications
        ],
    }
