import logging
from datetime import datetime

from fastapi import APIRouter, BackgroundTasks, Depends, status
from pydantic import field_validator
from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from backend.auth.dependencies import get_current_user, require_student, require_tutor
from backend.core.errors import (
    DATABASE_UNAVAILABLE,
    AuthorizationError,
    ConflictError,
    InternalError,
    InvalidInputError,
    NotFoundError,
)
from backend.database import get_db
from backend.models.tutoring_request import REQUEST_ACCEPTED, REQUEST_PENDING, TutoringRequest
from backend.models.user import ROLE_TUTOR, User
from backend.notifications import mailer, messages
from backend.routes.session_routes import create_session
from backend.schemas import (
    CamelModel,
    OpenRequestResponse,
    RequestResponse,
    SessionReference,
    TutorSummaryResponse,
)

router = APIRouter(tags=['requests'])

logger = logging.getLogger(__name__)

PRIORITIES = ('low', 'medium', 'high')
DEFAULT_PRIORITY = 'medium'
REQUESTED_DURATIONS = {
    '30min': 0.5,
    '1hour': 1.0,
    '1.5hours': 1.5,
    '2hours': 2.0,
}
MAX_DESCRIPTION_LENGTH = 2000


def normalize_duration(value: str) -> str:
    return ''.join(value.split()).lower()


class CreateRequestBody(CamelModel):
    subject: str | None = None
    description: str | None = None
    priority: str | None = None
    requested_time: str | None = None

    @field_validator('subject', 'description')
    @classmethod
    def strip_text(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip() or None

    @field_validator('priority')
    @classmethod
    def validate_priority(cls, value: str | None) -> str:
        normalized = (value or '').strip().lower() or DEFAULT_PRIORITY
        if normalized not in PRIORITIES:
            raise ValueError('Priority must be low, medium, or high.')
        return normalized

    @field_validator('requested_time')
    @classmethod
    def validate_requested_time(cls, value: str | None) -> str | None:
        if value is None or not value.strip():
            return None
        normalized = normalize_duration(value)
        if normalized not in REQUESTED_DURATIONS:
            raise ValueError(f'Requested time must be one of: {", ".join(REQUESTED_DURATIONS)}.')
        return normalized

    @field_validator('description')
    @classmethod
    def validate_description_length(cls, value: str | None) -> str | None:
        if value is not None and len(value) > MAX_DESCRIPTION_LENGTH:
            raise ValueError(f'Description must be {MAX_DESCRIPTION_LENGTH} characters or fewer.')
        return value


class AcceptRequestBody(CamelModel):
    request_id: int | None = None
    tutor_name: str | None = None


def matches_tutor(request: TutoringRequest, tutor: User) -> bool:
    subjects = {subject.strip().lower() for subject in (tutor.subjects or [])}
    if request.subject.strip().lower() not in subjects:
        return False
    availability = {normalize_duration(window) for window in (tutor.availability or [])}
    return not availability or request.requested_duration in availability


@router.post('/create-request', status_code=status.HTTP_201_CREATED)
def create_request(
    data: CreateRequestBody,
    background_tasks: BackgroundTasks,
    student: User = Depends(require_student),
    db: Session = Depends(get_db),
):
    if not data.subject or not data.requested_time:
        raise InvalidInputError('Subject and requested time are required')

    try:
        request = TutoringRequest(
            student_id=student.id,
            subject=data.subject,
            description=data.description,
            priority=data.priority or DEFAULT_PRIORITY,
            requested_duration=data.requested_time,
            status=REQUEST_PENDING,
            created_at=datetime.now(),
        )
        db.add(request)
        db.commit()
        db.refresh(request)
    except SQLAlchemyError as exc:
        db.rollback()
        raise InternalError(DATABASE_UNAVAILABLE) from exc

    logger.info('Student %s created request %s (%s)', student.id, request.id, request.subject)
    mailer.notify(
        background_tasks,
        messages.request_created(mailer.admin_recipients(db), student, request),
    )

    return {
        'success': True,
        'message': 'Request created successfully',
        'request': RequestResponse.model_validate(request),
    }


@router.get('/my-requests')
def list_my_requests(
    student: User = Depends(require_student),
    db: Session = Depends(get_db),
):
    try:
        requests = db.query(TutoringRequest).filter(
            TutoringRequest.student_id == student.id,
        ).order_by(TutoringRequest.created_at.desc(), TutoringRequest.id.desc()).all()
    except SQLAlchemyError as exc:
        raise InternalError(DATABASE_UNAVAILABLE) from exc

    return {'success': True, 'requests': [RequestResponse.model_validate(request) for request in requests]}


@router.get('/requests')
def list_open_requests(
    tutor: User = Depends(require_tutor),
    db: Session = Depends(get_db),
):
    subjects = [subject.strip().lower() for subject in (tutor.subjects or []) if subject.strip()]
    if not subjects:
        return {'success': True, 'requests': []}

    try:
        rows = db.query(TutoringRequest, User).join(
            User, User.id == TutoringRequest.student_id,
        ).filter(
            TutoringRequest.status == REQUEST_PENDING,
            func.lower(TutoringRequest.subject).in_(subjects),
            TutoringRequest.student_id != tutor.id,
        ).order_by(TutoringRequest.created_at.desc(), TutoringRequest.id.desc()).all()
    except SQLAlchemyError as exc:
        raise InternalError(DATABASE_UNAVAILABLE) from exc

    return {
        'success': True,
        'requests': [
            OpenRequestResponse.from_request(request, student)
            for request, student in rows
            if matches_tutor(request, tutor)
        ],
    }


@router.post('/accept-request')
def accept_request(
    data: AcceptRequestBody,
    background_tasks: BackgroundTasks,
    tutor: User = Depends(require_tutor),
    db: Session = Depends(get_db),
):
    if data.request_id is None:
        raise InvalidInputError('Request id required')

    request = db.get(TutoringRequest, data.request_id)
    if request is None:
        raise NotFoundError('Request not found')
    if request.student_id == tutor.id:
        raise AuthorizationError('Tutors cannot accept their own requests')
    if request.status != REQUEST_PENDING:
        raise ConflictError('Request has already been accepted')

    try:
        # Conditional transition: only one caller can move the row out of pending.
        result = db.execute(
            update(TutoringRequest)
            .where(
                TutoringRequest.id == request.id,
                TutoringRequest.status == REQUEST_PENDING,
            )
            .values(status=REQUEST_ACCEPTED, tutor_id=tutor.id, accepted_at=datetime.now())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            db.rollback()
            raise ConflictError('Request has already been accepted')

        session = create_session(db, request, tutor)
        db.commit()
        db.refresh(session)
        db.refresh(request)
        student = db.get(User, request.student_id)
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError('Request has already been accepted') from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise InternalError(DATABASE_UNAVAILABLE) from exc

    tutor_name = (data.tutor_name or '').strip() or tutor.full_name
    logger.info('Tutor %s accepted request %s as session %s', tutor.id, request.id, session.id)
    if student is not None:
        mailer.notify(background_tasks, messages.request_accepted_student(student, tutor_name, session))
        mailer.notify(background_tasks, messages.request_accepted_tutor(tutor, student, session))
        mailer.notify(
            background_tasks,
            messages.request_accepted_admin(mailer.admin_recipients(db), tutor, student, session),
        )

    return {
        'success': True,
        'message': 'Request accepted, session created',
        'sessionRef': SessionReference.model_validate(session),
        'tutorEmail': tutor.email,
    }


@router.get('/available-tutors')
def list_available_tutors(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        tutors = db.query(User).filter(User.role == ROLE_TUTOR).order_by(User.last_name, User.first_name).all()
    except SQLAlchemyError as exc:
        raise InternalError(DATABASE_UNAVAILABLE) from exc

    return {'success': True, 'tutors': [TutorSummaryResponse.model_validate(tutor) for tutor in tutors]}
