import logging
import secrets
from datetime import datetime, timedelta

from fastapi import APIRouter, BackgroundTasks, Depends
from pydantic import Field
from sqlalchemy import func, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.auth.dependencies import get_current_user, require_student, require_tutor
from backend.core import config
from backend.core.errors import (
    DATABASE_UNAVAILABLE,
    AuthorizationError,
    ConflictError,
    InternalError,
    InvalidInputError,
    NotFoundError,
)
from backend.database import get_db
from backend.models.session import SESSION_COMPLETED, SESSION_SCHEDULED, TutoringSession
from backend.models.tutoring_request import REQUEST_COMPLETED, TutoringRequest
from backend.models.user import ROLE_STUDENT, ROLE_TUTOR, User
from backend.notifications import mailer, messages
from backend.schemas import CamelModel, SessionResponse, StudentStatsResponse, TutorStatsResponse

router = APIRouter(tags=['sessions'])

logger = logging.getLogger(__name__)

DEFAULT_HOURS_SPENT = 1.0
MAX_HOURS_SPENT = 24.0
MEETING_ID_DIGITS = 10
PLACEHOLDER_RATING = '5.0'


class CompleteSessionRequest(CamelModel):
    session_id: int | None = None
    hours_spent: float | None = Field(default=None, allow_inf_nan=False)


def generate_meeting_reference() -> tuple[str, str, str]:
    lowest = 10 ** (MEETING_ID_DIGITS - 1)
    meeting_id = str(lowest + secrets.randbelow(9 * lowest))
    password = secrets.token_urlsafe(6)
    link = f"{config.MEETING_BASE_URL.rstrip('/')}/j/{meeting_id}?pwd={password}"
    return meeting_id, password, link


def create_session(db: Session, request: TutoringRequest, tutor: User) -> TutoringSession:
    """Stage the session paired with an accepted request.

    The caller owns the transaction: the session is only flushed, so it
    commits or rolls back together with the request's status change.
    """
    meeting_id, password, link = generate_meeting_reference()
    session = TutoringSession(
        request_id=request.id,
        tutor_id=tutor.id,
        student_id=request.student_id,
        subject=request.subject,
        scheduled_time=datetime.now() + timedelta(hours=config.SESSION_LEAD_HOURS),
        status=SESSION_SCHEDULED,
        meeting_id=meeting_id,
        meeting_password=password,
        meeting_link=link,
    )
    db.add(session)
    db.flush()
    return session


def total_hours(db: Session, user_id: int, role: str) -> float:
    owner_column = TutoringSession.tutor_id if role == ROLE_TUTOR else TutoringSession.student_id
    total = db.query(func.coalesce(func.sum(TutoringSession.hours_spent), 0.0)).filter(
        owner_column == user_id,
        TutoringSession.status == SESSION_COMPLETED,
    ).scalar()
    return float(total or 0.0)


def count_completed(db: Session, user_id: int, role: str) -> int:
    owner_column = TutoringSession.tutor_id if role == ROLE_TUTOR else TutoringSession.student_id
    return db.query(TutoringSession).filter(
        owner_column == user_id,
        TutoringSession.status == SESSION_COMPLETED,
    ).count()


def list_sessions_for(db: Session, user: User, role: str) -> list[SessionResponse]:
    if role == ROLE_TUTOR:
        owner_column, counterpart_column = TutoringSession.tutor_id, TutoringSession.student_id
    else:
        owner_column, counterpart_column = TutoringSession.student_id, TutoringSession.tutor_id

    rows = db.query(TutoringSession, User).join(
        User, User.id == counterpart_column,
    ).filter(
        owner_column == user.id,
    ).order_by(TutoringSession.scheduled_time.asc(), TutoringSession.id.asc()).all()

    if role == ROLE_TUTOR:
        return [SessionResponse.from_session(session, user, student) for session, student in rows]
    return [SessionResponse.from_session(session, tutor, user) for session, tutor in rows]


@router.get('/sessions')
def list_tutor_sessions(
    tutor: User = Depends(require_tutor),
    db: Session = Depends(get_db),
):
    try:
        sessions = list_sessions_for(db, tutor, ROLE_TUTOR)
    except SQLAlchemyError as exc:
        raise InternalError(DATABASE_UNAVAILABLE) from exc

    return {'success': True, 'sessions': sessions}


@router.get('/student-sessions')
def list_student_sessions(
    student: User = Depends(require_student),
    db: Session = Depends(get_db),
):
    try:
        sessions = list_sessions_for(db, student, ROLE_STUDENT)
    except SQLAlchemyError as exc:
        raise InternalError(DATABASE_UNAVAILABLE) from exc

    return {'success': True, 'sessions': sessions}


@router.post('/complete-session')
def complete_session(
    data: CompleteSessionRequest,
    background_tasks: BackgroundTasks,
    tutor: User = Depends(require_tutor),
    db: Session = Depends(get_db),
):
    if data.session_id is None:
        raise InvalidInputError('Session id required')

    hours_spent = DEFAULT_HOURS_SPENT if data.hours_spent is None else float(data.hours_spent)
    if hours_spent <= 0 or hours_spent > MAX_HOURS_SPENT:
        raise InvalidInputError(f'Hours spent must be greater than 0 and at most {MAX_HOURS_SPENT:g}')

    session = db.get(TutoringSession, data.session_id)
    if session is None:
        raise NotFoundError('Session not found')
    if session.tutor_id != tutor.id:
        raise AuthorizationError('Only the tutor who owns this session can complete it')
    if session.status == SESSION_COMPLETED:
        raise ConflictError('Session already completed')

    now = datetime.now()
    try:
        result = db.execute(
            update(TutoringSession)
            .where(
                TutoringSession.id == session.id,
                TutoringSession.tutor_id == tutor.id,
                TutoringSession.status == SESSION_SCHEDULED,
            )
            .values(status=SESSION_COMPLETED, hours_spent=hours_spent, completed_at=now)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            db.rollback()
            raise ConflictError('Session already completed')

        db.execute(
            update(TutoringRequest)
            .where(TutoringRequest.id == session.request_id)
            .values(status=REQUEST_COMPLETED, completed_at=now)
            .execution_options(synchronize_session=False)
        )
        db.commit()
        db.refresh(session)

        student = db.get(User, session.student_id)
        tutor_hours = total_hours(db, tutor.id, ROLE_TUTOR)
        student_hours = total_hours(db, session.student_id, ROLE_STUDENT)
    except SQLAlchemyError as exc:
        db.rollback()
        raise InternalError(DATABASE_UNAVAILABLE) from exc

    logger.info('Tutor %s completed session %s (%.1f hours)', tutor.id, session.id, hours_spent)
    if student is not None:
        mailer.notify(
            background_tasks,
            messages.session_completed(
                mailer.admin_recipients(db),
                tutor,
                student,
                session,
                tutor_hours,
                student_hours,
            ),
        )

    return {
        'success': True,
        'message': 'Session completed',
        'session': SessionResponse.from_session(session, tutor, student),
    }


def get_stats(db: Session, user: User) -> TutorStatsResponse | StudentStatsResponse:
    if user.role == ROLE_TUTOR:
        return TutorStatsResponse(
            sessions_completed=count_completed(db, user.id, ROLE_TUTOR),
            hours_tutored=f'{total_hours(db, user.id, ROLE_TUTOR):.1f}',
            rating=PLACEHOLDER_RATING,
        )
    if user.role == ROLE_STUDENT:
        requests_made = db.query(TutoringRequest).filter(TutoringRequest.student_id == user.id).count()
        return StudentStatsResponse(
            requests_made=requests_made,
            sessions_completed=count_completed(db, user.id, ROLE_STUDENT),
            hours_learned=f'{total_hours(db, user.id, ROLE_STUDENT):.1f}',
        )
    raise AuthorizationError('Stats are only available to students and tutors')


@router.get('/stats')
def stats(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        user_stats = get_stats(db, current_user)
    except SQLAlchemyError as exc:
        raise InternalError(DATABASE_UNAVAILABLE) from exc

    return {'success': True, 'userType': current_user.role, 'stats': user_stats}
