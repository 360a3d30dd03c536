"""Plain-text email templates, one builder per workflow transition."""

from backend.models.session import TutoringSession
from backend.models.tutor_application import TutorApplication
from backend.models.tutoring_request import TutoringRequest
from backend.models.user import User
from backend.notifications.mailer import Notification


def _join(values) -> str:
    return ', '.join(values or []) or 'N/A'


def application_received(admins: tuple[str, ...], user: User, application: TutorApplication) -> Notification:
    body = '\n'.join([
        'A new tutor application is waiting for review.',
        '',
        f'Name: {application.name or user.full_name}',
        f'Age: {application.age if application.age is not None else "N/A"}',
        f'Email: {user.email}',
        f'Subjects: {_join(application.subjects)}',
        f'Experience: {application.experience or "N/A"}',
        f'Availability: {_join(application.availability)}',
        f'Motivation: {application.motivation or "N/A"}',
        f'Applied at: {application.applied_at:%Y-%m-%d %H:%M}',
        '',
        f'Approve: POST /api/tutor/approve-tutor/{user.id}',
        f'Deny: POST /api/tutor/deny-tutor/{user.id}',
    ])
    return Notification(admins, f'New Tutor Application: {user.full_name}', body)


def application_approved(user: User) -> Notification:
    body = '\n'.join([
        f'Congratulations {user.first_name}!',
        '',
        'Your tutor application has been APPROVED.',
        'Log in to see student requests that match your subjects,',
        'accept them to create sessions, and log your hours.',
        '',
        f'Your subjects: {_join(user.subjects)}',
    ])
    return Notification((user.email,), 'Your Tutor Application Has Been Approved!', body)


def application_denied(user: User, reason: str | None) -> Notification:
    lines = [
        'Thank you for your interest in tutoring.',
        'Unfortunately, your application was not approved at this time.',
    ]
    if reason:
        lines.append(f'Feedback: {reason}')
    lines.append('You are welcome to apply again in the future.')
    return Notification((user.email,), 'Your Tutor Application Status', '\n'.join(lines))


def request_created(admins: tuple[str, ...], student: User, request: TutoringRequest) -> Notification:
    body = '\n'.join([
        f'{student.full_name} ({student.email}) asked for help.',
        '',
        f'Subject: {request.subject}',
        f'Priority: {request.priority}',
        f'Duration: {request.requested_duration}',
        f'Description: {request.description or "N/A"}',
    ])
    return Notification(admins, f'New Tutoring Request: {request.subject}', body)


def _meeting_lines(session: TutoringSession) -> list[str]:
    return [
        f'Subject: {session.subject}',
        f'Scheduled: {session.scheduled_time:%Y-%m-%d %H:%M}',
        f'Meeting ID: {session.meeting_id}',
        f'Password: {session.meeting_password}',
        f'Join: {session.meeting_link}',
    ]


def request_accepted_student(student: User, tutor_name: str, session: TutoringSession) -> Notification:
    body = '\n'.join([
        f'Great news, {student.first_name}!',
        f'{tutor_name} has accepted your tutoring request.',
        '',
        *_meeting_lines(session),
    ])
    return Notification((student.email,), 'A Tutor Has Accepted Your Request!', body)


def request_accepted_tutor(tutor: User, student: User, session: TutoringSession) -> Notification:
    body = '\n'.join([
        f'You accepted a request from {student.full_name} ({student.email}).',
        '',
        *_meeting_lines(session),
    ])
    return Notification((tutor.email,), f'Session Scheduled with {student.full_name}', body)


def request_accepted_admin(
    admins: tuple[str, ...],
    tutor: User,
    student: User,
    session: TutoringSession,
) -> Notification:
    body = '\n'.join([
        f'Tutor: {tutor.full_name} ({tutor.email})',
        f'Student: {student.full_name} ({student.email})',
        '',
        *_meeting_lines(session),
    ])
    return Notification(admins, f'Request Accepted: {session.subject}', body)


def session_completed(
    admins: tuple[str, ...],
    tutor: User,
    student: User,
    session: TutoringSession,
    tutor_total_hours: float,
    student_total_hours: float,
) -> Notification:
    body = '\n'.join([
        f'{tutor.full_name} completed a {session.subject} session with {student.full_name}.',
        '',
        f'Hours this session: {session.hours_spent:.1f}',
        f'{tutor.full_name} total hours tutored: {tutor_total_hours:.1f}',
        f'{student.full_name} total hours learned: {student_total_hours:.1f}',
    ])
    return Notification(admins, f'Session Completed: {session.subject}', body)
