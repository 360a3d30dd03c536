from datetime import datetime

from pydantic import BaseModel, field_validator
from pydantic.alias_generators import to_camel

from backend.models.session import TutoringSession
from backend.models.tutoring_request import TutoringRequest
from backend.models.user import User


class CamelModel(BaseModel):
    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


class ProfileListsMixin(CamelModel):
    @field_validator('subjects', 'availability', mode='before', check_fields=False)
    @classmethod
    def default_empty_list(cls, value):
        return value or []


class ApplicationResponse(ProfileListsMixin):
    status: str
    name: str | None = None
    age: int | None = None
    subjects: list[str] = []
    bio: str | None = None
    experience: str | None = None
    motivation: str | None = None
    availability: list[str] = []
    applied_at: datetime | None = None
    approved_at: datetime | None = None
    denied_at: datetime | None = None
    denial_reason: str | None = None


class UserResponse(CamelModel):
    id: int
    first_name: str
    last_name: str
    email: str
    user_type: str
    grade: str | None = None
    interests: list[str] = []
    subjects: list[str] = []
    bio: str | None = None
    experience: str | None = None
    availability: list[str] = []
    application_status: str = 'not_applied'
    created_at: datetime | None = None

    @classmethod
    def from_user(cls, user: User) -> 'UserResponse':
        return cls(
            id=user.id,
            first_name=user.first_name,
            last_name=user.last_name,
            email=user.email,
            user_type=user.role,
            grade=user.grade,
            interests=user.interests or [],
            subjects=user.subjects or [],
            bio=user.bio,
            experience=user.experience,
            availability=user.availability or [],
            application_status=user.application_status,
            created_at=user.created_at,
        )


class PendingApplicationResponse(CamelModel):
    user: UserResponse
    application: ApplicationResponse


class TutorSummaryResponse(ProfileListsMixin):
    id: int
    first_name: str
    last_name: str
    email: str
    subjects: list[str] = []
    bio: str | None = None
    experience: str | None = None
    availability: list[str] = []


class RequestResponse(CamelModel):
    id: int
    student_id: int
    subject: str
    description: str | None = None
    priority: str
    requested_duration: str
    status: str
    created_at: datetime | None = None
    accepted_at: datetime | None = None
    completed_at: datetime | None = None
    tutor_id: int | None = None


class OpenRequestResponse(RequestResponse):
    student_name: str
    grade: str = 'N/A'

    @classmethod
    def from_request(cls, request: TutoringRequest, student: User) -> 'OpenRequestResponse':
        base = RequestResponse.model_validate(request).model_dump()
        return cls(**base, student_name=student.full_name, grade=student.grade or 'N/A')


class SessionReference(CamelModel):
    id: int
    meeting_id: str
    meeting_password: str
    meeting_link: str
    scheduled_time: datetime


class SessionResponse(CamelModel):
    id: int
    request_id: int
    tutor_id: int
    student_id: int
    subject: str | None = None
    scheduled_time: datetime | None = None
    status: str
    meeting_id: str | None = None
    meeting_password: str | None = None
    meeting_link: str | None = None
    hours_spent: float | None = None
    completed_at: datetime | None = None
    tutor_name: str | None = None
    tutor_email: str | None = None
    student_name: str | None = None
    student_email: str | None = None

    @classmethod
    def from_session(cls, session: TutoringSession, tutor: User | None, student: User | None) -> 'SessionResponse':
        response = cls.model_validate(session)
        if tutor is not None:
            response.tutor_name = tutor.full_name
            response.tutor_email = tutor.email
        if student is not None:
            response.student_name = student.full_name
            response.student_email = student.email
        return response


class TutorStatsResponse(CamelModel):
    sessions_completed: int
    hours_tutored: str
    rating: str


class StudentStatsResponse(CamelModel):
    requests_made: int
    sessions_completed: int
    hours_learned: str
