"""User model definitions."""

from datetime import datetime

from sqlalchemy import Column, DateTime, Integer, JSON, String, Text
from sqlalchemy.orm import relationship

from backend.database import Base
from backend.models.tutor_application import TutorApplication


ROLE_STUDENT = 'student'
ROLE_TUTOR = 'tutor'
ROLE_ADMIN = 'admin'


class User(Base):
    """Represents an application user and, once approved, their tutor profile."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    role = Column(String, nullable=False, default=ROLE_STUDENT)  # student/tutor/admin
    grade = Column(String)
    interests = Column(JSON, default=list)

    subjects = Column(JSON, default=list)
    bio = Column(Text)
    experience = Column(Text)
    motivation = Column(Text)
    availability = Column(JSON, default=list)

    created_at = Column(DateTime, default=datetime.now)

    application = relationship(
        TutorApplication,
        back_populates="user",
        uselist=False,
        lazy="joined",
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def application_status(self) -> str:
        if self.application is None:
            return "not_applied"
        return self.application.status
