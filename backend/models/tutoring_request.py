"""Tutoring request model definitions."""

from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text

from backend.database import Base


REQUEST_PENDING = 'pending'
REQUEST_ACCEPTED = 'accepted'
REQUEST_COMPLETED = 'completed'


class TutoringRequest(Base):
    """Represents a student's open ask for help in a subject."""
    __tablename__ = "tutoring_requests"

    id = Column(Integer, primary_key=True)
    student_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    subject = Column(String, nullable=False)
    description = Column(Text)
    priority = Column(String, default='medium')
    requested_duration = Column(String, nullable=False)
    status = Column(String, nullable=False, default=REQUEST_PENDING)
    created_at = Column(DateTime, default=datetime.now)
    accepted_at = Column(DateTime)
    completed_at = Column(DateTime)
    tutor_id = Column(Integer, ForeignKey("users.id"))
