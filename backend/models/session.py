"""Tutoring session model definitions."""

from datetime import datetime

from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, String

from backend.database import Base


SESSION_SCHEDULED = 'scheduled'
SESSION_COMPLETED = 'completed'


class TutoringSession(Base):
    """Represents a scheduled or completed meeting created from an accepted request."""
    __tablename__ = "sessions"

    id = Column(Integer, primary_key=True)
    request_id = Column(Integer, ForeignKey("tutoring_requests.id"), unique=True, nullable=False)
    tutor_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    student_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    subject = Column(String)
    scheduled_time = Column(DateTime)
    status = Column(String, nullable=False, default=SESSION_SCHEDULED)
    meeting_id = Column(String)
    meeting_password = Column(String)
    meeting_link = Column(String)
    hours_spent = Column(Float)
    created_at = Column(DateTime, default=datetime.now)
    completed_at = Column(DateTime)
