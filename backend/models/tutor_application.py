"""Tutor application model definitions."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, JSON, String, Text
from sqlalchemy.orm import relationship

from backend.database import Base


APPLICATION_PENDING = 'pending'
APPLICATION_APPROVED = 'approved'
APPLICATION_DENIED = 'denied'

# Fields copied into the user's tutor profile on approval.
PROFILE_FIELDS = ('subjects', 'bio', 'experience', 'motivation', 'availability')


class TutorApplication(Base):
    """A user's request to become a tutor, owned one-to-one by the user."""
    __tablename__ = "tutor_applications"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)
    status = Column(String, nullable=False, default=APPLICATION_PENDING)
    name = Column(String)
    age = Column(Integer)

    subjects = Column(JSON, default=list)
    bio = Column(Text)
    experience = Column(Text)
    motivation = Column(Text)
    availability = Column(JSON, default=list)

    applied_at = Column(DateTime)
    approved_at = Column(DateTime)
    denied_at = Column(DateTime)
    denial_reason = Column(Text)

    user = relationship("User", back_populates="application")
