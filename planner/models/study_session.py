import enum
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from datetime import datetime
from planner.database import Base


class SessionStatus(str, enum.Enum):
    PLANNED = "PLANNED"
    COMPLETED = "COMPLETED"
    SKIPPED = "SKIPPED"


class StudySession(Base):
    """One scheduled study block for an exam"""
    __tablename__ = "study_sessions"

    id = Column(Integer, primary_key=True, index=True)
    exam_id = Column(Integer, ForeignKey("exams.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)

    date = Column(DateTime(timezone=True), nullable=False)  # midnight UTC
    duration = Column(Integer, nullable=False)  # minutes
    method = Column(String, nullable=False)
    topic = Column(String)
    status = Column(String, nullable=False, default=SessionStatus.PLANNED.value)

    created_at = Column(DateTime, default=datetime.utcnow)

    user = relationship("User", back_populates="study_sessions")
    exam = relationship("Exam", back_populates="study_sessions")
