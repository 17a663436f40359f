import enum
from sqlalchemy import Column, Integer, String, Date, DateTime, Text, ForeignKey, JSON
from sqlalchemy.orm import relationship
from datetime import datetime
from planner.database import Base


class GenerationStatus(str, enum.Enum):
    """Lifecycle of an exam's schedule generation"""
    NONE = "NONE"
    GENERATING = "GENERATING"
    GENERATED = "GENERATED"
    FAILED = "FAILED"


class Exam(Base):
    """Upcoming exam with the study preferences used to build its schedule"""
    __tablename__ = "exams"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    title = Column(String, nullable=False)
    subject = Column(String)
    exam_date = Column(Date, nullable=False)

    target_sessions_per_week = Column(Integer, nullable=False)
    session_length_minutes = Column(Integer, nullable=False)  # 30, 45, 60, 90 or 120
    when_to_start_studying = Column(String, nullable=False)  # "tomorrow", "2_weeks_before", ...
    study_methods = Column(JSON, nullable=False)  # ["Flashcards", "Practice problems"]
    preferences = Column(Text)  # free-text hint, only shown to the AI placer

    generation_status = Column(String, nullable=False, default=GenerationStatus.NONE.value, index=True)
    # Bumped by every claim and reset; the final update must match the claimed value
    generation_version = Column(Integer, nullable=False, default=0)
    failure_reason = Column(Text)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = relationship("User", back_populates="exams")
    study_sessions = relationship(
        "StudySession",
        back_populates="exam",
        cascade="all, delete-orphan",
        order_by="StudySession.date",
    )
