from sqlalchemy import Column, Integer, String, DateTime, JSON
from sqlalchemy.orm import relationship
from datetime import datetime
from planner.database import Base

class User(Base):
    """Student profile with rest-day settings"""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    rest_days = Column(JSON, nullable=False, default=list)  # ["SATURDAY", "SUNDAY"]
    created_at = Column(DateTime, default=datetime.utcnow)

    exams = relationship("Exam", back_populates="user", cascade="all, delete-orphan")
    study_sessions = relationship("StudySession", back_populates="user")
