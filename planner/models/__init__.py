from planner.models.user import User
from planner.models.exam import Exam, GenerationStatus
from planner.models.study_session import StudySession, SessionStatus

__all__ = [
    "User",
    "Exam",
    "GenerationStatus",
    "StudySession",
    "SessionStatus",
]
