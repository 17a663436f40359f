from sqlalchemy.orm import Session
from planner.models import StudySession, SessionStatus
from datetime import date, datetime, time, timedelta, timezone
from typing import Iterable, List, Optional

def session_topic(exam_title: str, method: str) -> str:
    """Label shown for a generated session"""
    return f"Prep for {exam_title} - {method}"

def midnight_utc(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=timezone.utc)

def replace_sessions(db: Session, exam, sessions: Iterable) -> List[StudySession]:
    """
    Swap an exam's sessions for a new set (caller commits).

    Args:
        sessions: placed sessions with ISO `date`, `duration_minutes` and `method`
    """
    db.query(StudySession).filter(
        StudySession.exam_id == exam.id
    ).delete(synchronize_session=False)

    rows = [
        StudySession(
            exam_id=exam.id,
            user_id=exam.user_id,
            date=midnight_utc(date.fromisoformat(s.date)),
            duration=s.duration_minutes,
            method=s.method,
            topic=session_topic(exam.title, s.method),
            status=SessionStatus.PLANNED.value,
        )
        for s in sessions
    ]
    db.add_all(rows)
    return rows

def get_sessions_for_exam(db: Session, exam_id: int) -> List[StudySession]:
    """Get an exam's sessions in date order"""
    return db.query(StudySession).filter(
        StudySession.exam_id == exam_id
    ).order_by(StudySession.date.asc(), StudySession.id.asc()).all()

def get_other_exam_sessions(db: Session, user_id: int, exam_id: int) -> List[StudySession]:
    """Get the user's sessions that belong to other exams"""
    return db.query(StudySession).filter(
        StudySession.user_id == user_id,
        StudySession.exam_id != exam_id
    ).all()

def get_sessions_by_date(db: Session, user_id: int, session_date: date) -> List[StudySession]:
    """Get all of a user's sessions on a specific date"""
    start = midnight_utc(session_date)
    return db.query(StudySession).filter(
        StudySession.user_id == user_id,
        StudySession.date >= start,
        StudySession.date < start + timedelta(days=1)
    ).order_by(StudySession.id.asc()).all()

def update_session_status(
    db: Session,
    session_id: int,
    user_id: int,
    status: SessionStatus
) -> Optional[StudySession]:
    """Mark a session as planned, completed or skipped"""
    session = db.query(StudySession).filter(
        StudySession.id == session_id,
        StudySession.user_id == user_id
    ).first()
    if session:
        session.status = status.value
        db.commit()
        db.refresh(session)
    return session
