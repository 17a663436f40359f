from sqlalchemy.orm import Session
from planner.models import User, Exam
from planner.schemas import UserCreate, RestDaySettings
from planner.crud.exam import reset_exam_schedule
from typing import Optional

def create_user(db: Session, user: UserCreate) -> User:
    """Create a new user profile"""
    db_user = User(**user.model_dump())
    db.add(db_user)
    db.commit()
    db.refresh(db_user)
    return db_user

def get_user(db: Session, user_id: int) -> Optional[User]:
    """Get user by ID"""
    return db.query(User).filter(User.id == user_id).first()

def update_rest_days(db: Session, user_id: int, settings: RestDaySettings) -> Optional[User]:
    """
    Change a user's rest days.

    Every exam of the user loses its sessions and goes back to NONE in the
    same transaction, since the old placements may now sit on rest days.
    """
    db_user = get_user(db, user_id)
    if not db_user:
        return None

    db_user.rest_days = settings.rest_days
    for exam in db.query(Exam).filter(Exam.user_id == user_id).all():
        reset_exam_schedule(db, exam)

    db.commit()
    db.refresh(db_user)
    return db_user
