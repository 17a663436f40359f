from sqlalchemy.orm import Session
from planner.errors import ExamNotFound
from planner.models import Exam, GenerationStatus, StudySession
from planner.schemas import ExamCreate, ExamUpdate
from datetime import date
from typing import List, Optional

def create_exam(db: Session, user_id: int, exam: ExamCreate) -> Exam:
    """Create a new exam with no schedule yet"""
    db_exam = Exam(
        user_id=user_id,
        generation_status=GenerationStatus.NONE.value,
        **exam.model_dump(),
    )
    db.add(db_exam)
    db.commit()
    db.refresh(db_exam)
    return db_exam

def get_exam(db: Session, exam_id: int) -> Optional[Exam]:
    """Get exam by ID"""
    return db.query(Exam).filter(Exam.id == exam_id).first()

def get_exam_for_owner(db: Session, exam_id: int, user_id: int) -> Exam:
    """Get an exam, raising ExamNotFound if it is missing or owned by someone else"""
    exam = get_exam(db, exam_id)
    if not exam or exam.user_id != user_id:
        raise ExamNotFound(f"Exam {exam_id} not found")
    return exam

def get_exams_by_user(db: Session, user_id: int) -> List[Exam]:
    """Get all exams for a user, soonest first"""
    return db.query(Exam).filter(
        Exam.user_id == user_id
    ).order_by(Exam.exam_date.asc()).all()

def get_upcoming_exams(db: Session, user_id: int, today: date, limit: int = 3) -> List[Exam]:
    """Get the next exams that have not happened yet"""
    return db.query(Exam).filter(
        Exam.user_id == user_id,
        Exam.exam_date >= today
    ).order_by(Exam.exam_date.asc()).limit(limit).all()

def reset_exam_schedule(db: Session, exam: Exam) -> None:
    """Delete sessions, set status back to NONE and invalidate any running claim (caller commits)"""
    db.query(StudySession).filter(
        StudySession.exam_id == exam.id
    ).delete(synchronize_session=False)
    exam.generation_status = GenerationStatus.NONE.value
    exam.failure_reason = None
    exam.generation_version = Exam.generation_version + 1

def update_exam(db: Session, exam_id: int, user_id: int, changes: ExamUpdate) -> Exam:
    """
    Apply an edit and reset the schedule in one transaction.

    Old sessions are deleted so the exam can be generated again.
    """
    exam = get_exam_for_owner(db, exam_id, user_id)
    for key, value in changes.model_dump(exclude_unset=True).items():
        setattr(exam, key, value)
    reset_exam_schedule(db, exam)
    db.commit()
    db.refresh(exam)
    return exam

def reset_schedule(db: Session, exam_id: int, user_id: int) -> Exam:
    """Drop the current schedule so a fresh generation can run"""
    exam = get_exam_for_owner(db, exam_id, user_id)
    reset_exam_schedule(db, exam)
    db.commit()
    db.refresh(exam)
    return exam

def delete_exam(db: Session, exam_id: int, user_id: int) -> None:
    """Delete an exam and its sessions"""
    exam = get_exam_for_owner(db, exam_id, user_id)
    db.delete(exam)
    db.commit()

def transition_status(
    db: Session,
    exam_id: int,
    expected: GenerationStatus,
    new: GenerationStatus,
    failure_reason: Optional[str] = None,
    version: Optional[int] = None
) -> bool:
    """
    Conditionally move an exam from `expected` to `new` status.

    Runs as a single UPDATE ... WHERE status = expected, so only one caller
    can win a given transition. With `version`, the row must also still carry
    that generation version. Does not commit.

    Returns:
        True if the row was updated
    """
    query = db.query(Exam).filter(
        Exam.id == exam_id,
        Exam.generation_status == expected.value
    )
    if version is not None:
        query = query.filter(Exam.generation_version == version)
    updated = query.update(
        {
            Exam.generation_status: new.value,
            Exam.failure_reason: failure_reason,
        },
        synchronize_session=False
    )
    return updated == 1

def claim_generation(db: Session, exam_id: int) -> Optional[int]:
    """
    Move an exam from NONE to GENERATING and bump its generation version.

    Does not commit.

    Returns:
        The claimed version, or None if the exam was not in NONE
    """
    updated = db.query(Exam).filter(
        Exam.id == exam_id,
        Exam.generation_status == GenerationStatus.NONE.value
    ).update(
        {
            Exam.generation_status: GenerationStatus.GENERATING.value,
            Exam.failure_reason: None,
            Exam.generation_version: Exam.generation_version + 1,
        },
        synchronize_session=False
    )
    if updated != 1:
        return None
    return db.query(Exam.generation_version).filter(Exam.id == exam_id).scalar()
