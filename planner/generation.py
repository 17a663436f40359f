"""
Schedule generation state machine.

    NONE -> GENERATING -> GENERATED
                       -> FAILED

The NONE -> GENERATING step is a conditional UPDATE that also bumps the
exam's generation version. Whoever wins it owns the exam until it reaches
GENERATED or FAILED, as long as the version is still the one it claimed.
Losers get a CONFLICT result and must not retry on their own. Editing the
exam (or the user's rest days) and explicit regeneration put it back to NONE
and bump the version, which invalidates a claim still in flight.
"""
import enum
import logging
from datetime import date, datetime, timezone
from typing import Optional

from pydantic import BaseModel
from sqlalchemy.orm import Session

from planner.constraints import ScheduleInputs, derive_schedule_inputs
from planner.crud import (
    claim_generation,
    get_exam_for_owner,
    get_other_exam_sessions,
    replace_sessions,
    transition_status,
)
from planner.errors import ScheduleError, StaleGenerationError
from planner.models import GenerationStatus
from planner.placement import place_sessions

logger = logging.getLogger(__name__)


class GenerationOutcome(str, enum.Enum):
    SUCCESS = "success"
    FAILED = "failed"
    CONFLICT = "conflict"


class GenerationResult(BaseModel):
    outcome: GenerationOutcome
    error: Optional[str] = None
    session_count: int = 0
    used_fallback: bool = False

    @property
    def success(self) -> bool:
        return self.outcome == GenerationOutcome.SUCCESS


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


def _derive(db: Session, exam, today: date) -> ScheduleInputs:
    return derive_schedule_inputs(
        exam,
        exam.user.rest_days,
        get_other_exam_sessions(db, exam.user_id, exam.id),
        today,
    )


def generate_schedule(
    db: Session,
    exam_id: int,
    user_id: int,
    placer=None,
    today: Optional[date] = None,
    timeout: Optional[float] = None,
) -> GenerationResult:
    """
    Build and store the study schedule for one exam.

    Args:
        db: database session (committed and rolled back here)
        exam_id: exam to schedule
        user_id: caller; must own the exam
        placer: optional object with propose(request); None means the
            deterministic generator is used directly
        today: reference date, defaults to the current UTC date
        timeout: seconds allowed for the placer

    Returns:
        GenerationResult with SUCCESS, FAILED (with error text) or CONFLICT

    Raises:
        ExamNotFound: exam missing or not owned by user_id
    """
    today = today or utc_today()
    exam = get_exam_for_owner(db, exam_id, user_id)

    if exam.exam_date <= today:
        return GenerationResult(
            outcome=GenerationOutcome.FAILED,
            error="Cannot create schedule: exam date is today or in the past.",
        )

    # Bad parameters are reported without ever claiming the exam
    try:
        _derive(db, exam, today)
    except ScheduleError as e:
        logger.warning("Schedule inputs rejected for exam %s: %s", exam_id, e)
        transition_status(db, exam_id, GenerationStatus.NONE, GenerationStatus.FAILED, str(e))
        db.commit()
        return GenerationResult(outcome=GenerationOutcome.FAILED, error=str(e))

    version = claim_generation(db, exam_id)
    if version is None:
        db.rollback()
        db.refresh(exam)
        logger.info(
            "Generation for exam %s not started: status is %s",
            exam_id, exam.generation_status,
        )
        return GenerationResult(
            outcome=GenerationOutcome.CONFLICT,
            error=f"Schedule is already {exam.generation_status.lower()}",
        )
    db.commit()

    try:
        db.refresh(exam)
        inputs = _derive(db, exam, today)
        placement = place_sessions(inputs, exam, placer=placer, timeout=timeout)

        replace_sessions(db, exam, placement.sessions)
        if not transition_status(
            db, exam_id, GenerationStatus.GENERATING, GenerationStatus.GENERATED, version=version
        ):
            raise StaleGenerationError(
                "Exam was changed while its schedule was being generated. Please try again."
            )
        db.commit()
    except StaleGenerationError as e:
        # The edit already reset status and sessions; leave them alone
        db.rollback()
        logger.warning("Discarding schedule for exam %s: %s", exam_id, e)
        return GenerationResult(outcome=GenerationOutcome.FAILED, error=str(e))
    except Exception as e:
        db.rollback()
        logger.exception("Schedule generation failed for exam %s", exam_id)
        message = str(e) or "Unknown error during schedule generation"
        transition_status(
            db, exam_id, GenerationStatus.GENERATING, GenerationStatus.FAILED, message, version=version
        )
        db.commit()
        return GenerationResult(outcome=GenerationOutcome.FAILED, error=message)

    logger.info(
        "Generated %d sessions for exam %s (%s)",
        len(placement.sessions), exam_id,
        "deterministic" if placement.used_fallback else "AI placement",
    )
    return GenerationResult(
        outcome=GenerationOutcome.SUCCESS,
        session_count=len(placement.sessions),
        used_fallback=placement.used_fallback,
    )
