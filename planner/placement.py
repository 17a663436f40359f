"""
Place an exam's sessions on concrete dates.

Session count, duration and per-week quotas are locked by the constraint
deriver. An optional placer (usually an LLM) may propose which dates to use;
its answer is checked against every locked rule and discarded as a whole on
the first violation. The deterministic generator is always available as a
fallback and satisfies the same rules by construction.
"""
import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import date
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from planner.config import settings
from planner.constraints import ScheduleInputs, WeekBucket
from planner.distribution import distribute
from planner.errors import ScheduleGenerationError

logger = logging.getLogger(__name__)


class ProposedSession(BaseModel):
    """A single study session placed on a date"""
    date: str = Field(description="ISO date string (YYYY-MM-DD)")
    duration_minutes: int = Field(description="Session duration in minutes")
    method: str = Field(description="Study method from the exam's allowed methods")


class StudySchedule(BaseModel):
    """Create a study schedule by placing sessions on specific dates"""
    sessions: List[ProposedSession] = Field(description="Every session of the schedule")


class LockedConstraints(BaseModel):
    """Values no placement step may change"""
    total_session_count: int
    session_duration_minutes: int
    target_sessions_per_week: int

    class Config:
        frozen = True


class ExamBrief(BaseModel):
    title: str
    subject: Optional[str] = None
    exam_date: date
    preferences: Optional[str] = None
    study_methods: List[str]

    class Config:
        frozen = True


class PlacementRequest(BaseModel):
    """Everything a placer is allowed to see"""
    locked: LockedConstraints
    exam: ExamBrief
    week_breakdown: List[WeekBucket]
    available_dates: List[date]
    existing_minutes_by_date: Dict[str, int]
    rest_days: List[str]
    days_to_exam: int

    class Config:
        frozen = True


class PlacementResult(BaseModel):
    sessions: List[ProposedSession]
    used_fallback: bool


def lock_constraints(inputs: ScheduleInputs) -> LockedConstraints:
    return LockedConstraints(
        total_session_count=inputs.total_sessions_needed,
        session_duration_minutes=inputs.session_length_minutes,
        target_sessions_per_week=inputs.target_sessions_per_week,
    )


def build_placement_request(inputs: ScheduleInputs, exam) -> PlacementRequest:
    return PlacementRequest(
        locked=lock_constraints(inputs),
        exam=ExamBrief(
            title=exam.title,
            subject=exam.subject,
            exam_date=inputs.exam_date,
            preferences=exam.preferences,
            study_methods=list(exam.study_methods),
        ),
        week_breakdown=inputs.week_breakdown,
        available_dates=inputs.available_dates,
        existing_minutes_by_date=inputs.existing_minutes_by_date,
        rest_days=inputs.rest_days,
        days_to_exam=inputs.days_to_exam,
    )


def pinned_days_for(bucket: WeekBucket, inputs: ScheduleInputs) -> List[date]:
    """Global first and last study days, when they fall inside this bucket"""
    first_day = inputs.available_dates[0]
    last_day = inputs.available_dates[-1]
    pinned = []
    if bucket.study_days[0] == first_day:
        pinned.append(first_day)
    if bucket.study_days[-1] == last_day:
        pinned.append(last_day)
    return pinned


def find_violation(
    sessions: List[ProposedSession],
    inputs: ScheduleInputs,
    study_methods: List[str],
) -> Optional[str]:
    """Return a description of the first broken rule, or None if all hold"""
    available = {d.isoformat() for d in inputs.available_dates}

    if len(sessions) != inputs.total_sessions_needed:
        return f"expected {inputs.total_sessions_needed} sessions, got {len(sessions)}"

    for s in sessions:
        if s.duration_minutes != inputs.session_length_minutes:
            return f"duration {s.duration_minutes} != {inputs.session_length_minutes}"
    for s in sessions:
        if s.date not in available:
            return f"date {s.date} is not an available study date"
    for s in sessions:
        if s.method not in study_methods:
            return f"unknown study method {s.method!r}"

    per_date: Dict[str, int] = {}
    for s in sessions:
        per_date[s.date] = per_date.get(s.date, 0) + 1

    for bucket in inputs.week_breakdown:
        placed = sum(per_date.get(d.isoformat(), 0) for d in bucket.study_days)
        if placed != bucket.session_count:
            return (
                f"week of {bucket.week_start} has {placed} sessions, "
                f"quota is {bucket.session_count}"
            )

    first_day = inputs.available_dates[0].isoformat()
    last_day = inputs.available_dates[-1].isoformat()
    if per_date.get(first_day, 0) < 1:
        return f"first study day {first_day} has no session"
    if per_date.get(last_day, 0) < 1:
        return f"last study day {last_day} has no session"

    return None


def strict_validate(
    sessions: List[ProposedSession],
    inputs: ScheduleInputs,
    study_methods: List[str],
) -> Optional[List[ProposedSession]]:
    """
    All-or-nothing check of a proposed schedule.

    Returns the sessions sorted by date if every rule holds, otherwise None.
    Nothing is trimmed or repaired.
    """
    ordered = sorted(sessions, key=lambda s: s.date)
    violation = find_violation(ordered, inputs, study_methods)
    if violation:
        logger.warning("Proposed schedule rejected: %s", violation)
        return None
    return ordered


def generate_deterministic_schedule(
    inputs: ScheduleInputs,
    study_methods: List[str],
) -> List[ProposedSession]:
    """
    Fill every week bucket with its exact quota.

    Methods rotate round-robin across the whole plan; the index carries over
    from one week to the next.
    """
    sessions: List[ProposedSession] = []
    method_index = 0

    for bucket in inputs.week_breakdown:
        counts = distribute(
            bucket.study_days,
            bucket.session_count,
            pinned_days_for(bucket, inputs),
        )
        for day in bucket.study_days:
            for _ in range(counts[day]):
                sessions.append(ProposedSession(
                    date=day.isoformat(),
                    duration_minutes=inputs.session_length_minutes,
                    method=study_methods[method_index % len(study_methods)],
                ))
                method_index += 1

    return sessions


def _coerce_proposal(raw) -> List[ProposedSession]:
    if isinstance(raw, StudySchedule):
        raw = raw.sessions
    elif isinstance(raw, dict):
        raw = StudySchedule.model_validate(raw).sessions
    return [s if isinstance(s, ProposedSession) else ProposedSession.model_validate(s) for s in raw]


def request_proposal(placer, request: PlacementRequest, timeout: float) -> List[ProposedSession]:
    """
    Ask the placer for a schedule, giving up after `timeout` seconds.

    A timed-out call is abandoned, not cancelled: its worker thread runs until
    the placer returns, and the interpreter joins it at exit. The shipped
    schedulers give their LLM clients the same placement timeout (and no
    retries), so that timeout also bounds how long an abandoned call can keep
    the process alive.

    Raises:
        concurrent.futures.TimeoutError: the placer did not answer in time
        Exception: anything the placer raised, or a schema error
    """
    executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="placer")
    try:
        future = executor.submit(placer.propose, request)
        return _coerce_proposal(future.result(timeout=timeout))
    finally:
        executor.shutdown(wait=False)


def place_sessions(
    inputs: ScheduleInputs,
    exam,
    placer=None,
    timeout: Optional[float] = None,
) -> PlacementResult:
    """
    Produce the final, date-sorted session list for an exam.

    Placer failures of any kind fall back to the deterministic generator and
    are only logged. An empty result is an internal error and is raised.
    """
    study_methods = list(exam.study_methods)
    if timeout is None:
        timeout = settings.placement_timeout_seconds

    sessions = None
    if placer is not None:
        request = build_placement_request(inputs, exam)
        try:
            proposal = request_proposal(placer, request, timeout)
            sessions = strict_validate(proposal, inputs, study_methods)
            if sessions is None:
                logger.warning(
                    "AI output failed strict validation for exam %s - using deterministic fallback",
                    exam.id,
                )
        except Exception as e:
            logger.warning(
                "AI placement failed for exam %s - using deterministic fallback: %r",
                exam.id, e,
            )

    used_fallback = sessions is None
    if used_fallback:
        sessions = generate_deterministic_schedule(inputs, study_methods)

    sessions = sorted(sessions, key=lambda s: s.date)
    if not sessions:
        logger.error(
            "CRITICAL: schedule generation produced 0 sessions for exam %s "
            "(totalSessionsNeeded=%d, availableDates=%d, daysToExam=%d)",
            exam.id, inputs.total_sessions_needed, len(inputs.available_dates), inputs.days_to_exam,
        )
        raise ScheduleGenerationError(
            "Failed to place any sessions - this should not happen. Please report this error."
        )

    return PlacementResult(sessions=sessions, used_fallback=used_fallback)
