"""
Derive the study window, eligible dates and per-week session quotas for an exam.

Weeks run Monday to Sunday. The partial week that contains the start date is
rounded down, the partial week that contains the last study day is rounded up,
and every whole week in between gets exactly the weekly target.
"""
import logging
from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Optional

from pydantic import BaseModel

from planner.constants import DAY_NAMES, SESSION_LENGTH_OPTIONS, WHEN_TO_START_OPTIONS
from planner.errors import InfeasibleWindow, InvalidParameter, NoEligibleDays

logger = logging.getLogger(__name__)

_DAYS_FROM_TODAY = {"tomorrow": 1, "in_2_days": 2, "in_3_days": 3}
_DAYS_BEFORE_EXAM = {
    "the_week_before": 7,
    "2_weeks_before": 14,
    "3_weeks_before": 21,
    "4_weeks_before": 28,
}

BUCKET_FIRST = "first"
BUCKET_FULL = "full"
BUCKET_EXAM = "exam"
BUCKET_ONLY = "only"


class WeekBucket(BaseModel):
    """One Monday-Sunday slice of the study window with an exact quota"""
    week_index: int
    type: str
    week_start: date
    study_days: List[date]
    session_count: int

    class Config:
        frozen = True


class ScheduleInputs(BaseModel):
    """Everything placement needs, computed once per generation"""
    start_date: date
    exam_date: date
    days_to_exam: int
    available_dates: List[date]
    week_breakdown: List[WeekBucket]
    total_sessions_needed: int
    target_sessions_per_week: int
    session_length_minutes: int
    existing_minutes_by_date: Dict[str, int]
    rest_days: List[str]

    class Config:
        frozen = True


def day_name(d: date) -> str:
    return DAY_NAMES[d.weekday()]


def week_start(d: date) -> date:
    """Monday of the calendar week containing d"""
    return d - timedelta(days=d.weekday())


def next_monday(d: date) -> date:
    """Monday strictly after d (a Monday advances a full week)"""
    return d + timedelta(days=7 - d.weekday())


def compute_start_date(when_to_start: str, exam_date: date, today: date) -> date:
    """
    Turn a whenToStartStudying option into a concrete start date.

    Relative-to-today options count from today; relative-to-exam options count
    back from the exam. Anything earlier than tomorrow is clamped to tomorrow.
    """
    tomorrow = today + timedelta(days=1)

    if when_to_start in _DAYS_FROM_TODAY:
        start = today + timedelta(days=_DAYS_FROM_TODAY[when_to_start])
    elif when_to_start == "next_week":
        start = next_monday(today)
    elif when_to_start in _DAYS_BEFORE_EXAM:
        start = exam_date - timedelta(days=_DAYS_BEFORE_EXAM[when_to_start])
    else:
        raise InvalidParameter(f"Invalid whenToStartStudying value: {when_to_start}")

    if start < tomorrow:
        start = tomorrow
    return start


def normalize_rest_days(rest_days: Optional[Iterable[str]]) -> List[str]:
    """Upper-case, de-duplicate and check weekday names, keeping Monday-first order"""
    names = {d.strip().upper() for d in (rest_days or [])}
    unknown = names.difference(DAY_NAMES)
    if unknown:
        raise InvalidParameter(f"Unknown rest day(s): {', '.join(sorted(unknown))}")
    return [d for d in DAY_NAMES if d in names]


def _ceil_div(a: int, b: int) -> int:
    return -(-a // b)


def build_week_breakdown(
    start_date: date,
    exam_date: date,
    available_dates: List[date],
    target_sessions_per_week: int,
    rest_day_count: int,
) -> List[WeekBucket]:
    """
    Split [start_date, exam_date - 1] into calendar weeks and assign quotas.

    Partial weeks are scaled by target / study-days-per-week using integer
    arithmetic; weeks without an eligible day are dropped. No bucket gets
    fewer sessions than the number of global first/last study days it holds.
    """
    study_days_per_week = 7 - rest_day_count
    last_study_day = exam_date - timedelta(days=1)
    first_week = week_start(start_date)
    last_week = week_start(last_study_day)

    pinned = {available_dates[0], available_dates[-1]} if available_dates else set()

    days_by_week: Dict[date, List[date]] = {}
    for d in available_dates:
        days_by_week.setdefault(week_start(d), []).append(d)

    buckets: List[WeekBucket] = []
    monday = first_week
    while monday <= last_week:
        days = days_by_week.get(monday, [])
        if days:
            scaled = len(days) * target_sessions_per_week
            if first_week == last_week:
                kind = BUCKET_ONLY
                quota = max(1, _ceil_div(scaled, study_days_per_week))
            elif monday == first_week:
                kind = BUCKET_FIRST
                quota = max(1, scaled // study_days_per_week)
            elif monday == last_week:
                kind = BUCKET_EXAM
                quota = max(1, _ceil_div(scaled, study_days_per_week))
            else:
                kind = BUCKET_FULL
                quota = target_sessions_per_week

            # The global first and last study day each need a session
            quota = max(quota, len(pinned.intersection(days)))

            buckets.append(WeekBucket(
                week_index=len(buckets),
                type=kind,
                week_start=monday,
                study_days=days,
                session_count=quota,
            ))
        monday += timedelta(days=7)

    return buckets


def _session_day(value) -> date:
    return value.date() if isinstance(value, datetime) else value


def derive_schedule_inputs(exam, rest_days, other_sessions, today: date) -> ScheduleInputs:
    """
    Compute the locked schedule inputs for one exam.

    Args:
        exam: object with exam_date, target_sessions_per_week,
            session_length_minutes, when_to_start_studying and study_methods
        rest_days: weekday names the user never studies on
        other_sessions: the user's sessions for other exams (objects with
            date and duration); only used as informational workload
        today: reference date for relative start options

    Raises:
        InvalidParameter, InfeasibleWindow, NoEligibleDays
    """
    rest = normalize_rest_days(rest_days)
    if len(rest) >= 7:
        raise NoEligibleDays("All 7 days are rest days - no study days available")
    if exam.target_sessions_per_week is None or exam.target_sessions_per_week < 1:
        raise InvalidParameter("targetSessionsPerWeek must be at least 1")
    if exam.when_to_start_studying not in WHEN_TO_START_OPTIONS:
        raise InvalidParameter(f"Invalid whenToStartStudying value: {exam.when_to_start_studying}")
    if exam.session_length_minutes not in SESSION_LENGTH_OPTIONS:
        raise InvalidParameter(f"Invalid session length: {exam.session_length_minutes}")
    if not exam.study_methods:
        raise InvalidParameter("Exam has no study methods")

    exam_date = _session_day(exam.exam_date)
    start_date = compute_start_date(exam.when_to_start_studying, exam_date, today)

    days_to_exam = (exam_date - start_date).days
    if days_to_exam <= 0:
        raise InfeasibleWindow("Start date is on or after exam date - no time to study")

    available_dates = []
    current = start_date
    while current < exam_date:
        if day_name(current) not in rest:
            available_dates.append(current)
        current += timedelta(days=1)

    if not available_dates:
        raise NoEligibleDays(
            "No available study days between start and exam. All days in range are rest days."
        )

    week_breakdown = build_week_breakdown(
        start_date,
        exam_date,
        available_dates,
        exam.target_sessions_per_week,
        len(rest),
    )
    total_sessions_needed = max(1, sum(b.session_count for b in week_breakdown))

    window = set(available_dates)
    existing_minutes_by_date: Dict[str, int] = {}
    for session in other_sessions or []:
        day = _session_day(session.date)
        if day in window:
            key = day.isoformat()
            existing_minutes_by_date[key] = existing_minutes_by_date.get(key, 0) + session.duration

    logger.debug(
        "Derived %d sessions over %d available dates (%d week buckets) starting %s",
        total_sessions_needed, len(available_dates), len(week_breakdown), start_date,
    )

    return ScheduleInputs(
        start_date=start_date,
        exam_date=exam_date,
        days_to_exam=days_to_exam,
        available_dates=available_dates,
        week_breakdown=week_breakdown,
        total_sessions_needed=total_sessions_needed,
        target_sessions_per_week=exam.target_sessions_per_week,
        session_length_minutes=exam.session_length_minutes,
        existing_minutes_by_date=existing_minutes_by_date,
        rest_days=rest,
    )
