from planner.crud.user import create_user, get_user, update_rest_days
from planner.crud.exam import (
    create_exam,
    get_exam,
    get_exam_for_owner,
    get_exams_by_user,
    get_upcoming_exams,
    update_exam,
    reset_schedule,
    delete_exam,
    transition_status,
    claim_generation
)
from planner.crud.study_session import (
    replace_sessions,
    get_sessions_for_exam,
    get_other_exam_sessions,
    get_sessions_by_date,
    update_session_status
)

__all__ = [
    "create_user",
    "get_user",
    "update_rest_days",
    "create_exam",
    "get_exam",
    "get_exam_for_owner",
    "get_exams_by_user",
    "get_upcoming_exams",
    "update_exam",
    "reset_schedule",
    "delete_exam",
    "transition_status",
    "claim_generation",
    "replace_sessions",
    "get_sessions_for_exam",
    "get_other_exam_sessions",
    "get_sessions_by_date",
    "update_session_status",
]
