from datetime import date
from types import SimpleNamespace

TODAY = date(2026, 2, 9)  # a Monday


def exam_params(**overrides):
    """Plain object with the attributes the deriver and placer read"""
    fields = dict(
        id=1,
        title="Linear Algebra",
        subject="Math",
        exam_date=date(2026, 3, 9),
        target_sessions_per_week=3,
        session_length_minutes=60,
        when_to_start_studying="tomorrow",
        study_methods=["Flashcards", "Practice problems", "Summaries"],
        preferences=None,
    )
    fields.update(overrides)
    return SimpleNamespace(**fields)