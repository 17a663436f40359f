from datetime import date

import pytest
from pydantic import ValidationError

from planner.schemas import ExamCreate, ExamUpdate, RestDaySettings, UserCreate


def exam_fields(**overrides):
    fields = dict(
        title="  Organic Chemistry ",
        exam_date=date(2026, 5, 4),
        target_sessions_per_week=4,
        session_length_minutes=45,
        when_to_start_studying="2_weeks_before",
        study_methods=["Flashcards", " ", "Past papers "],
    )
    fields.update(overrides)
    return fields


class TestRestDays:
    def test_normalized_to_upper_case(self):
        assert RestDaySettings(rest_days=["sunday", " Saturday "]).rest_days == ["SUNDAY", "SATURDAY"]

    def test_empty_is_allowed(self):
        assert UserCreate(name="Ada").rest_days == []

    @pytest.mark.parametrize("days", [
        ["FUNDAY"],
        ["MONDAY", "monday"],
        ["MONDAY", "TUESDAY", "WEDNESDAY", "THURSDAY", "FRIDAY", "SATURDAY", "SUNDAY"],
    ])
    def test_rejected(self, days):
        with pytest.raises(ValidationError):
            RestDaySettings(rest_days=days)


class TestExamCreate:
    def test_cleans_values(self):
        exam = ExamCreate(**exam_fields(subject="  ", preferences=""))
        assert exam.title == "Organic Chemistry"
        assert exam.study_methods == ["Flashcards", "Past papers"]
        assert exam.subject is None
        assert exam.preferences is None

    @pytest.mark.parametrize("overrides", [
        {"title": "   "},
        {"target_sessions_per_week": 0},
        {"session_length_minutes": 75},
        {"when_to_start_studying": "yesterday"},
        {"study_methods": []},
        {"study_methods": ["", "  "]},
    ])
    def test_rejected(self, overrides):
        with pytest.raises(ValidationError):
            ExamCreate(**exam_fields(**overrides))


class TestExamUpdate:
    def test_only_set_fields_are_dumped(self):
        changes = ExamUpdate(session_length_minutes=90)
        assert changes.model_dump(exclude_unset=True) == {"session_length_minutes": 90}

    @pytest.mark.parametrize("field", [
        "title",
        "exam_date",
        "target_sessions_per_week",
        "session_length_minutes",
        "when_to_start_studying",
        "study_methods",
    ])
    def test_required_fields_cannot_be_cleared(self, field):
        with pytest.raises(ValidationError):
            ExamUpdate(**{field: None})

    def test_optional_fields_can_be_cleared(self):
        changes = ExamUpdate(subject=None, preferences=None)
        assert changes.model_dump(exclude_unset=True) == {"subject": None, "preferences": None}

    def test_validates_like_create(self):
        with pytest.raises(ValidationError):
            ExamUpdate(when_to_start_studying="someday")
        with pytest.raises(ValidationError):
            ExamUpdate(title="")
