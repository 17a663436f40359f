from pydantic import BaseModel, Field, field_validator
from typing import List, Optional
from datetime import date
from planner.constants import DAY_NAMES, SESSION_LENGTH_OPTIONS, WHEN_TO_START_OPTIONS


def _check_rest_days(days: List[str]) -> List[str]:
    normalized = [d.strip().upper() for d in days]
    unknown = [d for d in normalized if d not in DAY_NAMES]
    if unknown:
        raise ValueError(f"Unknown weekday(s): {', '.join(unknown)}")
    if len(set(normalized)) != len(normalized):
        raise ValueError("Rest days must not repeat")
    if len(normalized) >= 7:
        raise ValueError("Cannot mark all 7 days as rest days")
    return normalized


def _check_when_to_start(value: str) -> str:
    if value not in WHEN_TO_START_OPTIONS:
        raise ValueError(f"Invalid whenToStartStudying value: {value}")
    return value


def _check_session_length(value: int) -> int:
    if value not in SESSION_LENGTH_OPTIONS:
        allowed = ", ".join(str(v) for v in SESSION_LENGTH_OPTIONS)
        raise ValueError(f"Invalid session length. Must be one of: {allowed} minutes")
    return value


def _check_methods(methods: List[str]) -> List[str]:
    cleaned = [m.strip() for m in methods if m and m.strip()]
    if not cleaned:
        raise ValueError("At least one study method is required")
    return cleaned


class RestDaySettings(BaseModel):
    """Schema for a user's weekly rest days"""
    rest_days: List[str] = Field(default_factory=list, max_length=6)

    @field_validator("rest_days")
    @classmethod
    def validate_rest_days(cls, v):
        return _check_rest_days(v)


class UserCreate(RestDaySettings):
    """Schema for creating user profile"""
    name: str = Field(min_length=1)


class UserResponse(UserCreate):
    """Schema for user profile response"""
    id: int

    class Config:
        from_attributes = True


class ExamCreate(BaseModel):
    """Schema for creating an exam"""
    title: str = Field(min_length=1)
    subject: Optional[str] = None
    exam_date: date
    target_sessions_per_week: int = Field(ge=1)
    session_length_minutes: int
    when_to_start_studying: str
    study_methods: List[str]
    preferences: Optional[str] = None

    @field_validator("title")
    @classmethod
    def strip_title(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Title is required")
        return v

    @field_validator("subject", "preferences")
    @classmethod
    def blank_to_none(cls, v):
        if v is None:
            return None
        return v.strip() or None

    @field_validator("session_length_minutes")
    @classmethod
    def validate_session_length(cls, v):
        return _check_session_length(v)

    @field_validator("when_to_start_studying")
    @classmethod
    def validate_when_to_start(cls, v):
        return _check_when_to_start(v)

    @field_validator("study_methods")
    @classmethod
    def validate_methods(cls, v):
        return _check_methods(v)


class ExamUpdate(BaseModel):
    """Schema for a partial exam edit; unset fields are left untouched"""
    title: Optional[str] = None
    subject: Optional[str] = None
    exam_date: Optional[date] = None
    target_sessions_per_week: Optional[int] = Field(default=None, ge=1)
    session_length_minutes: Optional[int] = None
    when_to_start_studying: Optional[str] = None
    study_methods: Optional[List[str]] = None
    preferences: Optional[str] = None

    @field_validator(
        "title",
        "exam_date",
        "target_sessions_per_week",
        "session_length_minutes",
        "when_to_start_studying",
        "study_methods",
        mode="before",
    )
    @classmethod
    def reject_null(cls, v, info):
        # Leave a field out to keep it; these columns cannot be cleared
        if v is None:
            raise ValueError(f"{info.field_name} cannot be empty")
        return v

    @field_validator("title")
    @classmethod
    def strip_title(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Title cannot be empty")
        return v

    @field_validator("subject", "preferences")
    @classmethod
    def blank_to_none(cls, v):
        if v is None:
            return None
        return v.strip() or None

    @field_validator("session_length_minutes")
    @classmethod
    def validate_session_length(cls, v):
        return _check_session_length(v)

    @field_validator("when_to_start_studying")
    @classmethod
    def validate_when_to_start(cls, v):
        return _check_when_to_start(v)

    @field_validator("study_methods")
    @classmethod
    def validate_methods(cls, v):
        return _check_methods(v)
