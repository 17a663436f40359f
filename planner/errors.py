class PlannerError(Exception):
    """Base class for all study planner errors"""


class ScheduleError(PlannerError):
    """Exam parameters cannot be turned into a schedule"""


class InvalidParameter(ScheduleError):
    """An exam or settings value is outside its allowed set"""


class FeasibilityError(ScheduleError):
    """The study window leaves no room for sessions"""


class InfeasibleWindow(FeasibilityError):
    """Start date falls on or after the exam date"""


class NoEligibleDays(FeasibilityError):
    """Every date in the study window is a rest day"""


class ScheduleGenerationError(PlannerError):
    """Generation produced an impossible result (e.g. zero sessions)"""


class StaleGenerationError(PlannerError):
    """The exam was reset while its schedule was being generated"""


class ExamNotFound(PlannerError):
    """Exam does not exist or belongs to another user"""
