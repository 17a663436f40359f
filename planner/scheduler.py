import logging
from typing import List

from langchain_anthropic import ChatAnthropic
from langchain_core.prompts import ChatPromptTemplate
from langchain_ollama import ChatOllama

from planner.config import settings
from planner.placement import PlacementRequest, ProposedSession, StudySchedule

logger = logging.getLogger(__name__)


def get_scheduler():
    """Factory function to return the configured placer, or None for deterministic-only"""
    provider = settings.ai_provider.lower()
    if provider == "none":
        return None
    if provider == "claude":
        return ClaudeScheduler()
    return OllamaScheduler()


class BaseScheduler:
    """Base class for AI-proposed session placement.

    Subclasses only set `self.llm`. The model is forced to answer through the
    StudySchedule structure, so free text never reaches the validator.
    """

    def __init__(self):
        self.llm = None

    def propose(self, request: PlacementRequest) -> List[ProposedSession]:
        """
        Ask the model where to place the locked number of sessions.

        Args:
            request: locked values, week quotas, available dates, existing
                workload per date, rest days and exam metadata

        Returns:
            Candidate sessions; untrusted until strictly validated
        """
        prompt = ChatPromptTemplate.from_messages([
            ("system", "{system_prompt}"),
            ("human", "{payload}"),
        ])

        chain = prompt | self.llm.with_structured_output(StudySchedule)

        result = chain.invoke({
            "system_prompt": self._build_system_prompt(),
            "payload": request.model_dump_json(indent=2),
        })
        if result is None:
            raise ValueError(f"{self.__class__.__name__} returned no structured schedule")

        logger.debug("%s proposed %d sessions", self.__class__.__name__, len(result.sessions))
        return result.sessions

    def _build_system_prompt(self) -> str:
        """Build system prompt for LLM"""
        return """You are a study schedule placer. Session count, duration and weekly quotas are PRE-COMPUTED and LOCKED. Your ONLY job is to pick WHICH dates from available_dates to place sessions on, and assign study methods.

LOCKED VALUES (non-negotiable, do NOT change under ANY circumstance):
- locked.total_session_count: output EXACTLY this many sessions
- locked.session_duration_minutes: every session MUST have exactly this duration
- week_breakdown[i].session_count: each week MUST contain exactly this many sessions, placed only on that week's study_days

HARD RULES (never violate, in priority order):
1. Output EXACTLY locked.total_session_count sessions. Not more, not less.
2. Every session duration_minutes MUST equal locked.session_duration_minutes exactly.
3. ONLY use dates from available_dates.
4. ONLY use methods from exam.study_methods, spelled exactly.
5. Each week bucket gets EXACTLY its session_count sessions.
6. The first date in available_dates gets at least one session.
7. The last date in available_dates gets at least one session.
8. MULTIPLE SESSIONS PER DAY ARE ALLOWED when a week's quota exceeds its study days. Do NOT reduce session count to avoid stacking.

SOFT RULES (follow when possible, NEVER break hard rules to satisfy these):
9. Within a week, lean toward later days (more study closer to the exam).
10. Cycle through exam.study_methods in order; avoid repeating a method on consecutive sessions.
11. If exam.preferences is set, use it to influence WHICH dates you pick.
12. Prefer days with less existing_minutes_by_date.

Dates are ISO strings (YYYY-MM-DD)."""


class OllamaScheduler(BaseScheduler):
    """Placer using local Ollama for development"""

    def __init__(self):
        super().__init__()
        self.llm = ChatOllama(
            model=settings.ollama_model,
            base_url=settings.ollama_base_url,
            temperature=0.0,
            client_kwargs={"timeout": settings.placement_timeout_seconds},
        )


class ClaudeScheduler(BaseScheduler):
    """Placer using Claude API for production"""

    def __init__(self):
        super().__init__()
        if not settings.claude_api_key:
            raise ValueError("CLAUDE_API_KEY not set in environment variables")

        self.llm = ChatAnthropic(
            model=settings.claude_model,
            api_key=settings.claude_api_key,
            temperature=0.0,
            max_tokens=4096,
            timeout=settings.placement_timeout_seconds,
            max_retries=0,
        )
