import threading
from datetime import date, datetime

import pytest

from planner.crud import (
    claim_generation,
    get_exam,
    get_sessions_for_exam,
    reset_schedule,
    transition_status,
    update_exam,
    update_rest_days,
)
from planner.errors import ExamNotFound
from planner.generation import GenerationOutcome, generate_schedule
from planner.models import Exam, GenerationStatus, SessionStatus
from planner.placement import generate_deterministic_schedule
from planner.schemas import ExamUpdate, RestDaySettings
from tests.helpers import TODAY


class RecordingPlacer:
    def __init__(self, result=None):
        self.calls = 0
        self.result = result

    def propose(self, request):
        self.calls += 1
        if self.result is None:
            raise RuntimeError("no proposal")
        return self.result


@pytest.fixture
def user(db, make_user):
    return make_user(db, rest_days=["SATURDAY"])


@pytest.fixture
def exam(db, user, make_exam):
    return make_exam(db, user)


def test_generates_and_stores_sessions(db, user, exam):
    result = generate_schedule(db, exam.id, user.id, today=TODAY)

    assert result.outcome == GenerationOutcome.SUCCESS
    assert result.success
    assert result.session_count == 11
    assert result.used_fallback

    db.refresh(exam)
    assert exam.generation_status == GenerationStatus.GENERATED.value
    assert exam.failure_reason is None

    sessions = get_sessions_for_exam(db, exam.id)
    assert len(sessions) == 11
    first = sessions[0]
    assert first.date.replace(tzinfo=None) == datetime(2026, 2, 10)
    assert first.duration == 60
    assert first.method == "Flashcards"
    assert first.topic == "Prep for Linear Algebra - Flashcards"
    assert first.status == SessionStatus.PLANNED.value
    assert first.user_id == user.id
    assert sessions[-1].date.date() == date(2026, 3, 8)
    assert all(s.date.weekday() != 5 for s in sessions)


def test_accepted_proposal_is_stored(db, user, exam):
    from planner.constraints import derive_schedule_inputs

    inputs = derive_schedule_inputs(exam, user.rest_days, [], TODAY)
    proposal = list(reversed(generate_deterministic_schedule(inputs, ["Summaries"])))
    placer = RecordingPlacer(proposal)

    result = generate_schedule(db, exam.id, user.id, placer=placer, today=TODAY)

    assert result.success
    assert not result.used_fallback
    assert placer.calls == 1
    assert {s.method for s in get_sessions_for_exam(db, exam.id)} == {"Summaries"}


def test_placer_failure_still_succeeds(db, user, exam):
    placer = RecordingPlacer()
    result = generate_schedule(db, exam.id, user.id, placer=placer, today=TODAY)

    assert result.success
    assert result.used_fallback
    assert placer.calls == 1


def test_second_trigger_gets_conflict(db, user, exam):
    assert generate_schedule(db, exam.id, user.id, today=TODAY).success

    result = generate_schedule(db, exam.id, user.id, today=TODAY)

    assert result.outcome == GenerationOutcome.CONFLICT
    assert "generated" in result.error
    assert len(get_sessions_for_exam(db, exam.id)) == 11


def test_in_flight_generation_blocks_new_trigger(db, user, exam):
    transition_status(db, exam.id, GenerationStatus.NONE, GenerationStatus.GENERATING)
    db.commit()
    placer = RecordingPlacer()

    result = generate_schedule(db, exam.id, user.id, placer=placer, today=TODAY)

    assert result.outcome == GenerationOutcome.CONFLICT
    assert placer.calls == 0
    assert get_sessions_for_exam(db, exam.id) == []


def test_regenerate_after_reset(db, user, exam):
    generate_schedule(db, exam.id, user.id, today=TODAY)
    reset_schedule(db, exam.id, user.id)
    db.refresh(exam)
    assert exam.generation_status == GenerationStatus.NONE.value
    assert get_sessions_for_exam(db, exam.id) == []

    assert generate_schedule(db, exam.id, user.id, today=TODAY).success


def test_past_exam_is_rejected_without_state_change(db, user, exam):
    result = generate_schedule(db, exam.id, user.id, today=date(2026, 3, 9))

    assert result.outcome == GenerationOutcome.FAILED
    assert "today or in the past" in result.error
    db.refresh(exam)
    assert exam.generation_status == GenerationStatus.NONE.value


def test_other_users_exam_is_not_found(db, user, exam, make_user):
    stranger = make_user(db, name="Someone else")
    with pytest.raises(ExamNotFound):
        generate_schedule(db, exam.id, stranger.id, today=TODAY)
    with pytest.raises(ExamNotFound):
        generate_schedule(db, 9999, user.id, today=TODAY)


def test_all_rest_days_fail_before_claiming_the_exam(db, user, exam, monkeypatch):
    user.rest_days = ["MONDAY", "TUESDAY", "WEDNESDAY", "THURSDAY", "FRIDAY", "SATURDAY", "SUNDAY"]
    db.commit()
    placer = RecordingPlacer()
    seen = []

    def spy(db_, exam_id, expected, new, failure_reason=None):
        seen.append((expected, new))
        return transition_status(db_, exam_id, expected, new, failure_reason)

    monkeypatch.setattr("planner.generation.transition_status", spy)
    result = generate_schedule(db, exam.id, user.id, placer=placer, today=TODAY)

    assert result.outcome == GenerationOutcome.FAILED
    assert "rest days" in result.error
    assert placer.calls == 0
    assert seen == [(GenerationStatus.NONE, GenerationStatus.FAILED)]
    db.refresh(exam)
    assert exam.generation_status == GenerationStatus.FAILED.value
    assert exam.failure_reason == result.error


def test_empty_schedule_is_recorded_as_failed(db, user, exam, monkeypatch):
    monkeypatch.setattr("planner.placement.generate_deterministic_schedule", lambda *a: [])

    result = generate_schedule(db, exam.id, user.id, today=TODAY)

    assert result.outcome == GenerationOutcome.FAILED
    assert "Failed to place any sessions" in result.error
    db.refresh(exam)
    assert exam.generation_status == GenerationStatus.FAILED.value
    assert exam.failure_reason == result.error


def test_persistence_failure_keeps_previous_sessions(db, user, exam, monkeypatch):
    assert generate_schedule(db, exam.id, user.id, today=TODAY).success
    before = [(s.date, s.method) for s in get_sessions_for_exam(db, exam.id)]
    # Back to NONE without touching sessions, as if a retry had started
    db.query(Exam).filter(Exam.id == exam.id).update({Exam.generation_status: GenerationStatus.NONE.value})
    db.commit()

    def broken_replace(db_, exam_, sessions):
        from planner.crud.study_session import replace_sessions
        replace_sessions(db_, exam_, sessions)
        raise RuntimeError("disk full")

    monkeypatch.setattr("planner.generation.replace_sessions", broken_replace)
    result = generate_schedule(db, exam.id, user.id, today=TODAY)

    assert result.outcome == GenerationOutcome.FAILED
    assert result.error == "disk full"
    db.refresh(exam)
    assert exam.generation_status == GenerationStatus.FAILED.value
    assert [(s.date, s.method) for s in get_sessions_for_exam(db, exam.id)] == before


def test_editing_exam_resets_schedule(db, user, exam):
    generate_schedule(db, exam.id, user.id, today=TODAY)

    update_exam(db, exam.id, user.id, ExamUpdate(target_sessions_per_week=5))

    db.refresh(exam)
    assert exam.generation_status == GenerationStatus.NONE.value
    assert exam.target_sessions_per_week == 5
    assert get_sessions_for_exam(db, exam.id) == []

    result = generate_schedule(db, exam.id, user.id, today=TODAY)
    assert result.success
    assert result.session_count > 11


def test_changing_rest_days_resets_every_exam(db, user, exam, make_exam):
    other = make_exam(db, user, title="Statistics", exam_date=date(2026, 3, 20))
    generate_schedule(db, exam.id, user.id, today=TODAY)
    generate_schedule(db, other.id, user.id, today=TODAY)

    update_rest_days(db, user.id, RestDaySettings(rest_days=["SUNDAY"]))

    for e in (exam, other):
        db.refresh(e)
        assert e.generation_status == GenerationStatus.NONE.value
        assert get_sessions_for_exam(db, e.id) == []

    generate_schedule(db, exam.id, user.id, today=TODAY)
    assert all(s.date.weekday() != 6 for s in get_sessions_for_exam(db, exam.id))


def test_failed_exam_needs_explicit_reset(db, user, exam):
    transition_status(db, exam.id, GenerationStatus.NONE, GenerationStatus.FAILED, "boom")
    db.commit()

    assert generate_schedule(db, exam.id, user.id, today=TODAY).outcome == GenerationOutcome.CONFLICT

    reset_schedule(db, exam.id, user.id)
    assert generate_schedule(db, exam.id, user.id, today=TODAY).success


class BlockingPlacer:
    """Holds the pipeline inside the placement step until released"""

    def __init__(self):
        self.entered = threading.Event()
        self.release = threading.Event()

    def propose(self, request):
        self.entered.set()
        self.release.wait(10)
        raise RuntimeError("no proposal")


def test_concurrent_triggers_only_one_proceeds(file_session_factory, make_user, make_exam):
    setup = file_session_factory()
    user = make_user(setup)
    exam = make_exam(setup, user)
    exam_id, user_id = exam.id, user.id
    setup.close()

    placer = BlockingPlacer()
    results = {}

    def first_caller():
        db = file_session_factory()
        try:
            results["first"] = generate_schedule(db, exam_id, user_id, placer=placer, today=TODAY, timeout=10)
        finally:
            db.close()

    worker = threading.Thread(target=first_caller)
    worker.start()
    try:
        assert placer.entered.wait(10)
        second_db = file_session_factory()
        try:
            results["second"] = generate_schedule(second_db, exam_id, user_id, today=TODAY)
        finally:
            second_db.close()
    finally:
        placer.release.set()
        worker.join(15)

    assert results["second"].outcome == GenerationOutcome.CONFLICT
    assert results["first"].outcome == GenerationOutcome.SUCCESS

    check = file_session_factory()
    try:
        assert get_exam(check, exam_id).generation_status == GenerationStatus.GENERATED.value
        assert len(get_sessions_for_exam(check, exam_id)) == 11
    finally:
        check.close()


def test_guard_is_a_conditional_update(file_session_factory, make_user, make_exam):
    setup = file_session_factory()
    exam = make_exam(setup, make_user(setup))
    exam_id = exam.id
    setup.close()

    a, b = file_session_factory(), file_session_factory()
    try:
        # Both callers saw NONE before either wrote
        assert get_exam(a, exam_id).generation_status == GenerationStatus.NONE.value
        assert get_exam(b, exam_id).generation_status == GenerationStatus.NONE.value

        claimed_a = claim_generation(a, exam_id)
        a.commit()
        claimed_b = claim_generation(b, exam_id)
        b.commit()
    finally:
        a.close()
        b.close()

    assert claimed_a == 1
    assert claimed_b is None


def test_final_update_needs_the_claimed_version(db, user, exam):
    claimed = claim_generation(db, exam.id)
    db.commit()
    reset_schedule(db, exam.id, user.id)
    newer = claim_generation(db, exam.id)
    db.commit()

    assert newer > claimed
    assert not transition_status(
        db, exam.id, GenerationStatus.GENERATING, GenerationStatus.GENERATED, version=claimed
    )
    assert transition_status(
        db, exam.id, GenerationStatus.GENERATING, GenerationStatus.GENERATED, version=newer
    )


def test_edit_during_generation_discards_result(file_session_factory, make_user, make_exam):
    setup = file_session_factory()
    user = make_user(setup)
    exam = make_exam(setup, user)
    exam_id, user_id = exam.id, user.id
    setup.close()

    class EditingPlacer:
        def propose(self, request):
            editor = file_session_factory()
            try:
                update_exam(editor, exam_id, user_id, ExamUpdate(title="Linear Algebra II"))
            finally:
                editor.close()
            raise RuntimeError("no proposal")

    db = file_session_factory()
    try:
        result = generate_schedule(db, exam_id, user_id, placer=EditingPlacer(), today=TODAY, timeout=10)

        assert result.outcome == GenerationOutcome.FAILED
        assert "changed while" in result.error
        db.expire_all()
        refreshed = get_exam(db, exam_id)
        assert refreshed.generation_status == GenerationStatus.NONE.value
        assert refreshed.title == "Linear Algebra II"
        assert get_sessions_for_exam(db, exam_id) == []
    finally:
        db.close()


def test_older_run_cannot_finish_a_newer_claim(file_session_factory, make_user, make_exam):
    setup = file_session_factory()
    user = make_user(setup)
    exam = make_exam(setup, user)
    exam_id, user_id = exam.id, user.id
    setup.close()

    newer_placer = BlockingPlacer()
    results = {}

    def newer_run():
        db = file_session_factory()
        try:
            results["newer"] = generate_schedule(
                db, exam_id, user_id, placer=newer_placer, today=TODAY, timeout=10
            )
        finally:
            db.close()

    newer = threading.Thread(target=newer_run)

    class EditThenRestartPlacer:
        """Edits the exam and lets a fresh run claim it before answering"""

        def propose(self, request):
            editor = file_session_factory()
            try:
                update_exam(editor, exam_id, user_id, ExamUpdate(target_sessions_per_week=5))
            finally:
                editor.close()
            newer.start()
            assert newer_placer.entered.wait(10)
            raise RuntimeError("no proposal")

    db = file_session_factory()
    try:
        try:
            results["older"] = generate_schedule(
                db, exam_id, user_id, placer=EditThenRestartPlacer(), today=TODAY, timeout=20
            )
        finally:
            newer_placer.release.set()
            if newer.is_alive():
                newer.join(15)
    finally:
        db.close()

    assert results["older"].outcome == GenerationOutcome.FAILED
    assert "changed while" in results["older"].error
    assert results["newer"].outcome == GenerationOutcome.SUCCESS

    check = file_session_factory()
    try:
        refreshed = get_exam(check, exam_id)
        assert refreshed.generation_status == GenerationStatus.GENERATED.value
        assert refreshed.target_sessions_per_week == 5
        stored = get_sessions_for_exam(check, exam_id)
        assert len(stored) == results["newer"].session_count
        assert len(stored) > 11
    finally:
        check.close()
