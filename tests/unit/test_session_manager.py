import asyncio

import pytest

import interview_session.interview_session as session_module
from interview_session.errors import InvalidTransitionError, PersistenceError, SessionBusyError
from interview_session.interview_session import InterviewSessionManager, InterviewStateMachine
from interview_session.models import NO_ANSWER_PLACEHOLDER
from services.deadlines import AnswerDeadline
from services.sessions import LocalSessionStore


def _manager(persistence, evaluator, root, **kwargs) -> InterviewSessionManager:
    kwargs.setdefault("clear_delay_s", 0.0)
    kwargs.setdefault("enforce_deadlines", False)
    machine = InterviewStateMachine(persistence, evaluator, ai_timeout_s=1.0)
    return InterviewSessionManager(machine, LocalSessionStore(root), **kwargs)


@pytest.mark.asyncio
async def test_start_persists_local_records(persistence, evaluator, tmp_path):
    manager = _manager(persistence, evaluator, tmp_path)
    result = await manager.start("Jane", "jane@x.com")

    store = LocalSessionStore(tmp_path)
    assert store.load_candidate().id == result.candidate.id
    assert store.load_state().current_question == 0
    assert manager.waiting_for_answer
    assert manager.pending_question.number == 1


@pytest.mark.asyncio
async def test_start_failure_leaves_onboarding(persistence, evaluator, tmp_path):
    persistence.fail_find = True
    manager = _manager(persistence, evaluator, tmp_path)
    with pytest.raises(PersistenceError):
        await manager.start("Jane", "jane@x.com")
    assert manager.state is None
    assert manager.candidate is None
    assert LocalSessionStore(tmp_path).load_state() is None


@pytest.mark.asyncio
async def test_answer_requires_pending_question(persistence, evaluator, tmp_path):
    manager = _manager(persistence, evaluator, tmp_path)
    with pytest.raises(InvalidTransitionError):
        await manager.submit_answer("hello", 3)


@pytest.mark.asyncio
async def test_overlapping_transition_is_rejected(persistence, evaluator, tmp_path):
    gate = asyncio.Event()
    original = evaluator.score_answer

    async def slow_score(*args):
        await gate.wait()
        return await original(*args)

    evaluator.score_answer = slow_score
    manager = _manager(persistence, evaluator, tmp_path)
    await manager.start("Jane", "jane@x.com")

    first = asyncio.create_task(manager.submit_answer("first", 3))
    await asyncio.sleep(0)
    with pytest.raises(SessionBusyError):
        await manager.submit_answer("second", 3)

    gate.set()
    result = await first
    assert result.state.current_question == 1
    assert len(persistence.records) == 1


@pytest.mark.asyncio
async def test_completion_clears_local_state_after_delay(persistence, evaluator, tmp_path):
    manager = _manager(persistence, evaluator, tmp_path, clear_delay_s=0.05)
    await manager.start("Jane", "jane@x.com")
    for _ in range(6):
        result = await manager.submit_answer("answer", 5)

    assert result.completed
    store = LocalSessionStore(tmp_path)
    assert store.load_state().is_completed
    assert manager.detect_interrupted() is None

    await manager.clear_task
    assert store.load_state() is None
    assert store.load_candidate() is None


@pytest.mark.asyncio
async def test_restart_clears_and_reuses_candidate(persistence, evaluator, tmp_path):
    manager = _manager(persistence, evaluator, tmp_path)
    first = await manager.start("Jane", "jane@x.com")
    await manager.submit_answer("answer", 5)

    manager.restart()

    store = LocalSessionStore(tmp_path)
    assert store.load_state() is None
    assert store.load_candidate() is None
    assert manager.state is None
    assert not manager.waiting_for_answer
    assert len(persistence.records) == 1

    again = await manager.start("Jane", "jane@x.com")
    assert again.candidate.id == first.candidate.id
    assert len(persistence.candidates) == 1


@pytest.mark.asyncio
async def test_interrupted_session_resumes_in_new_manager(persistence, evaluator, tmp_path):
    manager = _manager(persistence, evaluator, tmp_path)
    await manager.start("Jane", "jane@x.com")
    await manager.submit_answer("one", 5)
    await manager.submit_answer("two", 5)

    returning = _manager(persistence, evaluator, tmp_path)
    found = returning.detect_interrupted()
    assert found is not None
    assert found.state.current_question == 2

    resumed = await returning.continue_interview()
    assert resumed.question.number == 3
    assert [m.content for m in resumed.messages][2] == "one"

    result = await returning.submit_answer("three", 5)
    assert result.state.current_question == 3
    assert [r.question_number for r in persistence.records] == [1, 2, 3]


@pytest.mark.asyncio
async def test_continue_without_session_is_rejected(persistence, evaluator, tmp_path):
    manager = _manager(persistence, evaluator, tmp_path)
    assert manager.detect_interrupted() is None
    with pytest.raises(InvalidTransitionError):
        await manager.continue_interview()


@pytest.mark.asyncio
async def test_deadline_submits_draft_then_placeholder(persistence, evaluator, tmp_path, monkeypatch):
    monkeypatch.setattr(session_module, "AnswerDeadline", lambda seconds, cb: AnswerDeadline(seconds / 1000, cb))
    done = asyncio.Event()
    timed_out = []

    def on_timeout(result):
        timed_out.append(result)
        if result.completed:
            done.set()

    manager = _manager(persistence, evaluator, tmp_path, enforce_deadlines=True, on_timeout=on_timeout)
    await manager.start("Jane", "jane@x.com")
    manager.update_draft("partial thoughts")

    await asyncio.wait_for(done.wait(), timeout=5)

    assert len(timed_out) == 6
    assert persistence.records[0].answer == "partial thoughts"
    assert persistence.records[0].time_taken == 20
    assert [r.answer for r in persistence.records[1:]] == [NO_ANSWER_PLACEHOLDER] * 5
    assert [r.time_taken for r in persistence.records] == [20, 20, 60, 60, 120, 120]
    await manager.close()


@pytest.mark.asyncio
async def test_manual_answer_cancels_deadline(persistence, evaluator, tmp_path, monkeypatch):
    monkeypatch.setattr(session_module, "AnswerDeadline", lambda seconds, cb: AnswerDeadline(seconds / 100, cb))
    manager = _manager(persistence, evaluator, tmp_path, enforce_deadlines=True)
    await manager.start("Jane", "jane@x.com")

    await manager.submit_answer("quick", 1)
    await manager.close()
    await asyncio.sleep(0.5)

    assert [r.answer for r in persistence.records] == ["quick"]


@pytest.mark.asyncio
async def test_restart_discards_in_flight_answer(persistence, evaluator, tmp_path):
    gate = asyncio.Event()
    original = evaluator.score_answer

    async def slow_score(*args):
        await gate.wait()
        return await original(*args)

    evaluator.score_answer = slow_score
    manager = _manager(persistence, evaluator, tmp_path)
    await manager.start("Jane", "jane@x.com")

    pending = asyncio.create_task(manager.submit_answer("late", 3))
    await asyncio.sleep(0)
    manager.restart()
    gate.set()
    with pytest.raises(InvalidTransitionError):
        await pending

    store = LocalSessionStore(tmp_path)
    assert store.load_state() is None
    assert store.load_candidate() is None
    assert manager.state is None
    assert not manager.waiting_for_answer
    assert manager.last_result is None

    again = await manager.start("Jane", "jane@x.com")
    assert again.state.current_question == 0


@pytest.mark.asyncio
async def test_detect_interrupted_keeps_live_question(persistence, evaluator, tmp_path):
    manager = _manager(persistence, evaluator, tmp_path)
    await manager.start("Jane", "jane@x.com")
    await manager.submit_answer("one", 5)

    found = manager.detect_interrupted()

    assert found is not None
    assert found.state.current_question == 1
    assert manager.waiting_for_answer
    assert manager.pending_question.number == 2
    result = await manager.submit_answer("two", 5)
    assert result.state.current_question == 2


@pytest.mark.asyncio
async def test_failed_start_keeps_pending_clear(persistence, evaluator, tmp_path):
    manager = _manager(persistence, evaluator, tmp_path, clear_delay_s=0.05)
    await manager.start("Jane", "jane@x.com")
    for _ in range(6):
        await manager.submit_answer("answer", 5)

    persistence.fail_find = True
    with pytest.raises(PersistenceError):
        await manager.start("Jane", "jane@x.com")

    await asyncio.wait_for(manager.clear_task, timeout=1)
    store = LocalSessionStore(tmp_path)
    assert store.load_state() is None
    assert store.load_candidate() is None


@pytest.mark.asyncio
async def test_failed_answer_rearms_deadline(persistence, evaluator, tmp_path, monkeypatch):
    monkeypatch.setattr(session_module, "AnswerDeadline", lambda seconds, cb: AnswerDeadline(seconds / 1000, cb))
    original = persistence.insert_answer_record
    failures = [RuntimeError("disk full")]

    async def flaky_insert(record):
        if failures:
            raise failures.pop()
        return await original(record)

    persistence.insert_answer_record = flaky_insert
    timed_out = asyncio.Event()
    manager = _manager(persistence, evaluator, tmp_path, enforce_deadlines=True, on_timeout=lambda _: timed_out.set())
    await manager.start("Jane", "jane@x.com")

    with pytest.raises(RuntimeError):
        await manager.submit_answer("typed", 4)

    await asyncio.wait_for(timed_out.wait(), timeout=5)
    await manager.close()
    assert persistence.records[0].question_number == 1
    assert persistence.records[0].answer == NO_ANSWER_PLACEHOLDER
