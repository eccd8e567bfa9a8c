from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from functools import partial
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, List, Optional, Protocol, Sequence, TypeVar

from pydantic import BaseModel, Field

from config.settings import settings
from observability import log_event, span
from resume_parsing import validate_candidate_info
from services.deadlines import AnswerDeadline
from services.questions import fallback_questions
from services.scoring import fallback_score, fallback_summary, final_score
from services.sessions import LocalSessionStore

from .errors import CallTimeoutError, InvalidTransitionError, PersistenceError, SessionBusyError
from .models import (
    NO_ANSWER_PLACEHOLDER,
    AIScore,
    AnswerEntry,
    AnswerRecord,
    Candidate,
    CandidateIdentity,
    ChatMessage,
    PendingQuestion,
    Question,
    SessionState,
    TranscriptEntry,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

NO_ANSWERS_SUMMARY = "The interview ended before any questions were answered."
COMPLETION_FALLBACK_MESSAGE = "Your interview has been completed. Thank you for your time!"


class PersistenceService(Protocol):  # Durable store for candidates and answer records
    async def find_candidate_by_email(self, email: str) -> Optional[Candidate]: ...

    async def create_candidate(self, name: str, email: str, phone: Optional[str], *, status: str = ...) -> Candidate: ...

    async def update_candidate(self, candidate_id: str, fields: Dict[str, Any]) -> Candidate: ...

    async def insert_answer_record(self, record: AnswerRecord) -> AnswerRecord: ...

    async def list_answer_records(self, candidate_id: str) -> List[AnswerRecord]: ...


class EvaluationService(Protocol):  # AI question generation, scoring and summaries
    async def generate_questions(self) -> List[Question]: ...

    async def score_answer(self, question_text: str, answer: str, difficulty: str) -> AIScore: ...

    async def summarize(self, candidate_name: str, transcript: Sequence[TranscriptEntry]) -> str: ...


class TransitionResult(BaseModel):  # Outcome of one state machine transition
    state: SessionState
    candidate: CandidateIdentity
    messages: List[ChatMessage] = Field(default_factory=list)
    question: Optional[PendingQuestion] = None
    completed: bool = False
    final_score: Optional[float] = None
    answer_persisted: Optional[bool] = None


class InterruptedSession(BaseModel):  # Non-completed session found in local persistence
    candidate: CandidateIdentity
    state: SessionState


class InterviewStateMachine:  # Onboarding -> question loop -> completion
    def __init__(
        self,
        persistence: PersistenceService,
        evaluator: EvaluationService,
        *,
        ai_timeout_s: Optional[float] = None,
        answer_write_attempts: Optional[int] = None,
    ) -> None:
        self._persistence = persistence
        self._evaluator = evaluator
        self._ai_timeout_s = ai_timeout_s if ai_timeout_s is not None else settings.AI_CALL_TIMEOUT_S
        self._answer_write_attempts = max(
            1, answer_write_attempts if answer_write_attempts is not None else settings.ANSWER_WRITE_ATTEMPTS
        )

    async def start(self, name: str, email: str, phone: Optional[str] = None) -> TransitionResult:
        """Register the candidate, generate questions and ask the first one.

        Raises:
            CandidateValidationError: If name or email is missing.
            PersistenceError: If the candidate cannot be looked up or saved.
        """

        info = validate_candidate_info(name, email, phone)
        existing = await self._persistence.find_candidate_by_email(info.email)
        if existing is not None:
            candidate = await self._persistence.update_candidate(
                existing.id,
                {"name": info.name, "phone": info.phone, "status": "in_progress"},
            )
        else:
            candidate = await self._persistence.create_candidate(
                info.name, info.email, info.phone, status="in_progress"
            )
        identity = CandidateIdentity.of(candidate)
        questions = await self._generate_questions(candidate.id)
        state = SessionState(candidate_id=candidate.id, questions=questions)
        log_event("interview_started", candidate.id, returning=existing is not None)
        greeting = (
            f"Hello {identity.name}! {'Welcome back to' if existing is not None else 'Welcome to'} your technical "
            f"interview. We'll go through {len(questions)} questions of varying difficulty. "
            "Let's begin with your first question."
        )
        asked = await self.ask(state, identity)
        return asked.model_copy(update={"messages": [ChatMessage(role="bot", content=greeting), *asked.messages]})

    async def ask(self, state: SessionState, candidate: CandidateIdentity) -> TransitionResult:
        index = state.current_question
        if index >= len(state.questions):
            return await self.complete(state, candidate)
        question = state.question_at(index)
        log_event("question_asked", state.candidate_id, question=index + 1, difficulty=question.difficulty)
        pending = PendingQuestion(
            index=index,
            number=index + 1,
            total=len(state.questions),
            question_text=question.question_text,
            difficulty=question.difficulty,
            time_limit=question.time_limit,
        )
        return TransitionResult(
            state=state,
            candidate=candidate,
            messages=[ChatMessage(role="bot", content=question.question_text)],
            question=pending,
        )

    async def answer(
        self,
        state: SessionState,
        candidate: CandidateIdentity,
        text: str,
        time_taken: int,
    ) -> TransitionResult:
        """Score and record the answer to the current question, then move on."""

        index = state.current_question
        if state.is_completed or index >= len(state.questions):
            raise InvalidTransitionError("No question is awaiting an answer")
        if index in state.answers:
            raise InvalidTransitionError(f"Question {index + 1} was already answered")
        question = state.question_at(index)
        text = text or ""
        time_taken = min(max(int(time_taken), 0), question.time_limit)

        score, used_fallback = await self._score(state.candidate_id, question, text)
        log_event(
            "answer_scored",
            state.candidate_id,
            question=index + 1,
            overall=score.overall,
            fallback=used_fallback,
        )
        record = AnswerRecord(
            candidate_id=state.candidate_id,
            question_number=index + 1,
            question_text=question.question_text,
            difficulty=question.difficulty,
            time_limit=question.time_limit,
            answer=text,
            time_taken=time_taken,
            ai_score=score,
        )
        persisted = await self._write_record(record)

        updated = state.model_copy(deep=True)
        updated.answers[index] = AnswerEntry(answer=text, time_taken=time_taken, score=score)
        updated.current_question = index + 1

        messages = [
            ChatMessage(role="user", content=text),
            ChatMessage(
                role="bot",
                content=f"Great! I've evaluated your answer. You scored {score.overall:g}/10 overall. {score.feedback}".strip(),
            ),
        ]
        if updated.current_question < len(updated.questions):
            messages.append(ChatMessage(role="bot", content="Let's move on to the next question."))
        follow = await self.ask(updated, candidate)
        return follow.model_copy(update={"messages": [*messages, *follow.messages], "answer_persisted": persisted})

    async def complete(self, state: SessionState, candidate: CandidateIdentity) -> TransitionResult:
        """Aggregate the score, summarize and close the candidate record."""

        score = final_score(state.overall_scores())
        transcript = [
            TranscriptEntry(question=state.question_at(index).question_text, answer=entry.answer, score=entry.score)
            for index, entry in state.answers.items()
        ]
        if transcript:
            status = "completed"
            summary = await self._summarize(state.candidate_id, candidate.name, transcript)
        else:
            status = "incomplete"
            summary = NO_ANSWERS_SUMMARY

        try:
            await self._persistence.update_candidate(
                candidate.id,
                {"status": status, "final_score": score, "final_summary": summary},
            )
            message = (
                f"Congratulations {candidate.name}! You've completed the interview. "
                f"Your final score is {score:g}/10. {summary}"
            )
        except PersistenceError as exc:
            logger.error("Error completing interview for %s: %s", candidate.id, exc)
            message = COMPLETION_FALLBACK_MESSAGE

        completed = state.model_copy(deep=True)
        completed.is_completed = True
        log_event("interview_completed", state.candidate_id, final_score=score, status=status)
        return TransitionResult(
            state=completed,
            candidate=candidate,
            messages=[ChatMessage(role="bot", content=message)],
            completed=True,
            final_score=score,
        )

    async def resume(self, state: SessionState, candidate: CandidateIdentity) -> TransitionResult:
        """Replay the answered questions in order and ask the next one."""

        if state.is_completed:
            raise InvalidTransitionError("Completed sessions cannot be resumed")
        restored = state.model_copy(deep=True)
        messages = [ChatMessage(role="bot", content=f"Welcome back {candidate.name}! Let's continue with your interview.")]
        for index, entry in restored.answers.items():
            messages.append(ChatMessage(role="bot", content=restored.question_at(index).question_text))
            messages.append(ChatMessage(role="user", content=entry.answer))
        log_event("interview_resumed", state.candidate_id, question=restored.current_question + 1)
        follow = await self.ask(restored, candidate)
        return follow.model_copy(update={"messages": [*messages, *follow.messages]})

    async def _generate_questions(self, session_id: str) -> List[Question]:
        try:
            with span(session_id, "generate_questions"):
                return list(await self._bounded("generate_questions", self._evaluator.generate_questions()))
        except Exception as exc:  # noqa: BLE001
            logger.warning("Question generation failed, using fallback questions: %s", exc)
            log_event("ai_fallback", session_id, operation="generate_questions", error=type(exc).__name__)
            return fallback_questions()

    async def _score(self, session_id: str, question: Question, text: str) -> tuple[AIScore, bool]:
        try:
            with span(session_id, "score_answer"):
                score = await self._bounded(
                    "score_answer",
                    self._evaluator.score_answer(question.question_text, text, question.difficulty),
                )
            return AIScore.model_validate(score), False
        except Exception as exc:  # noqa: BLE001
            logger.warning("Scoring failed, using fallback score: %s", exc)
            log_event("ai_fallback", session_id, operation="score_answer", error=type(exc).__name__)
            return fallback_score(text, question.difficulty), True

    async def _summarize(self, session_id: str, name: str, transcript: List[TranscriptEntry]) -> str:
        try:
            with span(session_id, "summarize"):
                return await self._bounded("summarize", self._evaluator.summarize(name, transcript))
        except Exception as exc:  # noqa: BLE001
            logger.warning("Summary failed, using fallback summary: %s", exc)
            log_event("ai_fallback", session_id, operation="summarize", error=type(exc).__name__)
            return fallback_summary(name, transcript)

    async def _bounded(self, operation: str, awaitable: Awaitable[T]) -> T:  # Hard upper bound on AI calls
        try:
            return await asyncio.wait_for(awaitable, timeout=self._ai_timeout_s)
        except asyncio.TimeoutError as exc:
            raise CallTimeoutError(operation, self._ai_timeout_s) from exc

    async def _write_record(self, record: AnswerRecord) -> bool:
        for attempt in range(1, self._answer_write_attempts + 1):
            try:
                # Shielded so a cancelled caller cannot abandon an issued write.
                await asyncio.shield(self._persistence.insert_answer_record(record))
                return True
            except PersistenceError as exc:
                logger.error(
                    "Answer record write failed candidate=%s question=%d attempt=%d/%d: %s",
                    record.candidate_id,
                    record.question_number,
                    attempt,
                    self._answer_write_attempts,
                    exc,
                )
        log_event("answer_record_failed", record.candidate_id, question=record.question_number)
        return False


class InterviewSessionManager:  # Drives one client's session: locking, deadlines, local persistence
    def __init__(
        self,
        machine: InterviewStateMachine,
        store: LocalSessionStore,
        *,
        clear_delay_s: Optional[float] = None,
        enforce_deadlines: Optional[bool] = None,
        on_timeout: Optional[Callable[[TransitionResult], Any]] = None,
    ) -> None:
        self._machine = machine
        self._store = store
        self._clear_delay_s = clear_delay_s if clear_delay_s is not None else settings.SESSION_CLEAR_DELAY_S
        self._enforce_deadlines = settings.ENFORCE_DEADLINES if enforce_deadlines is None else enforce_deadlines
        self._on_timeout = on_timeout
        self._lock = asyncio.Lock()
        self._state: Optional[SessionState] = None
        self._candidate: Optional[CandidateIdentity] = None
        self._pending: Optional[PendingQuestion] = None
        self._draft = ""
        self._deadline: Optional[AnswerDeadline] = None
        self._clear_task: Optional[asyncio.Task] = None
        self._generation = 0
        self.last_result: Optional[TransitionResult] = None

    @property
    def state(self) -> Optional[SessionState]:
        return self._state

    @property
    def candidate(self) -> Optional[CandidateIdentity]:
        return self._candidate

    @property
    def pending_question(self) -> Optional[PendingQuestion]:
        return self._pending

    @property
    def waiting_for_answer(self) -> bool:
        return self._pending is not None

    @property
    def clear_task(self) -> Optional[asyncio.Task]:
        return self._clear_task

    def detect_interrupted(self) -> Optional[InterruptedSession]:
        """Report a non-completed session, live in memory or persisted locally.

        Read-only: the persisted session is adopted by ``continue_interview``.
        """

        if self._state is not None and self._candidate is not None and not self._state.is_completed:
            return InterruptedSession(candidate=self._candidate, state=self._state)
        return self._load_interrupted()

    async def start(self, name: str, email: str, phone: Optional[str] = None) -> TransitionResult:
        async with self._transition():
            generation = self._generation
            self._cancel_deadline()
            try:
                result = await self._machine.start(name, email, phone)
            except Exception:
                # a pending clear of the previous completed session still runs
                self._reset()
                raise
            self._ensure_current(generation)
            self._cancel_clear()
            self._store.save_candidate(result.candidate)
            self._apply(result)
            return result

    async def submit_answer(self, text: str, time_taken: int) -> TransitionResult:
        async with self._transition():
            generation = self._generation
            pending = self._pending
            if pending is None or self._state is None or self._candidate is None:
                raise InvalidTransitionError("Not waiting for an answer")
            self._cancel_deadline()
            try:
                result = await self._machine.answer(self._state, self._candidate, text, time_taken)
            except Exception:
                if self._enforce_deadlines and self._generation == generation and self._pending is pending:
                    logger.warning("Answer for question %d failed; re-arming its deadline", pending.number)
                    self._arm_deadline(pending)
                raise
            self._ensure_current(generation)
            self._apply(result)
            return result

    async def continue_interview(self) -> TransitionResult:
        async with self._transition():
            generation = self._generation
            if self._state is None or self._state.is_completed:
                found = self._load_interrupted()
                if found is not None:
                    self._state = found.state
                    self._candidate = found.candidate
                    self._pending = None
            if self._state is None or self._candidate is None or self._state.is_completed:
                raise InvalidTransitionError("No interrupted session to continue")
            self._cancel_deadline()
            result = await self._machine.resume(self._state, self._candidate)
            self._ensure_current(generation)
            self._apply(result)
            return result

    def update_draft(self, text: str) -> None:
        """Remember partial answer text for a deadline-synthesized answer."""
        self._draft = text or ""

    def restart(self) -> None:
        """Discard local session persistence and return to onboarding.

        A transition still awaiting the AI or the database when this runs is
        abandoned: its result is not applied and it raises InvalidTransitionError.
        """

        session_id = self._candidate.id if self._candidate else "onboarding"
        self._generation += 1
        self._cancel_timers()
        self._store.clear()
        self._reset()
        log_event("interview_restarted", session_id)

    async def close(self) -> None:
        self._cancel_timers()

    @asynccontextmanager
    async def _transition(self) -> AsyncIterator[None]:
        if self._lock.locked():
            raise SessionBusyError("A transition is already in progress for this session")
        async with self._lock:
            yield

    def _ensure_current(self, generation: int) -> None:
        if self._generation != generation:
            logger.info("Discarding transition result for a restarted session")
            raise InvalidTransitionError("Session was restarted")

    def _load_interrupted(self) -> Optional[InterruptedSession]:
        state = self._store.load_state()
        candidate = self._store.load_candidate()
        if state is None or candidate is None or state.is_completed:
            return None
        if state.candidate_id != candidate.id:
            logger.warning("Local session belongs to %s, not %s; ignoring", state.candidate_id, candidate.id)
            return None
        return InterruptedSession(candidate=candidate, state=state)

    def _apply(self, result: TransitionResult) -> None:
        self._state = result.state
        self._candidate = result.candidate
        self._pending = result.question
        self._draft = ""
        self.last_result = result
        self._store.save_state(result.state)
        if result.completed:
            self._schedule_clear()
        elif result.question is not None and self._enforce_deadlines:
            self._arm_deadline(result.question)

    def _arm_deadline(self, question: PendingQuestion) -> None:
        self._cancel_deadline()
        self._deadline = AnswerDeadline(question.time_limit, partial(self._expire, question.index))
        self._deadline.arm()

    async def _expire(self, index: int) -> None:
        pending = self._pending
        if pending is None or pending.index != index or self._lock.locked():
            return
        text = self._draft.strip() or NO_ANSWER_PLACEHOLDER
        logger.info("Answer deadline reached for question %d", pending.number)
        result = await self.submit_answer(text, pending.time_limit)
        if self._on_timeout is not None:
            outcome = self._on_timeout(result)
            if asyncio.iscoroutine(outcome):
                await outcome

    def _schedule_clear(self) -> None:
        if self._clear_task is not None and not self._clear_task.done():
            self._clear_task.cancel()
        self._clear_task = asyncio.get_running_loop().create_task(self._clear_later(self._clear_delay_s))

    async def _clear_later(self, delay: float) -> None:
        await asyncio.sleep(delay)
        self._store.clear()
        logger.info("Cleared local session state in %s", self._store.root)

    def _cancel_deadline(self) -> None:
        if self._deadline is not None:
            self._deadline.cancel()
            self._deadline = None

    def _cancel_clear(self) -> None:
        if self._clear_task is not None and not self._clear_task.done():
            self._clear_task.cancel()
        self._clear_task = None

    def _cancel_timers(self) -> None:
        self._cancel_deadline()
        self._cancel_clear()

    def _reset(self) -> None:
        self._state = None
        self._candidate = None
        self._pending = None
        self._draft = ""
        self.last_result = None

