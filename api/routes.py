"""FastAPI routes for interview sessions, the dashboard and resume prefill."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from threading import Lock
from typing import Dict, Iterator, List, Literal, Optional

from fastapi import APIRouter, HTTPException, Query

from api.schemas import AnswerReq, ApiResp, ClientReq, DraftReq, InterruptedResp, ResumeTextReq, StartReq
from config.registry import AI_SERVICE_KEY, PERSISTENCE_KEY, get_model
from config.settings import settings
from interview_session.errors import (
    CandidateValidationError,
    InvalidTransitionError,
    PersistenceError,
    SessionBusyError,
)
from interview_session.interview_session import InterviewSessionManager, InterviewStateMachine, TransitionResult
from resume_parsing import ContactDetails, extract_contact_details
from services.dashboard import CandidateDetail, CandidateSummary, candidate_detail, summarize_candidates
from services.sessions import store_for_client

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


class SessionRegistry:
    """Session managers keyed by client id."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._managers: Dict[str, InterviewSessionManager] = {}

    def get(self, client_id: str) -> Optional[InterviewSessionManager]:
        with self._lock:
            return self._managers.get(client_id)

    def get_or_create(self, client_id: str) -> InterviewSessionManager:
        with self._lock:
            manager = self._managers.get(client_id)
            if manager is None:
                manager = _build_manager(client_id)
                self._managers[client_id] = manager
            return manager

    async def close_all(self) -> None:
        with self._lock:
            managers = list(self._managers.values())
            self._managers.clear()
        for manager in managers:
            await manager.close()


session_registry = SessionRegistry()


def _build_manager(client_id: str) -> InterviewSessionManager:
    try:
        store = store_for_client(settings.LOCAL_STATE_DIR, client_id)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    machine = InterviewStateMachine(get_model(PERSISTENCE_KEY)(), get_model(AI_SERVICE_KEY)())
    return InterviewSessionManager(machine, store)


def _known_manager(client_id: str) -> InterviewSessionManager:
    manager = session_registry.get(client_id)
    if manager is None:
        raise HTTPException(status_code=404, detail=f"Unknown client: {client_id}")
    return manager


@contextmanager
def _http_errors() -> Iterator[None]:
    try:
        yield
    except CandidateValidationError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except (InvalidTransitionError, SessionBusyError) as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except PersistenceError as exc:
        logger.error("Persistence failure: %s", exc)
        raise HTTPException(status_code=503, detail="The interview service is temporarily unavailable.") from exc


def _resp(client_id: str, result: Optional[TransitionResult]) -> ApiResp:
    if result is None:
        return ApiResp(client_id=client_id)
    return ApiResp(
        client_id=client_id,
        candidate=result.candidate,
        messages=result.messages,
        question=result.question,
        answered=len(result.state.answers),
        completed=result.completed,
        final_score=result.final_score,
    )


@router.post("/interviews/start", response_model=ApiResp)
async def start_interview(req: StartReq) -> ApiResp:
    manager = session_registry.get_or_create(req.client_id)
    with _http_errors():
        result = await manager.start(req.name, req.email, req.phone)
    return _resp(req.client_id, result)


@router.post("/interviews/answer", response_model=ApiResp)
async def submit_answer(req: AnswerReq) -> ApiResp:
    manager = _known_manager(req.client_id)
    with _http_errors():
        result = await manager.submit_answer(req.answer, req.time_taken)
    return _resp(req.client_id, result)


@router.post("/interviews/draft", status_code=204)
async def update_draft(req: DraftReq) -> None:
    _known_manager(req.client_id).update_draft(req.text)


@router.get("/interviews/{client_id}/state", response_model=ApiResp)
async def session_state(client_id: str) -> ApiResp:
    """Latest transition result, including answers synthesized on timeout."""
    manager = _known_manager(client_id)
    return _resp(client_id, manager.last_result)


@router.get("/interviews/{client_id}/interrupted", response_model=InterruptedResp)
async def interrupted_session(client_id: str) -> InterruptedResp:
    manager = session_registry.get_or_create(client_id)
    found = manager.detect_interrupted()
    if found is None:
        return InterruptedResp(client_id=client_id, interrupted=False)
    return InterruptedResp(client_id=client_id, interrupted=True, candidate=found.candidate, state=found.state)


@router.post("/interviews/continue", response_model=ApiResp)
async def continue_interview(req: ClientReq) -> ApiResp:
    manager = session_registry.get_or_create(req.client_id)
    with _http_errors():
        result = await manager.continue_interview()
    return _resp(req.client_id, result)


@router.post("/interviews/restart", response_model=ApiResp)
async def restart_interview(req: ClientReq) -> ApiResp:
    manager = session_registry.get_or_create(req.client_id)
    manager.restart()
    return _resp(req.client_id, None)


@router.get("/candidates", response_model=List[CandidateSummary])
async def list_candidates(
    search: Optional[str] = None,
    status: str = "all",
    sort_by: Literal["score", "date"] = "score",
    order: Literal["asc", "desc"] = Query(default="desc"),
) -> List[CandidateSummary]:
    with _http_errors():
        return await summarize_candidates(
            get_model(PERSISTENCE_KEY)(),
            search=search,
            status=status,
            sort_by=sort_by,
            order=order,
        )


@router.get("/candidates/{candidate_id}", response_model=CandidateDetail)
async def get_candidate(candidate_id: str) -> CandidateDetail:
    with _http_errors():
        detail = await candidate_detail(get_model(PERSISTENCE_KEY)(), candidate_id)
    if detail is None:
        raise HTTPException(status_code=404, detail=f"Unknown candidate: {candidate_id}")
    return detail


@router.post("/resume/extract", response_model=ContactDetails)
async def extract_resume_contact(req: ResumeTextReq) -> ContactDetails:
    return extract_contact_details(req.text)
