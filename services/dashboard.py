"""Read-only candidate listings for the interviewer dashboard."""
from __future__ import annotations

import logging
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from interview_session.errors import PersistenceError
from interview_session.models import AnswerRecord, Candidate, TOTAL_QUESTIONS
from services.scoring import display_score

logger = logging.getLogger(__name__)

SortKey = Literal["score", "date"]
SortOrder = Literal["asc", "desc"]


class CandidateSummary(BaseModel):
    candidate: Candidate
    display_score: float
    display_status: str
    answered_count: int


class CandidateDetail(BaseModel):
    candidate: Candidate
    display_score: float
    answers: List[AnswerRecord] = Field(default_factory=list)


def display_status(candidate: Candidate, answered_count: int) -> str:
    if candidate.final_score > 0 or answered_count >= TOTAL_QUESTIONS:
        return "completed"
    if answered_count > 0:
        return "in_progress"
    return candidate.status


async def summarize_candidates(
    persistence,
    *,
    search: Optional[str] = None,
    status: str = "all",
    sort_by: SortKey = "score",
    order: SortOrder = "desc",
) -> List[CandidateSummary]:
    """List candidates with their display score, filtered and sorted."""

    summaries: List[CandidateSummary] = []
    for candidate in await persistence.list_candidates():
        try:
            records = await persistence.list_answer_records(candidate.id)
        except PersistenceError as exc:
            logger.error("Error computing fallback score for candidate %s: %s", candidate.id, exc)
            records = []
        summaries.append(
            CandidateSummary(
                candidate=candidate,
                display_score=display_score(candidate.final_score, records),
                display_status=display_status(candidate, len(records)),
                answered_count=len(records),
            )
        )

    if search:
        needle = search.lower()
        summaries = [
            item
            for item in summaries
            if needle in item.candidate.name.lower() or needle in item.candidate.email.lower()
        ]
    if status != "all":
        summaries = [item for item in summaries if item.display_status == status]

    if sort_by == "score":
        summaries.sort(key=lambda item: item.display_score, reverse=order == "desc")
    else:
        summaries.sort(key=lambda item: item.candidate.created_at, reverse=order == "desc")
    return summaries


async def candidate_detail(persistence, candidate_id: str) -> Optional[CandidateDetail]:
    candidate = await persistence.get_candidate(candidate_id)
    if candidate is None:
        return None
    records = await persistence.list_answer_records(candidate_id)
    return CandidateDetail(
        candidate=candidate,
        display_score=display_score(candidate.final_score, records),
        answers=records,
    )


__all__ = ["CandidateSummary", "CandidateDetail", "display_status", "summarize_candidates", "candidate_detail"]
