"""Pydantic schemas for the interview API."""
from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field

from interview_session.models import ChatMessage, PendingQuestion, SessionState, CandidateIdentity


class StartReq(BaseModel):
    client_id: str
    name: str = ""
    email: str = ""
    phone: Optional[str] = None


class AnswerReq(BaseModel):
    client_id: str
    answer: str = ""
    time_taken: int = Field(default=0, ge=0)


class DraftReq(BaseModel):
    client_id: str
    text: str = ""


class ClientReq(BaseModel):
    client_id: str


class ResumeTextReq(BaseModel):
    text: str


class ApiResp(BaseModel):
    client_id: str
    candidate: Optional[CandidateIdentity] = None
    messages: List[ChatMessage] = Field(default_factory=list)
    question: Optional[PendingQuestion] = None
    answered: int = 0
    completed: bool = False
    final_score: Optional[float] = None


class InterruptedResp(BaseModel):
    client_id: str
    interrupted: bool
    candidate: Optional[CandidateIdentity] = None
    state: Optional[SessionState] = None
