"""Domain models shared by the interview state machine and its collaborators."""
from __future__ import annotations

import time
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field

Difficulty = Literal["Easy", "Medium", "Hard"]
CandidateStatus = Literal["onboarding", "in_progress", "completed", "incomplete"]
Speaker = Literal["bot", "user"]

TOTAL_QUESTIONS = 6
TIME_LIMITS: Dict[str, int] = {"Easy": 20, "Medium": 60, "Hard": 120}
DIFFICULTY_ORDER: List[str] = ["Easy", "Easy", "Medium", "Medium", "Hard", "Hard"]
NO_ANSWER_PLACEHOLDER = "No answer provided"


class Candidate(BaseModel):
    id: str
    name: str
    email: str
    phone: Optional[str] = None
    status: CandidateStatus = "onboarding"
    final_score: float = 0.0
    final_summary: Optional[str] = None
    created_at: str = ""
    updated_at: str = ""


class CandidateIdentity(BaseModel):
    """Subset of the candidate kept in local persistence."""

    id: str
    name: str
    email: str
    phone: Optional[str] = None

    @classmethod
    def of(cls, candidate: Candidate) -> "CandidateIdentity":
        return cls(id=candidate.id, name=candidate.name, email=candidate.email, phone=candidate.phone)


class Question(BaseModel):
    question_text: str
    difficulty: Difficulty
    time_limit: int = Field(gt=0)


class AIScore(BaseModel):
    technical: float = Field(ge=1.0, le=10.0)
    clarity: float = Field(ge=1.0, le=10.0)
    problem_solving: float = Field(ge=1.0, le=10.0)
    overall: float = Field(ge=1.0, le=10.0)
    feedback: str = ""


class AnswerRecord(BaseModel):
    candidate_id: str
    question_number: int = Field(ge=1)
    question_text: str
    difficulty: Difficulty
    time_limit: int
    answer: str
    time_taken: int = Field(ge=0)
    ai_score: AIScore
    created_at: str = ""


class AnswerEntry(BaseModel):
    answer: str
    time_taken: int
    score: AIScore


class SessionState(BaseModel):
    """Resumable progress of one candidate's interview."""

    candidate_id: str
    questions: List[Question]
    current_question: int = 0
    answers: Dict[int, AnswerEntry] = Field(default_factory=dict)
    is_completed: bool = False
    start_time: float = Field(default_factory=time.time)

    def question_at(self, index: int) -> Question:
        return self.questions[index]

    def overall_scores(self) -> List[float]:
        return [entry.score.overall for entry in self.answers.values()]


class ChatMessage(BaseModel):
    role: Speaker
    content: str


class PendingQuestion(BaseModel):
    index: int
    number: int
    total: int
    question_text: str
    difficulty: Difficulty
    time_limit: int


class TranscriptEntry(BaseModel):
    question: str
    answer: str
    score: AIScore


__all__ = [
    "Difficulty",
    "CandidateStatus",
    "TOTAL_QUESTIONS",
    "TIME_LIMITS",
    "DIFFICULTY_ORDER",
    "NO_ANSWER_PLACEHOLDER",
    "Candidate",
    "CandidateIdentity",
    "Question",
    "AIScore",
    "AnswerRecord",
    "AnswerEntry",
    "SessionState",
    "ChatMessage",
    "PendingQuestion",
    "TranscriptEntry",
]
