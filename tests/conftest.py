import asyncio
import os
import sys
import tempfile
from pathlib import Path
from typing import Dict, List, Optional

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from config.settings import settings
from interview_session.errors import GenerationError, PersistenceError, ScoringError, SummaryError
from interview_session.models import AIScore, AnswerRecord, Candidate, Question
from services.questions import fallback_questions
from storage.migrate import migrate


@pytest.fixture(autouse=True)
def tmp_db(monkeypatch):
    td = tempfile.TemporaryDirectory()
    db_path = os.path.join(td.name, "test.db")
    monkeypatch.setattr(settings, "DB_PATH", db_path, raising=False)
    monkeypatch.setattr(settings, "LOCAL_STATE_DIR", os.path.join(td.name, "local"), raising=False)
    migrate(db_path)
    try:
        yield db_path
    finally:
        td.cleanup()


class FakePersistence:
    """In-memory persistence with switchable failures."""

    def __init__(self) -> None:
        self.candidates: Dict[str, Candidate] = {}
        self.records: List[AnswerRecord] = []
        self.fail_find = False
        self.fail_insert = False
        self.fail_update_status = False
        self.insert_calls = 0
        self._next = 0

    async def find_candidate_by_email(self, email: str) -> Optional[Candidate]:
        if self.fail_find:
            raise PersistenceError("database unreachable")
        for candidate in self.candidates.values():
            if candidate.email.lower() == email.lower():
                return candidate
        return None

    async def get_candidate(self, candidate_id: str) -> Optional[Candidate]:
        return self.candidates.get(candidate_id)

    async def create_candidate(self, name, email, phone, *, status="onboarding") -> Candidate:
        self._next += 1
        candidate = Candidate(
            id=f"cand-{self._next}",
            name=name,
            email=email,
            phone=phone,
            status=status,
            created_at=f"2024-01-0{self._next}T00:00:00",
        )
        self.candidates[candidate.id] = candidate
        return candidate

    async def update_candidate(self, candidate_id, fields) -> Candidate:
        if self.fail_update_status and "final_score" in fields:
            raise PersistenceError("update failed")
        if candidate_id not in self.candidates:
            raise PersistenceError(f"unknown candidate {candidate_id}")
        updated = self.candidates[candidate_id].model_copy(update=fields)
        self.candidates[candidate_id] = updated
        return updated

    async def insert_answer_record(self, record: AnswerRecord) -> AnswerRecord:
        self.insert_calls += 1
        if self.fail_insert:
            raise PersistenceError("insert failed")
        self.records.append(record)
        return record

    async def list_answer_records(self, candidate_id: str) -> List[AnswerRecord]:
        rows = [record for record in self.records if record.candidate_id == candidate_id]
        return sorted(rows, key=lambda record: record.question_number)

    async def list_candidates(self) -> List[Candidate]:
        return list(self.candidates.values())


class FakeEvaluator:
    """Scripted AI evaluation service."""

    def __init__(self, overall: float = 8.0) -> None:
        self.overall = overall
        self.fail_generate = False
        self.fail_score = False
        self.fail_summary = False
        self.hang_score = False
        self.scored: List[str] = []

    async def generate_questions(self) -> List[Question]:
        if self.fail_generate:
            raise GenerationError("service down")
        return [
            question.model_copy(update={"question_text": f"Generated {index + 1}"})
            for index, question in enumerate(fallback_questions())
        ]

    async def score_answer(self, question_text, answer, difficulty) -> AIScore:
        if self.hang_score:
            await asyncio.sleep(3600)
        if self.fail_score:
            raise ScoringError("bad reply")
        self.scored.append(answer)
        return AIScore(
            technical=self.overall,
            clarity=self.overall,
            problem_solving=self.overall,
            overall=self.overall,
            feedback="Solid answer.",
        )

    async def summarize(self, candidate_name, transcript) -> str:
        if self.fail_summary:
            raise SummaryError("summary down")
        return f"{candidate_name} answered {len(transcript)} questions."


@pytest.fixture
def persistence() -> FakePersistence:
    return FakePersistence()


@pytest.fixture
def evaluator() -> FakeEvaluator:
    return FakeEvaluator()
