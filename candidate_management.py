from __future__ import annotations  # Candidate persistence service backed by SQLite

import asyncio
import logging
import sqlite3
from typing import Any, Callable, Dict, List, Optional, TypeVar

from interview_session.errors import PersistenceError
from interview_session.models import AnswerRecord, Candidate
from storage import answers, candidates

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SqlitePersistenceService:  # Async facade over the SQLite storage helpers
    async def find_candidate_by_email(self, email: str) -> Optional[Candidate]:
        return await self._run("find_candidate_by_email", candidates.find_candidate_by_email, email)

    async def get_candidate(self, candidate_id: str) -> Optional[Candidate]:
        return await self._run("get_candidate", candidates.get_candidate, candidate_id)

    async def create_candidate(self, name: str, email: str, phone: Optional[str], *, status: str = "onboarding") -> Candidate:
        return await self._run(
            "create_candidate",
            lambda: candidates.insert_candidate(name=name, email=email, phone=phone, status=status),
        )

    async def update_candidate(self, candidate_id: str, fields: Dict[str, Any]) -> Candidate:
        return await self._run("update_candidate", candidates.update_candidate, candidate_id, fields)

    async def insert_answer_record(self, record: AnswerRecord) -> AnswerRecord:
        return await self._run("insert_answer_record", answers.insert_answer_record, record)

    async def list_answer_records(self, candidate_id: str) -> List[AnswerRecord]:
        return await self._run("list_answer_records", answers.list_answer_records, candidate_id)

    async def list_candidates(self) -> List[Candidate]:
        return await self._run("list_candidates", candidates.list_candidates)

    async def _run(self, operation: str, fn: Callable[..., T], *args: Any) -> T:  # Run blocking call off the loop
        try:
            return await asyncio.to_thread(fn, *args)
        except sqlite3.Error as exc:
            logger.error("Persistence operation %s failed: %s", operation, exc)
            raise PersistenceError(f"{operation} failed: {exc}") from exc
        except KeyError as exc:
            raise PersistenceError(f"{operation} failed: unknown candidate {exc}") from exc


__all__ = ["SqlitePersistenceService"]
