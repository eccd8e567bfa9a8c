"""Persistence helpers for per-question answer records."""
from __future__ import annotations

import datetime as dt
import json
from typing import List

from interview_session.models import AIScore, AnswerRecord

from .sqlite import get_conn


def insert_answer_record(record: AnswerRecord) -> AnswerRecord:
    """Insert an answer record and return it with its creation timestamp."""

    timestamp = dt.datetime.now(dt.timezone.utc).isoformat()
    with get_conn() as conn:
        conn.execute(
            """INSERT INTO answer_records
               (candidate_id, question_number, question_text, difficulty, time_limit,
                answer, time_taken, ai_score, created_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                record.candidate_id,
                record.question_number,
                record.question_text,
                record.difficulty,
                record.time_limit,
                record.answer,
                record.time_taken,
                record.ai_score.model_dump_json(),
                timestamp,
            ),
        )
    return record.model_copy(update={"created_at": timestamp})


def list_answer_records(candidate_id: str) -> List[AnswerRecord]:
    """Return the candidate's answer records ordered by question number."""

    with get_conn() as conn:
        rows = conn.execute(
            """SELECT candidate_id, question_number, question_text, difficulty, time_limit,
                      answer, time_taken, ai_score, created_at
               FROM answer_records
               WHERE candidate_id = ?
               ORDER BY question_number ASC, id ASC""",
            (candidate_id,),
        ).fetchall()
    return [
        AnswerRecord(
            candidate_id=row["candidate_id"],
            question_number=row["question_number"],
            question_text=row["question_text"],
            difficulty=row["difficulty"],
            time_limit=row["time_limit"],
            answer=row["answer"] or "",
            time_taken=row["time_taken"],
            ai_score=AIScore.model_validate(json.loads(row["ai_score"])),
            created_at=row["created_at"],
        )
        for row in rows
    ]
