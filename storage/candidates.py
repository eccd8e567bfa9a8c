"""Persistence helpers for candidate records."""
from __future__ import annotations

import datetime as dt
import sqlite3
from typing import Any, Dict, List, Optional
from uuid import uuid4

from interview_session.models import Candidate

from .sqlite import get_conn

_UPDATABLE = ("name", "phone", "status", "final_score", "final_summary")
_COLUMNS = "id, name, email, phone, status, final_score, final_summary, created_at, updated_at"


def _now() -> str:
    return dt.datetime.now(dt.timezone.utc).isoformat(timespec="seconds")


def _row_to_candidate(row: sqlite3.Row) -> Candidate:
    return Candidate(
        id=row["id"],
        name=row["name"],
        email=row["email"],
        phone=row["phone"],
        status=row["status"],
        final_score=float(row["final_score"] or 0.0),
        final_summary=row["final_summary"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def find_candidate_by_email(email: str) -> Optional[Candidate]:
    """Return the candidate registered under ``email`` (case-insensitive)."""

    with get_conn() as conn:
        row = conn.execute(
            f"SELECT {_COLUMNS} FROM candidates WHERE lower(email) = lower(?)",
            (email.strip(),),
        ).fetchone()
    return _row_to_candidate(row) if row else None


def get_candidate(candidate_id: str) -> Optional[Candidate]:
    with get_conn() as conn:
        row = conn.execute(f"SELECT {_COLUMNS} FROM candidates WHERE id = ?", (candidate_id,)).fetchone()
    return _row_to_candidate(row) if row else None


def insert_candidate(*, name: str, email: str, phone: Optional[str], status: str = "onboarding") -> Candidate:
    """Insert a candidate row and return it."""

    candidate_id = uuid4().hex
    now = _now()
    with get_conn() as conn:
        conn.execute(
            """INSERT INTO candidates (id, name, email, phone, status, final_score, final_summary, created_at, updated_at)
               VALUES (?, ?, ?, ?, ?, 0, NULL, ?, ?)""",
            (candidate_id, name, email.strip(), phone, status, now, now),
        )
    return Candidate(
        id=candidate_id,
        name=name,
        email=email.strip(),
        phone=phone,
        status=status,
        created_at=now,
        updated_at=now,
    )


def update_candidate(candidate_id: str, fields: Dict[str, Any]) -> Candidate:
    """Apply ``fields`` to the candidate row and return the stored result.

    Raises:
        KeyError: If no candidate exists with ``candidate_id``.
        ValueError: If ``fields`` names a column that cannot be updated.
    """

    unknown = set(fields) - set(_UPDATABLE)
    if unknown:
        raise ValueError(f"Cannot update candidate fields: {sorted(unknown)}")
    assignments = [f"{name} = ?" for name in fields]
    values: List[Any] = list(fields.values())
    assignments.append("updated_at = ?")
    values.append(_now())
    values.append(candidate_id)
    with get_conn() as conn:
        cur = conn.execute(
            f"UPDATE candidates SET {', '.join(assignments)} WHERE id = ?",
            tuple(values),
        )
        if cur.rowcount == 0:
            raise KeyError(candidate_id)
        row = conn.execute(f"SELECT {_COLUMNS} FROM candidates WHERE id = ?", (candidate_id,)).fetchone()
    return _row_to_candidate(row)


def list_candidates() -> List[Candidate]:
    """List candidates ordered by recency."""

    with get_conn() as conn:
        rows = conn.execute(
            f"SELECT {_COLUMNS} FROM candidates ORDER BY datetime(created_at) DESC, id DESC"
        ).fetchall()
    return [_row_to_candidate(row) for row in rows]
