"""SQLite schema migrations."""
from __future__ import annotations

import os
import sqlite3
from typing import Iterable

SCHEMA: Iterable[str] = [
    """
CREATE TABLE IF NOT EXISTS candidates (
  id TEXT PRIMARY KEY,
  name TEXT NOT NULL,
  email TEXT NOT NULL UNIQUE,
  phone TEXT,
  status TEXT NOT NULL DEFAULT 'onboarding'
    CHECK (status IN ('onboarding', 'in_progress', 'completed', 'incomplete')),
  final_score REAL NOT NULL DEFAULT 0,
  final_summary TEXT,
  created_at TEXT NOT NULL,
  updated_at TEXT NOT NULL
);
""",
    """
CREATE TABLE IF NOT EXISTS answer_records (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  candidate_id TEXT NOT NULL REFERENCES candidates(id) ON DELETE CASCADE,
  question_number INTEGER NOT NULL,
  question_text TEXT NOT NULL,
  difficulty TEXT NOT NULL CHECK (difficulty IN ('Easy', 'Medium', 'Hard')),
  time_limit INTEGER NOT NULL,
  answer TEXT,
  time_taken INTEGER NOT NULL DEFAULT 0,
  ai_score TEXT NOT NULL,
  created_at TEXT NOT NULL
);
""",
    "CREATE INDEX IF NOT EXISTS candidates_status_idx ON candidates(status);",
    "CREATE INDEX IF NOT EXISTS candidates_created_at_idx ON candidates(created_at DESC);",
    "CREATE INDEX IF NOT EXISTS answer_records_candidate_idx ON answer_records(candidate_id, question_number);",
]


def migrate(db_path: str = "data/interview.db") -> None:
    """Apply schema migrations to the SQLite database."""

    directory = os.path.dirname(db_path) or "."
    os.makedirs(directory, exist_ok=True)
    conn = sqlite3.connect(db_path)
    try:
        cur = conn.cursor()
        for stmt in SCHEMA:
            cur.execute(stmt)
        conn.commit()
    finally:
        conn.close()


if __name__ == "__main__":
    migrate()
