"""Lightweight CLI helpers for inspecting interview tables."""
from __future__ import annotations

import argparse
import sqlite3

from config.settings import settings


def tail_candidates(limit: int = 20) -> None:
    conn = sqlite3.connect(settings.DB_PATH)
    try:
        cursor = conn.cursor()
        cursor.execute(
            """
            SELECT updated_at, id, name, email, status, final_score
            FROM candidates
            ORDER BY datetime(updated_at) DESC
            LIMIT ?
            """,
            (limit,),
        )
        for row in cursor.fetchall():
            ts, candidate_id, name, email, status, final_score = row
            print(f"[{ts}] {candidate_id} {name} <{email}> status={status} final_score={final_score}")
    finally:
        conn.close()


def tail_answers(limit: int = 20) -> None:
    conn = sqlite3.connect(settings.DB_PATH)
    try:
        cursor = conn.cursor()
        cursor.execute(
            """
            SELECT created_at, candidate_id, question_number, difficulty, time_taken, ai_score
            FROM answer_records
            ORDER BY id DESC
            LIMIT ?
            """,
            (limit,),
        )
        for row in cursor.fetchall():
            ts, candidate_id, number, difficulty, time_taken, ai_score = row
            print(f"[{ts}] {candidate_id} Q{number} ({difficulty}) took={time_taken}s score={ai_score}")
    finally:
        conn.close()


def main() -> None:
    parser = argparse.ArgumentParser()
    parser.add_argument("--tail-candidates", type=int, help="Show the most recently updated candidates")
    parser.add_argument("--tail-answers", type=int, help="Show the latest answer records")
    args = parser.parse_args()

    if args.tail_candidates:
        tail_candidates(args.tail_candidates)
    if args.tail_answers:
        tail_answers(args.tail_answers)


if __name__ == "__main__":
    main()
