"""Fallback scoring and score aggregation helpers."""
from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Sequence

from interview_session.models import AIScore, AnswerRecord, TranscriptEntry

KEYWORDS = ("react", "javascript", "node", "function", "component")

STRONG_THRESHOLD = 7.0
MODERATE_THRESHOLD = 5.0


def round1(value: float) -> float:
    """Round half-up to one decimal place."""
    return float(Decimal(str(value)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def has_keyword(answer: str) -> bool:
    lowered = answer.lower()
    return any(keyword in lowered for keyword in KEYWORDS)


def base_score(answer: str) -> int:
    """Step function over answer length and keyword presence."""

    length = len(answer.strip())
    keyword = has_keyword(answer)
    if length == 0:
        return 1
    if length < 20:
        return 2
    if length < 50:
        return 4 if keyword else 3
    if length < 100:
        return 6 if keyword else 4
    return 7 if keyword else 5


def adjust_for_difficulty(score: int, difficulty: str) -> int:
    if difficulty == "Easy":
        return min(score + 1, 10)
    if difficulty == "Hard":
        return max(score - 1, 1)
    return score


def fallback_score(answer: str, difficulty: str) -> AIScore:
    """Deterministic local score used when the AI evaluation is unavailable."""

    answer = answer or ""
    score = adjust_for_difficulty(base_score(answer), difficulty)
    if not answer.strip():
        feedback = "No answer was provided within the time limit."
    else:
        level = "good" if score >= 6 else "basic"
        terminology = (
            "Good use of technical terminology."
            if has_keyword(answer)
            else "Consider using more specific technical terms."
        )
        feedback = f"Your answer shows {level} understanding. {terminology}"
    return AIScore(
        technical=score,
        clarity=max(score - 1, 1),
        problem_solving=score,
        overall=score,
        feedback=feedback,
    )


def final_score(overalls: Iterable[float]) -> float:
    """Mean of the per-question overall scores, 0 when nothing was answered."""

    values = list(overalls)
    if not values:
        return 0.0
    return round1(sum(values) / len(values))


def fallback_summary(candidate_name: str, transcript: Sequence[TranscriptEntry]) -> str:
    """Canned summary banded on the transcript's mean overall score."""

    average = final_score(entry.score.overall for entry in transcript)
    if average >= STRONG_THRESHOLD:
        return (
            f"{candidate_name} demonstrated strong technical knowledge and problem-solving skills throughout "
            "the interview. Their answers showed good understanding of full-stack development concepts with "
            "clear communication."
        )
    if average >= MODERATE_THRESHOLD:
        return (
            f"{candidate_name} showed decent technical understanding with room for improvement in some areas. "
            "They would benefit from deeper knowledge of full-stack development practices and clearer "
            "communication of technical concepts."
        )
    return (
        f"{candidate_name} completed the interview but showed limited technical knowledge in several areas. "
        "Additional study and practice with full-stack development concepts would be beneficial before future "
        "interviews."
    )


def display_score(stored_final_score: float, records: Sequence[AnswerRecord]) -> float:
    """Score shown to interviewers: the stored final score, else the mean of persisted answers."""

    if stored_final_score and stored_final_score > 0:
        return stored_final_score
    return final_score(record.ai_score.overall for record in records)


__all__ = [
    "KEYWORDS",
    "round1",
    "base_score",
    "adjust_for_difficulty",
    "fallback_score",
    "final_score",
    "fallback_summary",
    "display_score",
]
