"""Interview question sequence helpers."""
from __future__ import annotations

from typing import List, Sequence

from interview_session.models import DIFFICULTY_ORDER, TIME_LIMITS, TOTAL_QUESTIONS, Question

FALLBACK_QUESTIONS: List[Question] = [
    Question(question_text="What are React Hooks and why are they useful?", difficulty="Easy", time_limit=20),
    Question(
        question_text="Explain the difference between var, let, and const in JavaScript.",
        difficulty="Easy",
        time_limit=20,
    ),
    Question(
        question_text="How would you optimize a React application for performance?",
        difficulty="Medium",
        time_limit=60,
    ),
    Question(
        question_text="Explain how you would implement authentication in a Node.js application.",
        difficulty="Medium",
        time_limit=60,
    ),
    Question(
        question_text="Design a system to handle real-time notifications for a social media platform.",
        difficulty="Hard",
        time_limit=120,
    ),
    Question(
        question_text="How would you implement a caching strategy for a high-traffic web application?",
        difficulty="Hard",
        time_limit=120,
    ),
]


def fallback_questions() -> List[Question]:
    """Return a fresh copy of the fixed default sequence."""
    return [question.model_copy() for question in FALLBACK_QUESTIONS]


def normalize_sequence(questions: Sequence[Question]) -> List[Question]:
    """Check the generated sequence shape and pin each time limit to its difficulty.

    Raises:
        ValueError: If the sequence does not hold six questions in the
            Easy, Easy, Medium, Medium, Hard, Hard order or a question is blank.
    """

    if len(questions) != TOTAL_QUESTIONS:
        raise ValueError(f"expected {TOTAL_QUESTIONS} questions, got {len(questions)}")
    normalized: List[Question] = []
    for index, (question, expected) in enumerate(zip(questions, DIFFICULTY_ORDER)):
        if question.difficulty != expected:
            raise ValueError(f"question {index + 1} has difficulty {question.difficulty}, expected {expected}")
        text = question.question_text.strip()
        if not text:
            raise ValueError(f"question {index + 1} is blank")
        normalized.append(Question(question_text=text, difficulty=expected, time_limit=TIME_LIMITS[expected]))
    return normalized


__all__ = ["FALLBACK_QUESTIONS", "fallback_questions", "normalize_sequence"]
