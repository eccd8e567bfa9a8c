import pytest

from interview_session.models import Question
from services.questions import FALLBACK_QUESTIONS, fallback_questions, normalize_sequence


def test_fallback_sequence_shape():
    questions = fallback_questions()
    assert [q.difficulty for q in questions] == ["Easy", "Easy", "Medium", "Medium", "Hard", "Hard"]
    assert [q.time_limit for q in questions] == [20, 20, 60, 60, 120, 120]
    assert questions[0].question_text == "What are React Hooks and why are they useful?"


def test_fallback_questions_returns_copies():
    questions = fallback_questions()
    questions[0].question_text = "changed"
    assert FALLBACK_QUESTIONS[0].question_text == "What are React Hooks and why are they useful?"


def test_normalize_pins_time_limits():
    raw = [q.model_copy(update={"time_limit": 5, "question_text": f"  Q{i}  "}) for i, q in enumerate(fallback_questions())]
    normalized = normalize_sequence(raw)
    assert [q.time_limit for q in normalized] == [20, 20, 60, 60, 120, 120]
    assert normalized[0].question_text == "Q0"


def test_normalize_rejects_wrong_count():
    with pytest.raises(ValueError):
        normalize_sequence(fallback_questions()[:5])


def test_normalize_rejects_wrong_order():
    questions = fallback_questions()
    questions[0], questions[5] = questions[5], questions[0]
    with pytest.raises(ValueError):
        normalize_sequence(questions)


def test_normalize_rejects_blank_text():
    questions = fallback_questions()
    questions[2] = Question(question_text="   ", difficulty="Medium", time_limit=60)
    with pytest.raises(ValueError):
        normalize_sequence(questions)
