import sys

from observability import admin_cli, log_event, span
from observability.logger import _format_human
from storage import answers, candidates
from interview_session.models import AIScore, AnswerRecord


def test_format_human_includes_known_extras():
    line = _format_human({"session_id": "c1", "kind": "answer_scored", "overall": 7.0, "fallback": True, "other": 1})
    assert line == "session=c1 kind=answer_scored overall=7.0 fallback=True"


def test_log_event_and_span_do_not_raise():
    log_event("interview_started", "c1", returning=False)
    with span("c1", "score_answer"):
        pass


def test_admin_cli_tails_tables(monkeypatch, capsys):
    created = candidates.insert_candidate(name="Jane Doe", email="jane@x.com", phone=None, status="in_progress")
    answers.insert_answer_record(
        AnswerRecord(
            candidate_id=created.id,
            question_number=1,
            question_text="Q1",
            difficulty="Easy",
            time_limit=20,
            answer="a",
            time_taken=4,
            ai_score=AIScore(technical=5, clarity=4, problem_solving=5, overall=5),
        )
    )

    monkeypatch.setattr(sys, "argv", ["admin_cli", "--tail-candidates", "5", "--tail-answers", "5"])
    admin_cli.main()

    out = capsys.readouterr().out
    assert "Jane Doe <jane@x.com> status=in_progress" in out
    assert "Q1 (Easy) took=4s" in out
