from __future__ import annotations

import logging
from pathlib import Path
from textwrap import dedent
from typing import List, Literal, Optional, Sequence

from pydantic import BaseModel, Field

from config import LlmRoute, load_app_registry
from interview_session.errors import GenerationError, ScoringError, SummaryError
from interview_session.models import NO_ANSWER_PLACEHOLDER, AIScore, Question, TranscriptEntry
from llm_gateway import HttpClient, LlmGatewayError, chat, chat_text
from services.questions import normalize_sequence

logger = logging.getLogger(__name__)

GENERATE_TARGET = "interview_evaluation.generate_questions"
SCORE_TARGET = "interview_evaluation.score_answer"
SUMMARY_TARGET = "interview_evaluation.summarize"


class GeneratedQuestion(BaseModel):  # Question as emitted by the LLM
    question: str
    difficulty: Literal["Easy", "Medium", "Hard"]
    timeLimit: int = Field(gt=0)


class GeneratedQuestionSet(BaseModel):  # Wrapper so the reply is a single JSON object
    questions: List[GeneratedQuestion]


class ScorePayload(BaseModel):  # Raw score reply before range checks
    technical: Optional[float] = None
    clarity: Optional[float] = None
    problem_solving: Optional[float] = None
    overall: Optional[float] = None
    feedback: str = ""


class LlmEvaluationService:  # AI evaluation backed by configured LLM routes
    def __init__(
        self,
        question_route: LlmRoute,
        scoring_route: LlmRoute,
        summary_route: LlmRoute,
        *,
        client: Optional[HttpClient] = None,
    ) -> None:
        self._question_route = question_route
        self._scoring_route = scoring_route
        self._summary_route = summary_route
        self._client = client

    async def generate_questions(self) -> List[Question]:
        try:
            result = await chat(
                [{"role": "user", "content": _question_task()}],
                GeneratedQuestionSet,
                cfg=self._question_route,
                client=self._client,
            )
        except LlmGatewayError as exc:
            raise GenerationError(str(exc)) from exc
        questions = [
            Question(question_text=item.question, difficulty=item.difficulty, time_limit=item.timeLimit)
            for item in result.questions
        ]
        try:
            return normalize_sequence(questions)
        except ValueError as exc:
            logger.warning("Generated question set rejected: %s", exc)
            raise GenerationError(f"malformed question set: {exc}") from exc

    async def score_answer(self, question_text: str, answer: str, difficulty: str) -> AIScore:
        messages = [
            {"role": "system", "content": _scoring_instructions(difficulty)},
            {
                "role": "user",
                "content": (
                    f'Question: "{question_text}"\n\n'
                    f'Candidate\'s Answer: "{answer.strip() or NO_ANSWER_PLACEHOLDER}"\n\n'
                    f"Difficulty Level: {difficulty}"
                ),
            },
        ]
        try:
            payload = await chat(messages, ScorePayload, cfg=self._scoring_route, client=self._client)
        except LlmGatewayError as exc:
            raise ScoringError(str(exc)) from exc
        return to_ai_score(payload)

    async def summarize(self, candidate_name: str, transcript: Sequence[TranscriptEntry]) -> str:
        messages = [
            {
                "role": "system",
                "content": (
                    "You are an expert technical interviewer creating a concise summary of a candidate's interview "
                    "performance. Write 2-3 sentences highlighting their strengths and areas for improvement. "
                    "Be constructive and specific."
                ),
            },
            {"role": "user", "content": _transcript_block(candidate_name, transcript)},
        ]
        try:
            content = await chat_text(messages, cfg=self._summary_route, client=self._client)
        except LlmGatewayError as exc:
            raise SummaryError(str(exc)) from exc
        if not content:
            raise SummaryError("summary was empty")
        return content


def to_ai_score(payload: ScorePayload) -> AIScore:
    """Validate the raw reply and clamp each field into [1, 10].

    Raises:
        ScoringError: If a numeric field is missing or not positive.
    """

    values = {}
    for name in ("technical", "clarity", "problem_solving", "overall"):
        value = getattr(payload, name)
        if value is None or value <= 0:
            raise ScoringError(f"invalid score format: {name}={value!r}")
        values[name] = min(max(float(value), 1.0), 10.0)
    return AIScore(feedback=payload.feedback.strip(), **values)


def build_service_with_config(config_path: Path, *, client: Optional[HttpClient] = None) -> LlmEvaluationService:
    registry = load_app_registry(config_path, [GENERATE_TARGET, SCORE_TARGET, SUMMARY_TARGET])
    return LlmEvaluationService(
        registry[GENERATE_TARGET],
        registry[SCORE_TARGET],
        registry[SUMMARY_TARGET],
        client=client,
    )


def _question_task() -> str:
    return dedent(
        """
        You are an expert technical interviewer for full-stack React/Node.js positions.
        Generate exactly 6 interview questions following this structure:
        - 2 Easy questions (20 seconds each)
        - 2 Medium questions (60 seconds each)
        - 2 Hard questions (120 seconds each)

        List them in that order (Easy, Easy, Medium, Medium, Hard, Hard) under the key "questions",
        each as {"question": "question text", "difficulty": "Easy|Medium|Hard", "timeLimit": number}.

        Focus on practical full-stack development scenarios, React concepts, Node.js, databases, and problem-solving.
        """
    ).strip()


def _scoring_instructions(difficulty: str) -> str:
    return dedent(
        f"""
        You are an expert technical interviewer evaluating a candidate's answer to a {difficulty} difficulty
        full-stack development question.

        Score the answer on three criteria (1-10 scale):
        1. Technical Accuracy: How technically correct and complete is the answer?
        2. Clarity & Communication: How well did they explain their thoughts?
        3. Problem-Solving Approach: How well did they approach the problem?

        Calculate an overall score (1-10) as the average of the three criteria and provide brief constructive
        feedback (max 100 words) in the fields technical, clarity, problem_solving, overall, feedback.

        Be fair but critical. Empty or very short answers should score 1-3. Good answers should score 6-8.
        Excellent answers should score 9-10.
        """
    ).strip()


def _transcript_block(candidate_name: str, transcript: Sequence[TranscriptEntry]) -> str:
    lines = [f"Candidate: {candidate_name}", "", "Interview Performance Data:"]
    for index, entry in enumerate(transcript, start=1):
        score = entry.score
        lines.append(
            f"Q{index}: {entry.question}\nAnswer: {entry.answer}\n"
            f"Scores: Technical {score.technical:g}/10, Clarity {score.clarity:g}/10, "
            f"Problem-solving {score.problem_solving:g}/10"
        )
        lines.append("")
    return "\n".join(lines).strip()
