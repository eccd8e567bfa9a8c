from .evaluation import (
    GENERATE_TARGET,
    SCORE_TARGET,
    SUMMARY_TARGET,
    GeneratedQuestion,
    GeneratedQuestionSet,
    LlmEvaluationService,
    ScorePayload,
    build_service_with_config,
    to_ai_score,
)

__all__ = [
    "GENERATE_TARGET",
    "SCORE_TARGET",
    "SUMMARY_TARGET",
    "GeneratedQuestion",
    "GeneratedQuestionSet",
    "LlmEvaluationService",
    "ScorePayload",
    "build_service_with_config",
    "to_ai_score",
]
