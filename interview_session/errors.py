"""Error taxonomy for interview sessions."""
from __future__ import annotations


class InterviewError(RuntimeError):  # Base error for the interview core
    pass


class PersistenceError(InterviewError):  # Datastore read/write failed
    pass


class AIServiceError(InterviewError):  # AI evaluation service failed
    pass


class GenerationError(AIServiceError):  # Question generation failed or was malformed
    pass


class ScoringError(AIServiceError):  # Answer scoring failed or was malformed
    pass


class SummaryError(AIServiceError):  # Transcript summary failed
    pass


class CandidateValidationError(InterviewError):  # Required candidate fields missing or invalid
    pass


class CallTimeoutError(InterviewError, TimeoutError):  # Outbound call exceeded its budget
    def __init__(self, operation: str, budget_s: float) -> None:
        super().__init__(f"{operation} exceeded {budget_s:g}s")
        self.operation = operation
        self.budget_s = budget_s


class InvalidTransitionError(InterviewError):  # Transition not allowed in the current state
    pass


class SessionBusyError(InterviewError):  # Another transition is still in flight
    pass


__all__ = [
    "InterviewError",
    "PersistenceError",
    "AIServiceError",
    "GenerationError",
    "ScoringError",
    "SummaryError",
    "CandidateValidationError",
    "CallTimeoutError",
    "InvalidTransitionError",
    "SessionBusyError",
]
