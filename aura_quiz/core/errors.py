"""Exceptions raised by the aura quiz core."""

from __future__ import annotations


class PersistenceError(Exception):
    """Raised when a store read or write fails. Always safe to retry."""

    retryable = True


class PersistenceTimeoutError(PersistenceError):
    """Raised when a store call does not return within the allowed wait."""


class IntegrityError(PersistenceError):
    """Raised when a write violates a uniqueness constraint."""

    retryable = False


class SessionStateError(RuntimeError):
    """Raised for a transition the quiz session does not allow in its current state."""


class QuestionLimitError(RuntimeError):
    """Raised when activating a question would exceed the active question limit."""


class QuestionValidationError(ValueError):
    """Raised when a question or quiz definition is malformed."""


class InvalidAnswerError(ValueError):
    """Raised when an answer does not fit the question it is given for."""


class AnswerRequiredError(ValueError):
    """Raised when moving forward without answering the required questions."""

    def __init__(self, question_ids: list[str]) -> None:
        self.question_ids = list(question_ids)
        super().__init__(f"Answer required for question(s): {', '.join(self.question_ids)}")


class SubmissionFailedError(RuntimeError):
    """Raised when a submission could not be persisted; answers are kept for a retry."""

    retryable = True
