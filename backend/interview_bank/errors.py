"""
Exception hierarchy for the question bank services.

Services raise these; HTTP controllers translate them to status codes.
"""

from typing import Any, Dict


class QuestionBankError(Exception):
    """Base exception for question bank operations."""
    def __init__(self, message: str, context: Dict[str, Any] = None):
        super().__init__(message)
        self.context = context or {}


class NotFoundError(QuestionBankError):
    """Raised when a referenced category or question does not exist."""
    pass


class ValidationError(QuestionBankError, ValueError):
    """Raised for malformed filters, pagination or question payloads."""
    pass
