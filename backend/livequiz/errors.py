"""Typed pipeline failures.

Services hand these back inside a :class:`Result` instead of raising them,
so HTTP handlers and client sessions can branch on the error type.
"""

from dataclasses import dataclass
from typing import Any, Generic, Optional, TypeVar


class PipelineError(Exception):
    code = 'error'
    status = 500

    def __init__(self, message: str = '', code: Optional[str] = None):
        super().__init__(message or self.code)
        self.message = message or self.code
        if code:
            self.code = code

    def to_dict(self):
        return {'success': False, 'error': self.code, 'message': self.message}


class ValidationError(PipelineError):
    """Missing or malformed request fields, or an option the activation lacks."""
    code = 'validation_error'
    status = 400


class ConflictError(PipelineError):
    """Duplicate response, detected by the store's unique constraint."""
    code = 'already_voted'
    status = 409


class StateError(PipelineError):
    """Action attempted outside the allowed poll_state."""
    code = 'voting_closed'
    status = 409


class NotFoundError(PipelineError):
    code = 'not_found'
    status = 404


class PersistenceError(PipelineError):
    code = 'persistence_error'
    status = 500


T = TypeVar('T')


@dataclass
class Result(Generic[T]):
    value: Optional[T] = None
    error: Optional[PipelineError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: Any) -> 'Result':
        return cls(value=value)

    @classmethod
    def failure(cls, error: PipelineError) -> 'Result':
        return cls(error=error)
