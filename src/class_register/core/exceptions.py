from __future__ import annotations

from typing import Optional


class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class NotFoundError(DomainError):
    """Raised when an operation references a student or entry that does not exist."""


class PersistenceError(DomainError):
    """Raised when the underlying store fails (I/O, quota, driver errors).

    The original driver exception is kept on ``cause`` (and chained as ``__cause__``).
    """

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause


class IntegrityWarning(DomainError):
    """Advisory problem found while validating a backup snapshot.

    Never raised by the library: instances are collected into an
    ``IntegrityReport`` so the caller can decide whether to proceed.
    """

    def __init__(self, category: str, message: str, count: int = 0):
        super().__init__(message)
        self.category = category
        self.count = int(count)
