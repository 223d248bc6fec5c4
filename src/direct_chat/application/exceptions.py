from __future__ import annotations


class AppError(Exception):
    """Base application error."""

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__(detail)


class NotFoundError(AppError):
    pass


class InvalidArgumentError(AppError):
    """Rejected before any store call."""


class NotAMemberError(AppError):
    pass


class TransientStoreError(AppError):
    """Store or transport failure; never retried by the core."""
