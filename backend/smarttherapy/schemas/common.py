"""Common schemas used across the application."""

from typing import Generic, TypeVar
from pydantic import BaseModel

T = TypeVar("T")


class PaginatedResponse(BaseModel, Generic[T]):
    """Generic paginated response wrapper.

    Usage:
        response_model=PaginatedResponse[SessionOut]
    """
    items: list[T]
    total: int
    limit: int
    offset: int


class ValidationIssue(BaseModel):
    path: str
    message: str


class ValidationResult(BaseModel, Generic[T]):
    """Outcome of a business validation that is expected to fail sometimes.

    Returned, never raised:
        {"success": false, "data": false,
         "errors": [{"path": "status", "message": "..."}]}
    """
    success: bool
    data: T | None = None
    errors: list[ValidationIssue] = []

    @classmethod
    def ok(cls, data: T) -> "ValidationResult[T]":
        return cls(success=True, data=data, errors=[])

    @classmethod
    def fail(cls, data: T | None, *issues: ValidationIssue) -> "ValidationResult[T]":
        return cls(success=False, data=data, errors=list(issues))
