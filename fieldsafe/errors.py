"""fieldsafe error hierarchy and structured error models."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel


class ErrorCategory(str, Enum):
    CONFIGURATION = "configuration"
    TYPE = "type"


class Suggestion(BaseModel):
    action: str
    fix: str
    example: str | None = None


class FieldsafeError(Exception):
    """Base error for misconfigured sanitization pipelines.

    Both subclasses describe programming mistakes (bad type names, malformed
    overrides), so nothing here is ever retryable.
    """

    is_retryable = False

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        key: str | None = None,
        suggestion: Suggestion | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.key = key
        self.suggestion = suggestion
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        return {
            "message": self.message,
            "code": self.code,
            "category": self.category.value,
            "key": self.key,
            "suggestion": self.suggestion.model_dump() if self.suggestion else None,
            "is_retryable": self.is_retryable,
            "details": self.details,
        }


class ConfigurationError(FieldsafeError):
    """E1xxx: Malformed type descriptors, mappings or field values."""

    def __init__(
        self,
        message: str,
        code: str = "E1000",
        key: str | None = None,
        suggestion: Suggestion | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message,
            code,
            category=ErrorCategory.CONFIGURATION,
            key=key,
            suggestion=suggestion,
            details=details,
        )


class InvalidTypeError(FieldsafeError):
    """E2xxx: No transformation could be found for a field."""

    def __init__(
        self,
        message: str,
        code: str = "E2000",
        key: str | None = None,
        suggestion: Suggestion | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message,
            code,
            category=ErrorCategory.TYPE,
            key=key,
            suggestion=suggestion,
            details=details,
        )
