"""
Base service layer patterns for business logic encapsulation.

This module provides the foundation every domain service builds on:
- ServiceResult: Result wrapper for expected success/failure outcomes
- BaseService: Base class with logging and transaction helpers

Service Layer Philosophy:
    Views handle HTTP concerns, models hold data, services hold the rules.
    Expected failures (not a participant, bad input, limits) come back as
    ServiceResult.failure() with a machine-readable error_code. Unexpected
    failures (database outages, bugs) propagate as exceptions.

Usage:
    from core.services import BaseService, ServiceResult

    class ChatService(BaseService):
        @classmethod
        def rename(cls, chat, caller, name: str) -> ServiceResult[Chat]:
            if not name.strip():
                return ServiceResult.failure(
                    "Name cannot be blank", error_code="EMPTY_NAME"
                )

            with cls.atomic():
                chat.name = name
                chat.save(update_fields=["name", "updated_at"])

            cls.get_logger().info(f"Chat {chat.id} renamed by {caller.id}")
            return ServiceResult.success(chat)

    # In a view
    result = ChatService.rename(chat, request.user, name)
    if not result:
        return Response(result.to_response(), status=422)
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Generic, TypeVar

from django.db import transaction

if TYPE_CHECKING:
    from collections.abc import Generator
    from typing import Any

T = TypeVar("T")


@dataclass
class ServiceResult(Generic[T]):
    """
    Standard result wrapper for service operations.

    Attributes:
        success: Whether the operation succeeded
        data: Result data if successful (None if failed)
        error: Error message if failed (None if successful)
        error_code: Machine-readable error code for client handling
        errors: Field-level errors for validation failures

    Usage:
        return ServiceResult.success(message)
        return ServiceResult.failure("Invalid emoji", error_code="INVALID_EMOJI")

        result = ReactionService.add(message, user, "👍")
        if result:
            reaction = result.data
    """

    success: bool
    data: T | None = None
    error: str | None = None
    error_code: str | None = None
    errors: dict[str, list[str]] | None = field(default=None)

    @classmethod
    def success(cls, data: T) -> ServiceResult[T]:
        """Create a successful result carrying ``data``."""
        return cls(success=True, data=data)

    @classmethod
    def failure(
        cls,
        error: str,
        error_code: str | None = None,
        errors: dict[str, list[str]] | None = None,
    ) -> ServiceResult[T]:
        """
        Create a failed result.

        Args:
            error: Human-readable error message
            error_code: Machine-readable error code for client handling
            errors: Field-level errors (for validation failures)
        """
        return cls(
            success=False,
            error=error,
            error_code=error_code,
            errors=errors,
        )

    @classmethod
    def from_exception(
        cls, exc: Exception, error_code: str | None = None
    ) -> ServiceResult[T]:
        """
        Create a failed result from a caught exception.

        Application errors keep their own error_code; anything else falls
        back to the exception class name.
        """
        return cls(
            success=False,
            error=getattr(exc, "message", str(exc)),
            error_code=error_code
            or getattr(exc, "error_code", None)
            or exc.__class__.__name__.upper(),
        )

    def to_response(self) -> dict[str, Any]:
        """
        Convert to the API error/success body.

        Failures render as ``{"error": ..., "error_code": ...}`` with
        ``errors`` added when field-level details exist.
        """
        if self.success:
            return {"data": self.data}

        response: dict[str, Any] = {"error": self.error}
        if self.error_code:
            response["error_code"] = self.error_code
        if self.errors:
            response["errors"] = self.errors
        return response

    def __bool__(self) -> bool:
        return self.success


class BaseService:
    """
    Base class for service layer classes.

    Services are stateless: use @classmethod and pass the acting principal
    explicitly to every operation instead of reading it from request state.
    """

    @classmethod
    def get_logger(cls) -> logging.Logger:
        """Return a logger named after the concrete service class."""
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    @classmethod
    @contextmanager
    def atomic(cls) -> Generator[None, None, None]:
        """
        Execute the enclosed block in a database transaction.

        Thin wrapper around django.db.transaction.atomic() that keeps
        transaction boundaries explicit in service code. Nested use creates
        savepoints.
        """
        with transaction.atomic():
            yield
