# backend/clinicops/core/exceptions.py
"""
Domain-specific exceptions for the clinic scheduling engine.

These exceptions provide clear, business-focused error messages
that can be caught and handled appropriately at the API layer.
Each business rule raises its own class so callers can branch on
403 (forbidden) vs 409 (conflict / stale version) vs 422 (rule) semantics.
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException, status

HTTP_422_UNPROCESSABLE: int = getattr(status, "HTTP_422_UNPROCESSABLE_CONTENT", 422)


class DomainException(Exception):
    """Base exception for all domain-specific errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_http_exception(self) -> HTTPException:
        """Convert to HTTPException using the class status code."""
        return HTTPException(
            status_code=self.status_code,
            detail={
                "message": self.message,
                "code": self.code,
                "details": self.details,
            },
        )


class ValidationException(DomainException):
    """Raised when business validation fails."""

    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundException(DomainException):
    """Raised when a requested resource is not found."""

    status_code = status.HTTP_404_NOT_FOUND


class ConflictException(DomainException):
    """Raised when there's a conflict with existing data."""

    status_code = status.HTTP_409_CONFLICT


class BusinessRuleException(DomainException):
    """Raised when a business rule is violated."""

    status_code = HTTP_422_UNPROCESSABLE


class ForbiddenException(DomainException):
    """Raised when the requester's role may not act on this professional."""

    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, message: str, *, details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, code="FORBIDDEN", details=details)


class ServiceException(DomainException):
    """Raised when a service operation fails."""

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "message": self.message or "An error occurred processing your request",
                "code": self.code,
                "details": self.details if self.details else {},
            },
        )


# Specific business exceptions


class InvalidRangeException(ValidationException):
    """Raised when a requested interval does not end after it starts."""

    def __init__(self, message: Optional[str] = None, *, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message or "End time must be after start time",
            code="INVALID_RANGE",
            details=details,
        )


class PastSlotException(BusinessRuleException):
    """Raised when a slot starts before the current instant."""

    def __init__(self, message: Optional[str] = None, *, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message or "Cannot create holds in the past",
            code="PAST_SLOT",
            details=details,
        )


class InsufficientAdvanceNoticeException(BusinessRuleException):
    """Raised when a slot starts sooner than the minimum advance notice."""

    def __init__(self, required_minutes: int, provided_minutes: float):
        super().__init__(
            message=f"Minimum advance notice of {required_minutes} minutes not met",
            code="INSUFFICIENT_ADVANCE_NOTICE",
            details={
                "required_minutes": required_minutes,
                "provided_minutes": provided_minutes,
            },
        )


class AdvanceWindowExceededException(BusinessRuleException):
    """Raised when a slot starts further out than the maximum advance window."""

    def __init__(
        self,
        *,
        max_days: Optional[int] = None,
        max_minutes: Optional[int] = None,
        provided_minutes: float,
    ):
        if max_minutes is not None:
            message = f"Maximum advance window of {max_minutes} minutes exceeded"
        else:
            message = f"Maximum advance window of {max_days} days exceeded"
        super().__init__(
            message=message,
            code="ADVANCE_WINDOW_EXCEEDED",
            details={
                "max_days": max_days,
                "max_minutes": max_minutes,
                "provided_minutes": provided_minutes,
            },
        )


class BookingConflictException(ConflictException):
    """Raised when a request overlaps an existing booking."""

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message or "Professional already has a commitment in this period",
            code="BOOKING_CONFLICT",
            details=details or {},
        )


class HoldConflictException(ConflictException):
    """Raised when a request overlaps another active hold."""

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message or "A hold already exists for this professional in this period",
            code="HOLD_CONFLICT",
            details=details or {},
        )


class InvalidStateException(BusinessRuleException):
    """Raised when an operation is not permitted given the current status."""

    def __init__(self, message: str, *, details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, code="INVALID_STATE", details=details)


class VersionConflictException(DomainException):
    """
    Raised when an optimistic-concurrency check fails.

    Kept outside the ConflictException branch so callers can tell a stale
    version (reload and retry) apart from a business-rule conflict.
    """

    status_code = status.HTTP_409_CONFLICT

    def __init__(
        self,
        entity: str,
        entity_id: str,
        expected_version: int,
        current_version: Optional[int] = None,
    ):
        super().__init__(
            message=f"{entity} {entity_id} was modified concurrently (expected version {expected_version})",
            code="VERSION_CONFLICT",
            details={
                "entity": entity,
                "entity_id": entity_id,
                "expected_version": expected_version,
                "current_version": current_version,
            },
        )


class RepositoryException(Exception):
    """
    Exception raised for repository layer errors.

    This exception is used when data access operations fail,
    such as database connection issues, query failures, or
    constraint violations. It is the only error kind a caller
    may safely retry.
    """


class CalendarBusyException(ConflictException):
    """Raised when another request holds the professional's calendar mutex."""

    def __init__(self, professional_id: str):
        super().__init__(
            message="Another reservation for this professional is in progress",
            code="CALENDAR_BUSY",
            details={"professional_id": professional_id},
        )
