# backend/barbershop/core/exceptions.py
"""
Domain-specific exceptions for the barbershop backend.

These exceptions provide clear, business-focused error messages
that can be caught and handled appropriately at the API layer.
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
        """Convert to an HTTPException carrying the class status code."""
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


class UnauthorizedException(DomainException):
    """Raised when the admin token is missing or wrong."""

    status_code = status.HTTP_401_UNAUTHORIZED


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


class InvalidFormatException(ValidationException):
    """Raised when a date or time string does not match its expected pattern."""

    def __init__(self, field: str, value: Any, expected: str):
        super().__init__(
            message=f"Invalid {field} {value!r}; expected {expected}",
            code="INVALID_FORMAT",
            details={"field": field, "value": value, "expected": expected},
        )


class InvalidSlotException(ValidationException):
    """Raised when a requested time is not a bookable slot."""

    def __init__(self, reason: str, message: str):
        super().__init__(
            message=message,
            code="INVALID_SLOT",
            details={"reason": reason},
        )
        self.reason = reason


class SlotTakenException(ConflictException):
    """Raised when a booking overlaps an existing booking for the same barber."""

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message or "This time slot conflicts with an existing booking",
            code="SLOT_TAKEN",
            details=details or {},
        )


class BookingBusyException(ConflictException):
    """Raised when another booking for the same barber and day is being written."""

    def __init__(self, barber_id: str, day: str):
        super().__init__(
            message="Another booking for this barber is in progress, please retry",
            code="BOOKING_BUSY",
            details={"barber_id": barber_id, "date": day},
        )


class AlreadyInStateException(ConflictException):
    """Raised when an entity already holds the requested status."""

    def __init__(self, entity: str, entity_id: str, state: str):
        super().__init__(
            message=f"{entity} {entity_id} is already {state}",
            code="ALREADY_IN_STATE",
            details={"entity": entity, "id": entity_id, "status": state},
        )


class InvalidTransitionException(BusinessRuleException):
    """Raised when a status change is not allowed from the current status."""

    def __init__(self, entity: str, entity_id: str, current: str, target: str):
        super().__init__(
            message=f"Cannot change {entity} {entity_id} from {current} to {target}",
            code="INVALID_TRANSITION",
            details={"entity": entity, "id": entity_id, "from": current, "to": target},
        )


class HasSettledPaymentException(ConflictException):
    """Raised when deleting a booking that already has a paid payment."""

    def __init__(self, booking_id: str):
        super().__init__(
            message="Booking cannot be deleted because it has a settled payment",
            code="HAS_SETTLED_PAYMENT",
            details={"booking_id": booking_id},
        )


class HasBookingsException(ConflictException):
    """Raised when deleting a barber or service that bookings still reference."""

    def __init__(self, entity: str, entity_id: str, booking_count: int):
        super().__init__(
            message=(
                f"Cannot delete {entity}. There are {booking_count} bookings using this "
                f"{entity}. Please reassign or cancel the bookings first."
            ),
            code="HAS_BOOKINGS",
            details={"entity": entity, "id": entity_id, "booking_count": booking_count},
        )


class InvalidSignatureException(ValidationException):
    """Raised when a payment notification signature does not verify."""

    def __init__(self, order_id: Optional[str] = None):
        super().__init__(
            message="Invalid notification signature",
            code="INVALID_SIGNATURE",
            details={"order_id": order_id} if order_id else {},
        )


class GatewayException(DomainException):
    """Raised when the payment gateway is unreachable or rejects a request."""

    status_code = status.HTTP_502_BAD_GATEWAY

    def __init__(
        self,
        message: str = "Payment gateway request failed",
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, code="GATEWAY_ERROR", details=details or {})


class RepositoryException(Exception):
    """
    Exception raised for repository layer errors.

    This exception is used when data access operations fail,
    such as database connection issues, query failures, or
    constraint violations.
    """
