# f2f_booking/core/exceptions.py
"""
Domain-specific exceptions for the booking upload.

Row-level validation problems are never raised; they are collected as
RowError values. These exceptions cover the failures that stop an operation:
unknown activities, malformed configuration and persistence errors.
"""

from typing import Any, Dict, Optional


class DomainException(Exception):
    """Base exception for all domain-specific errors."""

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

    def to_dict(self) -> Dict[str, Any]:
        return {"message": self.message, "code": self.code, "details": self.details}


class NotFoundException(DomainException):
    """Raised when a requested resource is not found."""


class BusinessRuleException(DomainException):
    """Raised when a business rule is violated."""


class ServiceException(DomainException):
    """Raised when a service operation fails."""


class FacetofaceNotFoundException(NotFoundException):
    """Raised when a booking batch targets an unknown face-to-face activity."""

    def __init__(self, facetoface_id: str):
        super().__init__(
            message=f"Face-to-face activity {facetoface_id} does not exist",
            code="FACETOFACE_NOT_FOUND",
            details={"facetoface_id": facetoface_id},
        )


class RepositoryException(Exception):
    """
    Exception raised for repository layer errors.

    Used when data access operations fail, such as connection issues,
    query failures, or constraint violations.
    """
