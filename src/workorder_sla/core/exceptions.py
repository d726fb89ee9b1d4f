"""
Core Exceptions
================

Custom exceptions for the application following clean architecture principles.

These exceptions define domain-specific errors that can be caught and handled
appropriately at the application boundaries. The SLA clock itself never
raises; these belong to the workflows built around it.
"""

from typing import Optional


class ApplicationException(Exception):
    """Base exception for all application errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class DomainException(ApplicationException):
    """Base exception for domain logic violations."""


class RepositoryException(ApplicationException):
    """Base exception for repository/data access errors."""


class ValidationException(ApplicationException):
    """Exception for validation errors."""


class ResourceNotFoundException(ApplicationException):
    """Exception when a requested resource is not found."""

    def __init__(
        self,
        resource_type: str,
        resource_id: Optional[str] = None,
        details: Optional[dict] = None
    ):
        self.resource_type = resource_type
        self.resource_id = resource_id
        message = f"{resource_type}"
        if resource_id:
            message += f" with id '{resource_id}'"
        message += " not found"
        super().__init__(message, details)


class ConfigurationException(ApplicationException):
    """Exception for configuration errors."""


class PermissionDeniedException(ApplicationException):
    """Exception when the current user's role may not perform an action."""

    def __init__(self, role: str, action: str, details: Optional[dict] = None):
        self.role = role
        self.action = action
        super().__init__(
            f"Role '{role}' is not allowed to {action}",
            details or {"role": role, "action": action}
        )


class CompletionBlockedException(DomainException):
    """Raised when a work order waiting on a dependency is marked complete."""

    def __init__(self, order_id: str, details: Optional[dict] = None):
        self.order_id = order_id
        super().__init__(
            f"Work order {order_id} is waiting on an external dependency; "
            "resume it before marking it complete",
            details or {"order_id": order_id}
        )
