"""
Custom Exception Classes for the chat backend

This module defines custom exceptions for better error handling and
consistent error responses across the GraphQL API.
"""

from enum import Enum
from typing import Any

from fastapi import status


class ErrorCode(str, Enum):
    """Machine-readable error codes surfaced in GraphQL error extensions."""

    AUTH_FAILED = "AUTH_FAILED"
    AUTH_INVALID_CREDENTIAL = "AUTH_INVALID_CREDENTIAL"
    AUTH_PERMISSION_DENIED = "AUTH_PERMISSION_DENIED"
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"
    RESOURCE_USER_NOT_FOUND = "RESOURCE_USER_NOT_FOUND"
    RESOURCE_CONVERSATION_NOT_FOUND = "RESOURCE_CONVERSATION_NOT_FOUND"
    VALIDATION_FAILED = "VALIDATION_FAILED"
    DATABASE_ERROR = "DATABASE_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class ChatError(Exception):
    """Base exception class for all chat-related exceptions"""

    error_code: ErrorCode = ErrorCode.INTERNAL_ERROR

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


# ============================================================================
# Authentication & Authorization Exceptions
# ============================================================================


class AuthenticationError(ChatError):
    """Raised when authentication fails"""

    error_code = ErrorCode.AUTH_FAILED

    def __init__(self, message: str = "Authentication failed", details: dict[str, Any] | None = None):
        super().__init__(message=message, status_code=status.HTTP_401_UNAUTHORIZED, details=details or {})


class InvalidCredentialError(AuthenticationError):
    """Raised when a bearer credential is malformed, unsigned by us, or expired"""

    error_code = ErrorCode.AUTH_INVALID_CREDENTIAL

    def __init__(self, message: str = "Invalid or malformed credential"):
        super().__init__(message=message)


class AuthorizationError(ChatError):
    """Raised when an access rule rejects an operation"""

    error_code = ErrorCode.AUTH_PERMISSION_DENIED

    def __init__(self, message: str = "Not authorized"):
        super().__init__(message=message, status_code=status.HTTP_403_FORBIDDEN)


# ============================================================================
# Resource Not Found Exceptions
# ============================================================================


class ResourceNotFoundError(ChatError):
    """Base class for resource not found errors"""

    error_code = ErrorCode.RESOURCE_NOT_FOUND

    def __init__(self, resource_type: str, resource_id: Any | None = None):
        message = f"{resource_type} not found"
        if resource_id is not None:
            message = f"{resource_type} with id '{resource_id}' not found"
        super().__init__(
            message=message,
            status_code=status.HTTP_404_NOT_FOUND,
            details={"resource_type": resource_type, "resource_id": resource_id},
        )


class UserNotFoundError(ResourceNotFoundError):
    """Raised when a user is not found"""

    error_code = ErrorCode.RESOURCE_USER_NOT_FOUND

    def __init__(self, user_id: Any | None = None):
        super().__init__(resource_type="User", resource_id=user_id)


class ConversationNotFoundError(ResourceNotFoundError):
    """Raised when a conversation is not found"""

    error_code = ErrorCode.RESOURCE_CONVERSATION_NOT_FOUND

    def __init__(self, conversation_id: Any | None = None):
        super().__init__(resource_type="Conversation", resource_id=conversation_id)


# ============================================================================
# Validation & Database Exceptions
# ============================================================================


class ValidationError(ChatError):
    """Raised when input validation fails"""

    error_code = ErrorCode.VALIDATION_FAILED

    def __init__(self, message: str, field: str | None = None, details: dict[str, Any] | None = None):
        error_details = details or {}
        if field:
            error_details["field"] = field
        super().__init__(message=message, status_code=status.HTTP_400_BAD_REQUEST, details=error_details)


class DatabaseError(ChatError):
    """Raised when a data store operation fails"""

    error_code = ErrorCode.DATABASE_ERROR

    def __init__(self, message: str = "A database error occurred", operation: str | None = None):
        details = {"operation": operation} if operation else {}
        super().__init__(message=message, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, details=details)
