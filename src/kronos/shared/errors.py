"""Kronos Error Handling Module

This module defines the error handling system for the Kronos offline worker,
providing structured error classes with context information.

The error hierarchy follows these principles:
- One Source of Truth: All error codes are defined in ErrorCode enum
- Structured Context: ErrorContext provides additional information
- Proper Exception Chaining: Original exceptions are preserved
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import Any, Union

# Type alias for primitive context values (str, int, float, bool only)
PrimitiveContextValue = Union[str, int, float, bool]

# Default keys to mask in safe_dict for PII protection
SAFE_DICT_MASK_KEYS: tuple[str, ...] = ("user_id",)


class ErrorCode(str, Enum):
    """Error codes for the Kronos offline worker.

    This enum serves as the single source of truth for all error codes
    used throughout the application.
    """

    # Network Errors
    NETWORK_ERROR = "NETWORK_ERROR"
    NETWORK_TIMEOUT = "NETWORK_TIMEOUT"
    HTTP_SESSION_FAILED = "HTTP_SESSION_FAILED"

    # Cache Storage Errors
    CACHE_ERROR = "CACHE_ERROR"
    CACHE_READ_FAILED = "CACHE_READ_FAILED"
    CACHE_WRITE_FAILED = "CACHE_WRITE_FAILED"
    CACHE_DELETE_FAILED = "CACHE_DELETE_FAILED"
    CACHE_OPEN_FAILED = "CACHE_OPEN_FAILED"

    # Worker Lifecycle Errors
    INSTALL_FAILED = "INSTALL_FAILED"
    INVALID_STATE_TRANSITION = "INVALID_STATE_TRANSITION"

    # Sync Errors
    SYNC_FAILED = "SYNC_FAILED"

    # Push Errors
    PUSH_NOT_CONFIGURED = "PUSH_NOT_CONFIGURED"
    SUBSCRIPTION_STORE_FAILED = "SUBSCRIPTION_STORE_FAILED"

    # Configuration Errors
    INVALID_CONFIG = "INVALID_CONFIG"
    FILE_READ_ERROR = "FILE_READ_ERROR"

    # CLI Errors
    CLI_UNEXPECTED_ERROR = "CLI_UNEXPECTED_ERROR"
    CLI_OUTPUT_ERROR = "CLI_OUTPUT_ERROR"


def _coerce_primitives(value: Any | None) -> dict[str, PrimitiveContextValue] | None:
    """Coerce additional_data values to primitives.

    Converts Path, Enum, Decimal to primitive types.

    Args:
        value: Input dictionary or None

    Returns:
        Dictionary with primitive values only, or None

    Raises:
        TypeError: If value is not a dict or contains unconvertible types
    """
    if value is None:
        return None

    if not isinstance(value, dict):
        error_msg = f"additional_data must be dict, got {type(value).__name__}"
        raise TypeError(error_msg)

    coerced: dict[str, PrimitiveContextValue] = {}
    for key, val in value.items():
        if isinstance(val, (str, int, float, bool)):
            coerced[key] = val
        elif isinstance(val, Path):
            coerced[key] = str(val)
        elif isinstance(val, Enum):
            coerced[key] = val.value
        elif isinstance(val, Decimal):
            coerced[key] = float(val)
        else:
            error_msg = (
                f"Cannot coerce {type(val).__name__} to primitive type. "
                f"Only str, int, float, bool, Path, Enum, Decimal are allowed."
            )
            raise TypeError(error_msg)

    return coerced


@dataclass(frozen=True)
class ErrorContext:
    """Context information for errors.

    Only primitive types (str, int, float, bool) are allowed in
    additional_data to ensure safe serialization.

    Attributes:
        url: Optional request URL associated with the error
        operation: Optional operation name that caused the error
        user_id: Optional user ID (masked in logs)
        additional_data: Optional dict with primitive values only
    """

    url: str | None = None
    operation: str | None = None
    user_id: str | None = None
    additional_data: dict[str, PrimitiveContextValue] | None = None

    def __post_init__(self) -> None:
        if self.additional_data is not None:
            coerced = _coerce_primitives(self.additional_data)
            object.__setattr__(self, "additional_data", coerced)

    def safe_dict(self, *, mask_keys: tuple[str, ...] | None = None) -> dict[str, Any]:
        """Export context as dict with PII masking.

        Args:
            mask_keys: Fields to exclude from output. Defaults to SAFE_DICT_MASK_KEYS.

        Returns:
            Dictionary with masked sensitive fields and guaranteed additional_data key.

        Example:
            >>> context = ErrorContext(user_id="12345", url="/api/deals")
            >>> context.safe_dict()
            {'url': '/api/deals', 'additional_data': {}}
        """
        if mask_keys is None:
            mask_keys = SAFE_DICT_MASK_KEYS

        data: dict[str, Any] = {}
        if self.url is not None and "url" not in mask_keys:
            data["url"] = self.url
        if self.operation is not None and "operation" not in mask_keys:
            data["operation"] = self.operation
        if self.user_id is not None and "user_id" not in mask_keys:
            data["user_id"] = self.user_id

        if self.additional_data is not None and "additional_data" not in mask_keys:
            data["additional_data"] = self.additional_data
        else:
            data["additional_data"] = {}

        return data


class KronosError(Exception):
    """Base exception class for all Kronos errors."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        context: ErrorContext | None = None,
        original_error: Exception | None = None,
    ) -> None:
        """Initialize KronosError.

        Args:
            code: Error code from ErrorCode enum
            message: Human-readable error message
            context: Additional context information
            original_error: Original exception that caused this error
        """
        self.code = code
        self.message = message
        self.context = context or ErrorContext()
        self.original_error = original_error

        formatted_message = f"{code.value}: {message}"
        super().__init__(formatted_message)

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging with PII masking.

        Returns:
            Dictionary representation of the error with code, message,
            masked context, and original_error (if present)
        """
        return {
            "code": self.code.value,
            "message": self.message,
            "context": self.context.safe_dict(),
            "original_error": str(self.original_error) if self.original_error else None,
        }


class DomainError(KronosError):
    """Domain-specific errors.

    Examples:
    - Invalid worker life cycle transitions
    """


class InfrastructureError(KronosError):
    """Infrastructure-related errors.

    These errors occur when interacting with external systems
    like the network, the cache database, or push services.
    """


class KronosNetworkError(InfrastructureError):
    """Network-related errors.

    Raised by fetchers when a request never produced an HTTP response:
    connection refused, DNS failures, timeouts, the device being offline.
    """


class CacheStorageError(InfrastructureError):
    """Cache storage errors (database unavailable, corrupt, locked)."""


class ApplicationError(KronosError):
    """Application-level errors.

    Examples:
    - Configuration errors
    - Install and sync failures
    """


class InstallError(ApplicationError):
    """Raised when the install step fails; the worker never activates."""


class SyncError(ApplicationError):
    """Raised when a background sync sweep cannot run at all.

    Propagates to the sync registry so the tag stays registered and is
    retried on the next reconnect.
    """


class SecurityError(KronosError):
    """Security-related errors.

    Examples:
    - Missing VAPID keys
    - Permission denied
    """


def create_network_error(
    message: str,
    url: str | None = None,
    operation: str | None = None,
    original_error: Exception | None = None,
) -> KronosNetworkError:
    """Create a network error with context."""
    context = ErrorContext(
        url=url,
        operation=operation,
    )
    return KronosNetworkError(
        ErrorCode.NETWORK_ERROR,
        message,
        context,
        original_error,
    )


def create_cache_error(
    code: ErrorCode,
    message: str,
    bucket: str | None = None,
    operation: str | None = None,
    original_error: Exception | None = None,
) -> CacheStorageError:
    """Create a cache storage error with context."""
    additional_data: dict[str, PrimitiveContextValue] | None = (
        {"bucket": bucket} if bucket else None
    )
    context = ErrorContext(
        operation=operation,
        additional_data=additional_data,
    )
    return CacheStorageError(
        code,
        message,
        context,
        original_error,
    )


class CliError(ApplicationError):
    """CLI-specific error with enhanced context for command-line operations."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        context: ErrorContext | None = None,
        original_error: Exception | None = None,
        command: str | None = None,
        exit_code: int = 1,
    ):
        super().__init__(code, message, context, original_error)
        self.command = command
        self.exit_code = exit_code


def create_cli_error(
    message: str,
    command: str | None = None,
    operation: str | None = None,
    original_error: Exception | None = None,
    exit_code: int = 1,
) -> CliError:
    """Create a CLI error with context."""
    additional_data: dict[str, PrimitiveContextValue] | None = (
        {"command": command} if command else None
    )
    context = ErrorContext(
        operation=operation,
        additional_data=additional_data,
    )
    return CliError(
        ErrorCode.CLI_UNEXPECTED_ERROR,
        message,
        context,
        original_error,
        command,
        exit_code,
    )
