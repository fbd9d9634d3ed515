"""
CLI Error Handling Utilities

Maps any exception raised by a command to a CliError, logs it, prints it
(plain text on stderr or a JSON envelope on stdout) and returns the exit
code.
"""

from __future__ import annotations

import logging
import sys
from typing import Any

from kronos.cli.json_formatter import format_json_output, write_json_output
from kronos.shared.constants import CLIDefaults
from kronos.shared.errors import (
    ApplicationError,
    CliError,
    DomainError,
    ErrorCode,
    ErrorContext,
    InfrastructureError,
    KronosError,
    SecurityError,
    create_cli_error,
)

logger = logging.getLogger(__name__)


def handle_cli_error(
    error: Exception,
    command: str,
    *,
    json_output: bool = False,
) -> int:
    """Handle CLI errors with consistent formatting and logging.

    Args:
        error: The exception that occurred
        command: The CLI command being executed
        json_output: Whether to output JSON format

    Returns:
        Exit code for the CLI command
    """
    error_context = _create_error_context(error, command, json_output=json_output)
    cli_error = _map_error_to_cli_error(error, command, error_context)
    _log_error(error, command, cli_error, error_context)
    _output_error(cli_error, error, command, error_context, json_output=json_output)

    return cli_error.exit_code


def _create_error_context(
    error: Exception,
    command: str,
    *,
    json_output: bool,
) -> dict[str, Any]:
    """Create structured error context for logging."""
    return {
        "command": command,
        "error_type": type(error).__name__,
        "json_output": json_output,
    }


def _map_error_to_cli_error(  # noqa: PLR0911
    error: Exception,
    command: str,
    error_context: dict[str, Any],
) -> CliError:
    """Map specific exception types to CLI errors."""
    if isinstance(error, CliError):
        error_context["error_code"] = error.code.value
        return error

    labels: tuple[tuple[type[KronosError], str], ...] = (
        (ApplicationError, "Application error"),
        (InfrastructureError, "Infrastructure error"),
        (SecurityError, "Security error"),
        (DomainError, "Invalid input"),
    )
    for error_type, label in labels:
        if isinstance(error, error_type):
            error_context["error_code"] = error.code.value
            return CliError(
                error.code,
                f"{label}: {error.message}",
                error.context,
                original_error=error,
                command=command,
            )

    if isinstance(error, (FileNotFoundError, PermissionError, OSError)):
        error_context["error_category"] = "file_system"
        return create_cli_error(
            message=f"File system error: {error}",
            command=command,
            original_error=error,
        )

    if isinstance(error, (ValueError, KeyError, TypeError, AttributeError)):
        error_context["error_category"] = "data_processing"
        return create_cli_error(
            message=f"Data processing error: {error}",
            command=command,
            original_error=error,
        )

    if isinstance(error, KeyboardInterrupt):
        error_context["interrupt_type"] = "user_interrupt"
        return create_cli_error(
            message="Command interrupted by user",
            command=command,
            original_error=error,
            exit_code=CLIDefaults.EXIT_INTERRUPTED,
        )

    error_context["error_category"] = "unexpected"
    return create_cli_error(
        message=f"Unexpected error: {error}",
        command=command,
        original_error=error,
    )


def _log_error(
    error: Exception,
    command: str,
    cli_error: CliError,
    error_context: dict[str, Any],
) -> None:
    """Log the error with structured context."""
    if isinstance(error, KeyboardInterrupt):
        logger.warning(
            "Command interrupted: %s",
            cli_error.message,
            extra={"context": error_context},
        )
    elif isinstance(error, KronosError):
        logger.error(
            "CLI error in %s: %s",
            command,
            cli_error.message,
            extra={"error_code": error.code.value, "context": error_context},
        )
    else:
        logger.exception(
            "CLI error in %s: %s",
            command,
            cli_error.message,
            extra={"context": error_context},
        )


def _output_error(
    cli_error: CliError,
    error: Exception,
    command: str,
    error_context: dict[str, Any],
    *,
    json_output: bool,
) -> None:
    """Output error message in appropriate format."""
    if not json_output:
        sys.stderr.write(f"Error: {cli_error.message}\n")
        return

    try:
        write_json_output(
            format_json_output(
                success=False,
                command=command,
                errors=[cli_error.message],
                data={
                    "error_code": cli_error.code.value,
                    "error_type": type(error).__name__,
                    "exit_code": cli_error.exit_code,
                    "context": error_context,
                },
            )
        )
    except (OSError, UnicodeEncodeError, TypeError) as output_error:
        output_failure = CliError(
            ErrorCode.CLI_OUTPUT_ERROR,
            f"Failed to format JSON output: {output_error}",
            ErrorContext(operation="output_error", additional_data={"command": command}),
            original_error=output_error,
            command=command,
        )
        logger.exception(
            "JSON output error: %s",
            output_failure.message,
            extra={"context": error_context},
        )
        sys.stderr.write(f"Error: {cli_error.message}\n")
        sys.stderr.write(f"JSON output failed: {output_failure.message}\n")


def log_cli_operation_success(
    command: str,
    duration_ms: float | None = None,
    context: dict[str, Any] | None = None,
) -> None:
    """Log successful CLI operation completion."""
    message = f"CLI command '{command}' completed successfully"
    if duration_ms is not None:
        message += f" in {duration_ms:.2f}ms"

    logger.info(message, extra={"context": context or {}})
