"""
Telemetry Harness Error Model

This module provides the error handling framework for the telemetry harness.
Startup errors (registration, configuration) are fatal and propagate to the
caller; export errors are transient and never reach emitting tasks.
"""

from __future__ import annotations
from typing import Optional, Dict, Any
from enum import IntEnum


class ErrorCode(IntEnum):
    """Harness error codes."""

    # Success
    OK = 0

    # General errors (1-99)
    UNKNOWN = 1
    INTERNAL = 2

    # Registration errors (100-199)
    DUPLICATE_NAME = 100
    CALLBACK_ALREADY_REGISTERED = 101
    INVALID_INSTRUMENT = 102

    # Measurement errors (200-299)
    INVALID_MEASUREMENT = 200

    # Export errors (300-399)
    EXPORT_FAILED = 300
    EXPORT_TIMEOUT = 301

    # Configuration errors (400-499)
    CONFIGURATION = 400
    INVALID_DSN = 401

    # Key-value errors (500-599)
    KV_COMMAND_FAILED = 500


class HarnessError(Exception):
    """
    Base class for all harness errors.

    Provides structured error information with a code, details and the
    underlying cause.
    """

    def __init__(self, message: str, code: ErrorCode = ErrorCode.UNKNOWN,
                 details: Optional[Dict[str, Any]] = None, cause: Optional[Exception] = None):
        """
        Initialize a harness error.

        Args:
            message: Error message
            code: Error code
            details: Additional error details
            cause: Underlying exception that caused this error
        """
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}
        self.cause = cause

    def __str__(self) -> str:
        """String representation of the error."""
        parts = [f"[{self.code.name}] {self.message}"]
        if self.details:
            parts.append(f"Details: {self.details}")
        if self.cause:
            parts.append(f"Caused by: {self.cause}")
        return " | ".join(parts)

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary representation."""
        result = {
            "code": self.code.value,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        if self.cause:
            result["cause"] = str(self.cause)
        return result


class DuplicateNameError(HarnessError):
    """Instrument name already registered."""

    def __init__(self, name: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(f"Instrument '{name}' is already registered",
                         ErrorCode.DUPLICATE_NAME, details)
        self.name = name


class CallbackAlreadyRegisteredError(HarnessError):
    """An instrument already has an observer callback."""

    def __init__(self, name: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(f"Instrument '{name}' already has an observer callback",
                         ErrorCode.CALLBACK_ALREADY_REGISTERED, details)
        self.name = name


class InstrumentError(HarnessError):
    """Invalid instrument name, kind or ownership."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, ErrorCode.INVALID_INSTRUMENT, details)


class InvalidMeasurementError(HarnessError):
    """Measurement rejected before it reached the exporter."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, ErrorCode.INVALID_MEASUREMENT, details)


class ExportFailure(HarnessError):
    """Transient failure delivering measurements to the backend."""

    def __init__(self, message: str, code: ErrorCode = ErrorCode.EXPORT_FAILED,
                 details: Optional[Dict[str, Any]] = None, cause: Optional[Exception] = None):
        super().__init__(message, code, details, cause)


class ConfigurationError(HarnessError):
    """Missing or malformed configuration."""

    def __init__(self, message: str, code: ErrorCode = ErrorCode.CONFIGURATION,
                 details: Optional[Dict[str, Any]] = None, cause: Optional[Exception] = None):
        super().__init__(message, code, details, cause)


class KeyValueError(HarnessError):
    """Key-value command failed."""

    def __init__(self, message: str, command: Optional[str] = None,
                 details: Optional[Dict[str, Any]] = None, cause: Optional[Exception] = None):
        details = dict(details or {})
        if command:
            details.setdefault("command", command)
        super().__init__(message, ErrorCode.KV_COMMAND_FAILED, details, cause)
        self.command = command


__all__ = [
    "ErrorCode",
    "HarnessError",
    "DuplicateNameError",
    "CallbackAlreadyRegisteredError",
    "InstrumentError",
    "InvalidMeasurementError",
    "ExportFailure",
    "ConfigurationError",
    "KeyValueError",
]
