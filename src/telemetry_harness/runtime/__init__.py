"""Runtime helpers for the telemetry harness"""

from .errors import (
    ErrorCode,
    HarnessError,
    DuplicateNameError,
    CallbackAlreadyRegisteredError,
    InstrumentError,
    InvalidMeasurementError,
    ExportFailure,
    ConfigurationError,
    KeyValueError,
)

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
