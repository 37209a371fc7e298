"""
Telemetry Harness

Registers metric instruments, emits values from repeating tasks, exposes
process state to a periodic collector through observer callbacks, and
flushes everything to an exporter before the process exits. Includes an
instrumented key-value client.
"""

# Error model
from .runtime.errors import *

# Configuration
from .config import Dsn, TelemetrySettings, KeyValueSettings

# Monitoring and telemetry
from .monitoring import (
    InstrumentRegistry, Instrument, InstrumentKind, Measurement,
    Observation, ObserverRegistration, Aggregator,
    MetricsExporter, InMemoryExporter, LoggingExporter, HttpExporter,
    PeriodicCollector, AtomicCounter, SampledState
)

# Harness
from .harness import (
    RepeatingTask, install_demo_emitters,
    TelemetryProvider, configure_telemetry, telemetry_session,
    wait_for_shutdown_signal, run_until_signal
)

# Key-value client
from .kv import Batch, KeyValueClient, run_kv_commands, KeyValueInstrumentation, instrument_kv_client

__version__ = "0.1.0"
__all__ = [
    # Errors
    "ErrorCode",
    "HarnessError",
    "DuplicateNameError",
    "CallbackAlreadyRegisteredError",
    "InstrumentError",
    "InvalidMeasurementError",
    "ExportFailure",
    "ConfigurationError",
    "KeyValueError",

    # Configuration
    "Dsn",
    "TelemetrySettings",
    "KeyValueSettings",

    # Monitoring
    "InstrumentRegistry",
    "Instrument",
    "InstrumentKind",
    "Measurement",
    "Observation",
    "ObserverRegistration",
    "Aggregator",
    "MetricsExporter",
    "InMemoryExporter",
    "LoggingExporter",
    "HttpExporter",
    "PeriodicCollector",
    "AtomicCounter",
    "SampledState",

    # Harness
    "RepeatingTask",
    "install_demo_emitters",
    "TelemetryProvider",
    "configure_telemetry",
    "telemetry_session",
    "wait_for_shutdown_signal",
    "run_until_signal",

    # Key-value
    "Batch",
    "KeyValueClient",
    "run_kv_commands",
    "KeyValueInstrumentation",
    "instrument_kv_client",
]
