"""
Instrumentation harness.

Repeating emitter tasks, demo emitters and observers, and the process
lifecycle that flushes telemetry on shutdown.
"""

from .tasks import RepeatingTask
from .emitters import install_demo_emitters
from .lifecycle import (
    TelemetryProvider, configure_telemetry, telemetry_session,
    wait_for_shutdown_signal, run_until_signal
)

__all__ = [
    "RepeatingTask",
    "install_demo_emitters",
    "TelemetryProvider",
    "configure_telemetry",
    "telemetry_session",
    "wait_for_shutdown_signal",
    "run_until_signal",
]
