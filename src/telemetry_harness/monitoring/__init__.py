"""
Monitoring and telemetry components.

Provides the instrument registry, aggregation, exporters, the periodic
collector and shared sampled state.
"""

from .metrics import (
    InstrumentRegistry, Instrument, InstrumentKind, Measurement,
    Observation, ObserverRegistration
)
from .aggregation import Aggregator
from .exporters import (
    MetricsExporter, InMemoryExporter, LoggingExporter, HttpExporter
)
from .collector import PeriodicCollector
from .state import AtomicCounter, SampledState

__all__ = [
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
    "SampledState"
]
