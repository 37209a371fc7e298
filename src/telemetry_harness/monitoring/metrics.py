"""
Instrument registry for telemetry.

Provides named, typed instruments (counters, up/down counters, histograms,
gauges and their observable variants), synchronous emission into an
exporter and observer callbacks pulled by a periodic collector.
"""

import logging
import math
import re
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from numbers import Real
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Union

from ..runtime.errors import (
    CallbackAlreadyRegisteredError,
    DuplicateNameError,
    InstrumentError,
    InvalidMeasurementError,
)


logger = logging.getLogger(__name__)

Number = Union[int, float]

_NAME_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9_.\-/]{0,254}$")


class InstrumentKind(Enum):
    """Kinds of instruments."""
    COUNTER = "counter"
    UP_DOWN_COUNTER = "up_down_counter"
    HISTOGRAM = "histogram"
    GAUGE = "gauge"
    OBSERVABLE_COUNTER = "observable_counter"
    OBSERVABLE_UP_DOWN_COUNTER = "observable_up_down_counter"
    OBSERVABLE_GAUGE = "observable_gauge"

    @property
    def is_synchronous(self) -> bool:
        """Whether application code records values directly."""
        return self in _SYNCHRONOUS_KINDS

    @property
    def is_monotonic(self) -> bool:
        """Whether values may only increase."""
        return self in (InstrumentKind.COUNTER, InstrumentKind.OBSERVABLE_COUNTER)


_SYNCHRONOUS_KINDS = frozenset({
    InstrumentKind.COUNTER,
    InstrumentKind.UP_DOWN_COUNTER,
    InstrumentKind.HISTOGRAM,
    InstrumentKind.GAUGE,
})


class Instrument:
    """
    Named collection point owned by a registry.

    Instruments are created by ``InstrumentRegistry.register`` and are
    immutable afterwards. Synchronous instruments forward ``add``/``record``
    to the owning registry.
    """

    def __init__(self, registry: "InstrumentRegistry", name: str, kind: InstrumentKind,
                 unit: str = "", description: str = ""):
        self._registry = registry
        self._name = name
        self._kind = kind
        self._unit = unit
        self._description = description

    @property
    def name(self) -> str:
        return self._name

    @property
    def kind(self) -> InstrumentKind:
        return self._kind

    @property
    def unit(self) -> str:
        return self._unit

    @property
    def description(self) -> str:
        return self._description

    @property
    def registry(self) -> "InstrumentRegistry":
        return self._registry

    def add(self, value: Number, labels: Optional[Mapping[str, str]] = None) -> None:
        """Add a delta to a counter or up/down counter."""
        self._registry.emit(self, value, labels)

    def record(self, value: Number, labels: Optional[Mapping[str, str]] = None) -> None:
        """Record a histogram or gauge value."""
        self._registry.emit(self, value, labels)

    def __repr__(self) -> str:
        return f"Instrument(name={self._name!r}, kind={self._kind.value})"


@dataclass(frozen=True)
class Measurement:
    """A value recorded into an instrument."""
    instrument: Instrument
    value: Number
    labels: Dict[str, str] = field(default_factory=dict)
    timestamp: float = field(default_factory=time.time)


@dataclass(frozen=True)
class Observation:
    """A labelled value returned by an observer callback."""
    value: Number
    labels: Dict[str, str] = field(default_factory=dict)


ObservedValue = Union[Number, Observation, Iterable[Observation]]
ObserverCallback = Callable[[], Mapping[Instrument, ObservedValue]]


class ObserverRegistration:
    """Handle for a registered observer callback."""

    def __init__(self, registry: "InstrumentRegistry", instruments: frozenset,
                 callback: ObserverCallback):
        self.registry = registry
        self.instruments = instruments
        self.callback = callback

    def unregister(self) -> None:
        """Release the instruments so another callback may observe them."""
        self.registry._unregister_observer(self)


def _validate_value(value) -> None:
    if isinstance(value, bool) or not isinstance(value, Real):
        raise InvalidMeasurementError(f"Measurement value must be a number, got {type(value).__name__}")
    if not math.isfinite(value):
        raise InvalidMeasurementError(f"Measurement value must be finite, got {value}")


def _validate_labels(labels: Optional[Mapping[str, str]]) -> Dict[str, str]:
    if not labels:
        return {}
    for key, value in labels.items():
        if not isinstance(key, str) or not isinstance(value, str):
            raise InvalidMeasurementError(
                "Labels must map strings to strings",
                {"key": repr(key), "value": repr(value)}
            )
    return dict(labels)


class InstrumentRegistry:
    """
    Registry for managing instruments.

    Thread-safe registry that owns every instrument for its lifetime,
    forwards synchronous measurements to the exporter and runs observer
    callbacks when the collector asks for them.
    """

    def __init__(self, exporter=None):
        """
        Initialize instrument registry.

        Args:
            exporter: Exporter receiving measurements (``MetricsExporter``)
        """
        self.exporter = exporter
        self._instruments: Dict[str, Instrument] = {}
        self._observers: Dict[Instrument, ObserverRegistration] = {}
        self._registrations: List[ObserverRegistration] = []
        self._lock = threading.RLock()
        self._dropped = 0

    @property
    def dropped(self) -> int:
        """Number of measurements the exporter failed to accept."""
        return self._dropped

    def register(self, name: str, kind: InstrumentKind, unit: str = "",
                 description: str = "") -> Instrument:
        """
        Register a new instrument.

        Args:
            name: Unique instrument name
            kind: Instrument kind
            unit: Unit of measure
            description: Human readable description

        Returns:
            Instrument handle

        Raises:
            DuplicateNameError: If the name is already registered
            InstrumentError: If the name or kind is invalid
        """
        if not isinstance(kind, InstrumentKind):
            raise InstrumentError(f"Unknown instrument kind: {kind!r}")
        if not isinstance(name, str) or not _NAME_PATTERN.match(name):
            raise InstrumentError(f"Invalid instrument name: {name!r}")

        with self._lock:
            if name in self._instruments:
                raise DuplicateNameError(name, {"kind": self._instruments[name].kind.value})

            instrument = Instrument(self, name, kind, unit, description)
            self._instruments[name] = instrument
            logger.debug(f"Registered {kind.value} instrument {name}")
            return instrument

    def counter(self, name: str, unit: str = "", description: str = "") -> Instrument:
        """Register a monotonic counter."""
        return self.register(name, InstrumentKind.COUNTER, unit, description)

    def up_down_counter(self, name: str, unit: str = "", description: str = "") -> Instrument:
        """Register a bidirectional counter."""
        return self.register(name, InstrumentKind.UP_DOWN_COUNTER, unit, description)

    def histogram(self, name: str, unit: str = "", description: str = "") -> Instrument:
        """Register a histogram."""
        return self.register(name, InstrumentKind.HISTOGRAM, unit, description)

    def gauge(self, name: str, unit: str = "", description: str = "") -> Instrument:
        """Register a synchronous gauge."""
        return self.register(name, InstrumentKind.GAUGE, unit, description)

    def observable_counter(self, name: str, unit: str = "", description: str = "") -> Instrument:
        """Register an observable monotonic counter."""
        return self.register(name, InstrumentKind.OBSERVABLE_COUNTER, unit, description)

    def observable_up_down_counter(self, name: str, unit: str = "", description: str = "") -> Instrument:
        """Register an observable bidirectional counter."""
        return self.register(name, InstrumentKind.OBSERVABLE_UP_DOWN_COUNTER, unit, description)

    def observable_gauge(self, name: str, unit: str = "", description: str = "") -> Instrument:
        """Register an observable gauge."""
        return self.register(name, InstrumentKind.OBSERVABLE_GAUGE, unit, description)

    def get_instrument(self, name: str) -> Optional[Instrument]:
        """Get instrument by name."""
        with self._lock:
            return self._instruments.get(name)

    def list_instruments(self) -> List[str]:
        """Get list of instrument names."""
        with self._lock:
            return list(self._instruments.keys())

    def emit(self, instrument: Instrument, value: Number,
             labels: Optional[Mapping[str, str]] = None) -> None:
        """
        Record a value into a synchronous instrument.

        The measurement is forwarded to the exporter immediately. Exporter
        failures are logged and counted, never raised.

        Raises:
            InvalidMeasurementError: If the instrument, value or labels are invalid
        """
        if not isinstance(instrument, Instrument) or instrument.registry is not self:
            raise InvalidMeasurementError(f"Instrument {instrument!r} is not registered here")
        if not instrument.kind.is_synchronous:
            raise InvalidMeasurementError(
                f"Cannot emit into asynchronous instrument {instrument.name}; register an observer"
            )
        _validate_value(value)
        if instrument.kind.is_monotonic and value < 0:
            raise InvalidMeasurementError(
                f"Counter {instrument.name} only accepts non-negative values, got {value}"
            )

        measurement = Measurement(instrument, value, _validate_labels(labels))
        self._forward([measurement])

    def register_observer(self, instruments: Iterable[Instrument],
                          callback: ObserverCallback) -> ObserverRegistration:
        """
        Associate a callback with one or more asynchronous instruments.

        The callback is invoked by the collector at its own cadence and must
        only read shared state.

        Raises:
            ValueError: If no instruments are given
            InstrumentError: If an instrument is synchronous or foreign
            CallbackAlreadyRegisteredError: If an instrument is already observed
        """
        targets = frozenset(instruments)
        if not targets:
            raise ValueError("At least one instrument is required")
        if not callable(callback):
            raise InstrumentError("Observer callback must be callable")

        for instrument in targets:
            if not isinstance(instrument, Instrument) or instrument.registry is not self:
                raise InstrumentError(f"Instrument {instrument!r} is not registered here")
            if instrument.kind.is_synchronous:
                raise InstrumentError(
                    f"Instrument {instrument.name} is synchronous and cannot be observed"
                )

        with self._lock:
            for instrument in targets:
                if instrument in self._observers:
                    raise CallbackAlreadyRegisteredError(instrument.name)

            registration = ObserverRegistration(self, targets, callback)
            for instrument in targets:
                self._observers[instrument] = registration
            self._registrations.append(registration)
            return registration

    def _unregister_observer(self, registration: ObserverRegistration) -> None:
        with self._lock:
            if registration not in self._registrations:
                return
            self._registrations.remove(registration)
            for instrument in registration.instruments:
                if self._observers.get(instrument) is registration:
                    del self._observers[instrument]

    def collect_observations(self) -> List[Measurement]:
        """
        Invoke every observer callback.

        Returns:
            Measurements for all observed instruments
        """
        with self._lock:
            registrations = list(self._registrations)

        measurements: List[Measurement] = []
        for registration in registrations:
            try:
                observed = list((registration.callback() or {}).items())
            except Exception as e:
                logger.warning(f"Observer callback failed: {e}")
                continue

            for instrument, result in observed:
                if instrument not in registration.instruments:
                    logger.warning(f"Observer returned a value for unobserved instrument {instrument!r}")
                    continue
                measurements.extend(self._observations_to_measurements(instrument, result))

        return measurements

    def _observations_to_measurements(self, instrument: Instrument,
                                      result: ObservedValue) -> List[Measurement]:
        if isinstance(result, Observation):
            observations = [result]
        elif isinstance(result, Real) and not isinstance(result, bool):
            observations = [Observation(result)]
        elif isinstance(result, Iterable) and not isinstance(result, (str, bytes)):
            observations = list(result)
        else:
            logger.warning(f"Dropping unsupported observation {result!r} for {instrument.name}")
            return []

        measurements = []
        for observation in observations:
            if not isinstance(observation, Observation):
                logger.warning(f"Dropping unsupported observation {observation!r} for {instrument.name}")
                continue
            try:
                _validate_value(observation.value)
                labels = _validate_labels(observation.labels)
            except InvalidMeasurementError as e:
                logger.warning(f"Dropping observation for {instrument.name}: {e}")
                continue
            if instrument.kind.is_monotonic and observation.value < 0:
                logger.warning(f"Dropping negative observation {observation.value} for {instrument.name}")
                continue
            measurements.append(Measurement(instrument, observation.value, labels))
        return measurements

    def _forward(self, measurements: List[Measurement]) -> None:
        exporter = self.exporter
        if exporter is None:
            return
        try:
            exporter.export(measurements)
        except Exception as e:
            with self._lock:
                self._dropped += len(measurements)
            logger.warning(f"Dropped {len(measurements)} measurement(s): {e}")

    def get_stats(self) -> Dict[str, object]:
        """Get registry statistics."""
        with self._lock:
            kinds: Dict[str, int] = {}
            for instrument in self._instruments.values():
                kinds[instrument.kind.value] = kinds.get(instrument.kind.value, 0) + 1

            return {
                "total_instruments": len(self._instruments),
                "instrument_kinds": kinds,
                "observers": len(self._registrations),
                "dropped": self._dropped,
            }


__all__ = [
    "InstrumentKind",
    "Instrument",
    "Measurement",
    "Observation",
    "ObserverRegistration",
    "ObserverCallback",
    "InstrumentRegistry",
]
