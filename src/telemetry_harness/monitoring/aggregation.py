"""
Aggregation of measurements by instrument kind.

Counters and up/down counters sum their deltas, gauges and observable
instruments keep the last value, histograms count values into explicit
buckets. Series are keyed by instrument name and label set.
"""

import threading
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .metrics import InstrumentKind, Measurement


DEFAULT_BUCKETS = [
    0.0, 5.0, 10.0, 25.0, 50.0, 75.0, 100.0, 250.0, 500.0, 750.0,
    1000.0, 2500.0, 5000.0, 7500.0, 10000.0, float("inf"),
]

LabelKey = Tuple[Tuple[str, str], ...]


def labels_to_key(labels: Optional[Dict[str, str]]) -> LabelKey:
    """Convert labels dict to a hashable, order-independent key."""
    return tuple(sorted((labels or {}).items()))


class Aggregation(ABC):
    """Running state of one series."""

    @abstractmethod
    def update(self, value: float) -> None:
        pass

    @abstractmethod
    def get_value(self) -> Any:
        pass


class SumAggregation(Aggregation):
    """Sum of deltas."""

    def __init__(self):
        self.total = 0

    def update(self, value: float) -> None:
        self.total += value

    def get_value(self) -> float:
        return self.total


class LastValueAggregation(Aggregation):
    """Most recent value."""

    def __init__(self):
        self.value = None

    def update(self, value: float) -> None:
        self.value = value

    def get_value(self) -> Optional[float]:
        return self.value


class HistogramAggregation(Aggregation):
    """Explicit-bucket histogram with sum, count, min and max."""

    def __init__(self, buckets: Optional[List[float]] = None):
        self.buckets = list(buckets or DEFAULT_BUCKETS)
        self.bucket_counts = [0] * len(self.buckets)
        self.sum = 0.0
        self.count = 0
        self.min: Optional[float] = None
        self.max: Optional[float] = None

    def update(self, value: float) -> None:
        for i, bound in enumerate(self.buckets):
            if value <= bound:
                self.bucket_counts[i] += 1
                break

        self.sum += value
        self.count += 1
        self.min = value if self.min is None else min(self.min, value)
        self.max = value if self.max is None else max(self.max, value)

    def get_value(self) -> Dict[str, Any]:
        return {
            "buckets": dict(zip(self.buckets, self.bucket_counts)),
            "sum": self.sum,
            "count": self.count,
            "min": self.min,
            "max": self.max,
            "average": self.sum / max(self.count, 1),
        }


def aggregation_for(kind: InstrumentKind, buckets: Optional[List[float]] = None) -> Aggregation:
    """Create the aggregation matching an instrument kind."""
    if kind in (InstrumentKind.COUNTER, InstrumentKind.UP_DOWN_COUNTER):
        return SumAggregation()
    if kind is InstrumentKind.HISTOGRAM:
        return HistogramAggregation(buckets)
    return LastValueAggregation()


class Aggregator:
    """
    Thread-safe fold of measurements into per-series aggregations.

    The number of distinct series is bounded; measurements that would open
    a new series beyond ``max_series`` are dropped and counted.
    """

    def __init__(self, max_series: Optional[int] = None, buckets: Optional[List[float]] = None):
        self.max_series = max_series
        self.buckets = buckets
        self._series: Dict[Tuple[str, LabelKey], Aggregation] = {}
        self._labels: Dict[Tuple[str, LabelKey], Dict[str, str]] = {}
        self._instruments: Dict[str, Any] = {}
        self._lock = threading.Lock()
        self.dropped = 0

    def add(self, measurements: Iterable[Measurement]) -> None:
        """Fold measurements into their series."""
        with self._lock:
            for m in measurements:
                key = (m.instrument.name, labels_to_key(m.labels))
                aggregation = self._series.get(key)
                if aggregation is None:
                    if self.max_series is not None and len(self._series) >= self.max_series:
                        self.dropped += 1
                        continue
                    aggregation = aggregation_for(m.instrument.kind, self.buckets)
                    self._series[key] = aggregation
                    self._labels[key] = dict(m.labels)
                    self._instruments[m.instrument.name] = m.instrument
                aggregation.update(m.value)

    def get_value(self, name: str, labels: Optional[Dict[str, str]] = None) -> Any:
        """Get the aggregated value of one series, or None if absent."""
        with self._lock:
            aggregation = self._series.get((name, labels_to_key(labels)))
            return aggregation.get_value() if aggregation else None

    def series_count(self) -> int:
        with self._lock:
            return len(self._series)

    def reset(self) -> List[Dict[str, Any]]:
        """Return all data points and start a new collection window."""
        with self._lock:
            points = self._points()
            self._series.clear()
            self._labels.clear()
            self._instruments.clear()
            return points

    def _points(self) -> List[Dict[str, Any]]:
        result = []
        for key, aggregation in self._series.items():
            name = key[0]
            instrument = self._instruments[name]
            value = aggregation.get_value()
            if isinstance(aggregation, HistogramAggregation):
                value["buckets"] = [
                    {"le": "+Inf" if bound == float("inf") else bound, "count": count}
                    for bound, count in zip(aggregation.buckets, aggregation.bucket_counts)
                ]
            result.append({
                "name": name,
                "kind": instrument.kind.value,
                "unit": instrument.unit,
                "description": instrument.description,
                "labels": dict(self._labels[key]),
                "value": value,
            })
        return result


__all__ = [
    "DEFAULT_BUCKETS",
    "Aggregation",
    "SumAggregation",
    "LastValueAggregation",
    "HistogramAggregation",
    "Aggregator",
    "aggregation_for",
    "labels_to_key",
]
