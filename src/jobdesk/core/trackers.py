"""
Reference statistic tracker.

Real deployments plug in their own tracker types; this one keeps a count,
total and range so the store codec, compare and export flows have a
serializable tracker to work with.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any


@dataclass
class ValueSummaryTracker:
    """Tracks count/total/min/max of a numeric statistic for one client thread."""

    type_name = "value_summary"

    display_name: str
    client_id: str = ""
    thread_id: str = ""
    count: int = 0
    total: float = 0.0
    minimum: float | None = None
    maximum: float | None = None

    def record(self, value: float) -> None:
        self.count += 1
        self.total += value
        self.minimum = value if self.minimum is None else min(self.minimum, value)
        self.maximum = value if self.maximum is None else max(self.maximum, value)

    def new_instance(self) -> ValueSummaryTracker:
        return ValueSummaryTracker(display_name=self.display_name)

    @property
    def average(self) -> float:
        return self.total / self.count if self.count else 0.0

    def aggregate(self, trackers: Sequence[Any]) -> None:
        for tracker in trackers:
            self.count += tracker.count
            self.total += tracker.total
            if tracker.minimum is not None:
                self.minimum = tracker.minimum if self.minimum is None else min(self.minimum, tracker.minimum)
            if tracker.maximum is not None:
                self.maximum = tracker.maximum if self.maximum is None else max(self.maximum, tracker.maximum)

    def summary_labels(self) -> list[str]:
        return ["Count", "Average", "Minimum", "Maximum"]

    def summary_data(self) -> list[str]:
        def fmt(value: float | None) -> str:
            return "" if value is None else f"{value:.3f}"

        return [str(self.count), fmt(self.average), fmt(self.minimum), fmt(self.maximum)]

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type_name,
            "display_name": self.display_name,
            "client_id": self.client_id,
            "thread_id": self.thread_id,
            "count": self.count,
            "total": self.total,
            "minimum": self.minimum,
            "maximum": self.maximum,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ValueSummaryTracker:
        return cls(
            display_name=data["display_name"],
            client_id=data.get("client_id", ""),
            thread_id=data.get("thread_id", ""),
            count=int(data.get("count", 0)),
            total=float(data.get("total", 0.0)),
            minimum=data.get("minimum"),
            maximum=data.get("maximum"),
        )
