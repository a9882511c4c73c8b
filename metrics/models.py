"""Data models for derived process metrics."""

from __future__ import annotations

import math
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Union

from .time_utils import UNKNOWN_TIME, WorkCalendar, format_minutes_to_time

Number = Union[int, float]

SOURCE_WORKFLOW = "workflow"
SOURCE_DOCUMENT = "document"
SOURCE_MERGED = "merged"
SOURCE_OPTIMIZED = "optimized"


def current_timestamp() -> int:
    """Milliseconds since the epoch."""

    return int(time.time() * 1000)


def step_sort_key(step: "StepTime") -> float:
    """Numeric step order; steps without a number sort last."""

    text = str(step.step).strip()
    return float(int(text)) if text.isdigit() else math.inf


@dataclass
class StepTime:
    step: str
    step_name: str = ""
    time: str = UNKNOWN_TIME
    time_minutes: Optional[Number] = None
    source: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "step": self.step,
            "stepName": self.step_name,
            "time": self.time,
            "timeMinutes": self.time_minutes,
        }
        if self.source:
            result["source"] = self.source
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StepTime":
        return cls(
            step=str(data.get("step", "")),
            step_name=data.get("stepName") or "",
            time=data.get("time") or UNKNOWN_TIME,
            time_minutes=data.get("timeMinutes"),
            source=data.get("source"),
        )


@dataclass
class ProcessMetrics:
    """Step count and time totals derived from a diagram or a document.

    ``total_time_minutes`` is the sum of the known ``step_times`` minutes and
    ``total_time`` is that sum formatted, unless an upstream string overrides it.
    """

    total_steps: int = 0
    total_time: str = UNKNOWN_TIME
    total_time_minutes: Number = 0
    step_times: List[StepTime] = field(default_factory=list)
    source: str = "unknown"
    timestamp: int = field(default_factory=current_timestamp)

    @classmethod
    def from_steps(
        cls,
        step_times: Sequence[StepTime],
        source: str,
        total_steps: Optional[int] = None,
        total_time: Optional[str] = None,
        calendar: Optional[WorkCalendar] = None,
    ) -> "ProcessMetrics":
        known = [step.time_minutes for step in step_times if step.time_minutes is not None]
        total_minutes = sum(known)
        if total_time is None:
            total_time = format_minutes_to_time(total_minutes, calendar) if known else UNKNOWN_TIME
        return cls(
            total_steps=len(step_times) if total_steps is None else total_steps,
            total_time=total_time,
            total_time_minutes=total_minutes,
            step_times=list(step_times),
            source=source,
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProcessMetrics":
        return cls(
            total_steps=int(data.get("totalSteps") or 0),
            total_time=data.get("totalTime") or UNKNOWN_TIME,
            total_time_minutes=data.get("totalTimeMinutes") or 0,
            step_times=[StepTime.from_dict(step) for step in data.get("stepTimes") or []],
            source=data.get("source") or "unknown",
            timestamp=data.get("timestamp") or current_timestamp(),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalSteps": self.total_steps,
            "totalTime": self.total_time,
            "totalTimeMinutes": self.total_time_minutes,
            "stepTimes": [step.to_dict() for step in self.step_times],
            "source": self.source,
            "timestamp": self.timestamp,
        }


@dataclass
class TimeSavings:
    minutes: Number = 0
    percentage: float = 0.0
    formatted: str = UNKNOWN_TIME
    percentage_formatted: str = "0%"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "minutes": self.minutes,
            "percentage": self.percentage,
            "formatted": self.formatted,
            "percentageFormatted": self.percentage_formatted,
        }


def create_default_metrics(source: str = "default") -> ProcessMetrics:
    return ProcessMetrics(source=source)
