"""Process metrics: extraction, time normalisation and merging."""

from .extractor import extract_metrics_from_document, extract_metrics_from_workflow
from .merge import calculate_time_savings, merge_metrics
from .models import ProcessMetrics, StepTime, TimeSavings, create_default_metrics
from .time_utils import WorkCalendar, format_minutes_to_time, parse_time_to_minutes

__all__ = [
    "extract_metrics_from_workflow",
    "extract_metrics_from_document",
    "merge_metrics",
    "calculate_time_savings",
    "ProcessMetrics",
    "StepTime",
    "TimeSavings",
    "create_default_metrics",
    "WorkCalendar",
    "parse_time_to_minutes",
    "format_minutes_to_time",
]
