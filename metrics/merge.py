"""Combine workflow and document metrics and compare metric pairs."""

from __future__ import annotations

import logging
import math
from dataclasses import replace
from typing import Dict, Optional

from .models import (
    SOURCE_DOCUMENT,
    SOURCE_MERGED,
    SOURCE_WORKFLOW,
    ProcessMetrics,
    StepTime,
    TimeSavings,
    create_default_metrics,
    step_sort_key,
)
from .time_utils import WorkCalendar, format_minutes_to_time, parse_time_to_minutes

logger = logging.getLogger(__name__)


def merge_metrics(
    workflow: Optional[ProcessMetrics],
    document: Optional[ProcessMetrics],
    calendar: Optional[WorkCalendar] = None,
) -> ProcessMetrics:
    """Merge per step: document entries win, workflow entries fill the gaps.

    ``total_steps`` is the larger of the two counts; the total time is always
    recomputed from the merged steps.
    """

    workflow = workflow or create_default_metrics(SOURCE_WORKFLOW)
    document = document or create_default_metrics(SOURCE_DOCUMENT)

    by_step: Dict[str, StepTime] = {}
    for step in document.step_times:
        by_step[step.step] = replace(step, source=SOURCE_DOCUMENT)
    for step in workflow.step_times:
        if step.step not in by_step:
            by_step[step.step] = replace(step, source=SOURCE_WORKFLOW)

    steps = sorted(by_step.values(), key=step_sort_key)
    merged = ProcessMetrics.from_steps(
        steps,
        source=SOURCE_MERGED,
        total_steps=max(workflow.total_steps or 0, document.total_steps or 0),
        calendar=calendar,
    )
    logger.debug(
        "Merged %d document and %d workflow steps into %d",
        len(document.step_times),
        len(workflow.step_times),
        len(steps),
    )
    return merged


def _total_minutes(metrics: ProcessMetrics, calendar: Optional[WorkCalendar]) -> float:
    if metrics.total_time_minutes:
        return metrics.total_time_minutes
    return parse_time_to_minutes(metrics.total_time, calendar) or 0


def calculate_time_savings(
    original: Optional[ProcessMetrics],
    optimized: Optional[ProcessMetrics],
    calendar: Optional[WorkCalendar] = None,
) -> TimeSavings:
    if original is None or optimized is None:
        return TimeSavings()

    original_minutes = _total_minutes(original, calendar)
    optimized_minutes = _total_minutes(optimized, calendar)
    saved = max(0, original_minutes - optimized_minutes)
    percentage = saved / original_minutes * 100 if original_minutes > 0 else 0.0
    return TimeSavings(
        minutes=saved,
        percentage=percentage,
        formatted=format_minutes_to_time(saved, calendar),
        percentage_formatted=f"{int(math.floor(percentage + 0.5))}%",
    )
