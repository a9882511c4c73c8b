"""Derive :class:`ProcessMetrics` from diagram or document sources.

Extraction never raises: unparseable times become ``None`` and an
unexpected failure yields default metrics tagged with an error source.
"""

from __future__ import annotations

import logging
import re
from typing import List, Optional, Set, Tuple

from parsers.html_parser import load_tree, parse_document
from parsers.mermaid_parser import parse_mermaid_diagram
from parsers.utils import NODE_PROCESS, DiagramNode

from .models import SOURCE_DOCUMENT, SOURCE_WORKFLOW, ProcessMetrics, StepTime, create_default_metrics, step_sort_key
from .time_utils import UNKNOWN_TIME, WorkCalendar, parse_time_to_minutes

logger = logging.getLogger(__name__)

_NON_STEP_LABEL = re.compile(r"\b(?:start|end|begin|finish|title|decision)\b", re.IGNORECASE)
_NON_STEP_ID = re.compile(r"(?i:start|end|begin|finish)(?![a-z])")
_LABEL_STEP_NUMBER = re.compile(r"\b(?:submit\s+)?(?:step|activity|process)\s+(\d+)", re.IGNORECASE)
_ID_STEP_NUMBER = re.compile(r"(\d+)")
_TRAILING_PUNCTUATION = re.compile(r"[:;,.]+$")
_DOCUMENT_STEP_CELL = re.compile(r"^Step\s+(\d+)$", re.IGNORECASE)
_DOCUMENT_STEP_TEXT = re.compile(
    r"Step\s+(\d+)[:\s]*([^.]+?)(?:\s*(?:Estimated time|Time estimate|Time)[:\s]*(.+?))?(?=Step\s+\d+|$)",
    re.IGNORECASE,
)


def _is_step_node(node: DiagramNode) -> bool:
    """Rectangles with a declared label that is not a start, end, title or decision marker.

    Marker words match whole words only, so "Send invoice" and "Attend review"
    still count as steps. Ids match as a prefix, e.g. ``Start`` or ``end2``.
    """

    if node.kind != NODE_PROCESS:
        return False
    if node.label_span is None and not node.metadata.get("recovered"):
        return False
    if _NON_STEP_ID.match(node.node_id):
        return False
    return "?" not in node.raw_label and not _NON_STEP_LABEL.search(node.raw_label)


def _step_number(node: DiagramNode, fallback: int) -> str:
    match = _LABEL_STEP_NUMBER.search(node.raw_label) or _ID_STEP_NUMBER.search(node.node_id)
    return match.group(1) if match else str(fallback)


def _free_step_number(used: Set[str], start: int) -> str:
    candidate = start
    while str(candidate) in used:
        candidate += 1
    return str(candidate)


def _clean_name(text: str) -> str:
    return _TRAILING_PUNCTUATION.sub("", " ".join(text.split())).strip()


def _step_time(step: str, name: str, time_text: Optional[str], calendar: Optional[WorkCalendar]) -> StepTime:
    time_text = (time_text or "").strip() or UNKNOWN_TIME
    return StepTime(
        step=step,
        step_name=_clean_name(name),
        time=time_text,
        time_minutes=parse_time_to_minutes(time_text, calendar),
    )


def extract_metrics_from_workflow(code: Optional[str], calendar: Optional[WorkCalendar] = None) -> ProcessMetrics:
    """Count rectangular step nodes and total their ``(duration)`` suffixes."""

    if not code or not code.strip():
        return create_default_metrics("workflow-empty")
    try:
        model = parse_mermaid_diagram(code)
        steps: List[StepTime] = []
        used: Set[str] = set()
        for node in model.nodes.values():
            if not _is_step_node(node):
                continue
            number = _step_number(node, len(steps) + 1)
            if number in used:
                renumbered = _free_step_number(used, len(steps) + 1)
                logger.warning(
                    "Step number %s of node %s already used; numbering it %s", number, node.node_id, renumbered
                )
                number = renumbered
            used.add(number)
            steps.append(_step_time(number, node.label, node.time_estimate, calendar))
        steps.sort(key=step_sort_key)
        return ProcessMetrics.from_steps(steps, source=SOURCE_WORKFLOW, calendar=calendar)
    except Exception:
        logger.exception("Failed to extract workflow metrics")
        return create_default_metrics("workflow-error")


RawStep = Tuple[str, str, Optional[str]]


def _steps_from_tables(html: str) -> List[RawStep]:
    raw_steps: List[RawStep] = []
    for section in parse_document(html).sections:
        for row in section.rows:
            texts = [cell.plain_text for cell in row.cells]
            match = _DOCUMENT_STEP_CELL.match(texts[0]) if texts else None
            if not match:
                continue
            name = texts[1] if len(texts) > 1 else ""
            time_text = texts[2] if len(texts) > 2 else None
            raw_steps.append((match.group(1), name, time_text))
    return raw_steps


def _steps_from_text(html: str) -> List[RawStep]:
    text = " ".join(load_tree(html).get_text(" ").split())
    return [
        (match.group(1), match.group(2), match.group(3))
        for match in _DOCUMENT_STEP_TEXT.finditer(text)
    ]


def extract_metrics_from_document(html: Optional[str], calendar: Optional[WorkCalendar] = None) -> ProcessMetrics:
    """Read ``Step N | name | time`` table rows, falling back to a text scan."""

    if not html or not html.strip():
        return create_default_metrics("document-empty")
    try:
        raw_steps = _steps_from_tables(html) or _steps_from_text(html)
        steps = [_step_time(number, name, time_text, calendar) for number, name, time_text in raw_steps]
        steps.sort(key=step_sort_key)
        return ProcessMetrics.from_steps(steps, source=SOURCE_DOCUMENT, calendar=calendar)
    except Exception:
        logger.exception("Failed to extract document metrics")
        return create_default_metrics("extraction-error")
