"""Shared helpers for the Mermaid generators."""

from __future__ import annotations

import re
from typing import Optional

from parsers.utils import NODE_DECISION, NODE_START_END

DEFAULT_MERMAID_ORIENTATION = "TD"
VALID_ORIENTATIONS = ("TD", "TB", "LR", "RL", "BT")

_WHITESPACE_RUN = re.compile(r"\s+")


def orientation_to_mermaid(value: Optional[str]) -> str:
    key = (value or DEFAULT_MERMAID_ORIENTATION).upper()
    return key if key in VALID_ORIENTATIONS else DEFAULT_MERMAID_ORIENTATION


def escape_label(text: Optional[str]) -> str:
    """Make ``text`` safe inside a double-quoted Mermaid label."""

    return _WHITESPACE_RUN.sub(" ", (text or "").replace('"', "'")).strip()


def escape_edge_label(text: Optional[str]) -> str:
    """Like :func:`escape_label`; ``|`` becomes ``/`` since it delimits pipe labels."""

    return escape_label(text).replace("|", "/")


def compose_label(label: str, time_estimate: Optional[str] = None) -> str:
    label = escape_label(label)
    estimate = escape_label(time_estimate).strip("()").strip() if time_estimate else ""
    return f"{label} ({estimate})" if estimate else label


def shape_delimiters(kind: str) -> tuple:
    if kind == NODE_DECISION:
        return "{", "}"
    if kind == NODE_START_END:
        return "([", "])"
    return "[", "]"
