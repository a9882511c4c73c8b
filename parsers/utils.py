"""Shared utilities and lightweight data models for the diagram parser."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

NODE_PROCESS = "process"
NODE_DECISION = "decision"
NODE_START_END = "startEnd"
NODE_KINDS = (NODE_PROCESS, NODE_DECISION, NODE_START_END)

_FENCED_MERMAID_PATTERN = re.compile(r"```mermaid\s*(.*?)\s*```", re.DOTALL)
_FENCED_ANY_PATTERN = re.compile(r"```[A-Za-z]*\s*(.*?)\s*```", re.DOTALL)
_TIME_SUFFIX_PATTERN = re.compile(r"\(([^()]+)\)\s*$")


@dataclass
class DiagramNode:
    node_id: str
    kind: str = NODE_PROCESS
    label: str = ""
    raw_label: str = ""
    time_estimate: Optional[str] = None
    source_line: Optional[int] = None
    groups: List[str] = field(default_factory=list)
    label_span: Optional[Tuple[int, int]] = None
    display_label: Optional[str] = None
    metadata: Dict[str, object] = field(default_factory=dict)

    @property
    def is_implicit(self) -> bool:
        return self.source_line is None

    def to_dict(self) -> Dict[str, object]:
        return {
            "id": self.node_id,
            "type": self.kind,
            "label": self.label,
            "fullLabel": self.raw_label,
            "displayLabel": self.display_label or self.label,
            "timeEstimate": self.time_estimate,
            "line": self.source_line,
            "subgraphs": list(self.groups),
            "isImplicit": self.is_implicit,
            "metadata": self.metadata,
        }


@dataclass
class DiagramConnection:
    from_id: str
    to_id: str
    label: str = ""
    source_line: int = -1
    label_form: Optional[str] = None
    link_span: Optional[Tuple[int, int]] = None
    label_span: Optional[Tuple[int, int]] = None
    from_text: str = ""
    to_text: str = ""

    def to_dict(self) -> Dict[str, object]:
        return {
            "from": self.from_id,
            "to": self.to_id,
            "label": self.label,
            "line": self.source_line,
            "labelForm": self.label_form,
        }


@dataclass
class DiagramGroup:
    title: str
    start_line: int
    end_line: int = -1
    nodes: List[str] = field(default_factory=list)
    depth: int = 0
    closed: bool = True

    def contains_line(self, index: int) -> bool:
        return self.start_line < index < self.end_line

    def to_dict(self) -> Dict[str, object]:
        return {
            "title": self.title,
            "startLine": self.start_line,
            "endLine": self.end_line,
            "nodes": list(self.nodes),
            "depth": self.depth,
            "closed": self.closed,
        }


@dataclass
class DiagramModel:
    lines: List[str] = field(default_factory=list)
    direction: Optional[str] = None
    nodes: Dict[str, DiagramNode] = field(default_factory=dict)
    connections: List[DiagramConnection] = field(default_factory=list)
    groups: List[DiagramGroup] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    unprocessed: List[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.nodes and not self.connections

    def get_node(self, node_id: str) -> Optional[DiagramNode]:
        return self.nodes.get(node_id)

    def find_connections(self, from_id: str, to_id: str) -> List[DiagramConnection]:
        return [conn for conn in self.connections if conn.from_id == from_id and conn.to_id == to_id]

    def connections_on_line(self, index: int) -> List[DiagramConnection]:
        return [conn for conn in self.connections if conn.source_line == index]

    def declaration_lines(self) -> List[int]:
        """Line indices holding a standalone node declaration, in source order."""

        return sorted(
            {
                node.source_line
                for node in self.nodes.values()
                if node.source_line is not None and not node.metadata.get("inline")
            }
        )

    def connection_lines(self) -> List[int]:
        return sorted({conn.source_line for conn in self.connections if conn.source_line >= 0})

    def to_dict(self) -> Dict[str, object]:
        result: Dict[str, object] = {
            "direction": self.direction,
            "nodes": {node_id: node.to_dict() for node_id, node in self.nodes.items()},
            "connections": [conn.to_dict() for conn in self.connections],
            "subgraphs": [group.to_dict() for group in self.groups],
        }
        if self.warnings:
            result["warnings"] = list(self.warnings)
        if self.unprocessed:
            result["unprocessed"] = list(self.unprocessed)
        return result


def split_time_suffix(raw_label: str) -> Tuple[str, Optional[str], Optional[int]]:
    """Split ``"Review (2 hours)"`` into label, estimate and suffix offset.

    The offset is where the parenthesised clause starts inside ``raw_label``;
    it is ``None`` when the label carries no trailing clause.
    """

    match = _TIME_SUFFIX_PATTERN.search(raw_label)
    if not match:
        return raw_label.strip(), None, None
    return raw_label[: match.start()].strip(), match.group(1).strip(), match.start()


def split_source_lines(code: Optional[str]) -> List[str]:
    """Split diagram text on ``\\n`` keeping every other byte of each line."""

    if not code:
        return []
    return code.split("\n")


def extract_mermaid_block(text: Optional[str]) -> str:
    """Return the diagram inside a fenced code block, or ``text`` stripped."""

    if not text:
        return ""
    match = _FENCED_MERMAID_PATTERN.search(text)
    if match:
        return match.group(1).strip()
    match = _FENCED_ANY_PATTERN.search(text)
    if match and re.match(r"(graph|flowchart)\b", match.group(1).strip(), re.IGNORECASE):
        return match.group(1).strip()
    return text.strip()
