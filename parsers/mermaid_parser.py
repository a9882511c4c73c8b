"""Mermaid flowchart parser producing an addressable diagram model.

The parser is line oriented: a first pass records subgraph boundaries, a
second pass classifies every remaining line as a node declaration, an edge
statement (possibly chained, possibly declaring its endpoints inline) or a
bare node reference. Anything else is kept verbatim in ``unprocessed``.
Malformed input never raises; missing pieces become implicit nodes.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from .utils import (
    NODE_DECISION,
    NODE_PROCESS,
    NODE_START_END,
    DiagramConnection,
    DiagramGroup,
    DiagramModel,
    DiagramNode,
    split_source_lines,
    split_time_suffix,
)

logger = logging.getLogger(__name__)

CLOSER_KEYWORD = "end"
RESERVED_WORDS = {"end", "graph", "flowchart", "subgraph", "style", "class", "classdef", "click", "linkstyle", "direction"}

DIRECTIVE_PATTERN = re.compile(r"^(?P<keyword>graph|flowchart)(?:\s+(?P<direction>[A-Za-z]{2}))?\s*;?\s*$", re.IGNORECASE)
VALID_DIRECTIONS = ("TD", "TB", "LR", "RL", "BT")
_GROUP_OPEN_PATTERN = re.compile(r"^subgraph\b")
_GROUP_TITLE_PATTERN = re.compile(
    r'^subgraph\s+(?:[A-Za-z0-9_]+\s*\[\s*"?(?P<bracket>[^"\]]*)"?\s*\]|"(?P<quoted>[^"]*)"|(?P<bare>.+?))\s*$'
)
_COMMENT_LABEL_PATTERN = re.compile(r"^%%\s*(?P<id>[A-Za-z0-9_]+)\s*:\s*(?P<text>.+)$")

# Stadium must be tried before the rectangle: both open with a bracket.
_SHAPE_PATTERNS: Tuple[Tuple[str, "re.Pattern[str]"], ...] = (
    (NODE_START_END, re.compile(r'\s*\(\[\s*"(?P<label>[^"]+)"\s*\]\)')),
    (NODE_PROCESS, re.compile(r'\s*\[\s*"(?P<label>[^"]+)"\s*\]')),
    (NODE_DECISION, re.compile(r'\s*\{\s*"(?P<label>[^"]+)"\s*\}')),
)
_ENDPOINT_ID_PATTERN = re.compile(r"\s*(?P<id>[A-Za-z0-9_]+)")
_CLASS_SUFFIX_PATTERN = re.compile(r":::[A-Za-z0-9_-]+")
_LINK_PATTERN = re.compile(
    r"\s*(?:-+>\s*\|(?P<pipe>[^|]*)\|\s*|--\s+(?P<text>[^>|]+?)\s+-+>\s*|-+>\s*)"
)


@dataclass
class ShapeMatch:
    kind: str
    label: str
    label_start: int
    label_end: int
    end: int


@dataclass
class Endpoint:
    node_id: str
    start: int
    end: int
    shape: Optional[ShapeMatch] = None

    def text(self, line: str) -> str:
        return line[self.start : self.end]


@dataclass
class Statement:
    """One classified line: ``declaration``, ``edge`` or ``reference``."""

    kind: str
    endpoints: List[Endpoint] = field(default_factory=list)
    links: List["re.Match[str]"] = field(default_factory=list)


def directive_direction(directive: "re.Match[str]", default: str = "TD") -> str:
    direction = (directive.group("direction") or "").upper()
    return direction if direction in VALID_DIRECTIONS else default


def is_group_open(stripped: str) -> bool:
    return bool(_GROUP_OPEN_PATTERN.match(stripped))


def is_closer(stripped: str) -> bool:
    return stripped.rstrip(";").strip() == CLOSER_KEYWORD


def group_title(stripped: str) -> str:
    match = _GROUP_TITLE_PATTERN.match(stripped)
    if not match:
        return ""
    title = match.group("bracket") or match.group("quoted") or match.group("bare") or ""
    return title.strip().strip('"').strip()


def match_shape(text: str, pos: int) -> Optional[ShapeMatch]:
    for kind, pattern in _SHAPE_PATTERNS:
        match = pattern.match(text, pos)
        if match:
            return ShapeMatch(
                kind=kind,
                label=match.group("label"),
                label_start=match.start("label"),
                label_end=match.end("label"),
                end=match.end(),
            )
    return None


def match_endpoint(line: str, pos: int) -> Optional[Endpoint]:
    id_match = _ENDPOINT_ID_PATTERN.match(line, pos)
    if not id_match:
        return None
    end = id_match.end()
    shape = match_shape(line, end)
    if shape:
        end = shape.end
    suffix = _CLASS_SUFFIX_PATTERN.match(line, end)
    if suffix:
        end = suffix.end()
    return Endpoint(node_id=id_match.group("id"), start=id_match.start("id"), end=end, shape=shape)


def scan_statement(line: str) -> Optional[Statement]:
    """Classify one source line, returning ``None`` when it is not a statement."""

    first = match_endpoint(line, 0)
    if first is None:
        return None
    endpoints = [first]
    links: List[re.Match[str]] = []
    pos = first.end
    while True:
        link = _LINK_PATTERN.match(line, pos)
        if not link:
            break
        target = match_endpoint(line, link.end())
        if target is None:
            break
        links.append(link)
        endpoints.append(target)
        pos = target.end
    if links:
        return Statement(kind="edge", endpoints=endpoints, links=links)
    if line[first.end :].strip() not in ("", ";"):
        return None
    if first.shape is not None:
        return Statement(kind="declaration", endpoints=[first])
    return Statement(kind="reference", endpoints=[first])


def link_label(link: "re.Match[str]") -> Tuple[str, Optional[str], Optional[Tuple[int, int]]]:
    """Return ``(label, form, span)`` for a matched link token."""

    if link.group("pipe") is not None:
        label = link.group("pipe").strip().strip('"').strip()
        return label, "pipe", link.span("pipe")
    if link.group("text") is not None:
        return link.group("text").strip().strip('"').strip(), "text", link.span("text")
    return "", None, None


def find_declaration(code: str, node_id: str) -> Optional[Tuple[ShapeMatch, int]]:
    """Search the whole text for the first shape declaration of ``node_id``.

    Returns the shape and the line index it sits on. The earliest declaration
    in the text wins when the same id is declared more than once.
    """

    id_pattern = re.compile(r"(?<![A-Za-z0-9_])" + re.escape(node_id) + r"(?![A-Za-z0-9_])")
    for id_match in id_pattern.finditer(code):
        shape = match_shape(code, id_match.end())
        if shape is not None:
            return shape, code.count("\n", 0, id_match.start())
    return None


def _make_node(node_id: str, shape: ShapeMatch, source_line: Optional[int]) -> DiagramNode:
    label, time_estimate, _ = split_time_suffix(shape.label)
    return DiagramNode(
        node_id=node_id,
        kind=shape.kind,
        label=label,
        raw_label=shape.label,
        time_estimate=time_estimate,
        source_line=source_line,
        label_span=(shape.label_start, shape.label_end) if source_line is not None else None,
    )


def _declare(model: DiagramModel, endpoint: Endpoint, index: int, inline: bool) -> None:
    existing = model.nodes.get(endpoint.node_id)
    if existing is not None:
        if existing.source_line != index:
            model.warnings.append(
                f"duplicate_declaration:{endpoint.node_id}:line {index + 1} ignored"
            )
        return
    node = _make_node(endpoint.node_id, endpoint.shape, index)
    if inline:
        node.metadata["inline"] = True
    model.nodes[endpoint.node_id] = node


def _collect_groups(lines: List[str], warnings: List[str]) -> List[DiagramGroup]:
    groups: List[DiagramGroup] = []
    stack: List[DiagramGroup] = []
    for index, raw_line in enumerate(lines):
        stripped = raw_line.strip()
        if is_group_open(stripped):
            group = DiagramGroup(title=group_title(stripped), start_line=index, depth=len(stack))
            groups.append(group)
            stack.append(group)
        elif is_closer(stripped) and stack:
            stack.pop().end_line = index
    while stack:
        group = stack.pop()
        group.end_line = len(lines)
        group.closed = False
        warnings.append(f"unclosed_subgraph:{group.title or group.start_line + 1}")
    return groups


def _containing_groups(groups: List[DiagramGroup], index: int) -> List[DiagramGroup]:
    return sorted((group for group in groups if group.contains_line(index)), key=lambda g: g.start_line)


def _add_membership(node: DiagramNode, groups: List[DiagramGroup]) -> None:
    for group in groups:
        if node.node_id not in group.nodes:
            group.nodes.append(node.node_id)
        if group.title not in node.groups:
            node.groups.append(group.title)


def _resolve_implicit_nodes(code: str, model: DiagramModel) -> None:
    for conn in model.connections:
        for node_id in (conn.from_id, conn.to_id):
            if node_id in model.nodes:
                continue
            found = find_declaration(code, node_id)
            if found is not None:
                shape, line_index = found
                node = _make_node(node_id, shape, None)
                node.metadata["recovered"] = True
                node.metadata["recovered_from_line"] = line_index
                logger.debug("Recovered declaration of %s from line %d", node_id, line_index + 1)
            else:
                node = DiagramNode(node_id=node_id, kind=NODE_PROCESS, label=node_id, raw_label=node_id)
                node.metadata["placeholder"] = True
            model.nodes[node_id] = node


def _apply_comment_labels(lines: List[str], model: DiagramModel) -> None:
    for raw_line in lines:
        match = _COMMENT_LABEL_PATTERN.match(raw_line.strip())
        if not match:
            continue
        node = model.nodes.get(match.group("id"))
        if node is None:
            continue
        if node.metadata.get("placeholder") or node.label == node.node_id:
            description = match.group("text").strip()
            node.label = description
            node.raw_label = description
            node.metadata.pop("placeholder", None)
            node.metadata["from_comment"] = True


def parse_mermaid_diagram(code: Optional[str]) -> DiagramModel:
    """Parse Mermaid flowchart text into a :class:`DiagramModel`.

    Args:
        code: Diagram source; ``None`` or blank text yields an empty model.

    Returns:
        The model. Nodes referenced only by connections are synthesised as
        implicit nodes, recovered from any declaration found in the text or
        as placeholders labelled with their own id.
    """

    lines = split_source_lines(code)
    model = DiagramModel(lines=lines)
    if not code or not code.strip():
        logger.debug("Empty diagram source; returning an empty model")
        return model

    model.groups = _collect_groups(lines, model.warnings)
    references: List[Tuple[str, int]] = []

    for index, raw_line in enumerate(lines):
        stripped = raw_line.strip()
        if not stripped or stripped.startswith("%%"):
            continue
        directive = DIRECTIVE_PATTERN.match(stripped)
        if directive:
            if model.direction is None:
                model.direction = directive_direction(directive)
            continue
        if is_group_open(stripped) or is_closer(stripped):
            continue

        statement = scan_statement(raw_line)
        if statement is None:
            model.unprocessed.append(stripped)
            continue
        if statement.kind == "declaration":
            _declare(model, statement.endpoints[0], index, inline=False)
            continue
        if statement.kind == "reference":
            references.append((statement.endpoints[0].node_id, index))
            continue

        for endpoint in statement.endpoints:
            if endpoint.shape is not None:
                _declare(model, endpoint, index, inline=True)
        for position, link in enumerate(statement.links):
            source = statement.endpoints[position]
            target = statement.endpoints[position + 1]
            label, form, span = link_label(link)
            model.connections.append(
                DiagramConnection(
                    from_id=source.node_id,
                    to_id=target.node_id,
                    label=label,
                    source_line=index,
                    label_form=form,
                    link_span=link.span(),
                    label_span=span,
                    from_text=source.text(raw_line),
                    to_text=target.text(raw_line),
                )
            )

    endpoint_ids = {conn.from_id for conn in model.connections} | {conn.to_id for conn in model.connections}
    for node_id, index in references:
        if node_id in model.nodes or node_id in endpoint_ids:
            continue
        node = DiagramNode(node_id=node_id, label=node_id, raw_label=node_id, source_line=index)
        node.metadata["bare"] = True
        model.nodes[node_id] = node

    _resolve_implicit_nodes(code, model)
    _apply_comment_labels(lines, model)

    for node in model.nodes.values():
        if node.source_line is not None:
            _add_membership(node, _containing_groups(model.groups, node.source_line))
    for node_id, index in references:
        node = model.nodes.get(node_id)
        if node is not None and node.source_line != index:
            _add_membership(node, _containing_groups(model.groups, index))

    for node in model.nodes.values():
        if node.label == node.node_id and len(node.groups) == 1:
            node.display_label = f"{node.groups[0]} Node {node.node_id}"
            node.metadata["inferred_from_group"] = True

    logger.debug(
        "Parsed diagram: %d nodes, %d connections, %d subgraphs",
        len(model.nodes),
        len(model.connections),
        len(model.groups),
    )
    return model


def list_workflow_nodes(code: Optional[str]) -> List[Dict[str, object]]:
    """Return the nodes of a diagram in the shape UI pickers consume."""

    model = parse_mermaid_diagram(code)
    return [
        {
            "id": node.node_id,
            "label": node.label,
            "fullLabel": node.raw_label,
            "type": node.kind,
            "timeEstimate": node.time_estimate,
        }
        for node in model.nodes.values()
    ]
