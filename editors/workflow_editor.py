"""Localized edits on Mermaid flowchart text.

Every operation re-parses the source, checks its preconditions, rewrites only
the lines it has to, and returns the whole text passed through
:func:`validate_mermaid_syntax`. Failed preconditions raise a
:class:`DiagramEditError` before anything is changed.
"""

from __future__ import annotations

import logging
import re
import string
from typing import Callable, List, Optional, Set, Tuple

from generators.to_mermaid import render_connection, render_node_declaration
from generators.utils import escape_edge_label, escape_label
from parsers.mermaid_parser import (
    CLOSER_KEYWORD,
    DIRECTIVE_PATTERN,
    RESERVED_WORDS,
    Statement,
    is_closer,
    is_group_open,
    parse_mermaid_diagram,
    scan_statement,
)
from parsers.utils import NODE_KINDS, NODE_PROCESS, DiagramConnection, DiagramModel, DiagramNode, split_time_suffix

from .errors import (
    ConnectionNotFoundError,
    DiagramEditError,
    DuplicateNodeError,
    InvalidNodeIdError,
    NodeCountError,
    NodeNotFoundError,
)
from .syntax_validator import rename_reserved_identifiers, validate_mermaid_syntax

logger = logging.getLogger(__name__)

MIN_NODE_COUNT = 2
DEFAULT_INDENT = "    "

_NODE_ID_PATTERN = re.compile(r"^[A-Za-z0-9_]+$")
_COMMENT_LABEL_PATTERN = re.compile(r"^%%\s*([A-Za-z0-9_]+)\s*:")


def _indent_of(line: str) -> str:
    return line[: len(line) - len(line.lstrip())]


def _finish(lines: List[str]) -> str:
    return validate_mermaid_syntax("\n".join(lines))


def _require_node(model: DiagramModel, node_id: str) -> DiagramNode:
    node = model.get_node(node_id)
    if node is None:
        raise NodeNotFoundError(node_id)
    return node


def _statement_at(line: str) -> Optional[Statement]:
    stripped = line.strip()
    if not stripped or stripped.startswith("%%"):
        return None
    if DIRECTIVE_PATTERN.match(stripped) or is_group_open(stripped) or is_closer(stripped):
        return None
    return scan_statement(line)


def _reference_line(model: DiagramModel, node_id: str) -> Optional[int]:
    """First line naming ``node_id`` on its own, e.g. a bare id inside a subgraph."""

    for index, line in enumerate(model.lines):
        statement = _statement_at(line)
        if statement is not None and statement.kind == "reference" and statement.endpoints[0].node_id == node_id:
            return index
    return None


def _insertion_point(model: DiagramModel) -> Tuple[int, str]:
    """Where a new declaration goes: after the last declaration, else before the first edge."""

    lines = model.lines
    declarations = model.declaration_lines()
    if declarations:
        last = declarations[-1]
        return last + 1, _indent_of(lines[last])
    connections = model.connection_lines()
    if connections:
        first = connections[0]
        return first, _indent_of(lines[first])
    for index, line in enumerate(lines):
        if DIRECTIVE_PATTERN.match(line.strip()):
            return index + 1, DEFAULT_INDENT
    return 0, DEFAULT_INDENT if lines else ""


def _replace_span(line: str, span: Tuple[int, int], text: str) -> str:
    start, end = span
    return line[:start] + text + line[end:]


def _rewrite_label(
    model: DiagramModel,
    node: DiagramNode,
    label: str,
    time_estimate: Optional[str],
) -> List[str]:
    """Write ``label``/``time_estimate`` into the node's declaration, materialising it if needed."""

    lines = list(model.lines)
    declaration = render_node_declaration(node.node_id, label, node.kind, time_estimate)
    target = node.source_line if node.source_line is not None else _reference_line(model, node.node_id)
    if target is None:
        index, indent = _insertion_point(model)
        lines.insert(index, f"{indent}{declaration}")
        logger.debug("Materialised implicit node %s at line %d", node.node_id, index + 1)
    elif node.label_span is None:
        line = lines[target]
        lines[target] = f"{_indent_of(line)}{declaration}{';' if line.rstrip().endswith(';') else ''}"
    return lines


def update_node_time_estimate(code: str, node_id: str, time_estimate: Optional[str]) -> str:
    """Replace (or add, or with an empty estimate drop) a node's ``(duration)`` suffix."""

    model = parse_mermaid_diagram(code)
    node = _require_node(model, node_id)
    estimate = escape_label(time_estimate).strip("()").strip() if time_estimate else ""

    if node.label_span is None:
        return _finish(_rewrite_label(model, node, node.label, estimate))

    lines = list(model.lines)
    line = lines[node.source_line]
    raw_label = line[node.label_span[0] : node.label_span[1]]
    _, _, offset = split_time_suffix(raw_label)
    base = (raw_label[:offset] if offset is not None else raw_label).rstrip()
    if estimate:
        new_label = f"{base} ({estimate})" if base else f"({estimate})"
    else:
        new_label = base or node_id
    lines[node.source_line] = _replace_span(line, node.label_span, new_label)
    return _finish(lines)


def update_node_label(code: str, node_id: str, label: str) -> str:
    """Replace a node's label text, keeping any time-estimate suffix untouched."""

    model = parse_mermaid_diagram(code)
    node = _require_node(model, node_id)
    label = escape_label(label) or node_id

    if node.label_span is None:
        return _finish(_rewrite_label(model, node, label, node.time_estimate))

    lines = list(model.lines)
    line = lines[node.source_line]
    raw_label = line[node.label_span[0] : node.label_span[1]]
    _, _, offset = split_time_suffix(raw_label)
    if offset is None:
        new_label = label
    else:
        new_label = label + raw_label[len(raw_label[:offset].rstrip()) :]
    lines[node.source_line] = _replace_span(line, node.label_span, new_label)
    return _finish(lines)


def update_connection_label(code: str, from_id: str, to_id: str, label: Optional[str]) -> str:
    """Set the label on every edge ``from_id --> to_id``; an empty label makes it bare."""

    model = parse_mermaid_diagram(code)
    connections = model.find_connections(from_id, to_id)
    if not connections:
        raise ConnectionNotFoundError(from_id, to_id)

    label = escape_edge_label(label)
    link = f' -->|"{label}"| ' if label else " --> "
    lines = list(model.lines)
    ordered = sorted(connections, key=lambda conn: (conn.source_line, conn.link_span[0]), reverse=True)
    for conn in ordered:
        line = lines[conn.source_line]
        if label and conn.label_form == "pipe":
            lines[conn.source_line] = _replace_span(line, conn.label_span, f'"{label}"')
        else:
            lines[conn.source_line] = _replace_span(line, conn.link_span, link)
    return _finish(lines)


def next_node_id(model: DiagramModel) -> str:
    """First unused capital letter, then ``N1``, ``N2`` and so on."""

    for letter in string.ascii_uppercase:
        if letter not in model.nodes:
            return letter
    counter = 1
    while f"N{counter}" in model.nodes:
        counter += 1
    return f"N{counter}"


def _resolve_new_id(model: DiagramModel, node_id: Optional[str]) -> str:
    if not node_id:
        return next_node_id(model)
    if not _NODE_ID_PATTERN.match(node_id):
        raise InvalidNodeIdError(node_id)
    if node_id.lower() in RESERVED_WORDS:
        base = f"{node_id}Node"
        candidate = base
        counter = 2
        while candidate in model.nodes:
            candidate = f"{base}{counter}"
            counter += 1
        logger.info("Node id %s is reserved; using %s", node_id, candidate)
        return candidate
    if node_id in model.nodes:
        raise DuplicateNodeError(node_id)
    return node_id


def add_node(
    code: str,
    label: str,
    kind: str = NODE_PROCESS,
    node_id: Optional[str] = None,
    time_estimate: Optional[str] = None,
    connect_from: Optional[str] = None,
    connect_to: Optional[str] = None,
    connection_label: Optional[str] = None,
) -> str:
    """Declare a new node and optionally wire it in.

    The declaration goes after the last existing declaration; the requested
    edges (``connect_from --> new`` and ``new --> connect_to``) follow it
    directly. ``connection_label`` labels the incoming edge, or the outgoing
    one when there is no incoming edge.
    """

    if kind not in NODE_KINDS:
        raise DiagramEditError(f"Unsupported node kind: {kind}")
    model = parse_mermaid_diagram(code)
    new_id = _resolve_new_id(model, node_id)
    for endpoint in (connect_from, connect_to):
        if endpoint:
            _require_node(model, endpoint)

    index, indent = _insertion_point(model)
    new_lines = [f"{indent}{render_node_declaration(new_id, escape_label(label) or new_id, kind, time_estimate)}"]
    if connect_from:
        new_lines.append(f"{indent}{render_connection(connect_from, new_id, connection_label)}")
    if connect_to:
        outgoing_label = None if connect_from else connection_label
        new_lines.append(f"{indent}{render_connection(new_id, connect_to, outgoing_label)}")

    lines = list(model.lines)
    lines[index:index] = new_lines
    logger.debug("Added node %s at line %d", new_id, index + 1)
    return _finish(lines)


def _survives_elsewhere(model: DiagramModel, node_id: str, dropped: Callable[[DiagramConnection], bool]) -> bool:
    node = model.get_node(node_id)
    if node is not None and node.source_line is not None and not node.metadata.get("inline"):
        return True
    return any(
        node_id in (conn.from_id, conn.to_id) and not dropped(conn) for conn in model.connections
    )


def _rebuild_edge_line(
    model: DiagramModel,
    index: int,
    dropped: Callable[[DiagramConnection], bool],
    removed_ids: Set[str],
) -> List[str]:
    """Rewrite one edge line without the dropped links.

    Kept runs of a chain stay verbatim; endpoints left without a link keep
    their inline declaration (or a bare reference when nothing else would
    keep the node alive).
    """

    line = model.lines[index]
    indent = _indent_of(line)
    statement = scan_statement(line)
    connections = model.connections_on_line(index)
    if statement is None or len(statement.endpoints) != len(connections) + 1:
        return []

    endpoints = statement.endpoints
    keep = [not dropped(conn) for conn in connections]
    runs: List[str] = []
    covered: Set[int] = set()
    position = 0
    while position < len(keep):
        if not keep[position]:
            position += 1
            continue
        last = position
        while last + 1 < len(keep) and keep[last + 1]:
            last += 1
        runs.append(indent + line[endpoints[position].start : endpoints[last + 1].end])
        covered.update(range(position, last + 2))
        position = last + 1

    emitted = {endpoints[pos].node_id for pos in covered} | set(removed_ids)
    orphans: List[str] = []
    for pos, endpoint in enumerate(endpoints):
        if pos in covered or endpoint.node_id in emitted:
            continue
        emitted.add(endpoint.node_id)
        node = model.get_node(endpoint.node_id)
        if endpoint.shape is not None and node is not None and node.source_line == index:
            orphans.append(indent + endpoint.text(line))
        elif not _survives_elsewhere(model, endpoint.node_id, dropped):
            orphans.append(indent + endpoint.node_id)
    return orphans + runs


def _apply_replacements(lines: List[str], replacements: dict) -> List[str]:
    result: List[str] = []
    for index, line in enumerate(lines):
        if index in replacements:
            result.extend(replacements[index])
        else:
            result.append(line)
    return result


def remove_node(code: str, node_id: str) -> str:
    """Delete a node's declarations, references and every edge touching it."""

    model = parse_mermaid_diagram(code)
    _require_node(model, node_id)
    if len(model.nodes) <= MIN_NODE_COUNT:
        raise NodeCountError(node_id, len(model.nodes), MIN_NODE_COUNT)

    def touches(conn: DiagramConnection) -> bool:
        return node_id in (conn.from_id, conn.to_id)

    replacements = {}
    for index in {conn.source_line for conn in model.connections if touches(conn)}:
        replacements[index] = _rebuild_edge_line(model, index, touches, {node_id})
    for index, line in enumerate(model.lines):
        if index in replacements:
            continue
        comment = _COMMENT_LABEL_PATTERN.match(line.strip())
        if comment and comment.group(1) == node_id:
            replacements[index] = []
            continue
        statement = _statement_at(line)
        if statement is not None and statement.kind != "edge" and statement.endpoints[0].node_id == node_id:
            replacements[index] = []

    lines = _apply_replacements(model.lines, replacements)
    if node_id == CLOSER_KEYWORD:
        lines = [rename_reserved_identifiers(line) for line in lines]
    logger.debug("Removed node %s (%d lines rewritten)", node_id, len(replacements))
    return _finish(lines)


def add_connection(code: str, from_id: str, to_id: str, label: Optional[str] = None) -> str:
    """Add ``from_id --> to_id`` after the last existing edge line."""

    model = parse_mermaid_diagram(code)
    _require_node(model, from_id)
    _require_node(model, to_id)

    connection_lines = model.connection_lines()
    if connection_lines:
        last = connection_lines[-1]
        index, indent = last + 1, _indent_of(model.lines[last])
    else:
        index, indent = _insertion_point(model)
    lines = list(model.lines)
    lines.insert(index, f"{indent}{render_connection(from_id, to_id, label)}")
    return _finish(lines)


def remove_connection(code: str, from_id: str, to_id: str) -> str:
    """Delete every edge ``from_id --> to_id`` whatever its label form.

    A missing edge is not an error: the text is returned validated and a
    warning is logged.
    """

    model = parse_mermaid_diagram(code)

    def matches(conn: DiagramConnection) -> bool:
        return conn.from_id == from_id and conn.to_id == to_id

    lines_to_fix = {conn.source_line for conn in model.connections if matches(conn)}
    if not lines_to_fix:
        logger.warning("No connection from %s to %s to remove", from_id, to_id)
        return validate_mermaid_syntax(code)

    replacements = {index: _rebuild_edge_line(model, index, matches, set()) for index in lines_to_fix}
    return _finish(_apply_replacements(model.lines, replacements))
