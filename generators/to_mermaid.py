"""Generate Mermaid flowchart text from node intents or a parsed model."""

from __future__ import annotations

from typing import List, Optional

from parsers.utils import NODE_PROCESS, DiagramModel

from .utils import compose_label, escape_edge_label, escape_label, orientation_to_mermaid, shape_delimiters

DEFAULT_INDENT = "    "


def render_node_declaration(
    node_id: str,
    label: str,
    kind: str = NODE_PROCESS,
    time_estimate: Optional[str] = None,
) -> str:
    opener, closer = shape_delimiters(kind)
    return f'{node_id}{opener}"{compose_label(label, time_estimate)}"{closer}'


def render_connection(from_id: str, to_id: str, label: Optional[str] = None) -> str:
    label = escape_edge_label(label)
    if label:
        return f'{from_id} -->|"{label}"| {to_id}'
    return f"{from_id} --> {to_id}"


def generate_mermaid(model: DiagramModel, indent: str = DEFAULT_INDENT) -> str:
    """Render a whole diagram from a model in canonical form.

    Nodes come first (grouped nodes inside their subgraph blocks, nested the
    way the groups nest), then every connection in source order.
    """

    lines: List[str] = [f"graph {orientation_to_mermaid(model.direction)}"]
    placed = set()

    def declaration(node_id: str) -> str:
        node = model.nodes[node_id]
        return render_node_declaration(node_id, node.label, node.kind, node.time_estimate)

    for node_id, node in model.nodes.items():
        if not node.groups:
            lines.append(f"{indent}{declaration(node_id)}")
            placed.add(node_id)

    groups = sorted(model.groups, key=lambda g: g.start_line)
    stack = []
    for group in groups:
        while stack and not stack[-1].contains_line(group.start_line):
            stack.pop()
            lines.append(f"{indent * (len(stack) + 1)}end")
        stack.append(group)
        depth = len(stack)
        lines.append(f'{indent * depth}subgraph "{escape_label(group.title)}"')
        inner = [
            other
            for other in groups
            if other is not group and group.contains_line(other.start_line)
        ]
        for node_id in group.nodes:
            nested = any(node_id in other.nodes for other in inner)
            if node_id in placed or nested or node_id not in model.nodes:
                continue
            lines.append(f"{indent * (depth + 1)}{declaration(node_id)}")
            placed.add(node_id)
    while stack:
        stack.pop()
        lines.append(f"{indent * (len(stack) + 1)}end")

    for conn in model.connections:
        lines.append(f"{indent}{render_connection(conn.from_id, conn.to_id, conn.label)}")
    return "\n".join(lines) + "\n"
