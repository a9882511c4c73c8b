"""CLI entry point for applying one edit to a diagram or document file."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Callable, Dict

PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from editors import (
    ProcessEditorError,
    add_connection,
    add_document_row,
    add_node,
    remove_connection,
    remove_document_row,
    remove_node,
    update_connection_label,
    update_document_cell,
    update_document_text,
    update_node_label,
    update_node_time_estimate,
    validate_mermaid_syntax,
)
from parsers.utils import NODE_KINDS, NODE_PROCESS

EditFn = Callable[[str, argparse.Namespace], str]


def _row_position(value: str):
    if value in ("prepend", "append"):
        return value
    try:
        return int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected prepend, append or an integer, got {value!r}")


COMMANDS: Dict[str, EditFn] = {
    "validate": lambda text, args: validate_mermaid_syntax(text),
    "set-time": lambda text, args: update_node_time_estimate(text, args.node, args.estimate),
    "set-label": lambda text, args: update_node_label(text, args.node, args.label),
    "set-edge-label": lambda text, args: update_connection_label(text, args.source, args.target, args.label),
    "add-node": lambda text, args: add_node(
        text,
        args.label,
        kind=args.kind,
        node_id=args.node_id,
        time_estimate=args.time,
        connect_from=args.connect_from,
        connect_to=args.connect_to,
        connection_label=args.edge_label,
    ),
    "remove-node": lambda text, args: remove_node(text, args.node),
    "add-edge": lambda text, args: add_connection(text, args.source, args.target, args.label),
    "remove-edge": lambda text, args: remove_connection(text, args.source, args.target),
    "set-cell": lambda text, args: update_document_cell(text, args.section, args.row, args.cell, args.content),
    "set-text": lambda text, args: update_document_text(text, args.text_type, args.index, args.content, args.item),
    "add-row": lambda text, args: add_document_row(text, args.section, args.cells, position=args.position),
    "remove-row": lambda text, args: remove_document_row(text, args.section, args.row),
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Apply one edit to a Mermaid diagram or HTML document.")
    parser.add_argument("--in", dest="input_path", required=True, help="Path to the source file")
    parser.add_argument(
        "--out",
        dest="output_path",
        default=None,
        help="Optional path to write the edited source; defaults to stdout",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("validate", help="Repair diagram syntax")

    cmd = sub.add_parser("set-time", help="Set a node's time estimate")
    cmd.add_argument("node")
    cmd.add_argument("estimate")

    cmd = sub.add_parser("set-label", help="Set a node's label")
    cmd.add_argument("node")
    cmd.add_argument("label")

    cmd = sub.add_parser("set-edge-label", help="Set the label of an edge")
    cmd.add_argument("source")
    cmd.add_argument("target")
    cmd.add_argument("label")

    cmd = sub.add_parser("add-node", help="Add a node")
    cmd.add_argument("label")
    cmd.add_argument("--id", dest="node_id", default=None)
    cmd.add_argument("--kind", default=NODE_PROCESS, choices=NODE_KINDS)
    cmd.add_argument("--time", default=None)
    cmd.add_argument("--from", dest="connect_from", default=None)
    cmd.add_argument("--to", dest="connect_to", default=None)
    cmd.add_argument("--edge-label", default=None)

    cmd = sub.add_parser("remove-node", help="Remove a node and its edges")
    cmd.add_argument("node")

    cmd = sub.add_parser("add-edge", help="Add an edge between existing nodes")
    cmd.add_argument("source")
    cmd.add_argument("target")
    cmd.add_argument("--label", default=None)

    cmd = sub.add_parser("remove-edge", help="Remove every edge between two nodes")
    cmd.add_argument("source")
    cmd.add_argument("target")

    cmd = sub.add_parser("set-cell", help="Replace a table cell")
    cmd.add_argument("section", type=int)
    cmd.add_argument("row", type=int)
    cmd.add_argument("cell", type=int)
    cmd.add_argument("content")

    cmd = sub.add_parser("set-text", help="Replace a paragraph or list item")
    cmd.add_argument("text_type", choices=["paragraph", "listItem"])
    cmd.add_argument("index", type=int)
    cmd.add_argument("content")
    cmd.add_argument("--item", type=int, default=None)

    cmd = sub.add_parser("add-row", help="Insert a table row")
    cmd.add_argument("section", type=int)
    cmd.add_argument("cells", nargs="+")
    cmd.add_argument("--position", type=_row_position, default="append")

    cmd = sub.add_parser("remove-row", help="Delete a table row")
    cmd.add_argument("section", type=int)
    cmd.add_argument("row", type=int)
    return parser


def main() -> None:
    args = build_parser().parse_args()
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    source = Path(args.input_path).read_text(encoding="utf-8")
    try:
        result = COMMANDS[args.command](source, args)
    except ProcessEditorError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)

    if args.output_path:
        Path(args.output_path).write_text(result, encoding="utf-8")
    else:
        print(result, end="" if result.endswith("\n") else "\n")


if __name__ == "__main__":
    main()
