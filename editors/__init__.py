"""Mutators and the repair pass for diagram and document sources."""

from .document_editor import (
    add_document_row,
    remove_document_row,
    update_document_cell,
    update_document_text,
)
from .errors import (
    ConnectionNotFoundError,
    DiagramEditError,
    DocumentEditError,
    DuplicateNodeError,
    InvalidIndexError,
    InvalidNodeIdError,
    NodeCountError,
    NodeNotFoundError,
    ProcessEditorError,
    UnsupportedTextTypeError,
)
from .syntax_validator import (
    auto_fix_mermaid_syntax,
    prepare_generated_diagram,
    repair_mermaid_syntax,
    validate_mermaid_syntax,
)
from .workflow_editor import (
    add_connection,
    add_node,
    remove_connection,
    remove_node,
    update_connection_label,
    update_node_label,
    update_node_time_estimate,
)

__all__ = [
    "validate_mermaid_syntax",
    "repair_mermaid_syntax",
    "auto_fix_mermaid_syntax",
    "prepare_generated_diagram",
    "update_node_time_estimate",
    "update_node_label",
    "update_connection_label",
    "add_node",
    "remove_node",
    "add_connection",
    "remove_connection",
    "update_document_cell",
    "update_document_text",
    "add_document_row",
    "remove_document_row",
    "ProcessEditorError",
    "DiagramEditError",
    "NodeNotFoundError",
    "DuplicateNodeError",
    "ConnectionNotFoundError",
    "NodeCountError",
    "InvalidNodeIdError",
    "DocumentEditError",
    "InvalidIndexError",
    "UnsupportedTextTypeError",
]
