"""Parser package exports."""

from .html_parser import parse_document
from .mermaid_parser import list_workflow_nodes, parse_mermaid_diagram
from .utils import extract_mermaid_block

__all__ = [
    "parse_mermaid_diagram",
    "list_workflow_nodes",
    "parse_document",
    "extract_mermaid_block",
]
