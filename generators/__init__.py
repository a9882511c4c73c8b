"""Generator package exports."""

from .to_mermaid import generate_mermaid, render_connection, render_node_declaration

__all__ = [
    "generate_mermaid",
    "render_connection",
    "render_node_declaration",
]
