"""Typed exceptions raised by the diagram and document mutators."""

from typing import Optional


class ProcessEditorError(Exception):
    """Base exception for all mutator failures."""


class DiagramEditError(ProcessEditorError):
    """A diagram mutation could not be applied."""


class NodeNotFoundError(DiagramEditError):
    """The requested node id is neither declared nor referenced."""

    def __init__(self, node_id: str):
        self.node_id = node_id
        super().__init__(f"Node {node_id} not found in workflow")


class DuplicateNodeError(DiagramEditError):
    """A node with the requested id already exists."""

    def __init__(self, node_id: str):
        self.node_id = node_id
        super().__init__(f"Node {node_id} already exists in workflow")


class ConnectionNotFoundError(DiagramEditError):
    def __init__(self, from_id: str, to_id: str):
        self.from_id = from_id
        self.to_id = to_id
        super().__init__(f"Connection from {from_id} to {to_id} not found in workflow")


class NodeCountError(DiagramEditError):
    """Removing the node would leave fewer than the minimum number of nodes."""

    def __init__(self, node_id: str, node_count: int, minimum: int):
        self.node_id = node_id
        self.node_count = node_count
        self.minimum = minimum
        super().__init__(
            f"Cannot remove node {node_id}: workflow has {node_count} nodes and must keep at least {minimum}"
        )


class InvalidNodeIdError(DiagramEditError):
    def __init__(self, node_id: str, reason: str = "must contain only letters, digits and underscores"):
        self.node_id = node_id
        super().__init__(f"Invalid node id {node_id!r}: {reason}")


class DocumentEditError(ProcessEditorError):
    """A document mutation could not be applied."""


class InvalidIndexError(DocumentEditError):
    """A section, row, cell, text block or item index is out of range."""

    def __init__(self, kind: str, index: object, limit: Optional[int] = None):
        self.kind = kind
        self.index = index
        self.limit = limit
        message = f"Invalid {kind} index: {index}"
        if limit is not None:
            message += f" (expected 0-{limit - 1})" if limit > 0 else " (none available)"
        super().__init__(message)


class UnsupportedTextTypeError(DocumentEditError):
    def __init__(self, text_type: str):
        self.text_type = text_type
        super().__init__(f"Unsupported text type: {text_type}")
