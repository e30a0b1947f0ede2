"""Custom exceptions for graphsql."""

from typing import List, Optional


class GraphSQLException(Exception):
    """Base exception for all graphsql errors."""
    pass


class MissingSourceError(GraphSQLException):
    """Pipeline graph has no source node."""

    def __init__(self, message: str = "Pipeline must have a source node"):
        self.message = message
        super().__init__(message)


class InvalidSourceError(GraphSQLException):
    """Source node has neither a table nor a query."""

    def __init__(
        self,
        node_id: Optional[str] = None,
        message: str = "Source node must have either a table or query",
    ):
        self.node_id = node_id
        self.message = message
        super().__init__(self._format_error())

    def _format_error(self) -> str:
        if self.node_id:
            return f"{self.message} (node: {self.node_id})"
        return self.message


class CyclicGraphError(GraphSQLException):
    """Pipeline graph contains a cycle reachable from the source."""

    def __init__(self, message: str, cycle: Optional[List[str]] = None):
        self.message = message
        self.cycle = cycle
        super().__init__(self._format_error())

    def _format_error(self) -> str:
        """Format cycle error."""
        parts = [f"✗ Graph error: {self.message}"]

        if self.cycle:
            parts.append("\n  Cycle detected: " + " → ".join(self.cycle))

        return "".join(parts)


class SettingsError(GraphSQLException):
    """Settings document failed validation."""

    def __init__(self, message: str, file: Optional[str] = None):
        self.message = message
        self.file = file
        super().__init__(self._format_error())

    def _format_error(self) -> str:
        """Format error message with location info."""
        parts = ["Settings validation error"]
        if self.file:
            parts.append(f"\n  File: {self.file}")
        parts.append(f"\n  Error: {self.message}")
        return "".join(parts)
