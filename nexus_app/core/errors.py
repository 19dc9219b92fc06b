"""Error taxonomy for the scenario engine.

All of these are recoverable: the engine turns them into a FAIL result that the
player can act on. None of them should ever escape ``ScenarioEngine.validate``.
"""

from __future__ import annotations


class NexusError(Exception):
    """Base class for engine errors."""


class ParseError(NexusError):
    """Malformed call syntax, unbalanced delimiters, or invalid JSON."""


class DiscoveryError(NexusError):
    """A tool was invoked before it was announced by a discovery call."""

    def __init__(self, tool_name: str):
        self.tool_name = tool_name
        super().__init__(
            f'Tool "{tool_name}" has not been discovered. '
            "Use mcp_list_tools() or mcp_search_tools() first."
        )


class DomainError(NexusError):
    """Entity not found, invalid transition, version conflict, or bad input."""
