"""Discover-before-use gate for server tools."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from .errors import DiscoveryError
from .parser import ParsedCall
from .tool_catalog import search_tools

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class DiscoveryState:
    """Tools announced to the player so far.

    ``full_discovery`` flips once ``mcp_list_tools`` has been called; after
    that every tool is callable. Search only unlocks the tools it returned.
    """

    discovered: set[str] = field(default_factory=set)
    full_discovery: bool = False

    def discover(self, names: Iterable[str], *, full: bool = False) -> None:
        self.discovered.update(names)
        if full:
            self.full_discovery = True

    def is_discovered(self, name: str) -> bool:
        return self.full_discovery or name in self.discovered

    def list_all(self, catalog: Iterable[str]) -> list[str]:
        names = list(catalog)
        self.discover(names, full=True)
        logger.debug("Full discovery: %s tools", len(names))
        return names

    def search(self, catalog: Iterable[str], query: str) -> list[str]:
        matches = search_tools(query, catalog)
        self.discover(matches)
        logger.debug("Tool search %r matched %s", query, matches)
        return matches

    def check(self, call: ParsedCall) -> None:
        """Raise DiscoveryError when ``call`` invokes a tool not yet discovered."""
        if call.is_meta or not call.tool_name:
            return
        if not self.is_discovered(call.tool_name):
            raise DiscoveryError(call.tool_name)
