"""ScenarioEngine: routes one player utterance through parse, discovery, dispatch, and judgment."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping, Sequence
from typing import Any

from .config import (
    CONNECTED_SERVERS,
    FAIL_TOOL_ERROR,
    META_LIST_TOOLS,
    META_SEARCH_TOOLS,
    MIN_FINAL_ANSWER_LENGTH,
    RESULT_FAIL,
    RESULT_INTERMEDIATE,
    SERVER_NAME,
    SETTINGS,
    TOOL_GROUPS,
)
from .errors import DiscoveryError
from .models import ValidationResult
from .parser import ParsedCall, looks_like_tool_call, parse_tool_call
from .policy import validate_final_state
from .session import Session, SessionStore, default_store, session_key
from .tool_catalog import ToolSpec, load_tool_catalog
from .tools import execute_tool

logger = logging.getLogger(__name__)

History = Sequence[Mapping[str, str]]

MSG_DISCOVERY_COMPLETE = "MCP Discovery Complete."
MSG_SEARCH_COMPLETE = "Search Complete."
MSG_TOOL_EXECUTED = "Tool Executed."


def is_realistic_mode(history: History | None) -> bool:
    """Realistic mode: the developer message carries JSON function schemas."""
    return any(
        m.get("role") == "developer" and '"parameters":' in str(m.get("content") or "") for m in history or ()
    )


def _dumps(payload: Any) -> str:
    return json.dumps(payload, indent=SETTINGS.json_indent, ensure_ascii=False)


def _tool_entry(spec: ToolSpec) -> dict[str, str]:
    return {"name": spec.name, "signature": spec.signature(), "description": spec.description}


def render_tool_listing(*, realistic: bool = False) -> str:
    catalog = load_tool_catalog()
    if realistic:
        tools = [
            {"name": spec.name, "description": spec.description, "inputSchema": spec.input_schema()}
            for spec in catalog.values()
        ]
        return _dumps({"server": SERVER_NAME, "total": len(tools), "tools": tools})
    groups = {
        group: [_tool_entry(catalog[name]) for name in names if name in catalog] for group, names in TOOL_GROUPS.items()
    }
    return _dumps({"server": SERVER_NAME, "total": len(catalog), "groups": groups})


def render_tool_search(query: str, names: Sequence[str]) -> str:
    catalog = load_tool_catalog()
    payload: dict[str, Any] = {
        "server": SERVER_NAME,
        "query": query,
        "tools": [_tool_entry(catalog[name]) for name in names],
        "total": len(names),
    }
    if not names:
        payload["hint"] = f'No tools found matching "{query}". Try {META_LIST_TOOLS}() to see all available tools.'
    return _dumps(payload)


class ScenarioEngine:
    def __init__(self, sessions: SessionStore | None = None):
        self.sessions = sessions if sessions is not None else default_store

    def session_for(self, history: History | None) -> Session:
        return self.sessions.get_or_create(session_key(history))

    def reset(self, history: History | None) -> bool:
        return self.sessions.evict(session_key(history))

    # ------------------ Entry point ------------------
    def validate(self, text: str, history: History | None = None) -> ValidationResult:
        session = self.session_for(history)
        trimmed = (text or "").strip()
        parsed = parse_tool_call(trimmed)

        if not parsed.success:
            if not looks_like_tool_call(trimmed) and len(trimmed) > MIN_FINAL_ANSWER_LENGTH:
                return validate_final_state(session.state)
            return self._tool_error(parsed.error or "Invalid tool call syntax")

        call = parsed.call
        if call.server_name is not None and call.server_name not in CONNECTED_SERVERS:
            return self._tool_error(
                f'Unknown MCP server "{call.server_name}". Connected servers: {", ".join(CONNECTED_SERVERS)}'
            )
        if call.is_meta:
            return self._handle_meta(call, session, history)
        return self._handle_tool(call, session)

    # ------------------ Routes ------------------
    def _handle_meta(self, call: ParsedCall, session: Session, history: History | None) -> ValidationResult:
        catalog = load_tool_catalog()
        if call.meta_function == META_LIST_TOOLS:
            session.discovery.list_all(catalog)
            return ValidationResult(
                status=RESULT_INTERMEDIATE,
                message=MSG_DISCOVERY_COMPLETE,
                tool_output=render_tool_listing(realistic=is_realistic_mode(history)),
            )
        if call.meta_function == META_SEARCH_TOOLS:
            query = str(call.arguments.get("query") or "")
            matches = session.discovery.search(catalog, query)
            return ValidationResult(
                status=RESULT_INTERMEDIATE,
                message=MSG_SEARCH_COMPLETE,
                tool_output=render_tool_search(query, matches),
            )
        return self._tool_error(f"Unrecognized meta function: {call.meta_function}")

    def _handle_tool(self, call: ParsedCall, session: Session) -> ValidationResult:
        try:
            session.discovery.check(call)
        except DiscoveryError as exc:
            return self._tool_error(str(exc))
        result = execute_tool(call, session.state)
        if not result.success:
            return self._tool_error(result.error or "Tool execution failed", tool_output=result.output)
        return ValidationResult(status=RESULT_INTERMEDIATE, message=MSG_TOOL_EXECUTED, tool_output=result.output)

    @staticmethod
    def _tool_error(message: str, *, tool_output: str | None = None) -> ValidationResult:
        logger.debug("Tool error: %s", message)
        return ValidationResult(status=RESULT_FAIL, message=message, tool_output=tool_output, fail_type=FAIL_TOOL_ERROR)
