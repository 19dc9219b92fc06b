"""Tool-call parser: bare ``name(args)`` calls, JSON-RPC objects, and the MCP meta wrapper.

Every accepted syntax is normalized into one :class:`ParsedCall`:

- ``search("roadmap")``
- ``search({ query: "roadmap" })``
- ``{"name": "search", "arguments": {"query": "roadmap"}}``
- ``mcp_tool_use("nexus-core", "search", { query: "roadmap" })``

all compare equal. Parsing never raises; failures come back as
``ParseResult.error`` with a message the player can act on.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any

from .config import META_FUNCTIONS, META_LIST_TOOLS, META_SEARCH_TOOLS, META_TOOL_USE
from .errors import ParseError
from .tool_catalog import map_positional_args

KIND_META = "meta"
KIND_TOOL = "tool"

_IDENTIFIER = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_TOOL_CALL_ATTEMPT = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*\s*\(")
_NUMBER = re.compile(r"^-?\d+(\.\d+)?([eE][+-]?\d+)?$")

_OPENERS = {"{": "}", "[": "]", "(": ")"}
_CLOSERS = frozenset(_OPENERS.values())
_QUOTES = ('"', "'")
_BACKSLASH_PLACEHOLDER = "\x00BACKSLASH\x00"


@dataclass(slots=True)
class ParsedCall:
    kind: str
    meta_function: str | None = None
    tool_name: str | None = None
    arguments: dict[str, Any] = field(default_factory=dict)
    # Routing details; not part of the logical invocation.
    server_name: str | None = field(default=None, compare=False)
    via_wrapper: bool = field(default=False, compare=False)

    @property
    def is_meta(self) -> bool:
        return self.kind == KIND_META


@dataclass(slots=True)
class ParseResult:
    call: ParsedCall | None = None
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.call is not None and self.error is None


def looks_like_tool_call(text: str) -> bool:
    """True when ``text`` starts like ``name(`` or a JSON object."""
    trimmed = (text or "").strip()
    return bool(_TOOL_CALL_ATTEMPT.match(trimmed)) or trimmed.startswith("{")


def parse_tool_call(text: str) -> ParseResult:
    trimmed = (text or "").strip()
    if not trimmed:
        return ParseResult(error="Empty input. Expected: toolName(arguments)")
    try:
        if trimmed.startswith("{"):
            call = _parse_json_rpc(trimmed)
        else:
            call = _parse_function_call(trimmed)
    except ParseError as exc:
        return ParseResult(error=str(exc))
    return ParseResult(call=call)


# ------------------ JSON-RPC ------------------


def _parse_json_rpc(text: str) -> ParsedCall:
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ParseError(f"JSON parse error: {exc.msg} (line {exc.lineno}, column {exc.colno})") from exc
    if not isinstance(payload, dict):
        raise ParseError("JSON-RPC: expected an object")
    name = payload.get("name")
    if not name or not isinstance(name, str):
        raise ParseError('JSON-RPC: Missing or invalid "name" field')
    args = payload.get("arguments")
    if args is None:
        args = {}
    elif isinstance(args, str):
        # Function-calling clients often send arguments as an encoded string
        args = loads_loose(args) if args.strip() else {}
    if not isinstance(args, dict):
        raise ParseError('JSON-RPC: "arguments" must be an object')
    return _build_named_call(name, args)


def _build_named_call(name: str, args: dict[str, Any]) -> ParsedCall:
    """Build a call from named arguments (JSON-RPC or a single object literal)."""
    if name == META_LIST_TOOLS:
        return ParsedCall(kind=KIND_META, meta_function=META_LIST_TOOLS, server_name=_opt_str(args.get("server_name")))

    if name == META_SEARCH_TOOLS:
        _require(name, args, ("server_name", "query"))
        return ParsedCall(
            kind=KIND_META,
            meta_function=META_SEARCH_TOOLS,
            arguments={"query": str(args["query"])},
            server_name=str(args["server_name"]),
        )

    if name == META_TOOL_USE:
        _require(name, args, ("server_name", "tool_name"))
        inner = args.get("arguments") or {}
        if isinstance(inner, str):
            inner = loads_loose(inner) if inner.strip() else {}
        if not isinstance(inner, dict):
            raise ParseError('mcp_tool_use: "arguments" must be an object')
        return _tool_call(str(args["tool_name"]), inner, server_name=str(args["server_name"]), via_wrapper=True)

    return _tool_call(name, args)


def _require(name: str, args: dict[str, Any], params: tuple[str, ...]) -> None:
    missing = [p for p in params if args.get(p) in (None, "")]
    if missing:
        count = {1: "one argument", 2: "two arguments"}.get(len(params), f"{len(params)} arguments")
        raise ParseError(f"{name} requires {count}: {' and '.join(params)} (missing {', '.join(missing)})")


def _tool_call(
    tool_name: str,
    args: dict[str, Any],
    *,
    server_name: str | None = None,
    via_wrapper: bool = False,
) -> ParsedCall:
    return ParsedCall(
        kind=KIND_TOOL,
        tool_name=tool_name,
        arguments=map_positional_args(tool_name, args),
        server_name=server_name,
        via_wrapper=via_wrapper,
    )


def _opt_str(value: Any) -> str | None:
    if value in (None, ""):
        return None
    return str(value)


# ------------------ Function-call syntax ------------------


def _parse_function_call(text: str) -> ParsedCall:
    match = _IDENTIFIER.match(text)
    if not match:
        raise ParseError("Invalid function call syntax. Expected: toolName(arguments)")
    name = match.group(0)
    pos = match.end()
    while pos < len(text) and text[pos].isspace():
        pos += 1
    if pos >= len(text) or text[pos] != "(":
        raise ParseError(f"Invalid function call syntax: expected '(' after {name}")
    if not text.endswith(")"):
        raise ParseError(f"Invalid function call syntax: missing closing ')' for {name}(")

    args_str = text[pos + 1 : -1]
    check_balance(args_str)
    args_str = args_str.strip()

    if name == META_LIST_TOOLS:
        return _parse_list_tools(args_str)
    if name == META_SEARCH_TOOLS:
        return _parse_search_tools(args_str)
    if name == META_TOOL_USE:
        return _parse_tool_use(args_str)
    return _tool_call(name, _parse_arguments(args_str))


def _parse_list_tools(args_str: str) -> ParsedCall:
    parts = split_top_level_args(args_str)
    if len(parts) == 1 and parts[0].startswith("{"):
        return _build_named_call(META_LIST_TOOLS, _loads_object(parts[0]))
    server = None
    if parts:
        server = extract_string(parts[0])
        if server is None:
            raise ParseError("mcp_list_tools: server_name must be a quoted string")
    return ParsedCall(kind=KIND_META, meta_function=META_LIST_TOOLS, server_name=server or None)


def _parse_search_tools(args_str: str) -> ParsedCall:
    parts = split_top_level_args(args_str)
    if len(parts) == 1 and parts[0].startswith("{"):
        return _build_named_call(META_SEARCH_TOOLS, _loads_object(parts[0]))
    values = [extract_string(p) for p in parts]
    args = dict(zip(("server_name", "query"), (v for v in values if v is not None)))
    # Same rule as the object form: empty strings count as missing
    _require(META_SEARCH_TOOLS, args, ("server_name", "query"))
    return ParsedCall(
        kind=KIND_META,
        meta_function=META_SEARCH_TOOLS,
        arguments={"query": args["query"]},
        server_name=args["server_name"],
    )


def _parse_tool_use(args_str: str) -> ParsedCall:
    parts = split_top_level_args(args_str)
    if len(parts) == 1 and parts[0].startswith("{"):
        return _build_named_call(META_TOOL_USE, _loads_object(parts[0]))
    if len(parts) < 2:
        missing = ("server_name", "tool_name")[len(parts) :]
        raise ParseError(
            "mcp_tool_use requires at least two arguments: server_name and tool_name "
            f"(missing {', '.join(missing)})"
        )
    server = extract_string(parts[0])
    tool = extract_string(parts[1])
    if not server or not tool:
        raise ParseError("mcp_tool_use: server_name and tool_name must be quoted strings")
    rest = parts[2:]
    if len(rest) == 1 and rest[0].startswith("{"):
        args = _loads_object(rest[0])
    else:
        args = _positional(rest)
    return _tool_call(tool, args, server_name=server, via_wrapper=True)


def _parse_arguments(args_str: str) -> dict[str, Any]:
    if not args_str:
        return {}
    parts = split_top_level_args(args_str)
    if len(parts) == 1 and parts[0].startswith("{"):
        return _loads_object(parts[0])
    return _positional(parts)


def _positional(parts: list[str]) -> dict[str, Any]:
    return {f"arg{i}": parse_value(part) for i, part in enumerate(parts)}


def _loads_object(text: str) -> dict[str, Any]:
    value = loads_loose(text)
    if not isinstance(value, dict):
        raise ParseError(f"Expected an object literal, got: {text[:60]}")
    return value


# ------------------ Lexing helpers ------------------


def check_balance(text: str) -> None:
    """Raise ParseError naming the first unmatched bracket or unterminated quote."""
    stack: list[str] = []
    in_string: str | None = None
    escaped = False
    for ch in text:
        if escaped:
            escaped = False
            continue
        if ch == "\\":
            escaped = True
            continue
        if in_string:
            if ch == in_string:
                in_string = None
            continue
        if ch in _QUOTES:
            in_string = ch
        elif ch in _OPENERS:
            stack.append(_OPENERS[ch])
        elif ch in _CLOSERS:
            if not stack or stack.pop() != ch:
                raise ParseError(f"Unbalanced braces: unexpected '{ch}'")
    if in_string:
        raise ParseError(f"Unclosed string: missing {in_string}")
    if stack:
        raise ParseError(f"Unbalanced braces: missing '{stack[-1]}'")


def split_top_level_args(text: str) -> list[str]:
    """Split at commas that are outside brackets and quotes."""
    parts: list[str] = []
    current: list[str] = []
    depth = 0
    in_string: str | None = None
    escaped = False
    for ch in text:
        if escaped:
            current.append(ch)
            escaped = False
            continue
        if ch == "\\":
            current.append(ch)
            escaped = True
            continue
        if in_string:
            current.append(ch)
            if ch == in_string:
                in_string = None
            continue
        if ch in _QUOTES:
            in_string = ch
        elif ch in _OPENERS:
            depth += 1
        elif ch in _CLOSERS:
            depth -= 1
        elif ch == "," and depth == 0:
            parts.append("".join(current).strip())
            current = []
            continue
        current.append(ch)
    tail = "".join(current).strip()
    if tail:
        parts.append(tail)
    return parts


def _string_end(text: str, start: int) -> int:
    """Index of the quote closing the string opened at ``start``, or -1."""
    quote = text[start]
    i = start + 1
    while i < len(text):
        ch = text[i]
        if ch == "\\":
            i += 2
            continue
        if ch == quote:
            return i
        i += 1
    return -1


def extract_string(text: str) -> str | None:
    """Return the unescaped content when ``text`` is exactly one quoted string."""
    trimmed = text.strip()
    if len(trimmed) < 2 or trimmed[0] not in _QUOTES:
        return None
    if _string_end(trimmed, 0) != len(trimmed) - 1:
        return None
    return unescape_string(trimmed[1:-1])


def unescape_string(text: str) -> str:
    """Process ``\\n``, ``\\t``, ``\\r``, ``\\\\`` and escaped quotes.

    Literal backslashes are parked on a placeholder first so that ``\\\\n``
    stays a backslash followed by ``n``.
    """
    return (
        text.replace("\\\\", _BACKSLASH_PLACEHOLDER)
        .replace("\\n", "\n")
        .replace("\\t", "\t")
        .replace("\\r", "\r")
        .replace('\\"', '"')
        .replace("\\'", "'")
        .replace(_BACKSLASH_PLACEHOLDER, "\\")
    )


def parse_value(text: str) -> Any:
    """Type a positional argument: quoted string, literal, number, object/array, or bare word."""
    trimmed = text.strip()
    as_string = extract_string(trimmed)
    if as_string is not None:
        return as_string
    if trimmed == "true":
        return True
    if trimmed == "false":
        return False
    if trimmed in ("null", "undefined"):
        return None
    if _NUMBER.match(trimmed):
        return float(trimmed) if any(c in trimmed for c in ".eE") else int(trimmed)
    if trimmed[:1] in ("{", "["):
        return loads_loose(trimmed)
    return trimmed


def loads_loose(text: str) -> Any:
    """``json.loads`` that also accepts unquoted keys, single quotes, and trailing commas."""
    trimmed = text.strip()
    try:
        return json.loads(trimmed)
    except json.JSONDecodeError:
        pass
    normalized = normalize_loose_json(trimmed)
    try:
        return json.loads(normalized)
    except json.JSONDecodeError as exc:
        raise ParseError(f"Cannot parse as JSON: {trimmed}") from exc


def normalize_loose_json(text: str) -> str:
    """Rewrite a JS-style object literal into strict JSON."""
    out: list[str] = []
    i = 0
    n = len(text)

    def last_significant() -> str:
        for chunk in reversed(out):
            stripped = chunk.rstrip()
            if stripped:
                return stripped[-1]
        return ""

    while i < n:
        ch = text[i]
        if ch == '"':
            end = _string_end(text, i)
            if end < 0:
                raise ParseError('Unclosed string: missing "')
            out.append(text[i : end + 1])
            i = end + 1
            continue
        if ch == "'":
            end = _string_end(text, i)
            if end < 0:
                raise ParseError("Unclosed string: missing '")
            inner = text[i + 1 : end].replace("\\'", "'")
            inner = re.sub(r'(?<!\\)"', '\\"', inner)
            out.append(f'"{inner}"')
            i = end + 1
            continue
        if ch == ",":
            j = i + 1
            while j < n and text[j].isspace():
                j += 1
            if j < n and text[j] in "}]":
                i += 1
                continue
            out.append(ch)
            i += 1
            continue
        if (ch.isalpha() or ch == "_") and last_significant() in ("{", ","):
            match = _IDENTIFIER.match(text, i)
            word = match.group(0)
            j = match.end()
            while j < n and text[j].isspace():
                j += 1
            if j < n and text[j] == ":":
                out.append(f'"{word}"')
            else:
                out.append(word)
            i = match.end()
            continue
        out.append(ch)
        i += 1
    return "".join(out)


__all__ = [
    "KIND_META",
    "KIND_TOOL",
    "META_FUNCTIONS",
    "ParseResult",
    "ParsedCall",
    "check_balance",
    "extract_string",
    "loads_loose",
    "looks_like_tool_call",
    "normalize_loose_json",
    "parse_tool_call",
    "parse_value",
    "split_top_level_args",
    "unescape_string",
]
