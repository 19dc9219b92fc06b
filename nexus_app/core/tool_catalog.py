"""Load and expose tool signatures from YAML (with fallbacks)."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .config import ALL_TOOL_NAMES, TOOL_GROUPS

logger = logging.getLogger(__name__)

_CACHE: dict[str, ToolSpec] | None = None


@dataclass(slots=True, frozen=True)
class ToolParam:
    name: str
    required: bool = False
    type: str = "string"
    description: str = ""


@dataclass(slots=True)
class ToolSpec:
    name: str
    group: str
    description: str = ""
    params: list[ToolParam] = field(default_factory=list)

    @property
    def positional(self) -> list[str]:
        return [p.name for p in self.params]

    @property
    def required(self) -> list[str]:
        return [p.name for p in self.params if p.required]

    def signature(self) -> str:
        """Render ``name(a, b?)`` with optional parameters suffixed by ``?``."""
        parts = [p.name if p.required else f"{p.name}?" for p in self.params]
        return f"{self.name}({', '.join(parts)})"

    def input_schema(self) -> dict[str, Any]:
        properties: dict[str, Any] = {}
        for p in self.params:
            prop: dict[str, Any] = {"type": p.type}
            if p.description:
                prop["description"] = p.description
            properties[p.name] = prop
        return {"type": "object", "required": self.required, "properties": properties}


def _group_of(name: str) -> str:
    for group, names in TOOL_GROUPS.items():
        if name in names:
            return group
    return ""


def _fallback_catalog() -> dict[str, ToolSpec]:
    return {name: ToolSpec(name=name, group=_group_of(name)) for name in ALL_TOOL_NAMES}


def _parse_params(raw: Any) -> list[ToolParam]:
    params: list[ToolParam] = []
    for item in raw or []:
        if isinstance(item, str):
            params.append(ToolParam(name=item))
        elif isinstance(item, dict) and item.get("name"):
            params.append(
                ToolParam(
                    name=str(item["name"]),
                    required=bool(item.get("required", False)),
                    type=str(item.get("type") or "string"),
                    description=str(item.get("description") or ""),
                )
            )
    return params


def load_tool_catalog(base_path: str | Path | None = None, *, refresh: bool = False) -> dict[str, ToolSpec]:
    """Return tool specs keyed by name, in catalog order.

    Reads ``tools.yaml`` from ``base_path`` (default: the ``nexus_app``
    directory). Tools missing from the file keep an empty signature; names in
    the file that the server does not declare are ignored.
    """
    global _CACHE
    if _CACHE is not None and not refresh and base_path is None:
        return _CACHE
    base = Path(base_path or Path(__file__).resolve().parent.parent)
    yaml_path = base / "tools.yaml"
    catalog = _fallback_catalog()
    if not yaml_path.exists():
        logger.warning("Tool catalog %s not found; using bare tool names", yaml_path)
    else:
        try:
            data = yaml.safe_load(yaml_path.read_text(encoding="utf-8")) or {}
        except (OSError, yaml.YAMLError) as exc:
            logger.warning("Failed to read tool catalog %s: %s", yaml_path, exc)
            data = {}
        tools = data.get("tools") if isinstance(data, dict) else None
        for name, entry in (tools or {}).items():
            if name not in catalog:
                logger.warning("Ignoring undeclared tool %r in %s", name, yaml_path)
                continue
            entry = entry or {}
            catalog[name] = ToolSpec(
                name=name,
                group=catalog[name].group,
                description=str(entry.get("description") or ""),
                params=_parse_params(entry.get("params")),
            )
    if base_path is None:
        _CACHE = catalog
    return catalog


def get_tool(name: str) -> ToolSpec | None:
    return load_tool_catalog().get(name)


def positional_params(name: str) -> list[str]:
    spec = get_tool(name)
    return spec.positional if spec else []


def map_positional_args(tool_name: str, args: dict[str, Any]) -> dict[str, Any]:
    """Rename ``arg0``, ``arg1``... to the tool's parameter names.

    Named arguments win over positional ones; positions beyond the tool's
    signature keep their ``argN`` key.
    """
    names = positional_params(tool_name)
    if not names:
        return dict(args)
    out = dict(args)
    for i, named in enumerate(names):
        key = f"arg{i}"
        if key in args and named not in args:
            out[named] = out.pop(key)
    return out


def search_tools(query: str, names: Iterable[str] | None = None) -> list[str]:
    """Tool names containing ``query`` (case-insensitive), in catalog order."""
    needle = (query or "").strip().lower()
    pool = load_tool_catalog() if names is None else names
    return [name for name in pool if needle in name.lower()]
