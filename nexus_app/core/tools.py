"""Tool registry and executor for the nexus-core server.

Each handler takes the named arguments and the session state and returns a
JSON-serializable payload, raising :class:`DomainError` for bad input.
``execute_tool`` is the only place handler errors are caught.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from .config import (
    ALL_TOOL_NAMES,
    DEFAULT_ISSUE_TYPE,
    DEFAULT_RELATIONSHIP_TYPE,
    LIST_DEFAULT_LIMIT,
    SEARCH_DEFAULT_LIMIT,
    SEARCH_MAX_LIMIT,
    SETTINGS,
    TQL_DEFAULT_LIMIT,
)
from .errors import DomainError
from .mappers import (
    map_component,
    map_doc,
    map_doc_hit,
    map_doc_summary,
    map_footer_comment,
    map_inline_comment,
    map_issue,
    map_issue_hit,
    map_issue_reference,
    map_space,
    map_transition,
    map_user,
)
from .models import MutationResult, PagesDoc, TrackerIssue
from .parser import ParsedCall
from .state import NexusState
from .status import statuses_match
from .tool_catalog import map_positional_args

logger = logging.getLogger(__name__)

ToolHandler = Callable[[dict[str, Any], NexusState], Any]

TOOL_REGISTRY: dict[str, ToolHandler] = {}

_ARI = re.compile(r"^ari:cloud:(\w+):[^:]+:(\w+)/(.+)$")
_QUOTED = r"[\"']([^\"']+)[\"']"
_NQL_TITLE = re.compile(r"title\s*~\s*" + _QUOTED, re.IGNORECASE)
_NQL_TEXT = re.compile(r"text\s*~\s*" + _QUOTED, re.IGNORECASE)
_NQL_SPACE = re.compile(r"space\s*=\s*(?:" + _QUOTED + r"|(\w+))", re.IGNORECASE)
_TQL_PROJECT = re.compile(r"project\s*=\s*[\"']?(\w+)[\"']?", re.IGNORECASE)
_TQL_STATUS = re.compile(r"status\s*=\s*(?:" + _QUOTED + r"|(\w+))", re.IGNORECASE)
_TQL_KEY = re.compile(r"(?<![\w.])key\s*=\s*[\"']?([A-Za-z]+-\d+)[\"']?", re.IGNORECASE)
_TQL_ORDER_BY = re.compile(r"\s+order\s+by\s+.*$", re.IGNORECASE)


@dataclass(slots=True)
class ToolResult:
    success: bool
    output: str
    error: str | None = None


def tool(name: str) -> Callable[[ToolHandler], ToolHandler]:
    def decorator(func: ToolHandler) -> ToolHandler:
        TOOL_REGISTRY[name] = func
        return func

    return decorator


def _dumps(payload: Any) -> str:
    return json.dumps(payload, indent=SETTINGS.json_indent, ensure_ascii=False)


def _error_result(message: str) -> ToolResult:
    return ToolResult(success=False, output=json.dumps({"error": message}), error=message)


def execute_tool(call: ParsedCall, state: NexusState) -> ToolResult:
    name = call.tool_name
    if not name:
        return _error_result("No tool name specified")
    handler = TOOL_REGISTRY.get(name)
    if handler is None:
        return _error_result(f"Unknown tool: {name}")
    args = map_positional_args(name, call.arguments or {})
    try:
        payload = handler(args, state)
    except DomainError as exc:
        return _error_result(str(exc))
    except Exception as exc:
        logger.warning("Tool %s failed unexpectedly: %s", name, exc, exc_info=True)
        return _error_result(f"{name} failed: {exc}")
    logger.debug("Executed %s", name)
    return ToolResult(success=True, output=_dumps(payload))


# ------------------ Argument helpers ------------------


def _str(args: dict[str, Any], key: str, default: str = "") -> str:
    value = args.get(key)
    if value is None:
        return default
    return str(value).strip() if isinstance(value, str) else str(value)


def _opt_str(args: dict[str, Any], key: str) -> str | None:
    value = args.get(key)
    if value is None or value == "":
        return None
    return str(value)


def _int(args: dict[str, Any], key: str, default: int) -> int:
    value = args.get(key)
    if value is None or value == "":
        return default
    try:
        number = int(value)
    except (TypeError, ValueError) as exc:
        raise DomainError(f"{key} must be a number, got {value!r}") from exc
    return number if number > 0 else default


def _unwrap(result: MutationResult) -> str | None:
    if not result.success:
        raise DomainError(result.error or "Operation failed")
    return result.value


def _issue_arg(args: dict[str, Any], state: NexusState, tool_name: str) -> TrackerIssue:
    key = _str(args, "issueIdOrKey")
    if not key:
        raise DomainError(
            f"Missing issueIdOrKey parameter. Available issues: {', '.join(state.issues)}. "
            f'Usage: {tool_name}("LHR-100")'
        )
    issue = state.find_issue(key)
    if issue is None:
        raise DomainError(state.issue_not_found(key))
    return issue


def _doc_arg(args: dict[str, Any], state: NexusState, tool_name: str) -> PagesDoc:
    doc_id = _str(args, "docId")
    if not doc_id:
        raise DomainError(
            f'Missing docId parameter. Available docs: {", ".join(state.docs)}. Usage: {tool_name}("P-501")'
        )
    doc = state.docs.get(doc_id)
    if doc is None:
        raise DomainError(state.doc_not_found(doc_id))
    return doc


def _project_arg(args: dict[str, Any], state: NexusState, tool_name: str):
    key = _str(args, "projectKey")
    if not key:
        available = ", ".join(p.key for p in state.projects)
        raise DomainError(
            f'Missing projectKey parameter. Available projects: {available}. Usage: {tool_name}("LHR")'
        )
    project = state.find_project(key)
    if project is None:
        raise DomainError(state.project_not_found(key))
    return project


def _space_of(state: NexusState, doc: PagesDoc):
    return state.find_space(doc.space_id)


# ============ CORE / SHARED ============


@tool("nexusUserInfo")
def _user_info(args, state):
    return map_user(state.user)


@tool("getAccessibleNexusResources")
def _accessible_resources(args, state):
    return {
        "resources": [
            {
                "id": r.cloud_id,
                "url": r.site,
                "name": r.site.removeprefix("https://").split(".")[0],
                "scopes": [
                    "read:tracker-work",
                    "write:tracker-work",
                    "read:pages-content.all",
                    "write:pages-content",
                ],
            }
            for r in state.resources
        ]
    }


@tool("search")
def _search(args, state):
    query = _str(args, "query").lower()
    if not query:
        raise DomainError('Missing query parameter. Usage: search("roadmap")')
    limit = min(_int(args, "limit", SEARCH_DEFAULT_LIMIT), SEARCH_MAX_LIMIT)
    results: list[dict[str, Any]] = []
    for doc in state.docs.values():
        if query in doc.title.lower() or query in doc.body.lower():
            results.append(map_doc_hit(doc, _space_of(state, doc)))
    for issue in state.issues.values():
        haystacks = (issue.key, issue.summary, issue.description or "")
        if any(query in h.lower() for h in haystacks):
            results.append(map_issue_hit(issue))
    return {"results": results[:limit], "total": len(results)}


@tool("fetch")
def _fetch(args, state):
    ari = _str(args, "ari")
    match = _ARI.match(ari)
    if not match:
        raise DomainError(
            f"Invalid ARI format: {ari!r}. Expected ari:cloud:<product>:<cloudId>:<type>/<id>, "
            "e.g. ari:cloud:pages:c-123:doc/P-501"
        )
    product, kind, entity_id = match.groups()
    if product == "pages" and kind == "doc":
        doc = state.docs.get(entity_id)
        if doc is None:
            raise DomainError(state.doc_not_found(entity_id))
        state.log_read(f"pages:doc:{doc.id}", {"title": doc.title, "via": "fetch"})
        return map_doc(doc, _space_of(state, doc))
    if product == "tracker" and kind == "issue":
        issue = state.find_issue(entity_id)
        if issue is None:
            raise DomainError(state.issue_not_found(entity_id))
        return map_issue(issue)
    if product == "catalog" and kind == "component":
        component = state.components.get(entity_id)
        if component is None:
            raise DomainError(f"Component {entity_id} not found")
        return map_component(component, detailed=True)
    raise DomainError(f"Unsupported ARI type: {product}:{kind}")


# ============ PAGES ============


@tool("getPagesSpaces")
def _pages_spaces(args, state):
    limit = _int(args, "limit", LIST_DEFAULT_LIMIT)
    return {"results": [map_space(s) for s in state.spaces[:limit]], "size": len(state.spaces)}


@tool("getDocsInPagesSpace")
def _docs_in_space(args, state):
    space_id = _str(args, "spaceId")
    space = state.find_space(space_id)
    if space is None:
        raise DomainError(state.space_not_found(space_id))
    limit = _int(args, "limit", LIST_DEFAULT_LIMIT)
    docs = [d for d in state.docs.values() if d.space_id == space.id]
    return {"results": [map_doc_summary(d, space) for d in docs[:limit]], "size": len(docs)}


@tool("getPagesDoc")
def _get_doc(args, state):
    doc = _doc_arg(args, state, "getPagesDoc")
    state.log_read(f"pages:doc:{doc.id}", {"title": doc.title})
    return map_doc(doc, _space_of(state, doc))


@tool("getPagesDocInlineComments")
def _doc_inline_comments(args, state):
    doc = _doc_arg(args, state, "getPagesDocInlineComments")
    state.log_read(
        f"pages:inlineComments:{doc.id}",
        {
            "commentCount": len(doc.inline_comments),
            "hasLegalComment": any("Legal" in c.author for c in doc.inline_comments),
        },
    )
    return {"results": [map_inline_comment(c) for c in doc.inline_comments], "size": len(doc.inline_comments)}


@tool("getPagesDocFooterComments")
def _doc_footer_comments(args, state):
    doc = _doc_arg(args, state, "getPagesDocFooterComments")
    return {"results": [map_footer_comment(c) for c in doc.footer_comments], "size": len(doc.footer_comments)}


@tool("getPagesDocDescendants")
def _doc_descendants(args, state):
    doc = _doc_arg(args, state, "getPagesDocDescendants")
    limit = _int(args, "limit", LIST_DEFAULT_LIMIT)
    children = [d for d in state.docs.values() if d.parent_id == doc.id]
    return {"results": [{"id": d.id, "title": d.title} for d in children[:limit]], "size": len(children)}


@tool("createPagesDoc")
def _create_doc(args, state):
    title = _str(args, "title")
    doc_id = _unwrap(state.create_doc(_str(args, "spaceId"), title, _str(args, "body"), _opt_str(args, "parentId")))
    doc = state.docs[doc_id]
    return map_doc_summary(doc, _space_of(state, doc))


@tool("updatePagesDoc")
def _update_doc(args, state):
    doc_id = _str(args, "docId")
    version = args.get("version")
    if version is not None and version != "":
        try:
            version = int(version)
        except (TypeError, ValueError) as exc:
            raise DomainError(f"version must be a number, got {version!r}") from exc
    else:
        version = None
    _unwrap(state.update_doc(doc_id, title=_opt_str(args, "title"), body=_opt_str(args, "body"), version=version))
    doc = state.docs[doc_id]
    return map_doc(doc, _space_of(state, doc))


@tool("createPagesInlineComment")
def _create_inline_comment(args, state):
    comment_id = _unwrap(state.add_inline_comment(_str(args, "docId"), _str(args, "body"), _str(args, "anchor")))
    return {"id": comment_id, "created": True}


@tool("createPagesFooterComment")
def _create_footer_comment(args, state):
    comment_id = _unwrap(state.add_footer_comment(_str(args, "docId"), _str(args, "body")))
    return {"id": comment_id, "created": True}


@tool("searchPagesUsingNql")
def _search_nql(args, state):
    nql = _str(args, "nql")
    if not nql:
        raise DomainError("Missing nql parameter. Usage: searchPagesUsingNql(\"title ~ 'roadmap'\")")
    limit = _int(args, "limit", LIST_DEFAULT_LIMIT)
    title = _NQL_TITLE.search(nql)
    text = _NQL_TEXT.search(nql)
    space = _NQL_SPACE.search(nql)
    space_key = (space.group(1) or space.group(2)).lower() if space else None

    hits = []
    for doc in state.docs.values():
        if title and title.group(1).lower() not in doc.title.lower():
            continue
        if text and text.group(1).lower() not in doc.body.lower():
            continue
        doc_space = _space_of(state, doc)
        if space_key and (doc_space is None or space_key not in (doc_space.key.lower(), doc_space.id.lower())):
            continue
        hits.append(map_doc_hit(doc, doc_space))
    return {"results": hits[:limit], "total": len(hits)}


# ============ TRACKER ============


@tool("getVisibleTrackerProjects")
def _visible_projects(args, state):
    return {
        "values": [{"id": p.id, "key": p.key, "name": p.name, "projectTypeKey": "software"} for p in state.projects],
        "total": len(state.projects),
    }


@tool("getTrackerProjectIssueTypesMetadata")
def _project_issue_types(args, state):
    project = _project_arg(args, state, "getTrackerProjectIssueTypesMetadata")
    return {"issueTypes": [{"id": t.id, "name": t.name, "subtask": False} for t in project.issue_types]}


@tool("getTrackerIssueTypeMetaWithFields")
def _issue_type_fields(args, state):
    project = _project_arg(args, state, "getTrackerIssueTypeMetaWithFields")
    type_name = _str(args, "issueType")
    issue_type = next((t for t in project.issue_types if t.name.lower() == type_name.lower()), None)
    if issue_type is None:
        names = ", ".join(t.name for t in project.issue_types)
        raise DomainError(f"Issue type {type_name!r} not found in project {project.key}. Available: {names}")
    return {
        "issueType": {"id": issue_type.id, "name": issue_type.name},
        "fields": {
            f.key: {"name": f.name, "required": f.required, "schema": {"type": f.schema_type}}
            for f in issue_type.fields
        },
    }


@tool("searchTrackerIssuesUsingTql")
def _search_tql(args, state):
    tql = _TQL_ORDER_BY.sub("", _str(args, "tql"))
    limit = _int(args, "limit", TQL_DEFAULT_LIMIT)
    start_at = _int(args, "startAt", 0)
    project = _TQL_PROJECT.search(tql)
    status = _TQL_STATUS.search(tql)
    key = _TQL_KEY.search(tql)
    wanted_status = (status.group(1) or status.group(2)) if status else None
    needle = tql.strip().strip("\"'").lower()

    matches = []
    for issue in state.issues.values():
        if project and issue.project_key.lower() != project.group(1).lower():
            continue
        if wanted_status and not statuses_match(issue.status, wanted_status):
            continue
        if key and issue.key.upper() != key.group(1).upper():
            continue
        if not (project or status or key):
            if needle and needle not in issue.summary.lower() and needle not in issue.key.lower():
                continue
        matches.append(issue)
    return {
        "startAt": start_at,
        "maxResults": limit,
        "total": len(matches),
        "issues": [map_issue(i) for i in matches[start_at : start_at + limit]],
    }


@tool("getTrackerIssue")
def _get_issue(args, state):
    return map_issue(_issue_arg(args, state, "getTrackerIssue"))


@tool("getTransitionsForTrackerIssue")
def _issue_transitions(args, state):
    issue = _issue_arg(args, state, "getTransitionsForTrackerIssue")
    return {"transitions": [map_transition(t) for t in state.transitions.get(issue.key, [])]}


@tool("editTrackerIssue")
def _edit_issue(args, state):
    issue = _issue_arg(args, state, "editTrackerIssue")
    fields = args.get("fields")
    if fields is None:
        # Accept editTrackerIssue({issueIdOrKey, summary: ...}) without the fields wrapper
        fields = {k: v for k, v in args.items() if k != "issueIdOrKey"}
    if not isinstance(fields, dict):
        raise DomainError('fields must be an object, e.g. editTrackerIssue("LHR-101", { summary: "..." })')
    key = _unwrap(state.edit_issue(issue.key, fields))
    return {"ok": True, "message": f"Issue {key} updated", "issue": map_issue(state.issues[key])}


@tool("transitionTrackerIssue")
def _transition_issue(args, state):
    issue = _issue_arg(args, state, "transitionTrackerIssue")
    transition_id = _str(args, "transitionId")
    if not transition_id:
        raise DomainError(
            f"Missing transitionId parameter. Use getTransitionsForTrackerIssue(\"{issue.key}\") to list them."
        )
    new_status = _unwrap(state.transition_issue(issue.key, transition_id))
    return {"ok": True, "key": issue.key, "newStatus": new_status}


@tool("addCommentToTrackerIssue")
def _add_comment(args, state):
    comment_id = _unwrap(state.add_comment(_str(args, "issueIdOrKey"), _str(args, "body")))
    return {"id": comment_id, "created": True}


@tool("addWorklogToTrackerIssue")
def _add_worklog(args, state):
    worklog_id = _unwrap(state.add_worklog(_str(args, "issueIdOrKey"), _str(args, "timeSpent")))
    return {"id": worklog_id, "created": True}


@tool("createTrackerIssue")
def _create_issue(args, state):
    key = _unwrap(
        state.create_issue(
            _str(args, "projectKey"),
            _str(args, "summary"),
            _str(args, "issuetype") or _str(args, "issueType") or DEFAULT_ISSUE_TYPE,
            _opt_str(args, "description"),
        )
    )
    return map_issue_reference(state.issues[key])


@tool("getTrackerIssueRemoteLinks")
def _remote_links(args, state):
    issue = _issue_arg(args, state, "getTrackerIssueRemoteLinks")
    links = [{"id": link.id, "object": {"url": link.url, "title": link.title}} for link in issue.remote_links]
    return {"values": links, "total": len(links)}


@tool("lookupTrackerAccountId")
def _lookup_account(args, state):
    query = _str(args, "query").lower()
    user = state.user
    matched = bool(query) and (query in user.display_name.lower() or query in user.email.lower())
    return {"values": [map_user(user)] if matched else []}


# ============ CATALOG ============


@tool("getCatalogComponents")
def _list_components(args, state):
    limit = _int(args, "limit", LIST_DEFAULT_LIMIT)
    kind = _str(args, "type").upper()
    components = [c for c in state.components.values() if not kind or c.type == kind]
    return {"values": [map_component(c) for c in components[:limit]], "total": len(components)}


@tool("getCatalogComponent")
def _get_component(args, state):
    component_id = _str(args, "componentId")
    component = state.components.get(component_id)
    if component is None:
        available = ", ".join(state.components) or "none"
        raise DomainError(f"Component {component_id!r} not found. Available components: {available}")
    return map_component(component, detailed=True)


@tool("createCatalogComponent")
def _create_component(args, state):
    component_id = _unwrap(
        state.create_component(_str(args, "name"), _str(args, "type", "SERVICE"), _opt_str(args, "description"))
    )
    return {"id": component_id, "created": True}


@tool("createCatalogComponentRelationship")
def _create_relationship(args, state):
    relationship_id = _unwrap(
        state.create_relationship(
            _str(args, "sourceId"),
            _str(args, "targetId"),
            _str(args, "type") or DEFAULT_RELATIONSHIP_TYPE,
        )
    )
    return {"id": relationship_id, "created": True}


@tool("getCatalogCustomFieldDefinitions")
def _list_custom_fields(args, state):
    limit = _int(args, "limit", LIST_DEFAULT_LIMIT)
    defs = state.custom_field_defs
    return {"values": [{"id": f.id, "name": f.name, "type": f.type} for f in defs[:limit]], "total": len(defs)}


@tool("createCatalogCustomFieldDefinition")
def _create_custom_field(args, state):
    field_id = _unwrap(state.create_custom_field(_str(args, "name"), _str(args, "type", "TEXT")))
    return {"id": field_id, "created": True}


def _validate_registry() -> None:
    declared = set(ALL_TOOL_NAMES)
    registered = set(TOOL_REGISTRY)
    if declared != registered:
        raise RuntimeError(
            "Tool registry does not match the declared catalog: "
            f"missing handlers {sorted(declared - registered)}, undeclared handlers {sorted(registered - declared)}"
        )


_validate_registry()
