"""Map store models into upstream-shaped JSON payloads (Tracker REST v3, Pages content API)."""

from __future__ import annotations

from typing import Any

from .config import EXCERPT_LENGTH, SITE_URL
from .models import (
    CatalogComponent,
    FooterComment,
    InlineComment,
    PagesDoc,
    PagesSpace,
    TrackerComment,
    TrackerIssue,
    Transition,
    User,
)
from .status import map_status_category


def issue_url(key: str) -> str:
    return f"{SITE_URL}/browse/{key}"


def issue_api_url(key: str) -> str:
    return f"{SITE_URL}/rest/api/3/issue/{key}"


def doc_url(doc: PagesDoc, space: PagesSpace | None) -> str:
    if space is None:
        return f"{SITE_URL}/wiki/docs/{doc.id}"
    return f"{SITE_URL}/wiki/spaces/{space.key}/docs/{doc.id}"


def excerpt(text: str, length: int = EXCERPT_LENGTH) -> str:
    if len(text) <= length:
        return text
    return text[:length] + "..."


def _storage(value: str) -> dict[str, Any]:
    return {"storage": {"value": value, "representation": "storage"}}


def map_issue(issue: TrackerIssue) -> dict[str, Any]:
    fields: dict[str, Any] = {
        "summary": issue.summary,
        "description": issue.description,
        "status": {"name": issue.status, "statusCategory": {"name": map_status_category(issue.status)}},
        "issuetype": {"name": issue.issue_type},
        "project": {"key": issue.project_key},
        "labels": list(issue.labels),
        "created": issue.created,
        "updated": issue.updated,
        "comment": {"comments": [map_tracker_comment(c) for c in issue.comments], "total": len(issue.comments)},
        "worklog": {
            "worklogs": [
                {
                    "id": w.id,
                    "author": {"displayName": w.author},
                    "timeSpent": w.time_spent,
                    "timeSpentSeconds": w.time_spent_seconds,
                    "started": w.started,
                }
                for w in issue.worklogs
            ],
            "total": len(issue.worklogs),
        },
    }
    if issue.priority:
        fields["priority"] = {"name": issue.priority}
    if issue.assignee:
        fields["assignee"] = {"displayName": issue.assignee}
    if issue.reporter:
        fields["reporter"] = {"displayName": issue.reporter}
    fields.update(issue.custom_fields)
    return {"id": issue.id, "key": issue.key, "self": issue_api_url(issue.key), "fields": fields}


def map_issue_reference(issue: TrackerIssue) -> dict[str, Any]:
    return {"id": issue.id, "key": issue.key, "self": issue_api_url(issue.key)}


def map_tracker_comment(comment: TrackerComment) -> dict[str, Any]:
    return {
        "id": comment.id,
        "author": {"displayName": comment.author},
        "body": comment.body,
        "created": comment.created,
    }


def map_transition(transition: Transition) -> dict[str, Any]:
    return {"id": transition.id, "name": transition.name, "to": {"name": transition.to_status}}


def map_doc(doc: PagesDoc, space: PagesSpace | None) -> dict[str, Any]:
    return {
        "id": doc.id,
        "type": "page",
        "title": doc.title,
        "parentId": doc.parent_id,
        "space": {"id": space.id, "key": space.key, "name": space.name} if space else None,
        "version": {"number": doc.version, "when": doc.updated},
        "body": _storage(doc.body),
        "_links": {
            "webui": doc_url(doc, space),
            "self": f"{SITE_URL}/wiki/rest/api/content/{doc.id}",
        },
    }


def map_doc_summary(doc: PagesDoc, space: PagesSpace | None) -> dict[str, Any]:
    return {
        "id": doc.id,
        "title": doc.title,
        "version": {"number": doc.version},
        "_links": {"webui": doc_url(doc, space)},
    }


def map_doc_hit(doc: PagesDoc, space: PagesSpace | None) -> dict[str, Any]:
    """Search-result shape shared by global search and NQL."""
    return {
        "type": "pages:doc",
        "id": doc.id,
        "title": doc.title,
        "url": doc_url(doc, space),
        "excerpt": excerpt(doc.body),
    }


def map_issue_hit(issue: TrackerIssue) -> dict[str, Any]:
    return {
        "type": "tracker:issue",
        "id": issue.id,
        "title": f"{issue.key}: {issue.summary}",
        "url": issue_url(issue.key),
    }


def map_space(space: PagesSpace) -> dict[str, Any]:
    return {
        "id": space.id,
        "key": space.key,
        "name": space.name,
        "type": space.type,
        "_links": {"webui": f"{SITE_URL}/wiki/spaces/{space.key}"},
    }


def map_inline_comment(comment: InlineComment) -> dict[str, Any]:
    return {
        "id": comment.id,
        "anchor": comment.anchor,
        "body": _storage(comment.body),
        "author": {"displayName": comment.author},
        "created": comment.created,
    }


def map_footer_comment(comment: FooterComment) -> dict[str, Any]:
    return {
        "id": comment.id,
        "body": _storage(comment.body),
        "author": {"displayName": comment.author},
        "created": comment.created,
    }


def map_user(user: User) -> dict[str, Any]:
    return {
        "accountId": user.account_id,
        "displayName": user.display_name,
        "emailAddress": user.email,
        "active": True,
    }


def map_component(component: CatalogComponent, *, detailed: bool = False) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "id": component.id,
        "name": component.name,
        "type": component.type,
        "description": component.description,
    }
    if detailed:
        payload["relationships"] = [
            {"id": r.id, "targetId": r.target_id, "type": r.type} for r in component.relationships
        ]
        payload["customFields"] = dict(component.custom_fields)
    return payload
