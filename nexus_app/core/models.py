"""Domain data models for Tracker issues, Pages docs, Catalog components, and audit logs."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(slots=True)
class User:
    account_id: str
    display_name: str
    email: str


@dataclass(slots=True)
class Resource:
    cloud_id: str
    site: str


# ------------------ Tracker ------------------


@dataclass(slots=True)
class TrackerComment:
    id: str
    author: str
    body: str
    created: str


@dataclass(slots=True)
class Worklog:
    id: str
    author: str
    time_spent: str
    time_spent_seconds: int
    started: str


@dataclass(slots=True)
class RemoteLink:
    id: str
    url: str
    title: str


@dataclass(slots=True)
class Transition:
    id: str
    name: str
    to_status: str


@dataclass(slots=True)
class FieldMeta:
    key: str
    name: str
    required: bool
    schema_type: str = "string"


@dataclass(slots=True)
class IssueType:
    id: str
    name: str
    fields: list[FieldMeta] = field(default_factory=list)


@dataclass(slots=True)
class Project:
    id: str
    key: str
    name: str
    issue_types: list[IssueType] = field(default_factory=list)


@dataclass(slots=True)
class TrackerIssue:
    id: str
    key: str
    project_key: str
    summary: str
    status: str
    issue_type: str
    created: str
    updated: str
    description: str | None = None
    priority: str | None = None
    assignee: str | None = None
    reporter: str | None = None
    labels: list[str] = field(default_factory=list)
    custom_fields: dict[str, Any] = field(default_factory=dict)
    comments: list[TrackerComment] = field(default_factory=list)
    worklogs: list[Worklog] = field(default_factory=list)
    remote_links: list[RemoteLink] = field(default_factory=list)


# ------------------ Pages ------------------


@dataclass(slots=True)
class PagesSpace:
    id: str
    key: str
    name: str
    type: str = "global"


@dataclass(slots=True)
class InlineComment:
    id: str
    anchor: str
    author: str
    body: str
    created: str


@dataclass(slots=True)
class FooterComment:
    id: str
    author: str
    body: str
    created: str


@dataclass(slots=True)
class PagesDoc:
    id: str
    space_id: str
    title: str
    body: str
    created: str
    updated: str
    version: int = 1
    parent_id: str | None = None
    inline_comments: list[InlineComment] = field(default_factory=list)
    footer_comments: list[FooterComment] = field(default_factory=list)


# ------------------ Catalog ------------------


@dataclass(slots=True)
class Relationship:
    id: str
    target_id: str
    type: str


@dataclass(slots=True)
class CatalogComponent:
    id: str
    name: str
    type: str
    description: str | None = None
    relationships: list[Relationship] = field(default_factory=list)
    custom_fields: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class CustomFieldDef:
    id: str
    name: str
    type: str


# ------------------ Audit ------------------


@dataclass(slots=True)
class ActionLogEntry:
    timestamp: str
    action: str
    target: str
    details: dict[str, Any] = field(default_factory=dict)
    seq: int = 0  # shared with ReadLogEntry; call order across both logs


@dataclass(slots=True)
class ReadLogEntry:
    timestamp: str
    resource: str
    details: dict[str, Any] | None = None
    seq: int = 0


@dataclass(slots=True)
class MutationResult:
    """Outcome of a store mutation; ``value`` carries the new id, key, or status."""

    success: bool
    error: str | None = None
    value: str | None = None

    @classmethod
    def ok(cls, value: str | None = None) -> MutationResult:
        return cls(success=True, value=value)

    @classmethod
    def fail(cls, error: str) -> MutationResult:
        return cls(success=False, error=error)


# ------------------ Engine result ------------------


@dataclass(slots=True)
class ValidationResult:
    """What the game receives for one utterance."""

    status: str
    message: str
    tool_output: str | None = None
    fail_type: str | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"status": self.status, "message": self.message}
        if self.tool_output is not None:
            payload["toolOutput"] = self.tool_output
        if self.fail_type is not None:
            payload["failType"] = self.fail_type
        return payload
