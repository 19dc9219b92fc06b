"""Audit frames over a session's action and read logs.

The engine keeps plain dataclass logs; these helpers turn them into pandas
frames for the inspection console and for assertions in tests.
"""

from __future__ import annotations

import pandas as pd
import pytz

from nexus_app.core.config import REQUIRED_ISSUE_KEYS, SETTINGS, TIMEZONE
from nexus_app.core.state import ACTION_TRANSITION_ISSUE, NexusState

ACTION_COLUMNS = ["seq", "timestamp", "action", "target", "details"]
READ_COLUMNS = ["seq", "timestamp", "resource", "details"]
TIMELINE_COLUMNS = ["timestamp", "kind", "seq", "name", "target", "details"]


def to_display_tz(series: pd.Series, tz=None) -> pd.Series:
    """Parse ISO timestamps as UTC and convert to the display timezone.

    Unparseable values become NaT rather than raising.
    """
    target = tz or pytz.timezone(TIMEZONE)
    # Seed timestamps have no milliseconds, generated ones do
    parsed = pd.to_datetime(series, utc=True, errors="coerce", format="ISO8601")
    return parsed.dt.tz_convert(target)


def action_log_frame(state: NexusState, tz=None) -> pd.DataFrame:
    rows = [
        {"seq": e.seq, "timestamp": e.timestamp, "action": e.action, "target": e.target, "details": dict(e.details)}
        for e in state.action_log
    ]
    df = pd.DataFrame(rows, columns=ACTION_COLUMNS)
    if not df.empty:
        df["timestamp"] = to_display_tz(df["timestamp"], tz)
    return df


def read_log_frame(state: NexusState, tz=None) -> pd.DataFrame:
    rows = [
        {"seq": e.seq, "timestamp": e.timestamp, "resource": e.resource, "details": dict(e.details or {})}
        for e in state.read_log
    ]
    df = pd.DataFrame(rows, columns=READ_COLUMNS)
    if not df.empty:
        df["timestamp"] = to_display_tz(df["timestamp"], tz)
    return df


def timeline_frame(state: NexusState, tz=None) -> pd.DataFrame:
    """Reads and writes merged in call order.

    Both logs draw ``seq`` from one counter on the state, so ordering by it
    alone holds even when entries share a millisecond timestamp.
    """
    actions = action_log_frame(state, tz).rename(columns={"action": "name"})
    actions["kind"] = "write"
    reads = read_log_frame(state, tz).rename(columns={"resource": "name"})
    reads["kind"] = "read"
    reads["target"] = reads["name"].str.rsplit(":", n=1).str[-1] if not reads.empty else pd.Series(dtype=object)
    frames = [f for f in (reads, actions) if not f.empty]
    if not frames:
        return pd.DataFrame(columns=TIMELINE_COLUMNS)
    merged = pd.concat(frames, ignore_index=True)
    merged = merged.sort_values("seq", kind="stable").reset_index(drop=True)
    return merged[TIMELINE_COLUMNS]


def transition_summary(state: NexusState, tz=None) -> pd.DataFrame:
    """One row per transitioned issue: count, first/last status, last change time."""
    actions = action_log_frame(state, tz)
    columns = ["target", "transitions", "from_status", "to_status", "last_transition"]
    if actions.empty:
        return pd.DataFrame(columns=columns)
    moves = actions[actions["action"] == ACTION_TRANSITION_ISSUE].copy()
    if moves.empty:
        return pd.DataFrame(columns=columns)
    moves["from_status"] = moves["details"].apply(lambda d: d.get("fromStatus"))
    moves["to_status"] = moves["details"].apply(lambda d: d.get("toStatus"))
    summary = (
        moves.sort_values("seq")
        .groupby("target", sort=True)
        .agg(
            transitions=("seq", "count"),
            from_status=("from_status", "first"),
            to_status=("to_status", "last"),
            last_transition=("timestamp", "max"),
        )
        .reset_index()
    )
    return summary[columns]


def issues_frame(state: NexusState) -> pd.DataFrame:
    """Snapshot of every issue with its activity counts."""
    columns = [
        "key",
        "summary",
        "status",
        "issuetype",
        "comments",
        "worklog_seconds",
        "edited",
        "transitioned",
        "required",
        "updated",
    ]
    rows = []
    for issue in state.issues.values():
        rows.append(
            {
                "key": issue.key,
                "summary": issue.summary,
                "status": issue.status,
                "issuetype": issue.issue_type,
                "comments": len(issue.comments),
                "worklog_seconds": sum(w.time_spent_seconds for w in issue.worklogs),
                "edited": state.was_issue_edited(issue.key),
                "transitioned": state.was_issue_transitioned(issue.key),
                "required": issue.key in REQUIRED_ISSUE_KEYS,
                "updated": issue.updated,
            }
        )
    df = pd.DataFrame(rows, columns=columns)
    if not df.empty:
        df["updated"] = to_display_tz(df["updated"])
    return df.head(SETTINGS.max_table_rows)


def docs_frame(state: NexusState) -> pd.DataFrame:
    columns = ["id", "title", "space", "version", "inline_comments", "footer_comments", "body_preview"]
    limit = SETTINGS.body_preview_chars
    rows = []
    for doc in state.docs.values():
        space = state.find_space(doc.space_id)
        rows.append(
            {
                "id": doc.id,
                "title": doc.title,
                "space": space.key if space else doc.space_id,
                "version": doc.version,
                "inline_comments": len(doc.inline_comments),
                "footer_comments": len(doc.footer_comments),
                "body_preview": doc.body if len(doc.body) <= limit else doc.body[:limit] + "…",
            }
        )
    return pd.DataFrame(rows, columns=columns)
