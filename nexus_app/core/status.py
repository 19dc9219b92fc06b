"""Status normalization and categorization utilities.

Tracker statuses are free-form strings on the issue, but queries (TQL) and the
audit frames compare them case-insensitively through the aliases configured in
config.py (STATUS_ALIASES, STATUS_DISPLAY_ORDER, TERMINAL_STATUSES).
"""

from __future__ import annotations

from .config import STATUS_ALIASES, STATUS_DISPLAY_ORDER, TERMINAL_STATUSES


def normalize_workflow_status(value: str | None) -> str:
    """Map a raw status string to its canonical workflow name.

    Parameters
    ----------
    value : str | None
        Raw status string, e.g. from a TQL clause.

    Returns
    -------
    str
        Canonical status name, the stripped input when it is not a known alias,
        or "Unknown" for empty values.

    Examples
    --------
    >>> normalize_workflow_status("in-progress")
    'In Progress'
    >>> normalize_workflow_status("blocked - legal")
    'Blocked - Legal'
    """
    if not value:
        return "Unknown"
    text = str(value).strip()
    lowered = text.lower()
    if lowered in STATUS_ALIASES:
        return STATUS_ALIASES[lowered]
    for status in STATUS_DISPLAY_ORDER:
        if lowered == status.lower():
            return status
    return text or "Unknown"


def statuses_match(left: str | None, right: str | None) -> bool:
    """Compare two statuses after normalization."""
    return normalize_workflow_status(left) == normalize_workflow_status(right)


def map_status_category(value: str | None) -> str:
    """Map a status to the upstream status category ("To Do", "In Progress", "Done")."""
    normalized = normalize_workflow_status(value)
    if normalized in TERMINAL_STATUSES:
        return "Done"
    if normalized == "To Do":
        return "To Do"
    return "In Progress"
