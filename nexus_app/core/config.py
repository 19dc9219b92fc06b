"""Central configuration, constants, scenario thresholds, and tool groupings."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

# =============================================================================
# MCP Server / Site Settings
# =============================================================================
SERVER_NAME = "nexus-core"
SITE_URL = "https://acme.nexus.io"
CLOUD_ID = "c-123"
TIMEZONE = "UTC"  # display timezone for audit frames

CONNECTED_SERVERS: Sequence[str] = (SERVER_NAME,)

# =============================================================================
# Meta Functions (always callable, never gated by discovery)
# =============================================================================
META_LIST_TOOLS = "mcp_list_tools"
META_SEARCH_TOOLS = "mcp_search_tools"
META_TOOL_USE = "mcp_tool_use"

META_FUNCTIONS: frozenset[str] = frozenset({META_LIST_TOOLS, META_SEARCH_TOOLS, META_TOOL_USE})

# =============================================================================
# Tool Catalog (names grouped by product; signatures live in tools.yaml)
# =============================================================================
TOOL_GROUPS: dict[str, tuple[str, ...]] = {
    "Core / Shared": (
        "nexusUserInfo",
        "getAccessibleNexusResources",
        "search",
        "fetch",
    ),
    "Pages": (
        "createPagesFooterComment",
        "createPagesInlineComment",
        "createPagesDoc",
        "getPagesDoc",
        "getPagesDocDescendants",
        "getPagesDocFooterComments",
        "getPagesDocInlineComments",
        "getPagesSpaces",
        "getDocsInPagesSpace",
        "searchPagesUsingNql",
        "updatePagesDoc",
    ),
    "Tracker": (
        "addCommentToTrackerIssue",
        "addWorklogToTrackerIssue",
        "createTrackerIssue",
        "editTrackerIssue",
        "getTrackerIssue",
        "getTrackerIssueRemoteLinks",
        "getTrackerIssueTypeMetaWithFields",
        "getTrackerProjectIssueTypesMetadata",
        "getTransitionsForTrackerIssue",
        "getVisibleTrackerProjects",
        "lookupTrackerAccountId",
        "searchTrackerIssuesUsingTql",
        "transitionTrackerIssue",
    ),
    "Catalog": (
        "createCatalogComponent",
        "createCatalogComponentRelationship",
        "createCatalogCustomFieldDefinition",
        "getCatalogComponent",
        "getCatalogComponents",
        "getCatalogCustomFieldDefinitions",
    ),
}

ALL_TOOL_NAMES: Sequence[str] = tuple(name for names in TOOL_GROUPS.values() for name in names)

# =============================================================================
# Workflow Status Configuration
# =============================================================================
STATUS_TODO = "To Do"
STATUS_IN_PROGRESS = "In Progress"
STATUS_DONE = "Done"
STATUS_BLOCKED = "Blocked"
STATUS_BLOCKED_LEGAL = "Blocked - Legal"

STATUS_DISPLAY_ORDER: Sequence[str] = (
    STATUS_TODO,
    STATUS_IN_PROGRESS,
    STATUS_BLOCKED,
    STATUS_BLOCKED_LEGAL,
    STATUS_DONE,
)

TERMINAL_STATUSES: frozenset[str] = frozenset({STATUS_DONE})

# Keys should be lowercase for case-insensitive matching
STATUS_ALIASES: dict[str, str] = {
    "to do": STATUS_TODO,
    "todo": STATUS_TODO,
    "open": STATUS_TODO,
    "in progress": STATUS_IN_PROGRESS,
    "inprogress": STATUS_IN_PROGRESS,
    "in-progress": STATUS_IN_PROGRESS,
    "blocked": STATUS_BLOCKED,
    "blocked - legal": STATUS_BLOCKED_LEGAL,
    "blocked-legal": STATUS_BLOCKED_LEGAL,
    "done": STATUS_DONE,
    "closed": STATUS_DONE,
    "resolved": STATUS_DONE,
}

# =============================================================================
# Tracker Defaults
# =============================================================================
WORKDAY_HOURS = 8  # "1d" in a worklog equals one working day
DEFAULT_ISSUE_TYPE = "Task"
CUSTOM_FIELD_PREFIX = "customfield_"

COMPONENT_TYPES: frozenset[str] = frozenset({"SERVICE", "LIBRARY", "APPLICATION", "OTHER"})
CUSTOM_FIELD_TYPES: frozenset[str] = frozenset({"TEXT", "NUMBER", "BOOLEAN", "USER"})
DEFAULT_RELATIONSHIP_TYPE = "DEPENDS_ON"

# Query limits mirror the upstream API defaults
SEARCH_DEFAULT_LIMIT = 5
SEARCH_MAX_LIMIT = 10
LIST_DEFAULT_LIMIT = 25
TQL_DEFAULT_LIMIT = 10
EXCERPT_LENGTH = 200

# =============================================================================
# Scenario: Lighthouse Retention roadmap sync
# =============================================================================
LIVE_DOC_ID = "P-501"
CONSTRAINED_ISSUE_KEY = "LHR-103"
CONSTRAINED_ISSUE_STATUS = STATUS_BLOCKED_LEGAL
REVIEWER_NAME = "Irene (Legal)"
REQUIRED_ISSUE_KEYS: Sequence[str] = ("LHR-100", "LHR-101", "LHR-102")
REQUIRED_TARGET_STATUS = STATUS_IN_PROGRESS

# Tunable product heuristics for the final-state check
MIN_REQUIRED_TRANSITIONS = 2
REQUIRE_EDIT_OR_COMMENT = True
MIN_FINAL_ANSWER_LENGTH = 20

# =============================================================================
# Validation Result Labels
# =============================================================================
RESULT_SUCCESS = "SUCCESS"
RESULT_FAIL = "FAIL"
RESULT_INTERMEDIATE = "INTERMEDIATE"

FAIL_TOOL_ERROR = "TOOL_ERROR"
FAIL_USER_COMPLAINT = "USER_COMPLAINT"

# =============================================================================
# Level Metadata (shown by the surrounding game)
# =============================================================================
LEVEL = {
    "id": 4,
    "title": "MCP",
    "description": (
        "You are connected to a corporate Nexus Cloud site via MCP. You must discover your tools, "
        "then sync Tracker to the latest roadmap in Pages. Be thorough - important context may be "
        "hiding in comments."
    ),
    "system_prompt": "You are a helpful assistant.",
    "user_prompt": "Hey, can you sync Tracker to the latest 'Lighthouse Retention Roadmap' in Pages?",
    "placeholder": f'{META_LIST_TOOLS}("{SERVER_NAME}")',
    "hint": (
        "Discover tools first, then search for the roadmap. "
        "Don't forget to check doc comments for important constraints!"
    ),
    "success_message": (
        "Sync complete. You navigated the blind labyrinth, respected the hidden legal constraints, "
        "and updated the jagged records."
    ),
}


@dataclass(slots=True)
class AppSettings:
    max_table_rows: int = 500
    body_preview_chars: int = 150
    json_indent: int = 2


SETTINGS = AppSettings()
