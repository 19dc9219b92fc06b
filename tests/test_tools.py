import json

from nexus_app.core.config import ALL_TOOL_NAMES
from nexus_app.core.parser import parse_tool_call
from nexus_app.core.tools import TOOL_REGISTRY, execute_tool


def _run(state, text):
    result = parse_tool_call(text)
    assert result.success, result.error
    outcome = execute_tool(result.call, state)
    return outcome, json.loads(outcome.output)


def test_registry_covers_the_catalog():
    assert set(TOOL_REGISTRY) == set(ALL_TOOL_NAMES)
    assert len(TOOL_REGISTRY) == 34


def test_unknown_tool_is_an_error(state):
    outcome, payload = _run(state, "deleteTrackerIssue(\"LHR-100\")")
    assert not outcome.success
    assert payload == {"error": "Unknown tool: deleteTrackerIssue"}


def test_missing_issue_key_lists_available_issues(state):
    outcome, payload = _run(state, "getTrackerIssue()")
    assert not outcome.success
    assert "Missing issueIdOrKey parameter" in payload["error"]
    assert "LHR-100, LHR-101, LHR-102, LHR-103" in payload["error"]


def test_reads_are_logged(state):
    _run(state, 'getPagesDoc("P-501")')
    _, payload = _run(state, 'getPagesDocInlineComments("P-501")')
    assert payload["size"] == 1
    assert payload["results"][0]["anchor"] == "row:LHR-103"
    resources = [e.resource for e in state.read_log]
    assert resources == ["pages:doc:P-501", "pages:inlineComments:P-501"]
    assert state.read_log[1].details == {"commentCount": 1, "hasLegalComment": True}
    assert state.action_log == []


def test_search_finds_both_roadmaps(state):
    _, payload = _run(state, 'search("roadmap")')
    assert payload["total"] == 2
    assert {r["id"] for r in payload["results"]} == {"P-500", "P-501"}
    assert all(r["type"] == "pages:doc" for r in payload["results"])

    _, payload = _run(state, 'search("transcripts")')
    assert payload["results"][0]["type"] == "tracker:issue"
    assert payload["results"][0]["title"].startswith("LHR-101")


def test_search_requires_a_query(state):
    outcome, payload = _run(state, 'search("")')
    assert not outcome.success
    assert "Missing query" in payload["error"]


def test_tql_filters_by_status(state):
    _, payload = _run(state, "searchTrackerIssuesUsingTql(\"project = LHR AND status = 'To Do' ORDER BY key\")")
    assert payload["total"] == 3
    assert [i["key"] for i in payload["issues"]] == ["LHR-100", "LHR-101", "LHR-102"]

    _, payload = _run(state, "searchTrackerIssuesUsingTql(\"status = 'blocked - legal'\")")
    assert [i["key"] for i in payload["issues"]] == ["LHR-103"]

    _, payload = _run(state, 'searchTrackerIssuesUsingTql("project = LHR", 2, 2)')
    assert payload["total"] == 4
    assert [i["key"] for i in payload["issues"]] == ["LHR-102", "LHR-103"]


def test_nql_title_search(state):
    _, payload = _run(state, "searchPagesUsingNql(\"title ~ 'LIVE'\")")
    assert [r["id"] for r in payload["results"]] == ["P-501"]
    _, payload = _run(state, "searchPagesUsingNql(\"space = GROW\")")
    assert payload["total"] == 0


def test_fetch_by_ari(state):
    _, payload = _run(state, 'fetch("ari:cloud:pages:c-123:doc/P-501")')
    assert payload["version"]["number"] == 3
    assert state.was_doc_read("P-501")

    _, payload = _run(state, 'fetch("ari:cloud:tracker:c-123:issue/LHR-103")')
    assert payload["fields"]["status"]["name"] == "Blocked - Legal"

    outcome, payload = _run(state, 'fetch("P-501")')
    assert not outcome.success
    assert "Invalid ARI format" in payload["error"]


def test_transition_and_status_category(state):
    _, payload = _run(state, 'getTransitionsForTrackerIssue("LHR-100")')
    assert payload["transitions"][0] == {"id": "T-1", "name": "Start Progress", "to": {"name": "In Progress"}}

    _, payload = _run(state, 'transitionTrackerIssue("LHR-100", "T-1")')
    assert payload == {"ok": True, "key": "LHR-100", "newStatus": "In Progress"}

    _, payload = _run(state, 'getTrackerIssue("LHR-100")')
    assert payload["fields"]["status"]["statusCategory"]["name"] == "In Progress"


def test_edit_issue_positional_and_flat_forms(state):
    _, payload = _run(state, 'editTrackerIssue("LHR-101", {summary: "Implement auto-delete"})')
    assert payload["ok"] is True
    assert payload["issue"]["fields"]["summary"] == "Implement auto-delete"

    _, payload = _run(state, 'editTrackerIssue({issueIdOrKey: "LHR-100", "Retention Window": "18 months"})')
    assert payload["issue"]["fields"]["customfield_10001"] == "18 months"
    assert len(state.action_log) == 2


def test_create_then_fetch_issue(state):
    _, created = _run(state, 'createTrackerIssue({projectKey: "LHR", summary: "Backfill", issuetype: "Task"})')
    assert created["key"] == "LHR-104"
    _, payload = _run(state, 'getTrackerIssue("LHR-104")')
    assert payload["fields"]["reporter"] == {"displayName": "Agent User"}
    assert payload["fields"]["status"]["name"] == "To Do"


def test_update_doc_version_conflict(state):
    outcome, payload = _run(state, 'updatePagesDoc("P-501", "New title", "Body", 1)')
    assert not outcome.success
    assert payload["error"] == "Version conflict: expected 3, got 1"

    _, payload = _run(state, 'updatePagesDoc({docId: "P-501", body: "Body", version: 3})')
    assert payload["version"]["number"] == 4


def test_create_doc_then_list_descendants(state):
    _, created = _run(state, 'createPagesDoc({spaceId: "SEC", title: "Appendix", body: "x", parentId: "P-501"})')
    _, payload = _run(state, 'getPagesDocDescendants("P-501")')
    assert payload["results"] == [{"id": created["id"], "title": "Appendix"}]


def test_catalog_round_trip(state):
    _run(state, 'createCatalogComponent({name: "retention-api", type: "service"})')
    _run(state, 'createCatalogComponent({name: "retention-db", type: "OTHER"})')
    _, rel = _run(state, 'createCatalogComponentRelationship({sourceId: "COMP-1", targetId: "COMP-2"})')
    assert rel == {"id": "REL-1", "created": True}
    _, payload = _run(state, 'getCatalogComponent("COMP-1")')
    assert payload["relationships"] == [{"id": "REL-1", "targetId": "COMP-2", "type": "DEPENDS_ON"}]
    _, payload = _run(state, 'getCatalogComponents("OTHER")')
    assert [c["name"] for c in payload["values"]] == ["retention-db"]


def test_user_lookup(state):
    _, payload = _run(state, "nexusUserInfo()")
    assert payload["accountId"] == "user-001"
    _, payload = _run(state, 'lookupTrackerAccountId("agent")')
    assert payload["values"][0]["emailAddress"] == "agent@acme.nexus.io"
    _, payload = _run(state, 'lookupTrackerAccountId("irene")')
    assert payload == {"values": []}


def test_bad_limit_is_reported(state):
    outcome, payload = _run(state, 'getPagesSpaces("lots")')
    assert not outcome.success
    assert "limit must be a number" in payload["error"]
