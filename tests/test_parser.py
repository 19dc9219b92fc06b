import json

import pytest

from nexus_app.core.errors import ParseError
from nexus_app.core.parser import (
    KIND_META,
    KIND_TOOL,
    check_balance,
    looks_like_tool_call,
    normalize_loose_json,
    parse_tool_call,
    split_top_level_args,
    unescape_string,
)


def _call(text):
    result = parse_tool_call(text)
    assert result.success, result.error
    return result.call


def test_three_syntaxes_normalize_to_same_call():
    bare = _call('search("roadmap")')
    literal = _call('search({ query: "roadmap" })')
    json_rpc = _call('{"name": "search", "arguments": {"query": "roadmap"}}')
    wrapped = _call('mcp_tool_use("nexus-core", "search", { query: "roadmap" })')
    wrapped_object = _call('mcp_tool_use({server_name: "nexus-core", tool_name: "search", arguments: {query: "roadmap"}})')

    assert bare == literal == json_rpc == wrapped == wrapped_object
    assert bare.kind == KIND_TOOL
    assert bare.arguments == {"query": "roadmap"}
    assert wrapped.via_wrapper and wrapped.server_name == "nexus-core"
    assert not bare.via_wrapper and bare.server_name is None


def test_json_rpc_wrapper_form():
    call = _call(
        '{"name": "mcp_tool_use", "arguments": {"server_name": "nexus-core", '
        '"tool_name": "getPagesDoc", "arguments": {"docId": "P-501"}}}'
    )
    assert call.tool_name == "getPagesDoc"
    assert call.arguments == {"docId": "P-501"}
    assert call.server_name == "nexus-core"


def test_json_rpc_string_arguments_are_decoded():
    call = _call('{"name": "getTrackerIssue", "arguments": "{\\"issueIdOrKey\\": \\"LHR-100\\"}"}')
    assert call.arguments == {"issueIdOrKey": "LHR-100"}


def test_positional_arguments_map_to_parameter_names():
    call = _call('transitionTrackerIssue("LHR-100", "T-1")')
    assert call.arguments == {"issueIdOrKey": "LHR-100", "transitionId": "T-1"}


def test_positional_scalars_are_typed():
    call = _call('updatePagesDoc("P-501", "New title", "Body", 3)')
    assert call.arguments["version"] == 3
    call = _call("searchTrackerIssuesUsingTql(\"project = LHR\", 5, 0)")
    assert call.arguments == {"tql": "project = LHR", "limit": 5, "startAt": 0}
    call = _call('mcp_tool_use("nexus-core", "getCatalogComponents", "SERVICE", null)')
    assert call.arguments == {"type": "SERVICE", "limit": None}


def test_object_argument_in_positional_slot():
    call = _call('editTrackerIssue("LHR-101", {summary: \'Implement auto-delete\', labels: ["a", "b",],})')
    assert call.arguments == {
        "issueIdOrKey": "LHR-101",
        "fields": {"summary": "Implement auto-delete", "labels": ["a", "b"]},
    }


def test_loose_object_literal_normalization():
    assert json.loads(normalize_loose_json("{a: 1, b: 'x', }")) == {"a": 1, "b": "x"}
    # apostrophes inside double quotes and quotes inside single quotes survive
    call = _call("addCommentToTrackerIssue({issueIdOrKey: 'LHR-100', body: \"it's \\\"done\\\"\"})")
    assert call.arguments["body"] == 'it\'s "done"'
    call = _call("addCommentToTrackerIssue({issueIdOrKey: 'LHR-100', body: 'say \"hi\"'})")
    assert call.arguments["body"] == 'say "hi"'


def test_escape_sequences_in_quoted_strings():
    call = _call('addCommentToTrackerIssue("LHR-100", "line1\\nline2\\tend")')
    assert call.arguments["body"] == "line1\nline2\tend"
    # a literal backslash followed by n is not turned into a newline
    call = _call('addCommentToTrackerIssue("LHR-100", "C:\\\\new")')
    assert call.arguments["body"] == "C:\\new"
    assert unescape_string("it\\'s") == "it's"


def test_commas_inside_strings_and_objects_do_not_split():
    parts = split_top_level_args('"a, b", {x: [1, 2]}, \'c,d\'')
    assert parts == ['"a, b"', "{x: [1, 2]}", "'c,d'"]


def test_empty_arguments():
    call = _call("getVisibleTrackerProjects()")
    assert call.arguments == {}


def test_meta_functions():
    listing = _call("mcp_list_tools()")
    assert listing.kind == KIND_META and listing.server_name is None
    assert _call('mcp_list_tools("nexus-core")').server_name == "nexus-core"

    search = _call('mcp_search_tools("nexus-core", "pages")')
    assert search.meta_function == "mcp_search_tools"
    assert search.arguments == {"query": "pages"}

    rpc = _call('{"name": "mcp_search_tools", "arguments": {"server_name": "nexus-core", "query": "tracker"}}')
    assert rpc == _call('mcp_search_tools("nexus-core", "tracker")')


def test_missing_meta_arguments_name_the_parameters():
    result = parse_tool_call('mcp_search_tools("nexus-core")')
    assert not result.success
    assert "mcp_search_tools requires two arguments: server_name and query" in result.error

    result = parse_tool_call('mcp_tool_use("nexus-core")')
    assert "requires at least two arguments: server_name and tool_name" in result.error

    result = parse_tool_call('{"name": "mcp_tool_use", "arguments": {"server_name": "nexus-core"}}')
    assert "tool_name" in result.error


def test_empty_search_query_is_rejected_in_both_forms():
    bare = parse_tool_call('mcp_search_tools("nexus-core", "")')
    named = parse_tool_call('mcp_search_tools({server_name: "nexus-core", query: ""})')
    assert not bare.success and not named.success
    assert bare.error == named.error
    assert bare.error.endswith("(missing query)")


def test_unbalanced_delimiters_are_reported():
    result = parse_tool_call('search({query: "x")')
    assert result.error == "Unbalanced braces: missing '}'"

    result = parse_tool_call('search("a")(x)')
    assert result.error == "Unbalanced braces: unexpected ')'"

    result = parse_tool_call('search("roadmap)')
    assert result.error == 'Unclosed string: missing "'


def test_trailing_text_after_call_is_rejected():
    result = parse_tool_call('search("a") please')
    assert not result.success
    assert "missing closing ')'" in result.error


def test_invalid_json_rpc():
    assert "JSON parse error" in parse_tool_call('{"name": "search"').error
    assert 'Missing or invalid "name" field' in parse_tool_call('{"arguments": {}}').error
    assert "must be an object" in parse_tool_call('{"name": "search", "arguments": [1]}').error


def test_invalid_object_literal_is_a_parse_error():
    result = parse_tool_call("search({query: roadmap})")
    assert not result.success
    assert result.error.startswith("Cannot parse as JSON")


def test_not_a_call():
    result = parse_tool_call("I have finished syncing everything.")
    assert not result.success
    assert parse_tool_call("").error.startswith("Empty input")


def test_check_balance_accepts_nested_structures():
    check_balance('{"a": [1, {"b": "}"}]}, "x"')
    with pytest.raises(ParseError):
        check_balance("[}")


def test_looks_like_tool_call():
    assert looks_like_tool_call('search("x")')
    assert looks_like_tool_call("  {broken")
    assert not looks_like_tool_call("I synced everything and left LHR-103 alone.")
