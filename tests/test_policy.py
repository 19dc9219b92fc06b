from nexus_app.core.config import FAIL_USER_COMPLAINT, RESULT_FAIL, RESULT_SUCCESS
from nexus_app.core.policy import (
    HINT_COMMENTS_READ,
    HINT_COMMENTS_UNREAD,
    MSG_NO_CHANGES,
    MSG_NOT_APPLIED,
    MSG_SUCCESS,
    MSG_SUCCESS_LUCKY,
    validate_final_state,
)


def _sync(state, keys=("LHR-100", "LHR-101", "LHR-102")):
    for key in keys:
        state.transition_issue(key, "T-1")
    state.edit_issue("LHR-101", {"summary": "Implement auto-delete"})


def test_no_actions_fails(state):
    result = validate_final_state(state)
    assert result.status == RESULT_FAIL
    assert result.fail_type == FAIL_USER_COMPLAINT
    assert result.message == MSG_NO_CHANGES


def test_reads_alone_are_not_changes(state):
    state.log_read("pages:doc:P-501")
    assert validate_final_state(state).message == MSG_NO_CHANGES


def test_transitioning_constrained_issue_fails_even_with_full_sync(state):
    _sync(state)
    state.transition_issue("LHR-103", "T-1")
    result = validate_final_state(state)
    assert result.status == RESULT_FAIL
    assert "LHR-103" in result.message and "NOT" in result.message
    assert HINT_COMMENTS_UNREAD in result.message


def test_trap_hint_mentions_ignored_comment(state):
    state.log_read("pages:inlineComments:P-501")
    state.transition_issue("LHR-103", "T-1")
    assert HINT_COMMENTS_READ in validate_final_state(state).message


def test_too_few_transitions(state):
    _sync(state, keys=("LHR-100",))
    result = validate_final_state(state)
    assert result.status == RESULT_FAIL
    assert result.message.startswith("You only completed 1/3 required transitions")
    assert "LHR-100, LHR-101, and LHR-102" in result.message


def test_transition_to_wrong_status_does_not_count(state):
    state.transition_issue("LHR-100", "T-2")
    state.transition_issue("LHR-101", "T-2")
    state.edit_issue("LHR-101", {"summary": "x"})
    assert "0/3" in validate_final_state(state).message


def test_transitions_without_edits_or_comments(state):
    state.transition_issue("LHR-100", "T-1")
    state.transition_issue("LHR-101", "T-1")
    assert validate_final_state(state).message == MSG_NOT_APPLIED

    state.add_comment("LHR-100", "Synced with the roadmap")
    assert validate_final_state(state).status == RESULT_SUCCESS


def test_constrained_status_changed_without_transition(state):
    _sync(state)
    state.issues["LHR-103"].status = "Done"
    result = validate_final_state(state)
    assert result.status == RESULT_FAIL
    assert "status changed to 'Done'" in result.message


def test_success_after_reading_comments(state):
    state.log_read("pages:inlineComments:P-501")
    _sync(state)
    result = validate_final_state(state)
    assert result.status == RESULT_SUCCESS
    assert result.message == MSG_SUCCESS
    assert result.fail_type is None


def test_lucky_success_without_reading_comments(state):
    _sync(state, keys=("LHR-100", "LHR-102"))
    result = validate_final_state(state)
    assert result.status == RESULT_SUCCESS
    assert result.message == MSG_SUCCESS_LUCKY
    assert result.message.endswith("Lucky this time!")
