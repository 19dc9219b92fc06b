"""Console page: send utterances to the engine and watch the results."""

from __future__ import annotations

import json

import streamlit as st

from nexus_app.app import get_engine, get_history, register_page
from nexus_app.core.config import LEVEL, RESULT_FAIL, RESULT_SUCCESS


def _pretty(output: str | None) -> str:
    if not output:
        return ""
    try:
        return json.dumps(json.loads(output), indent=2, ensure_ascii=False)
    except json.JSONDecodeError:
        return output


def _seed_history(realistic: bool) -> list[dict[str, str]]:
    history = [
        {"role": "system", "content": LEVEL["system_prompt"]},
        {"role": "user", "content": LEVEL["user_prompt"]},
    ]
    if realistic:
        schema = '{"functions": [{"name": "mcp_tool_use", "parameters": {}}]}'
        history.insert(1, {"role": "developer", "content": schema})
    return history


@register_page("Console")
def render():
    st.title(f"Level {LEVEL['id']}: {LEVEL['title']}")
    st.caption(LEVEL["description"])
    with st.expander("Hint"):
        st.write(LEVEL["hint"])

    history = get_history()
    realistic = st.sidebar.checkbox("Realistic discovery (JSON schemas)", value=False)
    new_conversation = st.sidebar.button("New conversation")
    if new_conversation or not history:
        engine = get_engine()
        if history:
            engine.reset(history)
        history[:] = _seed_history(realistic)

    for message in history:
        if message["role"] in ("system", "developer"):
            continue
        with st.chat_message("user" if message["role"] == "user" else "assistant"):
            st.markdown(message["content"])

    utterance = st.chat_input(LEVEL["placeholder"])
    if not utterance:
        return

    result = get_engine().validate(utterance, history)
    history.append({"role": "assistant", "content": utterance})
    if result.tool_output:
        history.append({"role": "tool", "content": result.tool_output})

    if result.status == RESULT_SUCCESS:
        st.success(f"{result.message}\n\n{LEVEL['success_message']}")
    elif result.status == RESULT_FAIL:
        st.error(f"{result.message} ({result.fail_type})")
    else:
        st.info(result.message)
    if result.tool_output:
        st.code(_pretty(result.tool_output), language="json")
