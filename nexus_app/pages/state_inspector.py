"""State inspector: issues, docs, and the audit logs of the active session."""

from __future__ import annotations

import streamlit as st

from nexus_app.analytics.audit import (
    docs_frame,
    issues_frame,
    timeline_frame,
    transition_summary,
)
from nexus_app.app import get_engine, get_history, register_page
from nexus_app.core.config import SETTINGS
from nexus_app.core.policy import validate_final_state
from nexus_app.visual.tables import render_doc_table, render_issue_table


@register_page("State Inspector")
def render():
    st.title("State Inspector")
    engine = get_engine()
    history = get_history()
    session = engine.session_for(history)
    state = session.state

    c1, c2, c3 = st.columns(3)
    c1.metric("Writes", len(state.action_log))
    c2.metric("Reads", len(state.read_log))
    c3.metric("Tools discovered", "all" if session.discovery.full_discovery else len(session.discovery.discovered))
    st.caption(f"Session: {session.key}")

    st.markdown("### Tracker issues")
    render_issue_table(issues_frame(state), limit=SETTINGS.max_table_rows)

    st.markdown("### Pages docs")
    render_doc_table(docs_frame(state))

    st.markdown("### Transitions")
    summary = transition_summary(state)
    if summary.empty:
        st.info("No transitions yet.")
    else:
        st.dataframe(summary, hide_index=True)

    st.markdown("### Timeline")
    timeline = timeline_frame(state)
    if timeline.empty:
        st.info("Nothing read or changed yet.")
    else:
        st.dataframe(timeline.astype({"details": str}), hide_index=True)

    st.markdown("### Verdict preview")
    verdict = validate_final_state(state)
    st.write(f"**{verdict.status}**: {verdict.message}")

    if st.button("Reset session"):
        engine.reset(history)
        st.rerun()
