"""Inspection console entry point: page registry and router."""

from __future__ import annotations

import streamlit as st

from nexus_app.core.service import ScenarioEngine
from nexus_app.core.session import SessionStore

PAGES = {}

PREFERRED_ORDER = [
    "Console",  # play the scenario turn by turn
    "State Inspector",  # what the session looks like now
]


def register_page(label):
    def decorator(func):
        PAGES[label] = func
        return func

    return decorator


def get_engine() -> ScenarioEngine:
    """One engine (and session store) per browser session."""
    if "engine" not in st.session_state:
        st.session_state["engine"] = ScenarioEngine(SessionStore())
    return st.session_state["engine"]


def get_history() -> list[dict[str, str]]:
    return st.session_state.setdefault("history", [])


def main():
    st.sidebar.title("Nexus MCP Scenario")
    pages = list(PAGES.keys())
    if not pages:
        st.write("No pages registered yet.")
        return
    ordered = [name for name in PREFERRED_ORDER if name in pages]
    trailing = sorted(name for name in pages if name not in PREFERRED_ORDER)
    pages = ordered + trailing
    page = st.sidebar.selectbox("Page", pages, index=0)
    PAGES[page]()


if __name__ == "__main__":
    main()
