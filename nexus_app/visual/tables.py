"""Reusable table helpers for Streamlit rendering."""

from __future__ import annotations

import pandas as pd
import streamlit as st

from nexus_app.core.config import SITE_URL


def add_issue_link(df: pd.DataFrame, site: str = SITE_URL, key_col: str = "key", label: str = "Issue"):
    if df.empty or key_col not in df.columns:
        return df, {}
    out = df.copy()
    base = site.rstrip("/")
    out[label] = out[key_col].astype(str).apply(lambda k: f"{base}/browse/{k}" if k and k != "nan" else "")
    cfg = {
        label: st.column_config.LinkColumn(
            label,
            display_text=r"browse/(.*)$",
            help="Open in Tracker",
            width="small",
        )
    }
    return out, cfg


def add_doc_link(df: pd.DataFrame, site: str = SITE_URL, label: str = "Doc"):
    if df.empty or "id" not in df.columns:
        return df, {}
    out = df.copy()
    base = site.rstrip("/")
    out[label] = out.apply(lambda r: f"{base}/wiki/spaces/{r.get('space')}/docs/{r['id']}", axis=1)
    cfg = {label: st.column_config.LinkColumn(label, display_text=r"docs/(.*)$", help="Open in Pages")}
    return out, cfg


def render_issue_table(df: pd.DataFrame, limit: int = 500):
    linked, cfg = add_issue_link(df)
    cols = ["Issue"] + [c for c in linked.columns if c not in ("Issue", "key")] if cfg else list(linked.columns)
    st.dataframe(linked[cols].head(limit), hide_index=True, column_config=cfg)


def render_doc_table(df: pd.DataFrame, limit: int = 500):
    linked, cfg = add_doc_link(df)
    st.dataframe(linked.head(limit), hide_index=True, column_config=cfg)
