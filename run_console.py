"""Convenience launcher for the inspection console.

Usage:
  streamlit run run_console.py

Automatically imports every module in ``nexus_app/pages`` so each page
decorated with ``@register_page`` registers itself without manual edits here.
"""

import logging
from importlib import import_module
from pathlib import Path

import streamlit as st

from nexus_app.app import main

st.set_page_config(layout="wide")
logger = logging.getLogger(__name__)

PAGES_DIR = Path(__file__).parent / "nexus_app" / "pages"
for py in sorted(PAGES_DIR.glob("[!_]*.py")):
    mod_name = f"nexus_app.pages.{py.stem}"
    try:
        import_module(mod_name)
    except ImportError as e:
        logger.error("Failed importing page %s: %s", mod_name, e)

if __name__ == "__main__":
    main()
