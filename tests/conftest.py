"""Test configuration ensuring local package import when editable install not active.

If users invoke `pytest` outside the project's virtualenv, we still add the project
root to sys.path so `import nexus_app` works. Fixtures hand each test its own
session store so no state leaks between tests.
"""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from nexus_app.core.service import ScenarioEngine  # noqa: E402
from nexus_app.core.session import SessionStore  # noqa: E402
from nexus_app.core.state import create_initial_state  # noqa: E402

HISTORY = [
    {"role": "system", "content": "You are a helpful assistant."},
    {"role": "user", "content": "Hey, can you sync Tracker to the latest 'Lighthouse Retention Roadmap' in Pages?"},
]


@pytest.fixture
def state():
    return create_initial_state()


@pytest.fixture
def engine():
    return ScenarioEngine(SessionStore())


@pytest.fixture
def history():
    return [dict(m) for m in HISTORY]
