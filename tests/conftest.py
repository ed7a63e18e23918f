"""Shared test fixtures and helpers.

Every test gets its own repository under ``tmp_path``; nothing touches the
real working tree.
"""

from pathlib import Path

import pytest

from prevc.config import ContextLayout
from prevc.service.workflow_service import WorkflowService

PLAN_TEMPLATE = """\
---
status: active
---
# {title} Plan

> {summary}

### Phase 1 — Discovery
1. Interview stakeholders
2. Draft requirements

### Phase 2 — Implementation
1. Build the login form
2. Wire the session API

### Phase 3 — Validation
1. Write integration tests

## Evidence
- none yet
"""


@pytest.fixture(autouse=True)
def _default_context_dir(monkeypatch):
    """Keep PREVC_CONTEXT_DIR from leaking in from the environment."""
    monkeypatch.delenv("PREVC_CONTEXT_DIR", raising=False)


@pytest.fixture
def repo(tmp_path) -> Path:
    """An empty repository root."""
    path = tmp_path / "repo"
    path.mkdir()
    return path


@pytest.fixture
def layout(repo) -> ContextLayout:
    return ContextLayout.for_repo(repo)


@pytest.fixture
def service(repo) -> WorkflowService:
    return WorkflowService(repo)


@pytest.fixture
def write_plan(repo):
    """Write ``.context/plans/<slug>.md`` and return its path."""

    def _write(
        slug: str,
        content: str | None = None,
        title: str = "Add Login",
        summary: str = "Let users sign in with email.",
    ) -> Path:
        path = repo / ".context" / "plans" / f"{slug}.md"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content or PLAN_TEMPLATE.format(title=title, summary=summary), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def plan_content() -> str:
    """The default plan document as text."""
    return PLAN_TEMPLATE.format(title="Add Login", summary="Let users sign in with email.")
