"""Shared pytest fixtures for the Shipwright generator test suite.

Provides reusable fixtures for:
- Temporary uv-style workspaces (empty builder and the reference blog)
- A fixed clock for deterministic migration stamps
- A silenced Rich console
- Parsed resources used across rendering and writer tests
"""

from __future__ import annotations

from pathlib import Path

import pytest
from rich.console import Console

from shipwright_gen.descriptor import ResourceSpec, parse
from shipwright_gen.rendering import GenerationPlan, default_bundle, render
from shipwright_gen.workspace import WorkspaceGraph
from tests._fixtures.clock import FIXED_NOW, FIXED_STAMP
from tests._fixtures.workspace_builder import WorkspaceBuilder


# ---------------------------------------------------------------------------
# Workspaces
# ---------------------------------------------------------------------------


@pytest.fixture
def workspace_builder(tmp_path: Path) -> WorkspaceBuilder:
    """Empty workspace rooted under the pytest tmp_path."""
    return WorkspaceBuilder(tmp_path)


@pytest.fixture
def blog_workspace(workspace_builder: WorkspaceBuilder) -> Path:
    """Reference workspace: blog-core (shared), blog-db, blog-web."""
    return workspace_builder.blog()


@pytest.fixture
def blog_graph(workspace_builder: WorkspaceBuilder, blog_workspace: Path) -> WorkspaceGraph:
    return workspace_builder.graph()


# ---------------------------------------------------------------------------
# Engine collaborators
# ---------------------------------------------------------------------------


@pytest.fixture
def fixed_clock():
    """Clock returning the same instant on every call."""
    return lambda: FIXED_NOW


@pytest.fixture
def quiet_console() -> Console:
    return Console(quiet=True)


@pytest.fixture
def recording_console() -> Console:
    """Console that records output for assertions via ``export_text()``."""
    return Console(record=True, width=200, color_system=None, force_terminal=False)


# ---------------------------------------------------------------------------
# Resources & plans
# ---------------------------------------------------------------------------


@pytest.fixture
def comment_resource() -> ResourceSpec:
    return parse("comment", ["body:text", "post:reference", "approved:boolean:nullable"])


@pytest.fixture
def comment_plan(blog_graph: WorkspaceGraph, comment_resource: ResourceSpec) -> GenerationPlan:
    return render(default_bundle().scaffold(), comment_resource, blog_graph, timestamp=FIXED_STAMP)
