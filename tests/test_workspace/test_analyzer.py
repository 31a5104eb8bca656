"""Unit tests for shipwright_gen.workspace.analyzer.

Tests cover:
- Package classification by directory convention (kind and roles)
- Deterministic topological order
- Unknown dependencies, cycles, duplicates and empty workspaces
"""

from __future__ import annotations

import pytest

from shipwright_gen.errors import (
    CyclicDependencyError,
    GraphError,
    ManifestError,
    PlacementError,
    UnknownDependencyError,
)
from shipwright_gen.workspace import PackageKind, build_graph

pytestmark = pytest.mark.unit


class TestClassification:
    def test_blog_workspace(self, blog_graph):
        assert blog_graph["blog-core"].kind is PackageKind.SHARED
        assert blog_graph["blog-core"].roles == frozenset()
        assert blog_graph["blog-db"].kind is PackageKind.MIGRATION_HOST
        assert blog_graph["blog-db"].roles == {
            PackageKind.MIGRATION_HOST,
            PackageKind.MODEL_HOST,
        }
        assert blog_graph["blog-web"].kind is PackageKind.WEB_HOST

    def test_src_layout(self, workspace_builder):
        workspace_builder.root_manifest()
        root = workspace_builder.package("app", controllers=True)
        node = workspace_builder.graph()["app"]
        assert node.source_dir.as_posix() == "src/app"
        assert node.source_path == root.resolve() / "src" / "app"
        assert node.import_name == "app"

    def test_flat_layout(self, workspace_builder):
        workspace_builder.root_manifest()
        workspace_builder.package("my-models", entities=True, layout="flat")
        node = workspace_builder.graph()["my-models"]
        assert node.source_dir.as_posix() == "my_models"
        assert node.kind is PackageKind.MODEL_HOST

    def test_package_without_source_dir_is_shared(self, workspace_builder):
        workspace_builder.root_manifest()
        workspace_builder.write({"packages/odd/pyproject.toml": '[project]\nname = "odd"\n'})
        node = workspace_builder.graph()["odd"]
        assert node.kind is PackageKind.SHARED
        assert node.source_dir is None

    def test_web_kind_wins_over_others(self, workspace_builder):
        workspace_builder.root_manifest()
        workspace_builder.package("mono", migrations=True, entities=True, controllers=True)
        node = workspace_builder.graph()["mono"]
        assert node.kind is PackageKind.WEB_HOST
        assert len(node.roles) == 3

    def test_lookup_normalises_names(self, blog_graph):
        assert blog_graph["Blog_DB"].name == "blog-db"


class TestOrdering:
    def test_dependencies_first(self, blog_graph):
        assert blog_graph.order == ("blog-core", "blog-db", "blog-web")
        assert [n.name for n in blog_graph.nodes()] == list(blog_graph.order)

    def test_ties_broken_by_name(self, workspace_builder):
        workspace_builder.root_manifest()
        for name in ("zeta", "alpha", "mid"):
            workspace_builder.package(name)
        workspace_builder.package("top", dependencies=["zeta", "alpha"])
        assert workspace_builder.graph().order == ("alpha", "mid", "zeta", "top")

    def test_order_is_stable_across_builds(self, workspace_builder, blog_workspace):
        assert workspace_builder.graph().order == workspace_builder.graph().order


class TestGraphErrors:
    def test_unknown_dependency(self, workspace_builder):
        workspace_builder.root_manifest()
        workspace_builder.package("web", dependencies=["ghost"])
        with pytest.raises(UnknownDependencyError) as exc_info:
            workspace_builder.graph()
        assert exc_info.value.package == "web"
        assert exc_info.value.dependency == "ghost"

    def test_cycle_names_every_member(self, workspace_builder):
        workspace_builder.root_manifest()
        workspace_builder.package("a", dependencies=["b"])
        workspace_builder.package("b", dependencies=["c"])
        workspace_builder.package("c", dependencies=["a"])
        workspace_builder.package("d", dependencies=["a"])
        with pytest.raises(CyclicDependencyError) as exc_info:
            workspace_builder.graph()
        assert exc_info.value.cycle == ["a", "b", "c"]
        assert "a -> b -> c -> a" in str(exc_info.value)

    def test_self_dependency_is_a_cycle(self, workspace_builder):
        workspace_builder.root_manifest()
        workspace_builder.package("loop", dependencies=["loop"])
        with pytest.raises(CyclicDependencyError) as exc_info:
            workspace_builder.graph()
        assert exc_info.value.cycle == ["loop"]

    def test_duplicate_package_names(self, workspace_builder):
        workspace_builder.root_manifest(members=["packages/*", "libs/*"])
        workspace_builder.package("dup")
        workspace_builder.package("dup", base="libs")
        with pytest.raises(ManifestError, match="also used"):
            workspace_builder.graph()

    def test_empty_workspace(self, workspace_builder):
        workspace_builder.root_manifest()
        with pytest.raises(ManifestError, match="no member"):
            workspace_builder.graph()

    def test_missing_root(self, tmp_path):
        with pytest.raises(ManifestError):
            build_graph(tmp_path / "nowhere")

    def test_errors_share_a_base(self, workspace_builder):
        workspace_builder.root_manifest()
        workspace_builder.package("web", dependencies=["ghost"])
        with pytest.raises(GraphError):
            workspace_builder.graph()

    def test_unknown_placement_kind(self, workspace_builder, blog_workspace):
        with pytest.raises(PlacementError, match="Unknown package kind"):
            workspace_builder.graph({"database": "blog-db"})
