"""Workspace graph analyzer -- which package receives which artifact.

Reads the ``pyproject.toml`` of every workspace member, classifies each
package by directory convention (``migrations/``, ``entities/``,
``controllers/``) and orders the packages topologically.

Quick usage::

    from shipwright_gen.workspace import PackageKind, build_graph

    graph = build_graph("/path/to/workspace")
    print(graph.order)
    print(graph.resolve_target(PackageKind.MODEL_HOST).name)
"""

from shipwright_gen.workspace.analyzer import build_graph, classify, topological_order
from shipwright_gen.workspace.manifest import (
    PackageManifest,
    discover_members,
    normalize_name,
    read_manifest,
)
from shipwright_gen.workspace.models import PackageKind, PackageNode, WorkspaceGraph

__all__ = [
    "PackageKind",
    "PackageManifest",
    "PackageNode",
    "WorkspaceGraph",
    "build_graph",
    "classify",
    "discover_members",
    "normalize_name",
    "read_manifest",
    "topological_order",
]
