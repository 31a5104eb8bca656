"""Workspace graph construction.

Reads every member manifest, classifies each package by the directory
conventions in :mod:`shipwright_gen.workspace.models` and orders the
packages so that dependencies come before their dependents.
"""

from __future__ import annotations

from collections.abc import Mapping
from graphlib import CycleError, TopologicalSorter
from pathlib import Path

from shipwright_gen.errors import (
    CyclicDependencyError,
    ManifestError,
    PlacementError,
    UnknownDependencyError,
)

from .manifest import (
    MANIFEST_NAME,
    PackageManifest,
    discover_members,
    import_name_for,
    normalize_name,
    read_manifest,
)
from .models import (
    CONTROLLERS_DIR,
    ENTITIES_DIR,
    MIGRATIONS_DIR,
    PackageKind,
    PackageNode,
    WorkspaceGraph,
)

# Highest priority first.
_KIND_PRIORITY = (
    PackageKind.WEB_HOST,
    PackageKind.MIGRATION_HOST,
    PackageKind.MODEL_HOST,
)


def build_graph(
    workspace_root: str | Path,
    placements: Mapping[PackageKind | str, str] | None = None,
) -> WorkspaceGraph:
    """Build the package graph of the workspace at *workspace_root*.

    Args:
        workspace_root: Directory holding the root ``pyproject.toml`` or the
            member directories.
        placements: Optional explicit ``kind -> package`` overrides used by
            :meth:`WorkspaceGraph.resolve_target`.

    Raises:
        ManifestError: A manifest is invalid, two members share a name, or
            the workspace has no members.
        UnknownDependencyError: An internal dependency names no member.
        CyclicDependencyError: Internal dependencies form a cycle.
    """
    root = Path(workspace_root).resolve()
    if not root.is_dir():
        raise ManifestError(root / MANIFEST_NAME, "workspace root is not a directory")

    manifests: dict[str, PackageManifest] = {}
    for member in discover_members(root):
        manifest = read_manifest(member / MANIFEST_NAME)
        if manifest.name in manifests:
            raise ManifestError(
                manifest.path,
                f"package name '{manifest.name}' is also used by "
                f"{manifests[manifest.name].path}",
            )
        manifests[manifest.name] = manifest
    if not manifests:
        raise ManifestError(root / MANIFEST_NAME, "workspace has no member packages")

    for manifest in manifests.values():
        for dependency in manifest.dependencies:
            if dependency not in manifests:
                raise UnknownDependencyError(manifest.name, dependency)

    packages = {name: classify(manifest) for name, manifest in sorted(manifests.items())}

    return WorkspaceGraph(
        root=root,
        packages=packages,
        order=topological_order(packages),
        placements=_normalise_placements(placements or {}),
    )


def classify(manifest: PackageManifest) -> PackageNode:
    """Turn a manifest into a :class:`PackageNode` by directory convention."""
    root = manifest.root
    import_name = import_name_for(manifest.name)
    source_dir = _find_source_dir(root, import_name)

    roles: set[PackageKind] = set()
    if (root / MIGRATIONS_DIR).is_dir():
        roles.add(PackageKind.MIGRATION_HOST)
    if source_dir is not None:
        if (root / source_dir / CONTROLLERS_DIR).is_dir():
            roles.add(PackageKind.WEB_HOST)
        if (root / source_dir / ENTITIES_DIR).is_dir():
            roles.add(PackageKind.MODEL_HOST)

    kind = next((k for k in _KIND_PRIORITY if k in roles), PackageKind.SHARED)

    return PackageNode(
        name=manifest.name,
        root=root,
        kind=kind,
        roles=frozenset(roles),
        dependencies=frozenset(manifest.dependencies),
        import_name=import_name,
        source_dir=source_dir,
    )


def topological_order(packages: Mapping[str, PackageNode]) -> tuple[str, ...]:
    """Order package names with dependencies first, ties broken by name.

    Raises:
        CyclicDependencyError: Naming every package of one cycle.
    """
    sorter: TopologicalSorter[str] = TopologicalSorter()
    for name in sorted(packages):
        sorter.add(name, *sorted(packages[name].dependencies))

    order: list[str] = []
    try:
        sorter.prepare()
    except CycleError as exc:
        # args[1] is [a, b, ..., a], each node a dependency of the next.
        cycle = list(exc.args[1][:-1])
        cycle.reverse()
        raise CyclicDependencyError(_rotate(cycle)) from None

    while sorter.is_active():
        ready = sorted(sorter.get_ready())
        order.extend(ready)
        sorter.done(*ready)
    return tuple(order)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _find_source_dir(root: Path, import_name: str) -> Path | None:
    for candidate in (Path("src") / import_name, Path(import_name)):
        if (root / candidate).is_dir():
            return candidate
    return None


def _rotate(cycle: list[str]) -> list[str]:
    """Start the cycle at its smallest name so the report is stable."""
    if not cycle:
        return cycle
    start = cycle.index(min(cycle))
    return cycle[start:] + cycle[:start]


def _normalise_placements(
    placements: Mapping[PackageKind | str, str],
) -> dict[PackageKind, str]:
    normalised: dict[PackageKind, str] = {}
    for kind, package in placements.items():
        try:
            key = PackageKind(kind)
        except ValueError:
            raise PlacementError(
                str(kind), f"Unknown package kind '{kind}' in placement"
            ) from None
        normalised[key] = normalize_name(package)
    return normalised
