"""Render a template bundle into an in-memory generation plan.

Nothing here touches the filesystem except the read-only conflict scan:
every artifact is rendered and its path validated before the writer is
allowed to create a single file.
"""

from __future__ import annotations

import os
from datetime import datetime, timedelta
from pathlib import Path, PurePosixPath
from typing import Any

from shipwright_gen.descriptor.inflection import Inflector
from shipwright_gen.descriptor.models import ResourceSpec
from shipwright_gen.errors import OutputPathError
from shipwright_gen.workspace.models import PackageNode, WorkspaceGraph

from .bundle import TemplateBundle, TemplateUnit
from .models import GenerationPlan, RenderedArtifact
from .schema import build_schema

TIMESTAMP_FORMAT = "%Y%m%d%H%M%S"


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def render(
    bundle: TemplateBundle,
    resource: ResourceSpec,
    graph: WorkspaceGraph,
    *,
    timestamp: str,
    inflector: Inflector | None = None,
) -> GenerationPlan:
    """Render every unit of *bundle* for *resource*.

    Target and required package kinds are resolved before anything is
    rendered, so a placement problem is reported without partial work.

    Args:
        bundle: Units to render, in output order.
        resource: Parsed resource descriptor.
        graph: Workspace graph used for placement.
        timestamp: ``YYYYMMDDHHMMSS`` stamp (see :func:`next_timestamp`).
        inflector: Inflection rules exposed to templates as filters.

    Returns:
        The plan, with ``conflicts`` listing paths that already exist or
        repeat within the plan.

    Raises:
        PlacementError: A target or required kind cannot be resolved.
        RenderError: A template fails to compile or render, or renders an
            invalid output path.
    """
    bundle.check()
    packages = _packages_by_kind(graph, bundle)
    targets = {
        unit.name: packages[unit.target_kind.value.replace("-", "_")] for unit in bundle.units
    }

    renderer = bundle.renderer(inflector=inflector)
    migration = build_schema(resource)
    base_context: dict[str, Any] = {
        "resource": resource,
        "packages": packages,
        "timestamp": timestamp,
    }

    artifacts: list[RenderedArtifact] = []
    for unit in bundle.units:
        target = targets[unit.name]
        context = {**base_context, "package": target}
        if unit.is_migration:
            context["schema"] = migration
            context["migration_name"] = migration_name(timestamp, resource)

        text = renderer.render(unit.name, context)
        relative = renderer.render_string(unit.name, unit.path_template, context).strip()
        artifacts.append(
            RenderedArtifact(
                unit=unit.name,
                artifact=unit.artifact,
                path=output_path(unit, target, relative),
                text=text,
                package=target.name,
            )
        )

    plan = GenerationPlan(resource=resource, timestamp=timestamp, artifacts=tuple(artifacts))
    return plan.model_copy(update={"conflicts": tuple(plan.find_conflicts())})


def next_timestamp(graph: WorkspaceGraph, now: datetime) -> str:
    """Return the stamp for a new migration.

    Uses *now*, moved one second past the newest existing migration when the
    clock is behind it, so migration file names always sort after existing
    ones.
    """
    candidate = now.replace(microsecond=0)
    for stamp in reversed(graph.migration_stamps()):
        try:
            latest = datetime.strptime(stamp, TIMESTAMP_FORMAT)
        except ValueError:
            continue
        if candidate.replace(tzinfo=None) <= latest:
            candidate = latest + timedelta(seconds=1)
        break
    return candidate.strftime(TIMESTAMP_FORMAT)


def migration_name(timestamp: str, resource: ResourceSpec) -> str:
    """``<stamp>_create_<table>_table``."""
    return f"{timestamp}_create_{resource.table}_table"


def output_path(unit: TemplateUnit, target: PackageNode, relative: str) -> Path:
    """Join a rendered relative path onto *target*'s root.

    Raises:
        OutputPathError: If the path is empty, absolute or escapes the
            package root.
    """
    if not relative:
        raise OutputPathError(unit.name, relative, "path renders empty")
    posix = PurePosixPath(relative.replace("\\", "/"))
    if posix.is_absolute() or Path(relative).is_absolute() or Path(relative).drive:
        raise OutputPathError(unit.name, relative, "path must be relative to the package")

    root = Path(os.path.normpath(target.root))
    path = Path(os.path.normpath(root.joinpath(*posix.parts)))
    if path == root or root not in path.parents:
        raise OutputPathError(unit.name, relative, f"path escapes package root {root}")
    return path


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _packages_by_kind(graph: WorkspaceGraph, bundle: TemplateBundle) -> dict[str, PackageNode]:
    """Map ``model_host``-style keys to the packages *bundle* targets or requires.

    Every such kind must resolve.  Kinds nothing asks for are left out, so a
    template reading one it did not declare fails with a missing variable.
    """
    return {
        kind.value.replace("-", "_"): graph.resolve_target(kind)
        for kind in bundle.required_kinds()
    }
