"""Pydantic v2 models for the workspace package graph.

A :class:`WorkspaceGraph` is built once per generation run (see
:func:`shipwright_gen.workspace.analyzer.build_graph`) and never mutated.
It answers the placement question, "which package receives this artifact?",
through :meth:`WorkspaceGraph.resolve_target`.
"""

from __future__ import annotations

import re
from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from shipwright_gen.errors import (
    AmbiguousTargetError,
    ManifestError,
    PlacementError,
    TargetNotFoundError,
)

from .manifest import normalize_name


# ---------------------------------------------------------------------------
# Conventions
# ---------------------------------------------------------------------------

MIGRATIONS_DIR = "migrations"
ENTITIES_DIR = "entities"
CONTROLLERS_DIR = "controllers"

_MIGRATION_STAMP = re.compile(r"^(\d{14})_")
_CREATE_TABLE = re.compile(
    r"create\s+table\s+(?:if\s+not\s+exists\s+)?[\"`\[]?(\w+)", re.IGNORECASE
)


class PackageKind(str, Enum):
    """Role a workspace package plays for generated artifacts."""

    MODEL_HOST = "model-host"
    MIGRATION_HOST = "migration-host"
    WEB_HOST = "web-host"
    SHARED = "shared"


KIND_CONVENTIONS: dict[PackageKind, str] = {
    PackageKind.MODEL_HOST: f"an '{ENTITIES_DIR}/' directory in its import package",
    PackageKind.MIGRATION_HOST: f"a '{MIGRATIONS_DIR}/' directory at its root",
    PackageKind.WEB_HOST: f"a '{CONTROLLERS_DIR}/' directory in its import package",
    PackageKind.SHARED: "none of the other conventions",
}


# ---------------------------------------------------------------------------
# Package node
# ---------------------------------------------------------------------------


class PackageNode(BaseModel):
    """One workspace package."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="PEP 503 normalised distribution name")
    root: Path = Field(..., description="Absolute package directory")
    kind: PackageKind = Field(..., description="Primary kind tag")
    roles: frozenset[PackageKind] = Field(
        default_factory=frozenset, description="Every kind whose convention matched"
    )
    dependencies: frozenset[str] = Field(
        default_factory=frozenset, description="Names of internal dependencies"
    )
    import_name: str = Field(..., description="Import package name, e.g. 'blog_db'")
    source_dir: Optional[Path] = Field(
        default=None, description="Import package directory relative to root"
    )

    @property
    def source_path(self) -> Path | None:
        if self.source_dir is None:
            return None
        return self.root / self.source_dir


# ---------------------------------------------------------------------------
# Workspace graph
# ---------------------------------------------------------------------------


class WorkspaceGraph(BaseModel):
    """Packages of one workspace plus their topological order."""

    model_config = ConfigDict(frozen=True)

    root: Path = Field(..., description="Absolute workspace root")
    packages: dict[str, PackageNode] = Field(default_factory=dict)
    order: tuple[str, ...] = Field(
        default=(), description="Dependencies before dependents, ties broken by name"
    )
    placements: dict[PackageKind, str] = Field(
        default_factory=dict, description="Explicit kind -> package overrides"
    )

    def __getitem__(self, name: str) -> PackageNode:
        return self.packages[normalize_name(name)]

    def nodes(self) -> list[PackageNode]:
        """Return every package in topological order."""
        return [self.packages[name] for name in self.order]

    def hosts(self, kind: PackageKind) -> list[PackageNode]:
        """Return packages matching *kind*'s convention, sorted by name."""
        return sorted(
            (n for n in self.packages.values() if kind in n.roles),
            key=lambda n: n.name,
        )

    def resolve_target(self, kind: PackageKind) -> PackageNode:
        """Pick the single package that receives artifacts of *kind*.

        An explicit placement wins; otherwise exactly one package must match
        the kind's convention.

        Raises:
            TargetNotFoundError: No package (or no package of the explicit
                name) matches.
            AmbiguousTargetError: Several packages match and no explicit
                placement was given.
            PlacementError: The kind is ``shared`` or the explicit package
                does not follow the kind's convention.
        """
        if kind is PackageKind.SHARED:
            raise PlacementError(kind.value, "Shared packages are never generation targets")

        explicit = self.placements.get(kind)
        if explicit is not None:
            node = self.packages.get(normalize_name(explicit))
            if node is None:
                raise TargetNotFoundError(kind.value, explicit)
            if kind not in node.roles:
                raise PlacementError(
                    kind.value,
                    f"Package '{node.name}' cannot be the {kind.value}: "
                    f"it needs {KIND_CONVENTIONS[kind]}",
                )
            return node

        candidates = self.hosts(kind)
        if not candidates:
            raise TargetNotFoundError(kind.value)
        if len(candidates) > 1:
            raise AmbiguousTargetError(kind.value, [n.name for n in candidates])
        return candidates[0]

    def depends_on(self, name: str, other: str) -> bool:
        """Return ``True`` if package *name* depends on *other*, directly or not."""
        target = normalize_name(other)
        stack = list(self[name].dependencies)
        seen: set[str] = set()
        while stack:
            current = stack.pop()
            if current == target:
                return True
            if current in seen:
                continue
            seen.add(current)
            stack.extend(self.packages[current].dependencies)
        return False

    # -- Scans -------------------------------------------------------------

    def migration_files(self) -> list[Path]:
        """Return every ``*.sql`` file in the migration hosts, sorted by name."""
        files: list[Path] = []
        for node in self.hosts(PackageKind.MIGRATION_HOST):
            directory = node.root / MIGRATIONS_DIR
            files.extend(p for p in directory.glob("*.sql") if p.is_file())
        return sorted(files, key=lambda p: (p.name, str(p)))

    def migration_stamps(self) -> list[str]:
        """Return the ``YYYYMMDDHHMMSS`` prefixes of existing migrations, sorted."""
        stamps = []
        for path in self.migration_files():
            match = _MIGRATION_STAMP.match(path.name)
            if match:
                stamps.append(match.group(1))
        return sorted(stamps)

    def known_tables(self) -> frozenset[str]:
        """Return table names created by existing migrations or entity modules.

        Migrations are decoded as UTF-8 with undecodable bytes replaced.

        Raises:
            ManifestError: If a migration file cannot be read.
        """
        tables: set[str] = set()
        for path in self.migration_files():
            try:
                sql = path.read_text(encoding="utf-8", errors="replace")
            except OSError as exc:
                raise ManifestError(str(path), f"cannot read migration ({exc})") from exc
            tables.update(m.lower() for m in _CREATE_TABLE.findall(sql))
        for node in self.hosts(PackageKind.MODEL_HOST):
            entities = node.root / node.source_dir / ENTITIES_DIR if node.source_dir else None
            if entities is None or not entities.is_dir():
                continue
            tables.update(p.stem for p in entities.glob("*.py") if not p.stem.startswith("_"))
        return frozenset(tables)
