"""Pydantic v2 models produced by the rendering pipeline."""

from __future__ import annotations

from collections import Counter
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from shipwright_gen.descriptor.models import ResourceSpec


class ArtifactKind(str, Enum):
    """What a rendered file is, as reported back to the caller."""

    MIGRATION = "migration"
    MODEL = "model"
    HANDLER = "handler"
    TEST = "test"


class RenderedArtifact(BaseModel):
    """One file rendered in memory, not yet written."""

    model_config = ConfigDict(frozen=True)

    unit: str = Field(..., description="Name of the template unit that produced it")
    artifact: ArtifactKind = Field(..., description="Artifact kind")
    path: Path = Field(..., description="Absolute output path")
    text: str = Field(..., description="Rendered file content")
    package: str = Field(..., description="Name of the target package")

    @property
    def is_migration(self) -> bool:
        return self.artifact is ArtifactKind.MIGRATION


class GenerationPlan(BaseModel):
    """Everything a generation run intends to write, in bundle order."""

    model_config = ConfigDict(frozen=True)

    resource: ResourceSpec
    timestamp: str = Field(..., description="Generation timestamp, YYYYMMDDHHMMSS")
    artifacts: tuple[RenderedArtifact, ...] = Field(default=())
    conflicts: tuple[Path, ...] = Field(
        default=(), description="Paths that existed (or repeated) at render time"
    )

    @property
    def paths(self) -> list[Path]:
        return [a.path for a in self.artifacts]

    def find_conflicts(self) -> list[Path]:
        """Return paths that already exist or occur twice in the plan.

        Each colliding path is listed once, in plan order.
        """
        counts = Counter(self.paths)
        conflicts: list[Path] = []
        for path in self.paths:
            if path in conflicts:
                continue
            if counts[path] > 1 or path.exists() or path.is_symlink():
                conflicts.append(path)
        return conflicts
