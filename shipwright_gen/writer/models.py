"""Pydantic v2 models describing what a commit created."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from shipwright_gen.descriptor.models import ResourceSpec
from shipwright_gen.rendering.models import ArtifactKind


class CreatedArtifact(BaseModel):
    """One file written by :func:`~shipwright_gen.writer.commit`."""

    model_config = ConfigDict(frozen=True)

    path: Path = Field(..., description="Absolute path of the created file")
    artifact: ArtifactKind = Field(..., description="Artifact kind")
    package: str = Field(..., description="Package the file was written into")


class CommitReport(BaseModel):
    """Every created file, in bundle order."""

    model_config = ConfigDict(frozen=True)

    resource: ResourceSpec
    created: tuple[CreatedArtifact, ...] = Field(default=())

    @property
    def paths(self) -> list[Path]:
        return [c.path for c in self.created]

    @property
    def migrations(self) -> list[Path]:
        return self.by_kind(ArtifactKind.MIGRATION)

    def by_kind(self, kind: ArtifactKind | str) -> list[Path]:
        """Return the created paths of one artifact kind, in order."""
        wanted = ArtifactKind(kind)
        return [c.path for c in self.created if c.artifact is wanted]
