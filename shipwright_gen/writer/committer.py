"""Write a generation plan to disk.

Writing only starts once the whole plan is known to be conflict free.  Each
file is created with exclusive mode, so a file that appears between the
check and the write is never overwritten; it fails the commit instead.
There is no rollback: a failure after the first file reports what was
written and what was not.
"""

from __future__ import annotations

from pathlib import Path

from shipwright_gen.errors import ConflictError, PartialWriteError, WriteError
from shipwright_gen.rendering.models import GenerationPlan, RenderedArtifact

from .models import CommitReport, CreatedArtifact


def commit(plan: GenerationPlan) -> CommitReport:
    """Write every artifact of *plan*, or none of them.

    Returns:
        The created files in plan order.

    Raises:
        ConflictError: A target path already exists or appears twice in the
            plan.  Nothing is written.
        WriteError: The first write failed.  Nothing is left behind except
            directories created for it.
        PartialWriteError: A later write failed; ``written`` lists the files
            that must be removed by hand.  The failed file itself is not
            left behind.
    """
    conflicts = plan.find_conflicts()
    if conflicts:
        raise ConflictError(conflicts)

    created: list[CreatedArtifact] = []
    for index, artifact in enumerate(plan.artifacts):
        try:
            write_artifact(artifact)
        except OSError as exc:
            if not created:
                raise WriteError(artifact.path, exc) from exc
            raise PartialWriteError(
                artifact.path,
                exc,
                written=[c.path for c in created],
                pending=[a.path for a in plan.artifacts[index:]],
            ) from exc
        created.append(
            CreatedArtifact(
                path=artifact.path, artifact=artifact.artifact, package=artifact.package
            )
        )

    return CommitReport(resource=plan.resource, created=tuple(created))


def write_artifact(artifact: RenderedArtifact) -> Path:
    """Create *artifact*'s file, failing if it already exists.

    A file created here whose content cannot be written in full is removed
    before the error propagates.
    """
    artifact.path.parent.mkdir(parents=True, exist_ok=True)
    handle = open(artifact.path, "x", encoding="utf-8", newline="\n")
    try:
        with handle:
            handle.write(artifact.text)
    except OSError:
        artifact.path.unlink(missing_ok=True)
        raise
    return artifact.path
