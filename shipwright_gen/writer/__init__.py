"""Artifact writer -- commits a generation plan to the workspace.

Quick usage::

    from shipwright_gen.writer import commit

    report = commit(plan)
    for path in report.paths:
        print(path)
"""

from shipwright_gen.writer.committer import commit, write_artifact
from shipwright_gen.writer.models import CommitReport, CreatedArtifact

__all__ = [
    "CommitReport",
    "CreatedArtifact",
    "commit",
    "write_artifact",
]
