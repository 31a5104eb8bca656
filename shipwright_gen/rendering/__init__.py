"""Template rendering pipeline -- turns a resource into in-memory artifacts.

A :class:`TemplateBundle` is an ordered set of Jinja2 template units, each
aimed at one package kind.  :func:`render` resolves every unit's target
package, renders file contents and output paths, and returns a
:class:`GenerationPlan`; nothing is written until the plan is committed.

Quick usage::

    from shipwright_gen.rendering import default_bundle, next_timestamp, render

    plan = render(
        default_bundle(),
        resource,
        graph,
        timestamp=next_timestamp(graph, datetime.now()),
    )
    for artifact in plan.artifacts:
        print(artifact.artifact.value, artifact.path)
"""

from shipwright_gen.rendering.bundle import (
    TemplateBundle,
    TemplateUnit,
    default_bundle,
    load_bundle,
)
from shipwright_gen.rendering.models import ArtifactKind, GenerationPlan, RenderedArtifact
from shipwright_gen.rendering.renderer import migration_name, next_timestamp, render
from shipwright_gen.rendering.schema import MigrationSchema, build_schema
from shipwright_gen.rendering.templates import TemplateRenderer

__all__ = [
    "ArtifactKind",
    "GenerationPlan",
    "MigrationSchema",
    "RenderedArtifact",
    "TemplateBundle",
    "TemplateRenderer",
    "TemplateUnit",
    "build_schema",
    "default_bundle",
    "load_bundle",
    "migration_name",
    "next_timestamp",
    "render",
]
