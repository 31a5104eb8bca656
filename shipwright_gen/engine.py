"""Shipwright generation engine.

Runs one generation request through four steps:

Step 1: WORKSPACE -- read manifests, classify packages, order them.
Step 2: RESOURCE  -- parse the resource name and field tokens, check references.
Step 3: RENDER    -- render the template bundle into an in-memory plan.
Step 4: WRITE     -- create every planned file, or none on conflict.

Usage::

    shipwright-generate scaffold comment body:text post:reference approved:boolean:nullable
    shipwright-generate --dry-run migration tag name:text:unique
    shipwright-generate workspace
"""

from __future__ import annotations

import argparse
import sys
import time
from collections.abc import Callable, Iterable, Sequence
from datetime import datetime
from pathlib import Path

from rich.console import Console

from shipwright_gen.config import GeneratorConfig
from shipwright_gen.descriptor import check_references, parse
from shipwright_gen.errors import EngineError, PlacementError
from shipwright_gen.rendering import (
    ArtifactKind,
    GenerationPlan,
    TemplateBundle,
    next_timestamp,
    render,
)
from shipwright_gen.utils import (
    STEP_NAMES,
    console as default_console,
    format_duration,
    print_artifact_table,
    print_error,
    print_step_header,
    print_success,
    print_summary_table,
    print_warning,
    print_workspace_table,
)
from shipwright_gen.workspace import PackageKind, WorkspaceGraph, build_graph
from shipwright_gen.writer import CommitReport, commit

Clock = Callable[[], datetime]


# ---------------------------------------------------------------------------
# Generator
# ---------------------------------------------------------------------------


class Generator:
    """Drives one workspace through parse, placement, rendering and writing.

    Attributes:
        config: Generator configuration.
        bundle: Template bundle rendered for every request.
        clock: Source of the current time for migration stamps.
        console: Rich console receiving progress output.
    """

    def __init__(
        self,
        config: GeneratorConfig | None = None,
        *,
        bundle: TemplateBundle | None = None,
        clock: Clock | None = None,
        console: Console | None = None,
    ) -> None:
        self.config = config or GeneratorConfig()
        self.bundle = bundle if bundle is not None else self.config.bundle()
        self.clock = clock or datetime.now
        self.console = console or default_console
        self.inflector = self.config.inflector()

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def load_workspace(self, workspace_root: str | Path | None = None) -> WorkspaceGraph:
        """Step 1: build the workspace graph."""
        root = Path(workspace_root) if workspace_root is not None else self.config.workspace_root
        print_step_header(1, STEP_NAMES[1], out=self.console)
        graph = build_graph(root, self.config.placements)
        self.console.print(
            f"  {len(graph.packages)} package(s): [bold]{', '.join(graph.order)}[/bold]"
        )
        return graph

    def plan(
        self,
        resource_name: str,
        field_tokens: Sequence[str],
        *,
        workspace_root: str | Path | None = None,
        only: Iterable[ArtifactKind | str] | None = None,
    ) -> GenerationPlan:
        """Run steps 1-3 and return the plan without writing anything.

        Raises:
            EngineError: Any graph, descriptor, placement or render failure.
        """
        graph = self.load_workspace(workspace_root)

        print_step_header(2, STEP_NAMES[2], out=self.console)
        resource = parse(resource_name, field_tokens, self.inflector)
        if self.config.check_references:
            check_references(resource, graph.known_tables())
        self.console.print(
            f"  [bold]{resource.class_name}[/bold] -> table [bold]{resource.table}[/bold] "
            f"({len(resource.fields)} field(s))"
        )

        print_step_header(3, STEP_NAMES[3], out=self.console)
        bundle = self.bundle.scaffold() if only is None else self.bundle.select(only)
        self._warn_missing_dependency(graph, bundle)
        plan = render(
            bundle,
            resource,
            graph,
            timestamp=next_timestamp(graph, self.clock()),
            inflector=self.inflector,
        )
        print_artifact_table(
            ((a.artifact.value, a.package, a.path) for a in plan.artifacts),
            root=graph.root,
            title="Planned artifacts",
            out=self.console,
        )
        for path in plan.conflicts:
            print_warning(f"  Already exists: {path}", out=self.console)
        return plan

    def generate(
        self,
        resource_name: str,
        field_tokens: Sequence[str],
        *,
        workspace_root: str | Path | None = None,
        only: Iterable[ArtifactKind | str] | None = None,
    ) -> CommitReport:
        """Run all four steps and return what was created.

        Raises:
            EngineError: Any failure; see :func:`shipwright_gen.writer.commit`
                for the write-time errors.
        """
        started = time.monotonic()
        plan = self.plan(
            resource_name, field_tokens, workspace_root=workspace_root, only=only
        )

        print_step_header(4, STEP_NAMES[4], out=self.console)
        report = commit(plan)
        for created in report.created:
            self.console.print(f"  [green]+[/green] {created.path}")
        if report.by_kind(ArtifactKind.HANDLER):
            self.console.print(
                f"  Do not forget to include the [bold]{plan.resource.table}[/bold] "
                "router in your application!"
            )
        print_summary_table(
            {
                "Resource": plan.resource.class_name,
                "Table": plan.resource.table,
                "Migration stamp": plan.timestamp,
                "Files": str(len(report.created)),
            },
            title="Generation summary",
            out=self.console,
        )
        print_success(
            f"Generated {len(report.created)} file(s) for '{plan.resource.name}' "
            f"in {format_duration(time.monotonic() - started)}.",
            out=self.console,
        )
        return report

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _warn_missing_dependency(self, graph: WorkspaceGraph, bundle: TemplateBundle) -> None:
        """Warn when generated handlers import a package their host does not depend on."""
        if not any(
            u.target_kind is PackageKind.WEB_HOST and PackageKind.MODEL_HOST in u.requires
            for u in bundle.units
        ):
            return
        try:
            web = graph.resolve_target(PackageKind.WEB_HOST)
            model = graph.resolve_target(PackageKind.MODEL_HOST)
        except PlacementError:
            return
        if web.name != model.name and not graph.depends_on(web.name, model.name):
            print_warning(
                f"  Package '{web.name}' does not depend on '{model.name}', "
                "but the generated handler imports from it.",
                out=self.console,
            )


# ---------------------------------------------------------------------------
# Library API
# ---------------------------------------------------------------------------


def plan(
    workspace_root: str | Path,
    resource_name: str,
    field_tokens: Sequence[str],
    *,
    config: GeneratorConfig | None = None,
    bundle: TemplateBundle | None = None,
    only: Iterable[ArtifactKind | str] | None = None,
    clock: Clock | None = None,
    console: Console | None = None,
) -> GenerationPlan:
    """Render the artifacts for a resource without writing them."""
    generator = Generator(config, bundle=bundle, clock=clock, console=console)
    return generator.plan(
        resource_name, field_tokens, workspace_root=workspace_root, only=only
    )


def generate(
    workspace_root: str | Path,
    resource_name: str,
    field_tokens: Sequence[str],
    *,
    config: GeneratorConfig | None = None,
    bundle: TemplateBundle | None = None,
    only: Iterable[ArtifactKind | str] | None = None,
    clock: Clock | None = None,
    console: Console | None = None,
) -> CommitReport:
    """Generate and write every artifact for a resource.

    Args:
        workspace_root: Workspace to inspect and write into.
        resource_name: Resource name in any case style.
        field_tokens: ``name:type[=target][:modifier...]`` tokens, in order.
        config: Placements, inflection overrides and reference checking.
        bundle: Template bundle; defaults to the configured one.
        only: Restrict output to these artifact kinds; defaults to the
            bundle's scaffold units.
        clock: Current-time source for the migration stamp.
        console: Progress output; ``Console(quiet=True)`` silences it.

    Returns:
        The created files in bundle order.
    """
    generator = Generator(config, bundle=bundle, clock=clock, console=console)
    return generator.generate(
        resource_name, field_tokens, workspace_root=workspace_root, only=only
    )


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------

COMMAND_ARTIFACTS: dict[str, list[ArtifactKind] | None] = {
    "scaffold": None,
    "migration": [ArtifactKind.MIGRATION],
    "entity": [ArtifactKind.MODEL],
    "controller": [ArtifactKind.HANDLER, ArtifactKind.TEST],
    "controller-test": [ArtifactKind.TEST],
}

_FIELDS_HELP = (
    "Field definitions like 'title:text', 'age:integer:nullable', "
    "'post:reference', 'author:reference=user'"
)


def build_parser() -> argparse.ArgumentParser:
    """Return the argument parser for ``shipwright-generate``."""
    parser = argparse.ArgumentParser(
        prog="shipwright-generate",
        description="Generate migrations, entities and controllers in a workspace.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  shipwright-generate scaffold comment body:text post:reference\n"
            "  shipwright-generate --place model-host=blog-db entity tag name:text\n"
            "  shipwright-generate controller-test comment body:text\n"
            "  shipwright-generate workspace\n"
        ),
    )
    parser.add_argument(
        "--workspace", "-w",
        default=None,
        help="Workspace root (default: $SHIPWRIGHT_WORKSPACE or the current directory)",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Load settings from a JSON file saved by GeneratorConfig.save()",
    )
    parser.add_argument(
        "--place",
        action="append",
        default=[],
        metavar="KIND=PACKAGE",
        help="Send artifacts of a package kind to a specific package (repeatable)",
    )
    parser.add_argument(
        "--blueprints",
        default=None,
        help="Directory holding a bundle.yaml to use instead of the built-in templates",
    )
    parser.add_argument(
        "--no-check-references",
        action="store_true",
        help="Do not require referenced tables to exist in the workspace",
    )
    parser.add_argument("--dry-run", action="store_true", help="Render but do not write.")
    parser.add_argument("--quiet", action="store_true", help="Disable progress output.")
    parser.add_argument("--no-color", action="store_true", help="Disable colored output.")

    commands = parser.add_subparsers(dest="command", required=True)
    descriptions = {
        "scaffold": "Generate a migration, an entity and a controller",
        "migration": "Generate a migration",
        "entity": "Generate an entity",
        "controller": "Generate a controller and its test",
        "controller-test": "Generate a test for a controller",
    }
    for name, description in descriptions.items():
        sub = commands.add_parser(name, help=description, description=description)
        sub.add_argument("name", help="The name of the resource.")
        sub.add_argument("fields", nargs="*", help=_FIELDS_HELP)
    commands.add_parser(
        "workspace",
        help="Show workspace packages, kinds and order",
        description="Show workspace packages, kinds and order",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> None:
    """CLI entry point for ``shipwright-generate``."""
    parser = build_parser()
    args = parser.parse_args(argv)

    out = Console(quiet=args.quiet, no_color=args.no_color)
    err = Console(stderr=True, no_color=args.no_color)

    try:
        config = load_cli_config(args)
    except (OSError, ValueError) as exc:
        print_error(f"Error: {exc}", out=err)
        sys.exit(2)

    try:
        if args.command == "workspace":
            graph = build_graph(config.workspace_root, config.placements)
            print_workspace_table(graph, out=out)
            return

        generator = Generator(config, console=out)
        only = COMMAND_ARTIFACTS[args.command]
        if args.dry_run:
            result = generator.plan(args.name, args.fields, only=only)
            if result.conflicts:
                print_warning(
                    f"{len(result.conflicts)} file(s) already exist; "
                    "a real run would write nothing.",
                    out=out,
                )
            else:
                print_success("Dry run: nothing written.", out=out)
        else:
            generator.generate(args.name, args.fields, only=only)
    except EngineError as exc:
        print_error(str(exc), out=err)
        sys.exit(1)


def load_cli_config(args: argparse.Namespace) -> GeneratorConfig:
    """Merge the environment (or ``--config`` file) with command-line flags.

    Raises:
        ValueError: For malformed ``--place`` values or settings.
        OSError: If ``--config`` cannot be read.
    """
    config = GeneratorConfig.load(Path(args.config)) if args.config else GeneratorConfig.from_env()

    placements = dict(config.placements)
    for item in args.place:
        kind, sep, package = item.partition("=")
        if not sep or not kind.strip() or not package.strip():
            raise ValueError(f"--place expects KIND=PACKAGE, got '{item}'")
        try:
            placements[PackageKind(kind.strip())] = package.strip()
        except ValueError:
            kinds = ", ".join(k.value for k in PackageKind if k is not PackageKind.SHARED)
            raise ValueError(f"Unknown package kind '{kind}' (expected one of: {kinds})") from None

    update: dict[str, object] = {"placements": placements}
    if args.workspace:
        update["workspace_root"] = Path(args.workspace)
    if args.blueprints:
        update["blueprint_dir"] = Path(args.blueprints)
    if args.no_check_references:
        update["check_references"] = False
    return config.model_copy(update=update)


if __name__ == "__main__":
    main()
