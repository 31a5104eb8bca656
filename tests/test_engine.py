"""Tests for the generation engine and the ``shipwright-generate`` CLI.

Tests cover:
- Generator.plan / Generator.generate against the blog workspace
- Reference checking and its opt-out
- The missing-dependency warning
- main(): subcommands, dry run, exit codes and flag merging
"""

from __future__ import annotations

import argparse
import os
from pathlib import Path
from unittest.mock import patch

import pytest

from shipwright_gen.config import GeneratorConfig
from shipwright_gen.engine import (
    COMMAND_ARTIFACTS,
    Generator,
    build_parser,
    generate,
    load_cli_config,
    main,
    plan,
)
from shipwright_gen.errors import ConflictError, InvalidReferenceError
from shipwright_gen.rendering import ArtifactKind
from shipwright_gen.workspace import PackageKind
from tests._fixtures.clock import FIXED_STAMP

COMMENT_FIELDS = ["body:text", "post:reference", "approved:boolean:nullable"]


def _run(argv: list[str]) -> int:
    """Run the CLI and return its exit code (0 when it returns normally)."""
    with patch.dict(os.environ, {"COLUMNS": "200"}, clear=True):
        try:
            main(argv)
        except SystemExit as exc:
            return int(exc.code or 0)
    return 0


# ---------------------------------------------------------------------------
# Generator
# ---------------------------------------------------------------------------


class TestGenerator:
    @pytest.mark.unit
    def test_plan_writes_nothing(self, blog_workspace, fixed_clock, quiet_console):
        result = plan(
            blog_workspace, "comment", COMMENT_FIELDS, clock=fixed_clock, console=quiet_console
        )
        assert result.timestamp == FIXED_STAMP
        assert len(result.artifacts) == 3
        assert not any(p.exists() for p in result.paths)

    @pytest.mark.unit
    def test_generate_writes_files(self, blog_workspace, fixed_clock, recording_console):
        report = generate(
            blog_workspace,
            "comment",
            COMMENT_FIELDS,
            clock=fixed_clock,
            console=recording_console,
        )
        assert all(p.is_file() for p in report.paths)
        text = recording_console.export_text()
        assert "Step 4: WRITE" in text
        assert "include the comments router" in text
        assert "Generated 3 file(s) for 'comment'" in text

    @pytest.mark.unit
    def test_only_restricts_artifacts(self, blog_workspace, fixed_clock, quiet_console):
        report = generate(
            blog_workspace,
            "tag",
            ["name:text"],
            only=[ArtifactKind.MIGRATION],
            clock=fixed_clock,
            console=quiet_console,
        )
        assert [c.artifact for c in report.created] == [ArtifactKind.MIGRATION]

    @pytest.mark.unit
    def test_default_run_leaves_out_controller_test(
        self, blog_workspace, fixed_clock, quiet_console
    ):
        result = plan(
            blog_workspace, "comment", COMMENT_FIELDS, clock=fixed_clock, console=quiet_console
        )
        assert ArtifactKind.TEST not in [a.artifact for a in result.artifacts]

    @pytest.mark.unit
    def test_no_router_reminder_without_handler(
        self, blog_workspace, fixed_clock, recording_console
    ):
        generate(
            blog_workspace,
            "tag",
            ["name:text"],
            only=["model"],
            clock=fixed_clock,
            console=recording_console,
        )
        assert "router" not in recording_console.export_text()

    @pytest.mark.unit
    def test_unknown_reference_rejected(self, blog_workspace, fixed_clock, quiet_console):
        with pytest.raises(InvalidReferenceError) as exc_info:
            plan(
                blog_workspace,
                "like",
                ["photo:reference"],
                clock=fixed_clock,
                console=quiet_console,
            )
        assert exc_info.value.fields == ["photo"]

    @pytest.mark.unit
    def test_reference_check_can_be_disabled(self, blog_workspace, fixed_clock, quiet_console):
        config = GeneratorConfig(check_references=False)
        result = plan(
            blog_workspace,
            "like",
            ["photo:reference"],
            config=config,
            clock=fixed_clock,
            console=quiet_console,
        )
        assert len(result.artifacts) == 3

    @pytest.mark.unit
    def test_second_run_conflicts(self, blog_workspace, fixed_clock, quiet_console):
        generate(blog_workspace, "comment", COMMENT_FIELDS, clock=fixed_clock, console=quiet_console)
        with pytest.raises(ConflictError):
            generate(
                blog_workspace, "comment", COMMENT_FIELDS, clock=fixed_clock, console=quiet_console
            )

    @pytest.mark.unit
    def test_missing_dependency_warning(self, workspace_builder, fixed_clock, recording_console):
        workspace_builder.root_manifest()
        workspace_builder.package("db", migrations=True, entities=True)
        workspace_builder.package("api", controllers=True)
        generator = Generator(clock=fixed_clock, console=recording_console)
        generator.plan("tag", ["name:text"], workspace_root=workspace_builder.path())
        assert "'api' does not depend on 'db'" in recording_console.export_text()

    @pytest.mark.unit
    def test_no_warning_when_dependency_declared(
        self, blog_workspace, fixed_clock, recording_console
    ):
        Generator(clock=fixed_clock, console=recording_console).plan(
            "tag", ["name:text"], workspace_root=blog_workspace
        )
        assert "does not depend" not in recording_console.export_text()

    @pytest.mark.unit
    def test_placements_from_config(self, workspace_builder, fixed_clock, quiet_console):
        workspace_builder.root_manifest()
        workspace_builder.package("db", migrations=True, entities=True)
        workspace_builder.package("api", dependencies=["db"], controllers=True)
        workspace_builder.package("admin", dependencies=["db"], controllers=True)
        config = GeneratorConfig(placements={PackageKind.WEB_HOST: "api"})
        result = plan(
            workspace_builder.path(),
            "tag",
            ["name:text"],
            config=config,
            clock=fixed_clock,
            console=quiet_console,
        )
        assert result.artifacts[-1].package == "api"


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------


class TestBuildParser:
    @pytest.mark.unit
    def test_subcommands_match_artifacts(self):
        parser = build_parser()
        for command in COMMAND_ARTIFACTS:
            args = parser.parse_args([command, "comment", "body:text"])
            assert args.command == command
            assert args.name == "comment"
            assert args.fields == ["body:text"]

    @pytest.mark.unit
    def test_command_is_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])


class TestLoadCliConfig:
    @pytest.mark.unit
    def test_flags_override_environment(self, tmp_path: Path):
        args = build_parser().parse_args(
            [
                "--workspace", str(tmp_path),
                "--place", "web-host=blog-web",
                "--no-check-references",
                "scaffold", "comment",
            ]
        )
        env = {"SHIPWRIGHT_PLACEMENTS": "model-host=blog-db"}
        with patch.dict(os.environ, env, clear=True):
            config = load_cli_config(args)
        assert config.workspace_root == tmp_path
        assert config.placements == {
            PackageKind.MODEL_HOST: "blog-db",
            PackageKind.WEB_HOST: "blog-web",
        }
        assert config.check_references is False

    @pytest.mark.unit
    @pytest.mark.parametrize("value", ["web-host", "frontend=blog-web", "=blog-web"])
    def test_bad_place(self, value: str):
        args = argparse.Namespace(
            config=None, place=[value], workspace=None, blueprints=None, no_check_references=False
        )
        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(ValueError):
                load_cli_config(args)

    @pytest.mark.unit
    def test_config_file(self, tmp_path: Path):
        saved = GeneratorConfig(uncountable=["staff"]).save(tmp_path / "cfg.json")
        args = build_parser().parse_args(["--config", str(saved), "workspace"])
        assert load_cli_config(args).uncountable == ["staff"]


class TestMain:
    @pytest.mark.unit
    def test_scaffold(self, blog_workspace, capsys):
        code = _run(["--workspace", str(blog_workspace), "scaffold", "comment", *COMMENT_FIELDS])
        assert code == 0
        assert "Generated 3 file(s)" in capsys.readouterr().out
        migrations = blog_workspace / "packages" / "blog-db" / "migrations"
        assert len(list(migrations.glob("*_create_comments_table.sql"))) == 1

    @pytest.mark.unit
    def test_entity_only(self, blog_workspace):
        assert _run(["--quiet", "-w", str(blog_workspace), "entity", "tag", "name:text"]) == 0
        assert (blog_workspace / "packages/blog-db/src/blog_db/entities/tags.py").is_file()
        migrations = blog_workspace / "packages/blog-db/migrations"
        assert not list(migrations.glob("*_create_tags_table.sql"))

    @pytest.mark.unit
    def test_controller_writes_handler_and_test(self, blog_workspace):
        assert _run(["--quiet", "-w", str(blog_workspace), "controller", "tag", "name:text"]) == 0
        web = blog_workspace / "packages/blog-web"
        assert (web / "src/blog_web/controllers/tags.py").is_file()
        assert (web / "tests/test_tags_controller.py").is_file()
        assert not (blog_workspace / "packages/blog-db/src/blog_db/entities/tags.py").exists()

    @pytest.mark.unit
    def test_controller_test_only(self, blog_workspace, capsys):
        code = _run(["-w", str(blog_workspace), "controller-test", "tag", "name:text"])
        assert code == 0
        assert "Generated 1 file(s)" in capsys.readouterr().out
        web = blog_workspace / "packages/blog-web"
        assert (web / "tests/test_tags_controller.py").is_file()
        assert not (web / "src/blog_web/controllers/tags.py").exists()

    @pytest.mark.unit
    def test_dry_run(self, blog_workspace, capsys):
        code = _run(["-w", str(blog_workspace), "--dry-run", "controller", "tag"])
        assert code == 0
        assert "Dry run: nothing written." in capsys.readouterr().out
        assert not (blog_workspace / "packages/blog-web/src/blog_web/controllers/tags.py").exists()

    @pytest.mark.unit
    def test_dry_run_reports_conflicts(self, blog_workspace, capsys):
        _run(["--quiet", "-w", str(blog_workspace), "controller", "tag"])
        capsys.readouterr()
        assert _run(["-w", str(blog_workspace), "--dry-run", "controller", "tag"]) == 0
        assert "a real run would write nothing" in capsys.readouterr().out

    @pytest.mark.unit
    def test_engine_error_exits_1(self, blog_workspace, capsys):
        code = _run(["-w", str(blog_workspace), "scaffold", "comment", "body:blob"])
        assert code == 1
        assert "Unknown field type 'blob'" in capsys.readouterr().err

    @pytest.mark.unit
    def test_conflict_exits_1(self, blog_workspace, capsys):
        assert _run(["--quiet", "-w", str(blog_workspace), "entity", "tag"]) == 0
        assert _run(["--quiet", "-w", str(blog_workspace), "entity", "tag"]) == 1
        assert "Refusing to overwrite 1 existing file(s)" in capsys.readouterr().err

    @pytest.mark.unit
    def test_bad_place_exits_2(self, blog_workspace, capsys):
        code = _run(["-w", str(blog_workspace), "--place", "nope", "scaffold", "tag"])
        assert code == 2
        assert "KIND=PACKAGE" in capsys.readouterr().err

    @pytest.mark.unit
    def test_workspace_command(self, blog_workspace, capsys):
        assert _run(["-w", str(blog_workspace), "workspace"]) == 0
        out = capsys.readouterr().out
        assert "blog-core" in out
        assert "web-host" in out
