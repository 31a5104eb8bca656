"""Shipwright generator configuration.

Centralised, typed configuration for a generation run. Settings use a
Pydantic v2 model so they are validated at construction time and can be
serialised to/from JSON or read from environment variables.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

from shipwright_gen.descriptor.inflection import Inflector
from shipwright_gen.rendering.bundle import TemplateBundle, default_bundle, load_bundle
from shipwright_gen.workspace.models import PackageKind


class GeneratorConfig(BaseModel):
    """Global generator configuration.

    Instances are typically created once by the CLI entry point (or by a
    caller of :func:`shipwright_gen.engine.generate`) and passed through the
    rest of the system.
    """

    workspace_root: Path = Field(default=Path("."))
    config_dir: str = Field(default=".shipwright")
    placements: dict[PackageKind, str] = Field(
        default_factory=dict, description="Explicit kind -> package overrides"
    )
    irregular_plurals: dict[str, str] = Field(
        default_factory=dict, description="Extra singular -> plural pairs"
    )
    uncountable: list[str] = Field(default_factory=list)
    blueprint_dir: Optional[Path] = Field(
        default=None, description="Bundle directory replacing the built-in blueprints"
    )
    check_references: bool = Field(
        default=True, description="Reject references to tables the workspace lacks"
    )

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------

    @property
    def config_path(self) -> Path:
        """Default location of the persisted configuration."""
        return self.workspace_root / self.config_dir / "config.json"

    def inflector(self) -> Inflector:
        """Return an :class:`Inflector` with the configured overrides."""
        return Inflector(irregular=self.irregular_plurals, uncountable=self.uncountable)

    def bundle(self) -> TemplateBundle:
        """Return the configured template bundle (built-in when unset)."""
        if self.blueprint_dir is None:
            return default_bundle()
        return load_bundle(self.blueprint_dir)

    # ------------------------------------------------------------------
    # Serialisation helpers
    # ------------------------------------------------------------------

    def save(self, path: Path | None = None) -> Path:
        """Persist the configuration to a JSON file.

        Args:
            path: Destination file. Defaults to :attr:`config_path`.

        Returns:
            The path where the file was written.
        """
        target = path or self.config_path
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(self.model_dump_json(indent=2), encoding="utf-8")
        return target

    @classmethod
    def load(cls, path: Path) -> "GeneratorConfig":
        """Load a previously-saved configuration from JSON."""
        raw = Path(path).read_text(encoding="utf-8")
        return cls.model_validate_json(raw)

    @classmethod
    def from_env(cls) -> "GeneratorConfig":
        """Build a ``GeneratorConfig`` from environment variables.

        Recognised variables (all optional):
            SHIPWRIGHT_WORKSPACE, SHIPWRIGHT_BLUEPRINTS,
            SHIPWRIGHT_PLACEMENTS (``kind=package,...``),
            SHIPWRIGHT_IRREGULAR (``singular=plural,...``),
            SHIPWRIGHT_UNCOUNTABLE (``word,...``),
            SHIPWRIGHT_CHECK_REFERENCES (``0``/``false`` disables the check).
        """
        blueprints = os.environ.get("SHIPWRIGHT_BLUEPRINTS")
        check = os.environ.get("SHIPWRIGHT_CHECK_REFERENCES", "1").strip().lower()

        return cls(
            workspace_root=Path(os.environ.get("SHIPWRIGHT_WORKSPACE", ".")),
            placements=_parse_pairs(os.environ.get("SHIPWRIGHT_PLACEMENTS", "")),
            irregular_plurals=_parse_pairs(os.environ.get("SHIPWRIGHT_IRREGULAR", "")),
            uncountable=[
                w.strip()
                for w in os.environ.get("SHIPWRIGHT_UNCOUNTABLE", "").split(",")
                if w.strip()
            ],
            blueprint_dir=Path(blueprints) if blueprints else None,
            check_references=check not in ("0", "false", "no", "off"),
        )


def _parse_pairs(raw: str) -> dict[str, str]:
    """Parse ``a=b,c=d`` into a dict, ignoring blank items."""
    pairs: dict[str, str] = {}
    for item in raw.split(","):
        if not item.strip():
            continue
        key, sep, value = item.partition("=")
        if not sep or not key.strip() or not value.strip():
            raise ValueError(f"Expected 'key=value', got '{item.strip()}'")
        pairs[key.strip()] = value.strip()
    return pairs
