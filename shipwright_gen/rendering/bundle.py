"""Template bundles: ordered collections of template units.

A bundle directory holds a ``bundle.yaml`` manifest and the Jinja2 sources
it names::

    units:
      - name: migration
        artifact: migration
        target: migration-host
        template: migration/create_table.sql.j2
        path: "migrations/{{ migration_name }}.sql"

A unit may also list ``requires`` (package kinds its template reads through
``packages``) and set ``scaffold: false`` to stay out of full scaffold runs.

Bundles are plain immutable values.  :func:`default_bundle` loads the one
shipped with this package; tests and callers may build their own with
:func:`load_bundle` or by constructing :class:`TemplateBundle` directly.
"""

from __future__ import annotations

from collections.abc import Iterable
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from shipwright_gen.errors import BundleError
from shipwright_gen.workspace.models import PackageKind

from .models import ArtifactKind
from .templates import TemplateRenderer


# ---------------------------------------------------------------------------
# Bundle directory discovery
# ---------------------------------------------------------------------------

BUNDLE_MANIFEST = "bundle.yaml"

_DEFAULT_BUNDLE_DIR = Path(__file__).parent / "blueprints"


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


class TemplateUnit(BaseModel):
    """One template: its source, output path template and target kind."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Unique unit name within the bundle")
    source: str = Field(..., description="Jinja2 template text")
    path_template: str = Field(
        ..., description="Jinja2 template for the path relative to the target package"
    )
    target_kind: PackageKind = Field(..., description="Package kind receiving the output")
    artifact: ArtifactKind = Field(..., description="What the rendered file is")
    requires: tuple[PackageKind, ...] = Field(
        default=(),
        description="Other package kinds the template reads through ``packages``",
    )
    scaffold: bool = Field(default=True, description="Rendered by a full scaffold run")

    @property
    def is_migration(self) -> bool:
        return self.artifact is ArtifactKind.MIGRATION


class TemplateBundle(BaseModel):
    """Ordered, immutable sequence of template units."""

    model_config = ConfigDict(frozen=True)

    units: tuple[TemplateUnit, ...] = Field(default=())

    @property
    def names(self) -> list[str]:
        return [u.name for u in self.units]

    def target_kinds(self) -> list[PackageKind]:
        """Return the distinct target kinds in first-use order."""
        return list(dict.fromkeys(u.target_kind for u in self.units))

    def required_kinds(self) -> list[PackageKind]:
        """Return target kinds followed by kinds the units require, without repeats."""
        kinds = self.target_kinds() + [k for u in self.units for k in u.requires]
        return list(dict.fromkeys(kinds))

    def scaffold(self) -> TemplateBundle:
        """Return the sub-bundle a full scaffold run renders."""
        return TemplateBundle(units=tuple(u for u in self.units if u.scaffold))

    def select(self, artifacts: Iterable[ArtifactKind | str]) -> TemplateBundle:
        """Return the sub-bundle producing *artifacts*, keeping unit order."""
        wanted = {ArtifactKind(a) for a in artifacts}
        return TemplateBundle(units=tuple(u for u in self.units if u.artifact in wanted))

    def renderer(self, **kwargs: Any) -> TemplateRenderer:
        """Return a :class:`TemplateRenderer` holding every unit source."""
        return TemplateRenderer({u.name: u.source for u in self.units}, **kwargs)

    def check(self) -> None:
        """Check unit names and targets, then compile every template.

        Raises:
            BundleError: If two units share a name or a unit targets (or
                requires) shared packages.
            TemplateSyntaxError: For the first unit that does not compile.
        """
        seen: set[str] = set()
        for unit in self.units:
            if unit.name in seen:
                raise BundleError(unit.name, "unit name is used more than once")
            seen.add(unit.name)
            if PackageKind.SHARED in (unit.target_kind, *unit.requires):
                raise BundleError(unit.name, "units cannot target shared packages")

        renderer = self.renderer()
        for unit in self.units:
            renderer.compile(unit.name)
            renderer.compile_string(unit.name, unit.path_template)


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


def load_bundle(directory: str | Path) -> TemplateBundle:
    """Load the bundle described by ``<directory>/bundle.yaml``.

    Raises:
        BundleError: If the manifest or a template source is missing or
            malformed.
    """
    base = Path(directory)
    manifest = base / BUNDLE_MANIFEST
    try:
        data = yaml.safe_load(manifest.read_text(encoding="utf-8"))
    except OSError as exc:
        raise BundleError(str(base), f"cannot read {BUNDLE_MANIFEST} ({exc})") from exc
    except yaml.YAMLError as exc:
        raise BundleError(str(base), f"invalid YAML in {BUNDLE_MANIFEST} ({exc})") from exc

    if not isinstance(data, dict) or not isinstance(data.get("units"), list):
        raise BundleError(str(base), f"{BUNDLE_MANIFEST} must contain a 'units' list")

    units: list[TemplateUnit] = []
    for index, entry in enumerate(data["units"]):
        units.append(_load_unit(base, index, entry))
    return TemplateBundle(units=tuple(units))


@lru_cache(maxsize=1)
def default_bundle() -> TemplateBundle:
    """Return the bundle shipped in ``shipwright_gen/rendering/blueprints``."""
    return load_bundle(_DEFAULT_BUNDLE_DIR)


def _load_unit(base: Path, index: int, entry: Any) -> TemplateUnit:
    if not isinstance(entry, dict):
        raise BundleError(f"#{index}", "unit entry must be a mapping")
    name = str(entry.get("name") or f"#{index}")
    for key in ("template", "path", "target", "artifact"):
        if not entry.get(key):
            raise BundleError(name, f"missing '{key}'")

    requires = entry.get("requires") or ()
    if isinstance(requires, str):
        requires = [requires]
    if not isinstance(requires, (list, tuple)):
        raise BundleError(name, "'requires' must be a list of package kinds")

    template_path = base / str(entry["template"])
    try:
        source = template_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise BundleError(name, f"cannot read template {template_path} ({exc})") from exc

    try:
        return TemplateUnit(
            name=name,
            source=source,
            path_template=str(entry["path"]),
            target_kind=entry["target"],
            artifact=entry["artifact"],
            requires=tuple(requires),
            scaffold=entry.get("scaffold", True),
        )
    except ValidationError as exc:
        errors = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()
        )
        raise BundleError(name, errors) from exc
