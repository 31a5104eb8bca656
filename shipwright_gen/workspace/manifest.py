"""Workspace manifest reading.

The workspace follows the uv workspace layout:

* the root ``pyproject.toml`` may list members under
  ``[tool.uv.workspace]`` (``members`` / ``exclude`` glob patterns); without
  that table every direct sub-directory holding a ``pyproject.toml`` is a
  member;
* each member declares ``[project] name`` and ``dependencies``; a dependency
  is internal when ``[tool.uv.sources]`` maps it to ``{ workspace = true }``
  or to a ``{ path = ... }`` source.

Only package names and internal dependency names are extracted; the rest of
the manifest is treated as opaque.
"""

from __future__ import annotations

import re
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from shipwright_gen.errors import ManifestError

MANIFEST_NAME = "pyproject.toml"

_REQUIREMENT_NAME = re.compile(r"^\s*([A-Za-z0-9](?:[A-Za-z0-9._-]*[A-Za-z0-9])?)")


@dataclass(frozen=True)
class PackageManifest:
    """Name and internal dependencies declared by one member manifest."""

    name: str
    path: Path
    dependencies: tuple[str, ...]

    @property
    def root(self) -> Path:
        return self.path.parent


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def normalize_name(name: str) -> str:
    """Normalise a distribution name as PEP 503 does (``My_Pkg`` -> ``my-pkg``)."""
    return re.sub(r"[-_.]+", "-", name).lower()


def import_name_for(name: str) -> str:
    """Return the conventional import package name for a distribution name."""
    return normalize_name(name).replace("-", "_")


def discover_members(root: Path) -> list[Path]:
    """Return the member directories of the workspace rooted at *root*.

    Raises:
        ManifestError: If the root manifest is invalid or a listed member
            has no manifest.
    """
    root_manifest = root / MANIFEST_NAME
    workspace: Any = None
    if root_manifest.is_file():
        data = _load_toml(root_manifest)
        workspace = _uv_table(root_manifest, data).get("workspace")

    if workspace is None:
        return sorted(
            p.resolve()
            for p in root.iterdir()
            if p.is_dir() and (p / MANIFEST_NAME).is_file()
        )

    if not isinstance(workspace, dict):
        raise ManifestError(root_manifest, "[tool.uv.workspace] must be a table")
    members = _string_list(root_manifest, workspace, "members")
    excludes = _string_list(root_manifest, workspace, "exclude")

    excluded = {p.resolve() for pattern in excludes for p in root.glob(pattern)}
    found: set[Path] = set()
    for pattern in members:
        for candidate in root.glob(pattern):
            candidate = candidate.resolve()
            if not candidate.is_dir() or candidate == root.resolve() or candidate in excluded:
                continue
            if not (candidate / MANIFEST_NAME).is_file():
                raise ManifestError(
                    candidate / MANIFEST_NAME, "workspace member has no manifest"
                )
            found.add(candidate)
    return sorted(found)


def read_manifest(path: Path) -> PackageManifest:
    """Read one member ``pyproject.toml``.

    Raises:
        ManifestError: If the file is unreadable, is not valid TOML, has no
            ``[project].name`` or lists malformed dependencies.
    """
    data = _load_toml(path)

    project = data.get("project")
    if not isinstance(project, dict):
        raise ManifestError(path, "missing [project] table")
    raw_name = project.get("name")
    if not isinstance(raw_name, str) or not raw_name.strip():
        raise ManifestError(path, "missing [project].name")

    dependencies = _string_list(path, project, "dependencies")

    sources = _uv_table(path, data).get("sources", {})
    if not isinstance(sources, dict):
        raise ManifestError(path, "[tool.uv.sources] must be a table")
    internal_sources = {
        normalize_name(name)
        for name, source in sources.items()
        if isinstance(source, dict) and (source.get("workspace") is True or "path" in source)
    }

    internal: list[str] = []
    for requirement in dependencies:
        match = _REQUIREMENT_NAME.match(requirement)
        if match is None:
            raise ManifestError(path, f"unparseable dependency '{requirement}'")
        dep_name = normalize_name(match.group(1))
        if dep_name in internal_sources and dep_name not in internal:
            internal.append(dep_name)

    return PackageManifest(
        name=normalize_name(raw_name.strip()),
        path=path.resolve(),
        dependencies=tuple(internal),
    )


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _load_toml(path: Path) -> dict[str, Any]:
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ManifestError(path, f"cannot be read ({exc})") from exc
    try:
        return tomllib.loads(raw)
    except tomllib.TOMLDecodeError as exc:
        raise ManifestError(path, f"invalid TOML ({exc})") from exc


def _uv_table(path: Path, data: dict[str, Any]) -> dict[str, Any]:
    """Return ``[tool.uv]``, or an empty table when it is absent."""
    tool = data.get("tool", {})
    if not isinstance(tool, dict):
        raise ManifestError(path, "[tool] must be a table")
    uv = tool.get("uv", {})
    if not isinstance(uv, dict):
        raise ManifestError(path, "[tool.uv] must be a table")
    return uv


def _string_list(path: Path, table: dict[str, Any], key: str) -> list[str]:
    value = table.get(key, [])
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ManifestError(path, f"'{key}' must be a list of strings")
    return value
