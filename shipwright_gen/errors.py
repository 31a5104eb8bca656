"""Error taxonomy for the scaffolding engine.

Every failure the engine can report is a subclass of :class:`EngineError`.
Each exception keeps the offending names or paths as attributes so callers
(the CLI, tests) can inspect them, and formats a message that can be shown
verbatim to a human operator.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from pathlib import Path


class EngineError(Exception):
    """Base class for every error raised by the generation engine."""


# ---------------------------------------------------------------------------
# Workspace graph
# ---------------------------------------------------------------------------


class GraphError(EngineError):
    """Raised when the workspace cannot be turned into a valid package graph."""


class ManifestError(GraphError):
    """Raised when a workspace manifest or migration file cannot be used."""

    def __init__(self, path: str | Path, reason: str) -> None:
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"Invalid workspace file {self.path}: {reason}")


class UnknownDependencyError(GraphError):
    """Raised when an internal dependency names no workspace package."""

    def __init__(self, package: str, dependency: str) -> None:
        self.package = package
        self.dependency = dependency
        super().__init__(
            f"Package '{package}' depends on '{dependency}', "
            "which is not a member of the workspace"
        )


class CyclicDependencyError(GraphError):
    """Raised when internal package dependencies form a cycle."""

    def __init__(self, cycle: Sequence[str]) -> None:
        self.cycle = list(cycle)
        path = " -> ".join([*self.cycle, self.cycle[0]]) if self.cycle else ""
        super().__init__(f"Cyclic dependency between workspace packages: {path}")


class PlacementError(GraphError):
    """Raised when no single package can receive a generated artifact."""

    def __init__(self, kind: str, message: str) -> None:
        self.kind = kind
        super().__init__(message)


class TargetNotFoundError(PlacementError):
    """Raised when no package (or no package of the given name) hosts a kind."""

    def __init__(self, kind: str, package: str | None = None) -> None:
        self.package = package
        if package is None:
            message = f"No workspace package qualifies as a {kind}"
        else:
            message = f"Package '{package}' requested as {kind} does not exist"
        super().__init__(kind, message)


class AmbiguousTargetError(PlacementError):
    """Raised when several packages qualify for the same kind."""

    def __init__(self, kind: str, candidates: Iterable[str]) -> None:
        self.candidates = sorted(candidates)
        super().__init__(
            kind,
            f"Several packages qualify as {kind}: {', '.join(self.candidates)}. "
            f"Choose one explicitly (e.g. --place {kind}=<package>).",
        )


# ---------------------------------------------------------------------------
# Resource descriptor
# ---------------------------------------------------------------------------


class DescriptorError(EngineError):
    """Raised when the resource name or a field token is invalid."""


class InvalidResourceNameError(DescriptorError):
    def __init__(self, name: str, reason: str) -> None:
        self.name = name
        self.reason = reason
        super().__init__(f"Invalid resource name '{name}': {reason}")


class MalformedFieldError(DescriptorError):
    """Raised when a field token does not follow ``name:type[:modifier...]``."""

    def __init__(self, token: str, reason: str) -> None:
        self.token = token
        self.reason = reason
        super().__init__(f"Malformed field '{token}': {reason}")


class UnknownFieldTypeError(DescriptorError):
    def __init__(self, token: str, type_tag: str, known: Iterable[str]) -> None:
        self.token = token
        self.type_tag = type_tag
        self.known = sorted(known)
        super().__init__(
            f"Unknown field type '{type_tag}' in '{token}' "
            f"(expected one of: {', '.join(self.known)})"
        )


class UnknownModifierError(DescriptorError):
    def __init__(self, token: str, modifier: str) -> None:
        self.token = token
        self.modifier = modifier
        super().__init__(f"Unknown modifier '{modifier}' in '{token}'")


class DuplicateFieldNameError(DescriptorError):
    def __init__(self, name: str, first: str, second: str) -> None:
        self.name = name
        self.first = first
        self.second = second
        super().__init__(
            f"Duplicate field name '{name}' (from '{first}' and '{second}')"
        )


class InvalidReferenceError(DescriptorError):
    """Raised when a reference field has no usable or known target."""

    def __init__(self, message: str, fields: Iterable[str] = ()) -> None:
        self.fields = list(fields)
        super().__init__(message)


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


class RenderError(EngineError):
    """Raised when a template unit cannot be rendered."""

    def __init__(self, unit: str, message: str) -> None:
        self.unit = unit
        super().__init__(f"[{unit}] {message}")


class BundleError(RenderError):
    """Raised when a template bundle manifest is malformed."""


class TemplateSyntaxError(RenderError):
    def __init__(self, unit: str, detail: str, lineno: int | None = None) -> None:
        self.detail = detail
        self.lineno = lineno
        where = f" (line {lineno})" if lineno else ""
        super().__init__(unit, f"Template syntax error{where}: {detail}")


class MissingContextVariableError(RenderError):
    def __init__(self, unit: str, detail: str) -> None:
        self.detail = detail
        super().__init__(unit, f"Template references a missing variable: {detail}")


class OutputPathError(RenderError):
    def __init__(self, unit: str, path: str, reason: str) -> None:
        self.path = path
        super().__init__(unit, f"Invalid output path '{path}': {reason}")


# ---------------------------------------------------------------------------
# Writing
# ---------------------------------------------------------------------------


class ConflictError(EngineError):
    """Raised when generated files would overwrite existing ones."""

    def __init__(self, paths: Iterable[Path]) -> None:
        self.paths = list(paths)
        listing = "\n".join(f"  - {p}" for p in self.paths)
        super().__init__(
            f"Refusing to overwrite {len(self.paths)} existing file(s):\n{listing}"
        )


class WriteError(EngineError):
    """Raised when the filesystem rejects a write during commit."""

    def __init__(self, path: Path, cause: BaseException, message: str = "") -> None:
        self.path = path
        self.cause = cause
        super().__init__(message or f"Could not write {path}: {cause}")


class PartialWriteError(WriteError):
    """Raised when a write fails after some files were already created.

    The engine performs no rollback: ``written`` must be cleaned up by the
    caller.  ``pending`` starts with the path whose write failed.
    """

    def __init__(
        self,
        path: Path,
        cause: BaseException,
        written: Sequence[Path],
        pending: Sequence[Path],
    ) -> None:
        self.written = list(written)
        self.pending = list(pending)
        written_lines = "\n".join(f"  + {p}" for p in self.written)
        pending_lines = "\n".join(f"  - {p}" for p in self.pending)
        super().__init__(
            path,
            cause,
            f"Could not write {path}: {cause}\n"
            f"Written before the failure (remove manually):\n{written_lines}\n"
            f"Not written:\n{pending_lines}",
        )
