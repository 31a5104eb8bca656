"""Jinja2 environment used to render template units.

Provides the :class:`TemplateRenderer` class, which compiles the sources of a
:class:`~shipwright_gen.rendering.bundle.TemplateBundle` and renders them with
a generation context.  Undefined variables are errors, never empty strings,
so a template that references something the context lacks fails loudly.
"""

from __future__ import annotations

from typing import Any

import jinja2
from jinja2 import DictLoader, Environment, StrictUndefined

from shipwright_gen.descriptor.inflection import (
    Inflector,
    humanize,
    to_camel_case,
    to_pascal_case,
    to_snake_case,
)
from shipwright_gen.errors import MissingContextVariableError, TemplateSyntaxError


# ---------------------------------------------------------------------------
# TemplateRenderer
# ---------------------------------------------------------------------------


class TemplateRenderer:
    """Renders named template sources with a context dictionary.

    Templates are registered by unit name.  The environment keeps trailing
    newlines and strips block whitespace so generated files come out with
    stable, predictable layout.
    """

    def __init__(
        self,
        sources: dict[str, str] | None = None,
        inflector: Inflector | None = None,
    ) -> None:
        self.inflector = inflector or Inflector()
        self.sources = dict(sources or {})
        self.env = Environment(
            loader=DictLoader(self.sources),
            undefined=StrictUndefined,
            autoescape=False,
            keep_trailing_newline=True,
            trim_blocks=True,
            lstrip_blocks=True,
        )
        # Register custom filters
        self.env.filters["snake_case"] = to_snake_case
        self.env.filters["pascal_case"] = to_pascal_case
        self.env.filters["camel_case"] = to_camel_case
        self.env.filters["humanize"] = humanize
        self.env.filters["pluralize"] = self.inflector.pluralize
        self.env.filters["singularize"] = self.inflector.singularize

    # -- Compilation --------------------------------------------------------

    def compile(self, unit: str) -> jinja2.Template:
        """Compile the source registered as *unit*.

        Raises:
            TemplateSyntaxError: If the source is not valid Jinja2.
        """
        try:
            return self.env.get_template(unit)
        except jinja2.TemplateSyntaxError as exc:
            raise TemplateSyntaxError(unit, exc.message or str(exc), exc.lineno) from exc

    def compile_string(self, unit: str, source: str) -> jinja2.Template:
        """Compile an inline source (e.g. a path template) on behalf of *unit*."""
        try:
            return self.env.from_string(source)
        except jinja2.TemplateSyntaxError as exc:
            raise TemplateSyntaxError(unit, exc.message or str(exc), exc.lineno) from exc

    # -- Rendering ----------------------------------------------------------

    def render(self, unit: str, context: dict[str, Any]) -> str:
        """Render the source registered as *unit* with *context*."""
        return self._render(unit, self.compile(unit), context)

    def render_string(self, unit: str, source: str, context: dict[str, Any]) -> str:
        """Render an inline template string with the provided context."""
        return self._render(unit, self.compile_string(unit, source), context)

    @staticmethod
    def _render(unit: str, template: jinja2.Template, context: dict[str, Any]) -> str:
        try:
            return template.render(**context)
        except jinja2.UndefinedError as exc:
            raise MissingContextVariableError(unit, exc.message or str(exc)) from exc
