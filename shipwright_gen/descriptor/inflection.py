"""Deterministic English inflection for resource names.

Singular/plural forms are derived from an ordered rule table.  Irregular
plurals are never guessed: they come from an explicit list that callers can
extend (see ``GeneratorConfig.irregular_plurals``).  Only the last
underscore-separated segment of a snake_case name is inflected, so
``invoice_item`` becomes ``invoice_items`` and ``sales_person`` becomes
``sales_people``.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping

# ---------------------------------------------------------------------------
# Tables
# ---------------------------------------------------------------------------

IRREGULAR_PLURALS: dict[str, str] = {
    "person": "people",
    "child": "children",
    "man": "men",
    "woman": "women",
    "mouse": "mice",
    "goose": "geese",
    "tooth": "teeth",
    "foot": "feet",
    "ox": "oxen",
    "leaf": "leaves",
    "knife": "knives",
    "life": "lives",
    "wife": "wives",
    "half": "halves",
    "wolf": "wolves",
    "shelf": "shelves",
    "movie": "movies",
    "cookie": "cookies",
    "cache": "caches",
    "datum": "data",
    "criterion": "criteria",
}

UNCOUNTABLE: frozenset[str] = frozenset(
    {
        "equipment",
        "information",
        "metadata",
        "money",
        "news",
        "rice",
        "series",
        "sheep",
        "species",
        "fish",
        "feedback",
    }
)

# First matching rule wins.
_PLURAL_RULES: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"(quiz)$"), r"\1zes"),
    (re.compile(r"sis$"), "ses"),
    (re.compile(r"(x|ch|ss|sh|s|z)$"), r"\1es"),
    (re.compile(r"([^aeiouy]|qu)y$"), r"\1ies"),
    (re.compile(r"$"), "s"),
]

_SINGULAR_RULES: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"(quiz)zes$"), r"\1"),
    (re.compile(r"^(alias|status|bus|campus|bonus|census|virus)(es)?$"), r"\1"),
    (re.compile(r"(analy|diagno|parenthe|progno|synop|the)ses$"), r"\1sis"),
    (re.compile(r"(ss|is)$"), r"\1"),
    (re.compile(r"(x|ch|ss|sh|zz)es$"), r"\1"),
    (re.compile(r"([^aeiouy]|qu)ies$"), r"\1y"),
    (re.compile(r"s$"), ""),
]


# ---------------------------------------------------------------------------
# Inflector
# ---------------------------------------------------------------------------


class Inflector:
    """Pluralises and singularises snake_case names.

    Args:
        irregular: Extra ``singular -> plural`` pairs merged over
            :data:`IRREGULAR_PLURALS`.
        uncountable: Extra words that have no distinct plural.
    """

    def __init__(
        self,
        irregular: Mapping[str, str] | None = None,
        uncountable: Iterable[str] | None = None,
    ) -> None:
        merged = {**IRREGULAR_PLURALS}
        for singular, plural in (irregular or {}).items():
            merged[singular.lower()] = plural.lower()
        self.irregular: dict[str, str] = merged
        self._irregular_singular = {p: s for s, p in merged.items()}
        self.uncountable: frozenset[str] = UNCOUNTABLE | {
            w.lower() for w in (uncountable or ())
        }

    def pluralize(self, name: str) -> str:
        """Return the plural form of *name* (``invoice_item`` -> ``invoice_items``)."""
        head, word = _split_last(name)
        return head + self._pluralize_word(word)

    def singularize(self, name: str) -> str:
        """Return the singular form of *name* (``invoice_items`` -> ``invoice_item``)."""
        head, word = _split_last(name)
        return head + self._singularize_word(word)

    def _pluralize_word(self, word: str) -> str:
        if not word or word in self.uncountable:
            return word
        if word in self.irregular:
            return self.irregular[word]
        if word in self._irregular_singular:
            return word
        return _apply(_PLURAL_RULES, word)

    def _singularize_word(self, word: str) -> str:
        if not word or word in self.uncountable:
            return word
        if word in self._irregular_singular:
            return self._irregular_singular[word]
        if word in self.irregular:
            return word
        return _apply(_SINGULAR_RULES, word)


# ---------------------------------------------------------------------------
# Case helpers
# ---------------------------------------------------------------------------


def to_snake_case(value: str) -> str:
    """Convert ``SomeThing``, ``some-thing`` or ``Some Thing`` to ``some_thing``."""
    s1 = re.sub(r"(.)([A-Z][a-z]+)", r"\1_\2", value.strip())
    s2 = re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", s1)
    s3 = re.sub(r"[-\s]+", "_", s2).lower()
    return re.sub(r"_+", "_", s3)


def to_pascal_case(value: str) -> str:
    """Convert ``some-thing`` or ``some_thing`` to ``SomeThing``."""
    parts = re.split(r"[-_\s]+", value)
    return "".join(word[:1].upper() + word[1:] for word in parts if word)


def to_camel_case(value: str) -> str:
    """Convert ``some_thing`` to ``someThing``."""
    pascal = to_pascal_case(value)
    if pascal:
        return pascal[0].lower() + pascal[1:]
    return ""


def humanize(value: str) -> str:
    """Convert ``invoice_item`` to ``Invoice item``."""
    text = value.replace("_", " ").strip()
    return text[:1].upper() + text[1:]


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _split_last(name: str) -> tuple[str, str]:
    head, sep, word = name.rpartition("_")
    return head + sep, word


def _apply(rules: list[tuple[re.Pattern[str], str]], word: str) -> str:
    for pattern, replacement in rules:
        if pattern.search(word):
            return pattern.sub(replacement, word, count=1)
    return word
