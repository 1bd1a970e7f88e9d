"""Declarative detection tables for the content analyzer.

Each harm category is described by data rather than code: a list of
weighted regex rules and optional keyword groups. Tables are loaded from
YAML once, compiled, and shared read-only between analyzer calls.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml

from feedguard.analysis.models import Category
from feedguard.errors import PatternTableError

DEFAULT_PATTERNS_PATH = Path(__file__).with_name("patterns.yaml")

PATTERNS_ENV_VAR = "FEEDGUARD_PATTERNS_FILE"


@dataclass(frozen=True)
class PatternRule:
    """A regex that adds ``weight`` to its category's score.

    With ``per_match`` the weight is added once per occurrence, otherwise
    once if the rule matches at all.
    """

    pattern: str
    weight: float
    per_match: bool = True
    regex: re.Pattern[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        try:
            compiled = re.compile(self.pattern, re.IGNORECASE)
        except re.error as exc:
            raise PatternTableError(f"Invalid pattern {self.pattern!r}: {exc}") from exc
        object.__setattr__(self, "regex", compiled)

    def contribution(self, text: str) -> float:
        if self.per_match:
            return sum(1 for _ in self.regex.finditer(text)) * self.weight
        return self.weight if self.regex.search(text) else 0.0


@dataclass(frozen=True)
class KeywordGroup:
    """Adds ``bonus`` once at least ``min_distinct`` of ``words`` appear."""

    name: str
    words: tuple[str, ...]
    min_distinct: int
    bonus: float

    def contribution(self, lowered: str) -> float:
        distinct = sum(1 for word in self.words if word in lowered)
        return self.bonus if distinct >= self.min_distinct else 0.0


@dataclass(frozen=True)
class CategoryTable:
    """All rules for one category."""

    category: Category
    rules: tuple[PatternRule, ...] = ()
    keyword_groups: tuple[KeywordGroup, ...] = ()


@dataclass(frozen=True)
class PatternTables:
    """The complete detection configuration."""

    categories: dict[Category, CategoryTable]
    blocklist: tuple[str, ...] = ()

    def table(self, category: Category) -> CategoryTable:
        return self.categories.get(category, CategoryTable(category=category))


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


def _parse_rule(raw: Any, where: str) -> PatternRule:
    if not isinstance(raw, dict) or "pattern" not in raw:
        raise PatternTableError(f"{where}: rule must be a mapping with a 'pattern' key")
    weight = raw.get("weight", 0.0)
    if not isinstance(weight, (int, float)) or isinstance(weight, bool) or weight < 0:
        raise PatternTableError(f"{where}: weight must be a non-negative number")
    return PatternRule(
        pattern=str(raw["pattern"]),
        weight=float(weight),
        per_match=bool(raw.get("per_match", True)),
    )


def _parse_keyword_group(raw: Any, where: str) -> KeywordGroup:
    if not isinstance(raw, dict) or not isinstance(raw.get("words"), list):
        raise PatternTableError(f"{where}: keyword group must have a 'words' list")
    return KeywordGroup(
        name=str(raw.get("name", "")),
        words=tuple(str(w).lower() for w in raw["words"]),
        min_distinct=int(raw.get("min_distinct", 1)),
        bonus=float(raw.get("bonus", 0.0)),
    )


def parse_pattern_tables(data: dict) -> PatternTables:
    """Build :class:`PatternTables` from an already-parsed YAML mapping."""
    if not isinstance(data, dict):
        raise PatternTableError("Pattern tables must be a mapping")

    raw_categories = data.get("categories") or {}
    if not isinstance(raw_categories, dict):
        raise PatternTableError("'categories' must be a mapping")

    categories: dict[Category, CategoryTable] = {}
    for name, body in raw_categories.items():
        try:
            category = Category(name)
        except ValueError:
            raise PatternTableError(f"Unknown category '{name}'") from None
        body = body or {}
        rules = tuple(
            _parse_rule(r, f"{name}.rules[{i}]") for i, r in enumerate(body.get("rules", []))
        )
        groups = tuple(
            _parse_keyword_group(g, f"{name}.keyword_groups[{i}]")
            for i, g in enumerate(body.get("keyword_groups", []))
        )
        categories[category] = CategoryTable(category=category, rules=rules, keyword_groups=groups)

    blocklist = tuple(str(w).lower() for w in data.get("blocklist", []) or [])
    return PatternTables(categories=categories, blocklist=blocklist)


def load_pattern_tables(path: str | Path | None = None) -> PatternTables:
    """Load tables from *path*, ``$FEEDGUARD_PATTERNS_FILE``, or the shipped defaults."""
    if path is None:
        path = os.environ.get(PATTERNS_ENV_VAR) or DEFAULT_PATTERNS_PATH
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as exc:
        raise PatternTableError(f"Cannot read pattern tables from {path}: {exc}") from exc
    return parse_pattern_tables(data or {})


_default_tables: Optional[PatternTables] = None


def default_pattern_tables() -> PatternTables:
    """Return the process-wide default tables, loading them on first use."""
    global _default_tables
    if _default_tables is None:
        _default_tables = load_pattern_tables()
    return _default_tables
