"""Heuristic content analyzer.

Scores text on five harm categories using the declarative pattern tables
plus a few structural heuristics, then derives confidence, severity, a
suggested action and tags. Analysis is pure: no state, no I/O, and
malformed input degrades to a clean result instead of raising.
"""

from __future__ import annotations

import re
from collections import Counter
from typing import Iterable, Optional

from feedguard.analysis.models import (
    AnalysisOptions,
    AnalysisResult,
    BatchSummary,
    Category,
    CategoryScores,
    Severity,
    SuggestedAction,
)
from feedguard.analysis.patterns import CategoryTable, PatternTables, default_pattern_tables
from feedguard.filtering.content_filter import ContentFilter

# ---------------------------------------------------------------------------
# Structural heuristics
# ---------------------------------------------------------------------------

SHOUTING_MIN_LENGTH = 20
SHOUTING_CAPS_RATIO = 0.7
SHOUTING_BONUS = 0.1

REPETITION_MIN_WORDS = 10
REPETITION_UNIQUE_RATIO = 0.3
REPETITION_BONUS = 0.3

SYMBOL_DENSITY_RATIO = 0.3
SYMBOL_DENSITY_BONUS = 0.2

MAX_URLS = 2
URL_BONUS = 0.3

PROFANITY_BASELINE = 0.3

_UPPER_RE = re.compile(r"[A-Z]")
_SYMBOL_RE = re.compile(r"""[!@#$%^&*()_+=\[\]{}|;':",./<>?~`]""")
_URL_RE = re.compile(r"https?://[^\s]+")

# ---------------------------------------------------------------------------
# Decision thresholds
# ---------------------------------------------------------------------------

CONFIDENCE_MULTIPLIER = 1.2

HIGH_SEVERITY_MAX = 0.7
HIGH_SEVERITY_THREAT = 0.3
MEDIUM_SEVERITY_MAX = 0.4
MEDIUM_SEVERITY_AVERAGE = 0.3

FLAG_THREAT = 0.2
FLAG_PERSONAL_INFO = 0.5

BLOCK_THREAT = 0.5
BLOCK_MAX = 0.8

# (category, tag, disclosure threshold)
_TAGS: list[tuple[Category, str, float]] = [
    (Category.TOXICITY, "toxic_language", 0.3),
    (Category.SPAM, "potential_spam", 0.4),
    (Category.PROFANITY, "profanity", 0.3),
    (Category.THREAT, "potential_threat", 0.2),
    (Category.PERSONAL_INFO, "personal_info", 0.3),
]


def _clamp(score: float) -> float:
    return max(0.0, min(score, 1.0))


def score_category(text: str, table: CategoryTable) -> float:
    """Sum rule and keyword-group contributions for one category (unclamped)."""
    lowered = text.lower()
    score = sum(rule.contribution(text) for rule in table.rules)
    score += sum(group.contribution(lowered) for group in table.keyword_groups)
    return score


def _shouting_bonus(text: str) -> float:
    if len(text) <= SHOUTING_MIN_LENGTH:
        return 0.0
    caps_ratio = len(_UPPER_RE.findall(text)) / len(text)
    return SHOUTING_BONUS if caps_ratio > SHOUTING_CAPS_RATIO else 0.0


def _spam_structure_bonus(text: str) -> float:
    bonus = 0.0
    words = text.split()
    if len(words) > REPETITION_MIN_WORDS:
        unique = {w.lower() for w in words}
        if len(unique) / len(words) < REPETITION_UNIQUE_RATIO:
            bonus += REPETITION_BONUS
    if len(_SYMBOL_RE.findall(text)) / len(text) > SYMBOL_DENSITY_RATIO:
        bonus += SYMBOL_DENSITY_BONUS
    if len(_URL_RE.findall(text)) > MAX_URLS:
        bonus += URL_BONUS
    return bonus


class ContentAnalyzer:
    """Scores text against a set of :class:`PatternTables`.

    Instances hold only compiled, read-only tables and can be shared
    freely between threads.
    """

    def __init__(self, tables: Optional[PatternTables] = None) -> None:
        self.tables = tables or default_pattern_tables()
        self.content_filter = ContentFilter(self.tables.blocklist)

    # -- per-category scoring -----------------------------------------------

    def _toxicity(self, text: str) -> float:
        return _clamp(score_category(text, self.tables.table(Category.TOXICITY)) + _shouting_bonus(text))

    def _spam(self, text: str) -> float:
        return _clamp(score_category(text, self.tables.table(Category.SPAM)) + _spam_structure_bonus(text))

    def _profanity(self, text: str) -> float:
        baseline = self.content_filter.validate(text)
        blocklist_hit = PROFANITY_BASELINE if baseline.has_profanity else 0.0
        score = _clamp(blocklist_hit + score_category(text, self.tables.table(Category.PROFANITY)))
        if not baseline.is_valid:
            score = max(score, PROFANITY_BASELINE)
        return score

    def _threat(self, text: str) -> float:
        return _clamp(score_category(text, self.tables.table(Category.THREAT)))

    def _personal_info(self, text: str) -> float:
        return _clamp(score_category(text, self.tables.table(Category.PERSONAL_INFO)))

    # -- public API ----------------------------------------------------------

    def analyze(self, text: str, options: Optional[AnalysisOptions] = None) -> AnalysisResult:
        """Analyze *text* and return an :class:`AnalysisResult`."""
        options = options or AnalysisOptions()
        if not isinstance(text, str) or not text.strip():
            return AnalysisResult()

        scorers = {
            Category.TOXICITY: self._toxicity,
            Category.SPAM: self._spam,
            Category.PROFANITY: self._profanity,
            Category.THREAT: self._threat,
            Category.PERSONAL_INFO: self._personal_info,
        }
        raw = {
            category: (scorer(text) if options.is_enabled(category) else 0.0)
            for category, scorer in scorers.items()
        }
        scores = CategoryScores(
            toxicity=raw[Category.TOXICITY],
            spam=raw[Category.SPAM],
            profanity=raw[Category.PROFANITY],
            threat=raw[Category.THREAT],
            personal_info=raw[Category.PERSONAL_INFO],
        )
        return _decide(scores, options)

    def batch_analyze(
        self, texts: Iterable[str], options: Optional[AnalysisOptions] = None
    ) -> list[AnalysisResult]:
        return [self.analyze(t, options) for t in texts]


def _decide(scores: CategoryScores, options: AnalysisOptions) -> AnalysisResult:
    max_score = scores.max_score
    avg_score = scores.average_score
    threshold = options.flag_threshold

    confidence = min(max_score * CONFIDENCE_MULTIPLIER, 1.0)

    if max_score > HIGH_SEVERITY_MAX or scores.threat > HIGH_SEVERITY_THREAT:
        severity = Severity.HIGH
    elif max_score > MEDIUM_SEVERITY_MAX or avg_score > MEDIUM_SEVERITY_AVERAGE:
        severity = Severity.MEDIUM
    else:
        severity = Severity.LOW

    should_flag = (
        max_score >= threshold
        or scores.threat > FLAG_THREAT
        or scores.personal_info > FLAG_PERSONAL_INFO
    )

    if scores.threat > BLOCK_THREAT or max_score > BLOCK_MAX:
        action = SuggestedAction.BLOCK
    elif should_flag:
        action = SuggestedAction.REVIEW
    else:
        action = SuggestedAction.APPROVE

    by_category = scores.as_dict()
    tags = tuple(tag for category, tag, limit in _TAGS if by_category[category.value] > limit)

    flag_reason = None
    if should_flag:
        reasons = []
        if scores.toxicity > threshold:
            reasons.append("toxic language")
        if scores.spam > threshold:
            reasons.append("spam content")
        if scores.profanity > threshold:
            reasons.append("inappropriate language")
        if scores.threat > FLAG_THREAT:
            reasons.append("potential threat")
        if scores.personal_info > FLAG_PERSONAL_INFO:
            reasons.append("personal information")
        flag_reason = (
            f"Flagged for: {', '.join(reasons)}" if reasons else "Content flagged by automated system"
        )

    return AnalysisResult(
        scores=scores,
        confidence=confidence,
        severity=severity,
        suggested_action=action,
        should_flag=should_flag,
        moderation_tags=tags,
        flag_reason=flag_reason,
    )


# ---------------------------------------------------------------------------
# Module-level conveniences
# ---------------------------------------------------------------------------

_default_analyzer: Optional[ContentAnalyzer] = None


def _get_analyzer() -> ContentAnalyzer:
    global _default_analyzer
    if _default_analyzer is None:
        _default_analyzer = ContentAnalyzer()
    return _default_analyzer


def analyze(text: str, options: Optional[AnalysisOptions] = None) -> AnalysisResult:
    """Analyze *text* with the default pattern tables."""
    return _get_analyzer().analyze(text, options)


def batch_analyze(texts: Iterable[str], options: Optional[AnalysisOptions] = None) -> list[AnalysisResult]:
    """Analyze several texts, returning results in input order."""
    return _get_analyzer().batch_analyze(texts, options)


def summarize_results(results: list[AnalysisResult]) -> BatchSummary:
    """Summarise a batch of results for reporting."""
    total = len(results)
    if total == 0:
        return BatchSummary(severity_breakdown={s.value: 0 for s in Severity})

    flagged = sum(1 for r in results if r.should_flag)
    severity_counts = Counter(r.severity.value for r in results)
    tag_counts: Counter[str] = Counter()
    for r in results:
        tag_counts.update(r.moderation_tags)

    return BatchSummary(
        total=total,
        flagged=flagged,
        blocked=sum(1 for r in results if r.suggested_action == SuggestedAction.BLOCK),
        needs_review=sum(1 for r in results if r.suggested_action == SuggestedAction.REVIEW),
        flagged_percentage=flagged / total * 100,
        severity_breakdown={s.value: severity_counts.get(s.value, 0) for s in Severity},
        tag_frequency=dict(tag_counts),
        average_confidence=sum(r.confidence for r in results) / total,
    )
