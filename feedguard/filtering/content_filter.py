"""Baseline content filter.

A cheap first pass that runs before the heuristic analyzer: blocklist
redaction, obvious spam shapes, and length/URL limits. It can propose a
redacted version of the text but never decides on its own whether content
is published.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterable, Optional

PROFANITY_WARNING = "Content contains potentially inappropriate language"

_URL_RE = re.compile(r"https?://[^\s]+")

# (pattern, detected label, warning; None marks a hard spam signal)
_SPAM_SHAPES: list[tuple[re.Pattern[str], str, Optional[str]]] = [
    (re.compile(r"(.)\1{4,}"), "repeated_chars", "Excessive repeated characters detected"),
    (re.compile(r"^[A-Z\s!]{20,}$"), "all_caps", "Excessive use of capital letters detected"),
    (re.compile(r"(https?://[^\s]+){3,}"), "multiple_urls", None),
    (re.compile(r"(.{1,10})\1{3,}"), "repeated_phrases", "Repeated phrases detected"),
]

_LOW_DIVERSITY_MIN_WORDS = 10
_LOW_DIVERSITY_RATIO = 0.3

# Tags and attributes stripped by sanitize_content
_SANITIZE_PATTERNS: list[re.Pattern[str]] = [
    re.compile(rf"<{tag}\b[^<]*(?:(?!</{tag}>)<[^<]*)*</{tag}>", re.IGNORECASE)
    for tag in ("script", "iframe", "object", "embed")
] + [
    re.compile(r"<link\b[^>]*>", re.IGNORECASE),
    re.compile(r"<meta\b[^>]*>", re.IGNORECASE),
    re.compile(r"javascript:", re.IGNORECASE),
    re.compile(r"on\w+\s*=", re.IGNORECASE),
]


@dataclass
class FilterOptions:
    """Limits applied by :meth:`ContentFilter.validate`."""

    filter_profanity: bool = True
    check_spam: bool = True
    max_length: int = 500
    min_length: int = 1
    allow_urls: bool = True
    max_urls: int = 3


POST_OPTIONS = FilterOptions(max_urls=3)
REPLY_OPTIONS = FilterOptions(max_urls=2)


@dataclass
class ProfanityResult:
    has_profanity: bool = False
    filtered_content: str = ""
    detected_words: list[str] = field(default_factory=list)


@dataclass
class SpamCheck:
    is_spam: bool = False
    warnings: list[str] = field(default_factory=list)
    detected_patterns: list[str] = field(default_factory=list)


@dataclass
class FilterResult:
    """Outcome of baseline validation."""

    is_valid: bool = True
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    filtered_content: str = ""

    @property
    def has_profanity(self) -> bool:
        return PROFANITY_WARNING in self.warnings


def _redact(word: str) -> str:
    if len(word) > 2:
        return word[0] + "*" * (len(word) - 2) + word[-1]
    return "*" * len(word)


class ContentFilter:
    """Blocklist redaction plus simple spam and length checks."""

    def __init__(self, blocklist: Iterable[str] = ()) -> None:
        self._blocklist: list[tuple[str, re.Pattern[str]]] = [
            (w, re.compile(rf"\b{re.escape(w)}\b", re.IGNORECASE)) for w in blocklist
        ]

    def filter_profanity(self, text: str) -> ProfanityResult:
        """Redact blocklisted words, keeping their first and last letter."""
        result = ProfanityResult(filtered_content=text)
        for word, pattern in self._blocklist:
            if pattern.search(result.filtered_content):
                result.has_profanity = True
                result.detected_words.append(word)
                result.filtered_content = pattern.sub(
                    lambda m: _redact(m.group(0)), result.filtered_content
                )
        return result

    @staticmethod
    def detect_spam(text: str) -> SpamCheck:
        check = SpamCheck()
        for pattern, label, warning in _SPAM_SHAPES:
            if pattern.search(text):
                check.detected_patterns.append(label)
                if warning is None:
                    check.is_spam = True
                else:
                    check.warnings.append(warning)

        words = text.lower().split()
        if len(words) > _LOW_DIVERSITY_MIN_WORDS and len(set(words)) / len(words) < _LOW_DIVERSITY_RATIO:
            check.warnings.append("Low word diversity detected")
            check.detected_patterns.append("low_diversity")
        return check

    def validate(self, text: str, options: Optional[FilterOptions] = None) -> FilterResult:
        """Validate *text* and propose a redacted variant if needed."""
        options = options or FilterOptions()
        result = FilterResult(filtered_content=text or "")

        if not text or not isinstance(text, str):
            result.is_valid = False
            result.errors.append("Content is required")
            return result

        trimmed = text.strip()

        if len(trimmed) < options.min_length:
            result.is_valid = False
            result.errors.append(f"Content must be at least {options.min_length} character(s)")
        if len(trimmed) > options.max_length:
            result.is_valid = False
            result.errors.append(f"Content cannot exceed {options.max_length} characters")

        urls = _URL_RE.findall(trimmed)
        if not options.allow_urls:
            if urls:
                result.is_valid = False
                result.errors.append("URLs are not allowed")
        elif options.max_urls > 0 and len(urls) > options.max_urls:
            result.is_valid = False
            result.errors.append(f"Maximum {options.max_urls} URL(s) allowed")

        if options.filter_profanity:
            profanity = self.filter_profanity(text)
            if profanity.has_profanity:
                result.warnings.append(PROFANITY_WARNING)
                result.filtered_content = profanity.filtered_content

        if options.check_spam:
            spam = self.detect_spam(trimmed)
            if spam.is_spam:
                result.is_valid = False
                result.errors.append("Content appears to be spam")
            result.warnings.extend(spam.warnings)

        return result

    def validate_post(self, text: str) -> FilterResult:
        return self.validate(text, POST_OPTIONS)

    def validate_reply(self, text: str) -> FilterResult:
        return self.validate(text, REPLY_OPTIONS)


def sanitize_content(text: str) -> str:
    """Strip active HTML (scripts, frames, inline handlers) for display."""
    for pattern in _SANITIZE_PATTERNS:
        text = pattern.sub("", text)
    return text
