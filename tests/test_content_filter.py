"""Tests for the baseline content filter."""

from feedguard.filtering.content_filter import (
    PROFANITY_WARNING,
    ContentFilter,
    FilterOptions,
    sanitize_content,
)

_filter = ContentFilter(["damn", "hell", "ass"])


def test_redacts_blocklisted_words_keeping_edges():
    result = _filter.filter_profanity("Damn, what the hell")
    assert result.has_profanity is True
    assert result.filtered_content == "D**n, what the h**l"
    assert result.detected_words == ["damn", "hell"]


def test_word_boundaries_are_respected():
    result = _filter.filter_profanity("Hello, classic assessment")
    assert result.has_profanity is False
    assert result.filtered_content == "Hello, classic assessment"


def test_validate_reports_profanity_as_warning():
    result = _filter.validate("This is damn good")
    assert result.is_valid is True
    assert PROFANITY_WARNING in result.warnings
    assert result.has_profanity
    assert result.filtered_content == "This is d**n good"


def test_validate_requires_content():
    result = _filter.validate("")
    assert result.is_valid is False
    assert result.errors == ["Content is required"]


def test_validate_length_limits():
    result = _filter.validate("x" * 20, FilterOptions(max_length=10, check_spam=False))
    assert result.is_valid is False
    assert "Content cannot exceed 10 characters" in result.errors

    result = _filter.validate("   ", FilterOptions(min_length=1))
    assert result.is_valid is False


def test_url_limits_differ_for_posts_and_replies():
    text = "links http://a.com and http://b.com and http://c.com"
    assert _filter.validate_post(text).is_valid is True

    reply = _filter.validate_reply(text)
    assert reply.is_valid is False
    assert "Maximum 2 URL(s) allowed" in reply.errors


def test_urls_can_be_forbidden():
    result = _filter.validate("see http://a.com", FilterOptions(allow_urls=False))
    assert result.is_valid is False
    assert "URLs are not allowed" in result.errors


def test_detect_spam_shapes():
    check = ContentFilter.detect_spam("Sooooooo good")
    assert "repeated_chars" in check.detected_patterns
    assert check.is_spam is False

    check = ContentFilter.detect_spam("THIS IS AMAZING NEWS EVERYONE")
    assert "all_caps" in check.detected_patterns


def test_detect_low_word_diversity():
    check = ContentFilter.detect_spam(" ".join(["win"] * 12))
    assert "low_diversity" in check.detected_patterns
    assert "Low word diversity detected" in check.warnings


def test_sanitize_strips_active_html():
    text = '<p onclick="x()">Hi</p><script>alert(1)</script><a href="javascript:go()">a</a>'
    cleaned = sanitize_content(text)
    assert "<script" not in cleaned
    assert "onclick=" not in cleaned
    assert "javascript:" not in cleaned
    assert "Hi" in cleaned
