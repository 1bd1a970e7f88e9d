"""Baseline content filter: blocklist redaction, spam shapes, length and URL limits."""
