"""feedguard -- pre-publication moderation pipeline for short-form social content."""

__version__ = "0.1.0"
