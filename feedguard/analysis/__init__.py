"""Heuristic content analysis.

Scores text on toxicity, spam, profanity, threat and personal-information
exposure using declarative pattern tables, and derives a severity and a
suggested action from those scores.
"""

from feedguard.analysis.analyzer import ContentAnalyzer, analyze, batch_analyze, summarize_results
from feedguard.analysis.models import AnalysisOptions, AnalysisResult, CategoryScores, Severity, SuggestedAction

__all__ = [
    "ContentAnalyzer",
    "analyze",
    "batch_analyze",
    "summarize_results",
    "AnalysisOptions",
    "AnalysisResult",
    "CategoryScores",
    "Severity",
    "SuggestedAction",
]
