"""Data models for heuristic content analysis."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class Severity(Enum):
    """Coarse risk bucket derived from category scores."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {Severity.LOW: 1, Severity.MEDIUM: 2, Severity.HIGH: 3}


class SuggestedAction(Enum):
    """The analyzer's recommendation before any human decision."""

    APPROVE = "approve"
    REVIEW = "review"
    BLOCK = "block"


class Category(Enum):
    """Harmful traits the analyzer scores."""

    TOXICITY = "toxicity"
    SPAM = "spam"
    PROFANITY = "profanity"
    THREAT = "threat"
    PERSONAL_INFO = "personal_info"


@dataclass(frozen=True)
class AnalysisOptions:
    """Which detectors run, and the score at which content is flagged."""

    enable_toxicity_detection: bool = True
    enable_spam_detection: bool = True
    enable_profanity_filter: bool = True
    enable_threat_detection: bool = True
    enable_personal_info_detection: bool = True
    flag_threshold: float = 0.7

    def is_enabled(self, category: Category) -> bool:
        return {
            Category.TOXICITY: self.enable_toxicity_detection,
            Category.SPAM: self.enable_spam_detection,
            Category.PROFANITY: self.enable_profanity_filter,
            Category.THREAT: self.enable_threat_detection,
            Category.PERSONAL_INFO: self.enable_personal_info_detection,
        }[category]


@dataclass(frozen=True)
class CategoryScores:
    """Per-category scores, each in ``[0, 1]``."""

    toxicity: float = 0.0
    spam: float = 0.0
    profanity: float = 0.0
    threat: float = 0.0
    personal_info: float = 0.0

    def as_dict(self) -> dict[str, float]:
        return {
            "toxicity": self.toxicity,
            "spam": self.spam,
            "profanity": self.profanity,
            "threat": self.threat,
            "personal_info": self.personal_info,
        }

    @property
    def max_score(self) -> float:
        return max(self.as_dict().values())

    @property
    def average_score(self) -> float:
        values = self.as_dict().values()
        return sum(values) / len(values)


@dataclass(frozen=True)
class AnalysisResult:
    """Outcome of one analysis call. Never mutated after creation."""

    scores: CategoryScores = field(default_factory=CategoryScores)
    confidence: float = 0.0
    severity: Severity = Severity.LOW
    suggested_action: SuggestedAction = SuggestedAction.APPROVE
    should_flag: bool = False
    moderation_tags: tuple[str, ...] = ()
    flag_reason: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "scores": self.scores.as_dict(),
            "confidence": self.confidence,
            "severity": self.severity.value,
            "suggested_action": self.suggested_action.value,
            "should_flag": self.should_flag,
            "moderation_tags": list(self.moderation_tags),
            "flag_reason": self.flag_reason,
        }

    @classmethod
    def from_dict(cls, data: dict) -> AnalysisResult:
        return cls(
            scores=CategoryScores(**data.get("scores", {})),
            confidence=data.get("confidence", 0.0),
            severity=Severity(data.get("severity", "low")),
            suggested_action=SuggestedAction(data.get("suggested_action", "approve")),
            should_flag=data.get("should_flag", False),
            moderation_tags=tuple(data.get("moderation_tags", [])),
            flag_reason=data.get("flag_reason"),
        )


@dataclass
class BatchSummary:
    """Aggregate view over a batch of analysis results."""

    total: int = 0
    flagged: int = 0
    blocked: int = 0
    needs_review: int = 0
    flagged_percentage: float = 0.0
    severity_breakdown: dict[str, int] = field(default_factory=dict)
    tag_frequency: dict[str, int] = field(default_factory=dict)
    average_confidence: float = 0.0
