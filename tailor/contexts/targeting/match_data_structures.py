"""
Match and score data structures for the Targeting context.

SemanticMatch pairs come from the matching collaborator; everything else
(ElementContribution, DimensionBreakdown, ScoreBreakdown, Gap, Strength,
MatchResult) is produced fresh by every scoring call and never mutated.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Tuple

from tailor.contexts.intake.data_structures import Element, TaggedElement


class MatchType:
    """Enum-like class for match types, best quality first"""

    EXACT = "exact"
    SYNONYM = "synonym"
    RELATED = "related"
    SEMANTIC = "semantic"

    @classmethod
    def get_all_types(cls) -> List[str]:
        return [cls.EXACT, cls.SYNONYM, cls.RELATED, cls.SEMANTIC]

    @classmethod
    def rank(cls, match_type: str) -> int:
        """Position in quality order (0 = best); unknown types rank last."""
        types = cls.get_all_types()
        return types.index(match_type) if match_type in types else len(types)


# Base match quality per match type, multiplied by the matcher's confidence
MATCH_TYPE_QUALITY = {
    MatchType.EXACT: 1.0,
    MatchType.SYNONYM: 0.95,
    MatchType.RELATED: 0.7,
    MatchType.SEMANTIC: 0.6,
}
UNKNOWN_MATCH_QUALITY = 0.5


@dataclass(frozen=True)
class SemanticMatch:
    """One resume element matched to one job element."""

    resume_element: Element
    job_element: Element
    match_type: str
    confidence: float

    @property
    def quality(self) -> float:
        base = MATCH_TYPE_QUALITY.get(self.match_type, UNKNOWN_MATCH_QUALITY)
        return base * self.confidence


@dataclass(frozen=True)
class ElementContribution:
    element: TaggedElement
    importance: float
    match_quality: float
    contribution: float
    category: str
    match_type: Optional[str] = None


@dataclass(frozen=True)
class DimensionBreakdown:
    """Score of one dimension: mean of its contributions (0.0 when it has none)."""

    score: float
    weight: float
    weighted_score: float
    contributions: Tuple[ElementContribution, ...] = ()


@dataclass(frozen=True)
class ScoreBreakdown:
    keywords: DimensionBreakdown
    skills: DimensionBreakdown
    attributes: DimensionBreakdown
    experience: DimensionBreakdown
    level: DimensionBreakdown
    weights: Mapping[str, float] = field(default_factory=dict)
    failed_dimensions: Tuple[str, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "weights", MappingProxyType(dict(self.weights)))

    def dimensions(self) -> Dict[str, DimensionBreakdown]:
        return {
            "keywords": self.keywords,
            "skills": self.skills,
            "attributes": self.attributes,
            "experience": self.experience,
            "level": self.level,
        }

    def scores(self) -> Dict[str, float]:
        return {name: dimension.score for name, dimension in self.dimensions().items()}


@dataclass(frozen=True)
class Gap:
    """Poorly matched job element. impact = importance * (1 - match_quality)."""

    element: TaggedElement
    importance: float
    category: str
    match_quality: float
    impact: float


@dataclass(frozen=True)
class Strength:
    """Well matched, important job element. contribution = importance * match_quality."""

    element: TaggedElement
    importance: float
    category: str
    match_type: str
    match_quality: float
    contribution: float


@dataclass(frozen=True)
class MatchResult:
    overall_score: float
    breakdown: ScoreBreakdown
    gaps: Tuple[Gap, ...] = ()
    strengths: Tuple[Strength, ...] = ()

    def to_dict(self) -> Dict:
        """Summary view for logging and CLI output."""
        return {
            "overall_score": self.overall_score,
            "dimension_scores": self.breakdown.scores(),
            "weights": dict(self.breakdown.weights),
            "gaps": [
                {
                    "element": gap.element.text,
                    "importance": gap.importance,
                    "category": gap.category,
                    "impact": gap.impact,
                }
                for gap in self.gaps
            ],
            "strengths": [
                {
                    "element": strength.element.text,
                    "match_type": strength.match_type,
                    "contribution": strength.contribution,
                }
                for strength in self.strengths
            ],
        }
