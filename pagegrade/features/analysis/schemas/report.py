"""
Score reports produced by the two scorers.

Both reports follow the same shape: a composite ``score`` in [0, 100] and a set
of weighted sub-reports, each with its own score, a three-valued ``status`` and
a human-readable ``message``.
"""
import enum
from typing import List, Optional

from pydantic import Field

from pagegrade.features.analysis.schemas.crawl import HeaderStructure
from pagegrade.platform.schemas import CamelModel


class Status(str, enum.Enum):
    good = "good"
    warning = "warning"
    bad = "bad"

    @classmethod
    def from_score(cls, score: float) -> "Status":
        """Tier rule shared by every 0-100 sub-score: >=70 good, >=40 warning."""
        if score >= 70:
            return cls.good
        if score >= 40:
            return cls.warning
        return cls.bad


class SnippetPotential(str, enum.Enum):
    high = "High"
    medium = "Medium"
    low = "Low"


class SubReport(CamelModel):
    score: int
    status: Status
    message: str


# ============================================================================
# Rule-based (SEO) report
# ============================================================================

class TextFieldCheck(CamelModel):
    value: Optional[str] = None
    length: int = 0
    status: Status
    message: str


class PresenceCheck(CamelModel):
    value: Optional[str] = None
    status: Status
    message: str


class SocialTagsCheck(CamelModel):
    has_title: bool = False
    has_description: bool = False
    has_image: bool = False
    status: Status
    message: str


class MetaReport(SubReport):
    title: TextFieldCheck
    description: TextFieldCheck
    keywords: PresenceCheck
    social_tags: SocialTagsCheck
    canonical: PresenceCheck


class HeadersReport(SubReport):
    h1_count: int = 0
    structure: HeaderStructure = Field(default_factory=HeaderStructure)


class StructuredDataReport(SubReport):
    has_structured_data: bool = False
    types: List[str] = Field(default_factory=list)


class PerformanceReport(SubReport):
    load_time_ms: float
    page_size: int


class LinkSummary(CamelModel):
    internal_count: int = 0
    external_count: int = 0


class RuleScoreReport(CamelModel):
    score: int
    meta: MetaReport
    headers: HeadersReport
    structured_data: StructuredDataReport
    performance: PerformanceReport
    links: LinkSummary = Field(default_factory=LinkSummary)


# ============================================================================
# Model-assisted (GEO) report
# ============================================================================

class CitationReliabilityReport(SubReport):
    has_statistics: bool = False
    has_sources: bool = False
    eeat_score: int = 50
    details: str = ""


class MachineReadabilityReport(SubReport):
    is_answer_ready: bool = False
    summary: str = ""


class StructuralOptimizationReport(SubReport):
    list_utilization: int = 50
    table_utilization: int = 50
    hierarchy_score: int = 50
    snippet_potential: SnippetPotential = SnippetPotential.medium


class EntityOptimizationReport(SubReport):
    entities: List[str] = Field(default_factory=list)


class ActionableInsights(CamelModel):
    for_marketer: str
    for_developer: str


class ModelScoreReport(CamelModel):
    score: int
    citation_reliability: CitationReliabilityReport
    machine_readability: MachineReadabilityReport
    structural_optimization: StructuralOptimizationReport
    entity_optimization: EntityOptimizationReport
    actionable_insights: ActionableInsights
    # True when the neutral default was substituted for a failed model call
    is_fallback: bool = False
