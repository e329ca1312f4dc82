import logging
from typing import List, Optional

from openai import OpenAI, OpenAIError
from pydantic import BaseModel, Field, field_validator
from pydantic import ValidationError as SchemaValidationError

from pagegrade.features.analysis.schemas.crawl import CrawlResult
from pagegrade.features.analysis.schemas.report import (
    ActionableInsights,
    CitationReliabilityReport,
    EntityOptimizationReport,
    MachineReadabilityReport,
    ModelScoreReport,
    SnippetPotential,
    Status,
    StructuralOptimizationReport,
)
from pagegrade.features.analysis.services.utils.response_parser import parse_json_object
from pagegrade.features.analysis.services.utils.scoring import round_half_up, weighted_score
from pagegrade.platform.config import settings
from pagegrade.platform.exceptions import ModelServiceError

logger = logging.getLogger(__name__)


# ============================================================================
# Expected shape of the model response
# ============================================================================


class CitationReliabilityAssessment(BaseModel):
    score: float = Field(ge=0, le=100)
    hasStatistics: bool = False
    hasSources: bool = False
    eeatScore: float = Field(default=50, ge=0, le=100)
    details: str = ""


class MachineReadabilityAssessment(BaseModel):
    score: float = Field(ge=0, le=100)
    isAnswerReady: bool = False
    summary: str = ""


class StructuralOptimizationAssessment(BaseModel):
    score: float = Field(ge=0, le=100)
    listUtilization: float = Field(default=50, ge=0, le=100)
    tableUtilization: float = Field(default=50, ge=0, le=100)
    hierarchyScore: float = Field(default=50, ge=0, le=100)
    snippetPotential: SnippetPotential = SnippetPotential.medium

    @field_validator("snippetPotential", mode="before")
    @classmethod
    def normalize_case(cls, value):
        if isinstance(value, str):
            return value.strip().capitalize()
        return value


class EntityOptimizationAssessment(BaseModel):
    score: float = Field(ge=0, le=100)
    entities: List[str] = Field(default_factory=list)


class ActionableInsightsAssessment(BaseModel):
    forMarketer: str
    forDeveloper: str


class ModelAssessment(BaseModel):
    citationReliability: CitationReliabilityAssessment
    machineReadability: MachineReadabilityAssessment
    structuralOptimization: StructuralOptimizationAssessment
    entityOptimization: EntityOptimizationAssessment
    actionableInsights: ActionableInsightsAssessment


SYSTEM_PROMPT = (
    "You are an expert in SEO and generative engine optimization. You evaluate how "
    "visible a web page is to AI search engines such as ChatGPT and Perplexity. "
    "Always respond with a single valid JSON object only."
)

RESPONSE_SCHEMA = """{
  "citationReliability": {
    "score": 0-100,
    "hasStatistics": true/false,
    "hasSources": true/false,
    "eeatScore": 0-100,
    "details": "citation reliability findings"
  },
  "machineReadability": {
    "score": 0-100,
    "isAnswerReady": true/false,
    "summary": "short summary of the page as an AI would give it"
  },
  "structuralOptimization": {
    "score": 0-100,
    "listUtilization": 0-100 (use of bullet or numbered lists),
    "tableUtilization": 0-100 (use of data tables),
    "hierarchyScore": 0-100 (logical H1/H2/H3 hierarchy),
    "snippetPotential": "High" | "Medium" | "Low" (chance of being used as an AI answer snippet)
  },
  "entityOptimization": {
    "score": 0-100,
    "entities": ["entity 1", "entity 2"]
  },
  "actionableInsights": {
    "forMarketer": "content and marketing improvements",
    "forDeveloper": "technical improvements (schema, tags, markup)"
  }
}"""


# Three fixed messages per sub-report: (good, warning, bad)
MESSAGES = {
    "citation_reliability": (
        "AI engines are likely to cite this content as a source.",
        "Citation likelihood is moderate. Add statistics and sources.",
        "Citation likelihood is low. Add trustworthy data and sources.",
    ),
    "machine_readability": (
        "The content is easy for AI to understand and summarize.",
        "Readability is average. Write clearer, more direct sentences.",
        "The content is hard for AI to understand. It needs more structure.",
    ),
    "structural_optimization": (
        "The content structure is optimized for AI search.",
        "The structure could be improved. Use lists and tables.",
        "The content lacks structure. Add a heading hierarchy and lists.",
    ),
    "entity_optimization": (
        "The link between the brand and its topics is clear.",
        "Entity optimization is average. Mention the brand more consistently.",
        "The link between the brand and its topics is weak.",
    ),
}

FALLBACK_INSIGHT = "AI analysis could not be performed. Try again later."


def message_for(section: str, score: int) -> str:
    good, warning, bad = MESSAGES[section]
    return {Status.good: good, Status.warning: warning, Status.bad: bad}[Status.from_score(score)]


def truncate_text(text: str, max_length: int) -> str:
    if len(text) <= max_length:
        return text
    return text[:max_length] + "..."


class ModelScorer:
    """
    Generative-engine-optimization scoring through an external chat model.

    The model is advisory: any failure (no client configured, API error,
    timeout, unusable response) yields the neutral default report instead of
    an exception.
    """

    WEIGHTS = {
        "citation_reliability": "0.3",
        "machine_readability": "0.25",
        "structural_optimization": "0.25",
        "entity_optimization": "0.2",
    }

    def __init__(
        self,
        client: Optional[OpenAI] = None,
        model: Optional[str] = None,
        max_chars: Optional[int] = None,
        timeout: Optional[float] = None,
    ):
        self.client = client
        self.model = model or settings.MODEL_SCORER_MODEL
        self.max_chars = max_chars or settings.MODEL_SCORER_MAX_CHARS
        self.timeout = timeout or settings.MODEL_SCORER_TIMEOUT_SECONDS

    @classmethod
    def from_settings(cls) -> "ModelScorer":
        client = None
        if settings.OPENROUTER_API_KEY:
            client = OpenAI(
                base_url=settings.MODEL_API_BASE_URL,
                api_key=settings.OPENROUTER_API_KEY,
                timeout=settings.MODEL_SCORER_TIMEOUT_SECONDS,
                max_retries=0,
            )
        else:
            logger.warning("OPENROUTER_API_KEY is not set; model scoring will use the neutral default")
        return cls(client=client)

    def score(self, crawl_result: CrawlResult) -> ModelScoreReport:
        try:
            assessment = self._assess(crawl_result.text, crawl_result.final_url)
            report = self._build_report(assessment)
        except ModelServiceError as e:
            logger.warning(f"Model scoring failed for {crawl_result.final_url}, using neutral default: {e.message}")
            return self.fallback_report()
        except Exception as e:
            logger.error(
                f"Unexpected model scoring error for {crawl_result.final_url}, using neutral default: {e}",
                exc_info=True,
            )
            return self.fallback_report()

        logger.info(f"Model score for {crawl_result.final_url}: {report.score}")
        return report

    @classmethod
    def composite(cls, citation: int, readability: int, structure: int, entity: int) -> int:
        return weighted_score([
            (citation, cls.WEIGHTS["citation_reliability"]),
            (readability, cls.WEIGHTS["machine_readability"]),
            (structure, cls.WEIGHTS["structural_optimization"]),
            (entity, cls.WEIGHTS["entity_optimization"]),
        ])

    def _build_prompt(self, text: str, url: str) -> str:
        truncated = truncate_text(text, self.max_chars)
        return f"""Analyze the following web page content from a generative engine optimization (GEO) perspective.
If the content contains list (*) or table (|) structure, take it into account.

URL: {url}

Content:
{truncated}

Return the analysis as JSON with exactly this structure:

{RESPONSE_SCHEMA}

Return only the JSON object, with no other text."""

    def _assess(self, text: str, url: str) -> ModelAssessment:
        if self.client is None:
            raise ModelServiceError("Model client is not configured")

        prompt = self._build_prompt(text, url)
        logger.info(f"Requesting model assessment for {url} ({min(len(text), self.max_chars)} chars)")

        try:
            completion = self.client.chat.completions.create(
                extra_headers={
                    "HTTP-Referer": settings.PUBLIC_APP_URL,
                    "X-Title": settings.APP_NAME,
                },
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                response_format={"type": "json_object"},
                temperature=0.3,
                max_tokens=1000,
                timeout=self.timeout,
            )
        except OpenAIError as e:
            raise ModelServiceError(f"Model API call failed: {e}") from e

        if not completion.choices:
            raise ModelServiceError("Model response has no choices")

        content = completion.choices[0].message.content or ""
        if not content.strip():
            raise ModelServiceError("Model response is empty")

        logger.debug(f"Raw model response for {url}: {content}")

        try:
            return ModelAssessment.model_validate(parse_json_object(content))
        except (ValueError, SchemaValidationError) as e:
            raise ModelServiceError(f"Model response could not be parsed: {e}") from e

    def _build_report(self, assessment: ModelAssessment) -> ModelScoreReport:
        citation = assessment.citationReliability
        readability = assessment.machineReadability
        structure = assessment.structuralOptimization
        entity = assessment.entityOptimization

        # Models sometimes answer with fractional scores
        citation_score = round_half_up(citation.score)
        readability_score = round_half_up(readability.score)
        structure_score = round_half_up(structure.score)
        entity_score = round_half_up(entity.score)

        return ModelScoreReport(
            score=self.composite(citation_score, readability_score, structure_score, entity_score),
            citation_reliability=CitationReliabilityReport(
                score=citation_score,
                status=Status.from_score(citation_score),
                message=message_for("citation_reliability", citation_score),
                has_statistics=citation.hasStatistics,
                has_sources=citation.hasSources,
                eeat_score=round_half_up(citation.eeatScore),
                details=citation.details,
            ),
            machine_readability=MachineReadabilityReport(
                score=readability_score,
                status=Status.from_score(readability_score),
                message=message_for("machine_readability", readability_score),
                is_answer_ready=readability.isAnswerReady,
                summary=readability.summary,
            ),
            structural_optimization=StructuralOptimizationReport(
                score=structure_score,
                status=Status.from_score(structure_score),
                message=message_for("structural_optimization", structure_score),
                list_utilization=round_half_up(structure.listUtilization),
                table_utilization=round_half_up(structure.tableUtilization),
                hierarchy_score=round_half_up(structure.hierarchyScore),
                snippet_potential=structure.snippetPotential,
            ),
            entity_optimization=EntityOptimizationReport(
                score=entity_score,
                status=Status.from_score(entity_score),
                message=message_for("entity_optimization", entity_score),
                entities=entity.entities,
            ),
            actionable_insights=ActionableInsights(
                for_marketer=assessment.actionableInsights.forMarketer,
                for_developer=assessment.actionableInsights.forDeveloper,
            ),
        )

    @classmethod
    def fallback_report(cls) -> ModelScoreReport:
        """Neutral default: every sub-score 50, booleans false."""
        neutral = 50
        return ModelScoreReport(
            score=cls.composite(neutral, neutral, neutral, neutral),
            citation_reliability=CitationReliabilityReport(
                score=neutral,
                status=Status.from_score(neutral),
                message=message_for("citation_reliability", neutral),
                has_statistics=False,
                has_sources=False,
                eeat_score=neutral,
                details="AI analysis could not be performed.",
            ),
            machine_readability=MachineReadabilityReport(
                score=neutral,
                status=Status.from_score(neutral),
                message=message_for("machine_readability", neutral),
                is_answer_ready=False,
                summary="A content summary could not be generated.",
            ),
            structural_optimization=StructuralOptimizationReport(
                score=neutral,
                status=Status.from_score(neutral),
                message=message_for("structural_optimization", neutral),
                list_utilization=neutral,
                table_utilization=neutral,
                hierarchy_score=neutral,
                snippet_potential=SnippetPotential.medium,
            ),
            entity_optimization=EntityOptimizationReport(
                score=neutral,
                status=Status.from_score(neutral),
                message=message_for("entity_optimization", neutral),
                entities=[],
            ),
            actionable_insights=ActionableInsights(
                for_marketer=FALLBACK_INSIGHT,
                for_developer=FALLBACK_INSIGHT,
            ),
            is_fallback=True,
        )
