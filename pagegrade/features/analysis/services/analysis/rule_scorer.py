import logging

from pagegrade.features.analysis.schemas.crawl import (
    CrawlResult,
    HeaderStructure,
    PageLinks,
    PageMetadata,
    StructuredData,
)
from pagegrade.features.analysis.schemas.report import (
    HeadersReport,
    LinkSummary,
    MetaReport,
    PerformanceReport,
    PresenceCheck,
    RuleScoreReport,
    SocialTagsCheck,
    Status,
    StructuredDataReport,
    TextFieldCheck,
)
from pagegrade.features.analysis.services.extraction.extractor_service import ExtractorService
from pagegrade.features.analysis.services.utils.scoring import scale, weighted_score

logger = logging.getLogger(__name__)


class RuleScorer:
    """
    Deterministic SEO scoring of a fetched page.

    Pure function of the CrawlResult: no network, no clock, no randomness.
    Missing facts score as worst case instead of raising.
    """

    # SEO best-practice constants
    TITLE_MIN_LENGTH = 30
    TITLE_MAX_LENGTH = 60
    DESCRIPTION_MIN_LENGTH = 70
    DESCRIPTION_MAX_LENGTH = 160

    META_MAX_POINTS = 40
    HEADERS_MAX_POINTS = 20
    STRUCTURED_DATA_MAX_POINTS = 20
    PERFORMANCE_MAX_POINTS = 20

    FAST_LOAD_MS = 2000
    SLOW_LOAD_MS = 4000
    SMALL_PAGE_KB = 500
    LARGE_PAGE_KB = 1024

    WEIGHTS = {
        "meta": "0.4",
        "headers": "0.2",
        "structured_data": "0.2",
        "performance": "0.2",
    }

    def score(self, crawl_result: CrawlResult) -> RuleScoreReport:
        facts = ExtractorService.extract_facts(crawl_result.html, crawl_result.final_url)

        meta = self.analyze_meta(facts.metadata)
        headers = self.analyze_headers(facts.headers)
        structured_data = self.analyze_structured_data(facts.structured_data)
        performance = self.analyze_performance(crawl_result.load_time_ms, crawl_result.page_size)

        total = self.composite(meta.score, headers.score, structured_data.score, performance.score)

        logger.info(
            f"Rule score for {crawl_result.final_url}: {total} "
            f"(meta={meta.score}, headers={headers.score}, "
            f"structured_data={structured_data.score}, performance={performance.score})"
        )

        return RuleScoreReport(
            score=total,
            meta=meta,
            headers=headers,
            structured_data=structured_data,
            performance=performance,
            links=self.summarize_links(facts.links),
        )

    @classmethod
    def composite(cls, meta: int, headers: int, structured_data: int, performance: int) -> int:
        return weighted_score([
            (meta, cls.WEIGHTS["meta"]),
            (headers, cls.WEIGHTS["headers"]),
            (structured_data, cls.WEIGHTS["structured_data"]),
            (performance, cls.WEIGHTS["performance"]),
        ])

    # ── Metadata (40 points) ─────────────────────

    @classmethod
    def _check_length(cls, field: str, value, min_length: int, max_length: int):
        """Returns (points, check) for a length-bounded text field worth 10 points."""
        if not value:
            return 0, TextFieldCheck(
                value=None,
                length=0,
                status=Status.bad,
                message=f"{field} is missing.",
            )

        length = len(value)
        recommended = f"Recommended: {min_length}-{max_length} characters."
        if length < min_length:
            return 5, TextFieldCheck(
                value=value,
                length=length,
                status=Status.warning,
                message=f"{field} is too short ({length} chars). {recommended}",
            )
        if length > max_length:
            return 5, TextFieldCheck(
                value=value,
                length=length,
                status=Status.warning,
                message=f"{field} is too long ({length} chars). {recommended}",
            )
        return 10, TextFieldCheck(
            value=value,
            length=length,
            status=Status.good,
            message=f"{field} length is good ({length} chars).",
        )

    @classmethod
    def analyze_meta(cls, metadata: PageMetadata) -> MetaReport:
        points = 0

        title_points, title = cls._check_length(
            "Title", metadata.title, cls.TITLE_MIN_LENGTH, cls.TITLE_MAX_LENGTH
        )
        points += title_points

        description_points, description = cls._check_length(
            "Meta description", metadata.description,
            cls.DESCRIPTION_MIN_LENGTH, cls.DESCRIPTION_MAX_LENGTH,
        )
        points += description_points

        if metadata.keywords:
            points += 5
            keywords = PresenceCheck(
                value=metadata.keywords,
                status=Status.good,
                message="Keywords meta tag is present.",
            )
        else:
            keywords = PresenceCheck(
                status=Status.warning,
                message="Keywords meta tag is missing (optional).",
            )

        has_og_title = bool(metadata.og_title)
        has_og_description = bool(metadata.og_description)
        has_og_image = bool(metadata.og_image)
        og_count = sum([has_og_title, has_og_description, has_og_image])

        if og_count == 3:
            points += 10
            og_status, og_message = Status.good, "All social preview tags are set."
        elif og_count > 0:
            points += 5
            og_status, og_message = Status.warning, f"Some social preview tags are missing ({og_count}/3)."
        else:
            og_status, og_message = Status.bad, "No social preview tags. Add og:title, og:description and og:image."

        social_tags = SocialTagsCheck(
            has_title=has_og_title,
            has_description=has_og_description,
            has_image=has_og_image,
            status=og_status,
            message=og_message,
        )

        if metadata.canonical:
            points += 5
            canonical = PresenceCheck(
                value=metadata.canonical,
                status=Status.good,
                message="Canonical URL is set.",
            )
        else:
            canonical = PresenceCheck(
                status=Status.warning,
                message="Canonical URL is missing.",
            )

        score = scale(points, cls.META_MAX_POINTS)
        checks = [title, description, keywords, social_tags, canonical]
        passed = sum(1 for check in checks if check.status == Status.good)

        return MetaReport(
            score=score,
            status=Status.from_score(score),
            message=f"{passed} of {len(checks)} metadata checks passed.",
            title=title,
            description=description,
            keywords=keywords,
            social_tags=social_tags,
            canonical=canonical,
        )

    # ── Headers (20 points) ──────────────────────

    @classmethod
    def analyze_headers(cls, headers: HeaderStructure) -> HeadersReport:
        h1_count = len(headers.h1)

        if h1_count == 0:
            points = 0
            status = Status.bad
            message = "No H1 tag found. Each page needs exactly one H1."
        elif h1_count == 1:
            points = 15
            status = Status.good
            message = "H1 tag is used correctly."
            if headers.h2:
                points += 5
            else:
                message += " Add H2 subheadings to structure the content."
        else:
            points = 10
            status = Status.warning
            message = f"Found {h1_count} H1 tags. Use a single H1 per page."

        return HeadersReport(
            score=scale(points, cls.HEADERS_MAX_POINTS),
            status=status,
            message=message,
            h1_count=h1_count,
            structure=headers,
        )

    # ── Structured data (20 points) ──────────────

    @classmethod
    def analyze_structured_data(cls, structured_data: StructuredData) -> StructuredDataReport:
        has_structured_data = len(structured_data.data) > 0

        if has_structured_data:
            points = 20
            status = Status.good
            types = ", ".join(structured_data.types) or "untyped"
            message = f"Structured data found: {types}."
        else:
            points = 0
            status = Status.bad
            message = "No structured data (JSON-LD) found. Adding schema markup is recommended."

        return StructuredDataReport(
            score=scale(points, cls.STRUCTURED_DATA_MAX_POINTS),
            status=status,
            message=message,
            has_structured_data=has_structured_data,
            types=structured_data.types,
        )

    # ── Performance (20 points) ──────────────────

    @classmethod
    def analyze_performance(cls, load_time_ms: float, page_size: int) -> PerformanceReport:
        if load_time_ms < cls.FAST_LOAD_MS:
            time_points = 10
        elif load_time_ms < cls.SLOW_LOAD_MS:
            time_points = 5
        else:
            time_points = 0

        page_size_kb = page_size / 1024
        if page_size_kb < cls.SMALL_PAGE_KB:
            size_points = 10
        elif page_size_kb < cls.LARGE_PAGE_KB:
            size_points = 5
        else:
            size_points = 0

        points = time_points + size_points
        summary = f"({load_time_ms / 1000:.1f}s, {page_size_kb:.0f}KB)"

        if points >= 15:
            status = Status.good
            message = f"Load time and page size are good {summary}."
        elif points >= 10:
            status = Status.warning
            message = f"Performance needs improvement {summary}."
        else:
            status = Status.bad
            message = f"Performance is poor {summary}. Optimization is required."

        return PerformanceReport(
            score=scale(points, cls.PERFORMANCE_MAX_POINTS),
            status=status,
            message=message,
            load_time_ms=load_time_ms,
            page_size=page_size,
        )

    @staticmethod
    def summarize_links(links: PageLinks) -> LinkSummary:
        return LinkSummary(
            internal_count=len(links.internal),
            external_count=len(links.external),
        )
