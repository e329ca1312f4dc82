import pytest

from pagegrade.features.analysis.schemas.crawl import HeaderStructure, PageMetadata, StructuredData
from pagegrade.features.analysis.schemas.report import Status
from pagegrade.features.analysis.services.analysis.rule_scorer import RuleScorer


class TestRuleScorer:
    @pytest.fixture
    def scorer(self):
        return RuleScorer()

    def test_ideal_page_scores_full_marks(self, scorer, ideal_page):
        report = scorer.score(ideal_page)

        assert report.meta.score == 100
        assert report.headers.score == 100
        assert report.structured_data.score == 100
        assert report.performance.score == 100
        assert report.score == 100
        assert report.meta.message == "5 of 5 metadata checks passed."

    def test_empty_slow_page_scores_zero(self, scorer, empty_page):
        report = scorer.score(empty_page)

        assert report.meta.score == 0
        assert report.meta.status == Status.bad
        assert report.headers.score == 0
        assert report.headers.status == Status.bad
        assert report.structured_data.score == 0
        assert report.structured_data.has_structured_data is False
        assert report.performance.score == 0
        assert report.performance.status == Status.bad
        assert report.score == 0

    def test_two_h1_tags_is_a_warning(self, scorer, make_html, make_crawl):
        page = make_crawl(make_html(h1s=("First", "Second")))

        report = scorer.score(page)

        assert report.headers.score == 50
        assert report.headers.status == Status.warning
        assert report.headers.h1_count == 2
        # 100*0.4 + 50*0.2 + 100*0.2 + 100*0.2
        assert report.score == 90

    def test_single_h1_without_h2_loses_five_points(self, scorer, make_html, make_crawl):
        page = make_crawl(make_html(h2s=()))

        report = scorer.score(page)

        assert report.headers.score == 75
        assert report.headers.status == Status.good

    def test_scoring_is_deterministic(self, scorer, ideal_page):
        assert scorer.score(ideal_page) == scorer.score(ideal_page)

    def test_links_do_not_affect_score(self, scorer, make_html, make_crawl):
        body = '<a href="/about">About</a><a href="https://other.org/x">Other</a>'
        with_links = scorer.score(make_crawl(make_html(body=body)))
        without_links = scorer.score(make_crawl(make_html(body="")))

        assert with_links.links.internal_count == 1
        assert with_links.links.external_count == 1
        assert with_links.score == without_links.score


class TestMetaChecks:
    @pytest.mark.parametrize(
        "length, status",
        [
            (29, Status.warning),
            (30, Status.good),
            (45, Status.good),
            (60, Status.good),
            (61, Status.warning),
        ],
    )
    def test_title_length_boundaries(self, length, status):
        report = RuleScorer.analyze_meta(PageMetadata(title="T" * length))

        assert report.title.status == status
        assert report.title.length == length

    @pytest.mark.parametrize(
        "length, status",
        [
            (69, Status.warning),
            (70, Status.good),
            (160, Status.good),
            (161, Status.warning),
        ],
    )
    def test_description_length_boundaries(self, length, status):
        report = RuleScorer.analyze_meta(PageMetadata(description="D" * length))

        assert report.description.status == status

    def test_missing_title_is_bad(self):
        report = RuleScorer.analyze_meta(PageMetadata())

        assert report.title.status == Status.bad
        assert report.title.value is None
        assert report.title.message == "Title is missing."

    def test_partial_social_tags_earn_half_points(self):
        full = RuleScorer.analyze_meta(
            PageMetadata(og_title="t", og_description="d", og_image="i")
        )
        partial = RuleScorer.analyze_meta(PageMetadata(og_title="t"))

        assert full.social_tags.status == Status.good
        assert partial.social_tags.status == Status.warning
        assert partial.social_tags.has_title is True
        assert partial.social_tags.has_image is False
        # 10/40 vs 5/40
        assert full.score == 25
        assert partial.score == 13

    def test_meta_score_rounds_half_up(self):
        # title 10 + description 10 + canonical 5 = 25/40 = 62.5
        metadata = PageMetadata(
            title="T" * 40,
            description="D" * 100,
            canonical="https://example.com/",
        )

        report = RuleScorer.analyze_meta(metadata)

        assert report.score == 63
        assert report.status == Status.warning


class TestHeaderAndStructuredDataChecks:
    def test_no_h1(self):
        report = RuleScorer.analyze_headers(HeaderStructure(h2=["Only a subheading"]))

        assert report.score == 0
        assert report.status == Status.bad

    def test_structured_data_without_types_still_counts(self):
        report = RuleScorer.analyze_structured_data(StructuredData(types=[], data=[{"name": "x"}]))

        assert report.score == 100
        assert report.status == Status.good
        assert report.has_structured_data is True


class TestPerformanceChecks:
    @pytest.mark.parametrize(
        "load_time_ms, page_size, score, status",
        [
            (1999.9, 499 * 1024, 100, Status.good),
            (2000, 499 * 1024, 75, Status.good),
            (3999, 500 * 1024, 50, Status.warning),
            (4000, 500 * 1024, 25, Status.bad),
            (4000, 1024 * 1024, 0, Status.bad),
        ],
    )
    def test_thresholds(self, load_time_ms, page_size, score, status):
        report = RuleScorer.analyze_performance(load_time_ms, page_size)

        assert report.score == score
        assert report.status == status
        assert report.page_size == page_size


class TestComposite:
    def test_weights(self):
        assert RuleScorer.composite(100, 0, 0, 0) == 40
        assert RuleScorer.composite(0, 100, 100, 100) == 60
        assert RuleScorer.composite(63, 0, 0, 0) == 25
