import logging
from typing import Callable, Optional

from pagegrade.features.analysis.models.analysis_job import AnalysisJob, JobStatus
from pagegrade.features.analysis.schemas.analysis import ProgressStage
from pagegrade.features.analysis.services.analysis.model_scorer import ModelScorer
from pagegrade.features.analysis.services.analysis.rule_scorer import RuleScorer
from pagegrade.features.analysis.services.scraping.page_fetcher import PageFetcher
from pagegrade.features.analysis.services.store.analysis_store import AnalysisStore
from pagegrade.features.analysis.services.utils.scoring import weighted_score
from pagegrade.platform.services.sse_helper import ProgressPublisher

logger = logging.getLogger(__name__)

RULE_WEIGHT = "0.4"
MODEL_WEIGHT = "0.6"


def combine_scores(rule_score: int, model_score: int) -> int:
    return weighted_score([(rule_score, RULE_WEIGHT), (model_score, MODEL_WEIGHT)])


class AnalysisPipeline:
    """
    One attempt at analyzing one job: fetch -> rule score -> model score -> persist.

    Stages run strictly in order. Any exception out of `run` fails the attempt
    and is left to the task's retry policy; a retried attempt recomputes every
    stage from scratch.
    """

    def __init__(
        self,
        store: AnalysisStore,
        fetcher: PageFetcher,
        rule_scorer: RuleScorer,
        model_scorer: ModelScorer,
        publisher: ProgressPublisher,
        on_finished: Optional[Callable[[str], None]] = None,
    ):
        self.store = store
        self.fetcher = fetcher
        self.rule_scorer = rule_scorer
        self.model_scorer = model_scorer
        self.publisher = publisher
        self.on_finished = on_finished

    def report(self, job_id: str, stage: ProgressStage, progress: int, message: str) -> None:
        """Publish a checkpoint and mirror it into the job record for late readers."""
        self.store.update(job_id, stage=stage.value, progress=progress)
        self.publisher.publish_progress(job_id, stage, progress, message)

    def run(self, job_id: str, url: str) -> AnalysisJob:
        job = self.store.get_or_raise(job_id)
        if job.status.is_terminal:
            logger.info(f"[{job_id}] Job already {job.status.value}, skipping")
            if self.on_finished is not None:
                self.on_finished(job_id)
            return job

        self.store.update(job_id, status=JobStatus.PROCESSING)
        logger.info(f"[{job_id}] Starting analysis of {url}")

        # Fetch
        self.report(job_id, ProgressStage.fetch, 10, "Fetching page")
        crawl_result = self.fetcher.fetch(url)
        self.report(
            job_id, ProgressStage.fetch, 30,
            f"Page loaded in {crawl_result.load_time_ms / 1000:.1f}s",
        )

        # Rule scoring
        self.report(job_id, ProgressStage.rule_scoring, 40, "Running SEO checks")
        rule_report = self.rule_scorer.score(crawl_result)
        self.report(
            job_id, ProgressStage.rule_scoring, 60,
            f"SEO score: {rule_report.score}",
        )

        # Model scoring
        self.report(job_id, ProgressStage.model_scoring, 70, "Running AI visibility analysis")
        model_report = self.model_scorer.score(crawl_result)
        self.report(
            job_id, ProgressStage.model_scoring, 90,
            f"AI visibility score: {model_report.score}",
        )

        # Persist
        self.report(job_id, ProgressStage.persist, 95, "Saving report")
        total_score = combine_scores(rule_report.score, model_report.score)
        completed = self.store.update(
            job_id,
            status=JobStatus.COMPLETED,
            rule_report=rule_report,
            model_report=model_report,
            rule_score=rule_report.score,
            model_score=model_report.score,
            total_score=total_score,
            progress=100,
            error_message=None,
        )

        self.publisher.publish_complete(job_id, completed.model_dump(mode="json", by_alias=True))
        logger.info(
            f"[{job_id}] Analysis completed: total={total_score} "
            f"(rule={rule_report.score}, model={model_report.score})"
        )

        if self.on_finished is not None:
            self.on_finished(job_id)
        return completed
