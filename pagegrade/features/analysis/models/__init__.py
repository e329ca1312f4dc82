from pagegrade.features.analysis.models.analysis_job import AnalysisJob, JobStatus

__all__ = ["AnalysisJob", "JobStatus"]
