"""
Review Insight Orchestrator Module
==================================

Orchestration layer for the review analysis pipeline.

Components:
    - ReviewInsightPipeline: Pure records -> AggregatedResult pipeline
    - AnalysisJobRunner: Job state machine, background runs, result cache
    - CLI: Command-line interface

Usage:
    from src.orchestrator import AnalysisJobRunner

    with AnalysisJobRunner() as runner:
        job = runner.run(lambda: records, source="com.example.app")
"""

from .review_pipeline import (
    AnalysisJob,
    AnalysisJobRunner,
    InvalidJobTransition,
    JobCancelledError,
    JobMetrics,
    JobStatus,
    ReviewInsightPipeline,
)

__all__ = [
    # Pipeline
    "ReviewInsightPipeline",
    # Jobs
    "AnalysisJob",
    "AnalysisJobRunner",
    "InvalidJobTransition",
    "JobCancelledError",
    "JobMetrics",
    "JobStatus",
]
