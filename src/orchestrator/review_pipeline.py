"""
Review Insight Pipeline Orchestrator
====================================

Runs the review analytics stages in order:
1. Fetch (injected review source) and record validation
2. Analysis (sentiment, keywords, intents, entities)
3. Classification (feature / bug clusters, competitors)
4. Aggregation (trends, insights, export)

Two layers:
    ReviewInsightPipeline  — pure, synchronous, cache-agnostic
                             records -> AggregatedResult
    AnalysisJobRunner      — job state machine around it: progress
                             reporting, cancellation, background threads,
                             per-stage metrics and result memoization

Job lifecycle (progress in percent):

    pending(0) -> fetching(10) -> analyzing(30) -> classifying(60)
               -> aggregating(90) -> completed(100)

``failed`` is reachable from any non-terminal state. Transitions only move
forward; a cache hit or an empty fetch completes directly.

Usage:
    from src.orchestrator.review_pipeline import AnalysisJobRunner

    runner = AnalysisJobRunner()
    job = runner.submit(lambda: load_reviews("com.example.app"), source="com.example.app")
    runner.wait(job.job_id)
    print(job.status, job.result.summary.total_reviews)
"""

import logging
import threading
import time
import uuid
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from ..cache.result_cache import ResultCache, get_cache, make_cache_key
from ..data.config import get_settings
from ..data.review_records import parse_reviews
from ..reviews.review_analyzer import ReviewAnalyzer
from ..reviews.review_classifier import ReviewClassifier
from ..reviews.review_insights import ReviewInsightAggregator, period_key
from ..reviews.review_models import AggregatedResult, AnalysisResult, ClassificationResult, RawReview
from ..reviews.review_options import AnalysisOptions

logger = logging.getLogger(__name__)

ReviewRecords = Iterable[Union[Mapping[str, Any], RawReview]]
ReviewFetcher = Callable[[], ReviewRecords]
OptionsLike = Union[AnalysisOptions, Mapping[str, Any], None]


class JobStatus(str, Enum):
    """Analysis job states, in lifecycle order."""
    PENDING = "pending"
    FETCHING = "fetching"
    ANALYZING = "analyzing"
    CLASSIFYING = "classifying"
    AGGREGATING = "aggregating"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def progress(self) -> int:
        return JOB_PROGRESS[self]

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)


JOB_PROGRESS: Dict[JobStatus, int] = {
    JobStatus.PENDING: 0,
    JobStatus.FETCHING: 10,
    JobStatus.ANALYZING: 30,
    JobStatus.CLASSIFYING: 60,
    JobStatus.AGGREGATING: 90,
    JobStatus.COMPLETED: 100,
}

_LIFECYCLE: List[JobStatus] = [
    JobStatus.PENDING,
    JobStatus.FETCHING,
    JobStatus.ANALYZING,
    JobStatus.CLASSIFYING,
    JobStatus.AGGREGATING,
    JobStatus.COMPLETED,
]

CANCELLED_MESSAGE = "Job cancelled by user"


class InvalidJobTransition(Exception):
    """Raised when a job is moved backward or out of a terminal state."""
    pass


class JobCancelledError(Exception):
    """Raised inside a running job once it has been cancelled."""
    pass


@dataclass
class JobMetrics:
    """Per-stage timings of one job, in seconds."""
    fetch_time: float = 0.0
    analysis_time: float = 0.0
    classification_time: float = 0.0
    aggregation_time: float = 0.0
    total_time: float = 0.0
    review_count: int = 0
    cache_hit: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "fetchTime": self.fetch_time,
            "analysisTime": self.analysis_time,
            "classificationTime": self.classification_time,
            "aggregationTime": self.aggregation_time,
            "totalTime": self.total_time,
            "reviewCount": self.review_count,
            "cacheHit": self.cache_hit,
        }


@dataclass
class AnalysisJob:
    """One analysis request and its progress."""
    job_id: str
    source: str
    options: AnalysisOptions
    app_versions: Optional[List[str]] = None
    status: JobStatus = JobStatus.PENDING
    progress: int = 0
    error: Optional[str] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    completed_at: Optional[datetime] = None
    result: Optional[AggregatedResult] = None
    metrics: JobMetrics = field(default_factory=JobMetrics)
    cancelled: bool = False
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def advance(self, status: JobStatus) -> None:
        """
        Move the job forward to ``status``.

        Raises:
            JobCancelledError: If the job was cancelled meanwhile
            InvalidJobTransition: If the move is not forward
        """
        with self._lock:
            if self.cancelled:
                raise JobCancelledError(self.job_id)
            if self.status.is_terminal:
                raise InvalidJobTransition(
                    f"Job {self.job_id} is already {self.status.value}, cannot move to {status.value}"
                )
            if status == JobStatus.FAILED:
                raise InvalidJobTransition("Use fail() to mark a job failed")
            if _LIFECYCLE.index(status) <= _LIFECYCLE.index(self.status):
                raise InvalidJobTransition(
                    f"Job {self.job_id} cannot move from {self.status.value} to {status.value}"
                )

            self.status = status
            self.progress = status.progress
            if status == JobStatus.COMPLETED:
                self.completed_at = datetime.now(timezone.utc)

    def fail(self, error: str, cancelled: bool = False) -> bool:
        """Mark the job failed. Returns False if it had already finished."""
        with self._lock:
            if self.status.is_terminal:
                return False
            self.status = JobStatus.FAILED
            self.error = error
            self.cancelled = cancelled
            self.completed_at = datetime.now(timezone.utc)
            return True

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.completed_at is None:
            return None
        return (self.completed_at - self.created_at).total_seconds()

    def get_summary(self) -> Dict[str, Any]:
        """Polling view of the job (no result payload)."""
        return {
            "id": self.job_id,
            "source": self.source,
            "status": self.status.value,
            "progress": self.progress,
            "error": self.error,
            "createdAt": self.created_at.isoformat(),
            "completedAt": self.completed_at.isoformat() if self.completed_at else None,
            "metrics": self.metrics.to_dict(),
        }


# =============================================================================
# PURE PIPELINE
# =============================================================================

def resolve_options(options: OptionsLike = None) -> AnalysisOptions:
    """
    Options from an AnalysisOptions, a camelCase/snake_case mapping, or
    the environment defaults when None.

    Raises:
        InvalidOptionsError: If the options are invalid
    """
    if isinstance(options, AnalysisOptions):
        return options
    return AnalysisOptions.from_settings(options)


class ReviewInsightPipeline:
    """
    records -> AggregatedResult, with no I/O and no caching.

    Options are validated at construction, before any review is touched.
    """

    def __init__(
        self,
        options: OptionsLike = None,
        analyzer: Optional[ReviewAnalyzer] = None,
        classifier: Optional[ReviewClassifier] = None,
        aggregator: Optional[ReviewInsightAggregator] = None,
    ):
        self.options = resolve_options(options)
        self.analyzer = analyzer or ReviewAnalyzer(self.options)
        self.classifier = classifier or ReviewClassifier(self.options)
        self.aggregator = aggregator or ReviewInsightAggregator(self.options)

    def parse(self, records: ReviewRecords) -> List[RawReview]:
        return parse_reviews(records)

    def analyze(self, reviews: Sequence[RawReview]) -> AnalysisResult:
        return self.analyzer.analyze(reviews)

    def classify(
        self,
        analysis: AnalysisResult,
        app_versions: Optional[Sequence[str]] = None,
    ) -> ClassificationResult:
        return self.classifier.classify(analysis, app_versions=app_versions)

    def aggregate(
        self,
        analysis: AnalysisResult,
        classification: ClassificationResult,
        now: Optional[datetime] = None,
    ) -> AggregatedResult:
        return self.aggregator.aggregate(analysis, classification, now=now)

    def run(
        self,
        records: ReviewRecords,
        app_versions: Optional[Sequence[str]] = None,
        now: Optional[datetime] = None,
    ) -> AggregatedResult:
        """Run every stage on an in-memory batch of records."""
        reviews = self.parse(records)
        analysis = self.analyze(reviews)
        classification = self.classify(analysis, app_versions)
        return self.aggregate(analysis, classification, now=now)

    def empty_result(self, now: Optional[datetime] = None) -> AggregatedResult:
        """Degenerate result of a run without reviews (all-zero buckets)."""
        return self.run([], now=now)


# =============================================================================
# JOB RUNNER
# =============================================================================

class AnalysisJobRunner:
    """
    Job orchestration around ReviewInsightPipeline.

    Jobs are kept in memory and can be polled by id. Background jobs run
    on a thread pool; cancellation is cooperative and takes effect at the
    next stage boundary.
    """

    def __init__(
        self,
        options: OptionsLike = None,
        cache: Optional[ResultCache] = None,
        use_cache: Optional[bool] = None,
        max_workers: Optional[int] = None,
    ):
        """
        Args:
            options: Default options for jobs that do not bring their own.
            cache: Result cache (shared singleton from settings when None).
            use_cache: Enable memoization (RESULT_CACHE_ENABLED when None).
            max_workers: Background threads (JOB_WORKERS when None).
        """
        settings = get_settings()
        self.options = resolve_options(options)
        self.use_cache = settings.cache.enabled if use_cache is None else use_cache
        self.cache = cache if cache is not None else (get_cache() if self.use_cache else None)
        self.max_workers = max_workers or settings.pipeline.job_workers

        self._jobs: Dict[str, AnalysisJob] = {}
        self._futures: Dict[str, Future] = {}
        self._jobs_lock = threading.Lock()
        self._executor: Optional[ThreadPoolExecutor] = None

        logger.info(
            f"AnalysisJobRunner initialized: cache={'on' if self.cache is not None else 'off'}, "
            f"workers={self.max_workers}"
        )

    @property
    def executor(self) -> ThreadPoolExecutor:
        """Lazy-initialize the background thread pool."""
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=self.max_workers,
                thread_name_prefix="review-job",
            )
        return self._executor

    def shutdown(self, wait: bool = True) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=wait)
            self._executor = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.shutdown()
        return False

    # =========================================================================
    # JOB API
    # =========================================================================

    def create_job(
        self,
        source: str = "inline",
        options: OptionsLike = None,
        app_versions: Optional[Sequence[str]] = None,
    ) -> AnalysisJob:
        """
        Register a pending job.

        Raises:
            InvalidOptionsError: If ``options`` is invalid (nothing is registered)
        """
        job_options = self.options if options is None else (
            options if isinstance(options, AnalysisOptions)
            else AnalysisOptions.from_mapping(options, base=self.options)
        )
        job = AnalysisJob(
            job_id=str(uuid.uuid4()),
            source=source,
            options=job_options,
            app_versions=list(app_versions) if app_versions is not None else None,
        )
        with self._jobs_lock:
            self._jobs[job.job_id] = job
        return job

    def run(
        self,
        fetcher: ReviewFetcher,
        source: str = "inline",
        options: OptionsLike = None,
        app_versions: Optional[Sequence[str]] = None,
        now: Optional[datetime] = None,
    ) -> AnalysisJob:
        """Run a job synchronously; failures are captured on the job."""
        job = self.create_job(source, options, app_versions)
        self.execute(job, fetcher, now=now)
        return job

    def submit(
        self,
        fetcher: ReviewFetcher,
        source: str = "inline",
        options: OptionsLike = None,
        app_versions: Optional[Sequence[str]] = None,
        now: Optional[datetime] = None,
    ) -> AnalysisJob:
        """Start a job on the background pool and return it immediately."""
        job = self.create_job(source, options, app_versions)
        future = self.executor.submit(self.execute, job, fetcher, now)
        with self._jobs_lock:
            self._futures[job.job_id] = future
        return job

    def wait(self, job_id: str, timeout: Optional[float] = None) -> Optional[AnalysisJob]:
        """Block until a submitted job finishes (or ``timeout`` expires)."""
        with self._jobs_lock:
            future = self._futures.get(job_id)
        if future is not None:
            future.result(timeout=timeout)
        return self.get_job(job_id)

    def get_job(self, job_id: str) -> Optional[AnalysisJob]:
        with self._jobs_lock:
            return self._jobs.get(job_id)

    def list_jobs(self) -> List[AnalysisJob]:
        with self._jobs_lock:
            return list(self._jobs.values())

    def cancel(self, job_id: str) -> bool:
        """Mark a job failed. Returns False if unknown or already finished."""
        job = self.get_job(job_id)
        if job is None:
            return False
        cancelled = job.fail(CANCELLED_MESSAGE, cancelled=True)
        if cancelled:
            logger.info(f"Job {job_id} cancelled", extra={"job_id": job_id, "status": "failed"})
        return cancelled

    def clear_cache(self) -> int:
        return self.cache.clear() if self.cache is not None else 0

    def get_cache_stats(self) -> Dict[str, Any]:
        if self.cache is None:
            return {"backend": "disabled"}
        return self.cache.get_stats()

    # =========================================================================
    # EXECUTION
    # =========================================================================

    def execute(self, job: AnalysisJob, fetcher: ReviewFetcher, now: Optional[datetime] = None) -> AnalysisJob:
        """
        Drive ``job`` through every stage. Never raises: errors end up in
        ``job.error`` with status failed.
        """
        started = time.monotonic()
        log_extra = {"job_id": job.job_id}
        pipeline = ReviewInsightPipeline(job.options)
        # one clock for the cache window and the trend buckets
        now = now or datetime.now(timezone.utc)

        logger.info(f"=== Starting analysis job {job.job_id} ({job.source}) ===", extra=log_extra)

        try:
            # STAGE 1: FETCH
            job.advance(JobStatus.FETCHING)
            stage_start = time.monotonic()
            reviews = pipeline.parse(fetcher() or [])
            job.metrics.fetch_time = time.monotonic() - stage_start
            job.metrics.review_count = len(reviews)
            self._log_stage(job, JobStatus.FETCHING, job.metrics.fetch_time)

            if not reviews:
                logger.warning(f"Job {job.job_id}: no reviews fetched, completing empty", extra=log_extra)
                job.result = pipeline.empty_result(now)
                job.advance(JobStatus.COMPLETED)
                return job

            cache_key = None
            if self.cache is not None:
                cache_key = make_cache_key(
                    reviews,
                    job.options,
                    job.app_versions,
                    window=period_key(now, job.options.time_period),
                )
                cached = self.cache.get(cache_key)
                if cached is not None:
                    job.metrics.cache_hit = True
                    job.result = cached
                    job.advance(JobStatus.COMPLETED)
                    logger.info(f"Job {job.job_id}: served from cache", extra={**log_extra, "cache_key": cache_key[:16]})
                    return job

            # STAGE 2: ANALYSIS
            job.advance(JobStatus.ANALYZING)
            stage_start = time.monotonic()
            analysis = pipeline.analyze(reviews)
            job.metrics.analysis_time = time.monotonic() - stage_start
            self._log_stage(job, JobStatus.ANALYZING, job.metrics.analysis_time)

            # STAGE 3: CLASSIFICATION
            job.advance(JobStatus.CLASSIFYING)
            stage_start = time.monotonic()
            classification = pipeline.classify(analysis, job.app_versions)
            job.metrics.classification_time = time.monotonic() - stage_start
            self._log_stage(job, JobStatus.CLASSIFYING, job.metrics.classification_time)

            # STAGE 4: AGGREGATION
            job.advance(JobStatus.AGGREGATING)
            stage_start = time.monotonic()
            result = pipeline.aggregate(analysis, classification, now=now)
            job.metrics.aggregation_time = time.monotonic() - stage_start
            self._log_stage(job, JobStatus.AGGREGATING, job.metrics.aggregation_time)

            job.result = result
            job.advance(JobStatus.COMPLETED)
            if cache_key is not None:
                self.cache.set(cache_key, result)

        except JobCancelledError:
            logger.info(f"Job {job.job_id} stopped after cancellation", extra=log_extra)

        except Exception as e:
            logger.exception(f"Analysis job {job.job_id} failed: {e}", extra=log_extra)
            job.fail(str(e))

        finally:
            job.metrics.total_time = time.monotonic() - started
            logger.info(
                f"=== Job {job.job_id} finished: {job.status.value} in {job.metrics.total_time:.2f}s "
                f"({job.metrics.review_count} reviews) ===",
                extra={**log_extra, "status": job.status.value, "duration": job.metrics.total_time,
                       "review_count": job.metrics.review_count},
            )

        return job

    @staticmethod
    def _log_stage(job: AnalysisJob, stage: JobStatus, duration: float) -> None:
        logger.info(
            f"Job {job.job_id}: {stage.value} done in {duration:.2f}s",
            extra={"job_id": job.job_id, "stage": stage.value, "duration": duration},
        )
