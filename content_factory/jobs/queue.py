"""Durable job queue on the relational store.

Claims use a compare-and-set ``UPDATE ... WHERE status = 'pending'`` so two
workers can never both win the same job, and a job is never claimed while
another job for the same article is processing.
"""

from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any

from loguru import logger
from sqlalchemy import and_, delete, exists, func, or_, select, update
from sqlalchemy.orm import Session, aliased

from content_factory import constants
from content_factory.errors import JobNotFoundError
from content_factory.models.config import WorkerConfig
from content_factory.models.db import Article, PipelineJob
from content_factory.models.jobs import JobStatus, JobType, QueueStats
from content_factory.store import ContentStore
from content_factory.utils.clock import utcnow

_SCALAR_TYPES = (str, int, float, bool, type(None))
CLAIM_CANDIDATES = 10


def validate_payload(payload: dict[str, Any] | None) -> dict[str, Any]:
    """Payloads carry small scalars only; stages re-read everything else."""
    payload = dict(payload or {})
    for key, value in payload.items():
        if not isinstance(value, _SCALAR_TYPES):
            raise ValueError(f"Job payload field '{key}' must be a scalar, got {type(value).__name__}")
    return payload


class JobQueue:
    """Enqueue, claim, complete and fail pipeline jobs."""

    def __init__(
        self,
        store: ContentStore,
        config: WorkerConfig | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.config = config or WorkerConfig()
        self._clock = clock

    def enqueue(
        self,
        job_type: JobType | str,
        domain_id: str | None = None,
        article_id: str | None = None,
        payload: dict[str, Any] | None = None,
        priority: int = constants.JOB_DEFAULT_PRIORITY,
        max_attempts: int | None = None,
        scheduled_for: datetime | None = None,
    ) -> str:
        """
        Add a pending job.

        Args:
            job_type: Stage or maintenance job type
            domain_id: Owning domain
            article_id: Owning article, None for domain-level jobs
            payload: Small scalar inputs
            priority: Lower numbers are claimed first
            max_attempts: Attempts before the job is dead-lettered
            scheduled_for: Earliest claim time, None for immediately

        Returns:
            New job id
        """
        job_type = JobType(job_type)
        job = PipelineJob(
            job_type=job_type.value,
            domain_id=domain_id,
            article_id=article_id,
            payload=validate_payload(payload),
            priority=priority,
            max_attempts=max_attempts or self.config.default_max_attempts,
            status=JobStatus.PENDING.value,
            scheduled_for=scheduled_for,
            created_at=self._clock(),
        )
        with self.store.session() as session:
            session.add(job)

        logger.info(
            "Job enqueued",
            job_id=job.id,
            job_type=job_type.value,
            article_id=article_id,
            priority=priority,
        )
        return job.id

    def get(self, job_id: str) -> PipelineJob | None:
        with self.store.session() as session:
            return session.get(PipelineJob, job_id)

    def claim_next(self, worker_id: str) -> PipelineJob | None:
        """
        Atomically claim the next eligible pending job.

        Eligible jobs are pending, due (``scheduled_for`` unset or in the past)
        and belong to no article that already has a processing job. Order is
        priority ascending, then creation time.

        Returns:
            The claimed job, or None when nothing is eligible
        """
        now = self._clock()
        busy = aliased(PipelineJob)
        article_busy = exists().where(
            busy.article_id == PipelineJob.article_id,
            busy.status == JobStatus.PROCESSING.value,
        )
        lock_until = now + timedelta(minutes=self.config.lock_duration_minutes)

        with self.store.session() as session:
            candidates = session.scalars(
                select(PipelineJob)
                .where(
                    PipelineJob.status == JobStatus.PENDING.value,
                    or_(PipelineJob.scheduled_for.is_(None), PipelineJob.scheduled_for <= now),
                    or_(PipelineJob.article_id.is_(None), ~article_busy),
                )
                .order_by(PipelineJob.priority.asc(), PipelineJob.created_at.asc(), PipelineJob.id.asc())
                .limit(CLAIM_CANDIDATES)
            ).all()

            for candidate in candidates:
                result = session.execute(
                    update(PipelineJob)
                    .where(
                        PipelineJob.id == candidate.id,
                        PipelineJob.status == JobStatus.PENDING.value,
                        or_(PipelineJob.article_id.is_(None), ~article_busy),
                    )
                    .values(
                        status=JobStatus.PROCESSING.value,
                        worker_id=worker_id,
                        started_at=now,
                        locked_until=lock_until,
                    )
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount != 1:
                    continue

                claimed = session.get(PipelineJob, candidate.id, populate_existing=True)
                logger.info(
                    "Job claimed",
                    job_id=candidate.id,
                    job_type=candidate.job_type,
                    worker_id=worker_id,
                    attempt=candidate.attempts + 1,
                )
                return claimed

        return None

    def complete(
        self,
        job_id: str,
        result: dict[str, Any] | None = None,
        tokens_used: int = 0,
        cost: float = 0.0,
    ) -> None:
        """Mark a job completed. Callers enqueue any successor first."""
        with self.store.session() as session:
            job = session.get(PipelineJob, job_id)
            if job is None:
                raise JobNotFoundError(job_id)
            job.status = JobStatus.COMPLETED.value
            job.result = result or {}
            job.api_tokens_used = tokens_used
            job.api_cost = round(cost, 6)
            job.completed_at = self._clock()
            job.locked_until = None
            job.error_message = None

        logger.info("Job completed", job_id=job_id, tokens=tokens_used, cost=round(cost, 6))

    def _dead_letter(self, session: Session, job: PipelineJob, message: str, now: datetime) -> None:
        """Mark a job terminally failed and return its article to ``draft``."""
        job.status = JobStatus.FAILED.value
        job.completed_at = now
        job.error_message = message
        if job.article_id:
            article = session.get(Article, job.article_id)
            if article is not None:
                article.status = "draft"

    def fail(self, job_id: str, error: str, retryable: bool = True) -> JobStatus:
        """
        Record a failed attempt.

        The job is re-queued with exponential backoff (2^attempts minutes,
        capped) until it reaches ``max_attempts``; then it is dead-lettered as
        ``failed`` and its article reverts to ``draft``. A non-retryable
        failure is dead-lettered at once.

        Returns:
            The job's new status
        """
        now = self._clock()
        with self.store.session() as session:
            job = session.get(PipelineJob, job_id)
            if job is None:
                raise JobNotFoundError(job_id)

            job.attempts += 1
            job.locked_until = None
            job.worker_id = None

            if not retryable:
                self._dead_letter(
                    session, job, f"Permanent failure ({job.attempts}/{job.max_attempts}): {error}", now
                )
                new_status = JobStatus.FAILED
                logger.error(
                    "Job failed without retry",
                    job_id=job_id,
                    job_type=job.job_type,
                    attempts=job.attempts,
                    error=error,
                )
            elif job.attempts >= job.max_attempts:
                self._dead_letter(session, job, f"Dead letter ({job.attempts}/{job.max_attempts}): {error}", now)
                new_status = JobStatus.FAILED
                logger.error(
                    "Job permanently failed",
                    job_id=job_id,
                    job_type=job.job_type,
                    attempts=job.attempts,
                    error=error,
                )
            else:
                delay_minutes = min(2**job.attempts, self.config.max_backoff_minutes)
                job.status = JobStatus.PENDING.value
                job.scheduled_for = now + timedelta(minutes=delay_minutes)
                job.error_message = f"Retry {job.attempts}/{job.max_attempts}: {error}"
                new_status = JobStatus.PENDING
                logger.warning(
                    "Job scheduled for retry",
                    job_id=job_id,
                    job_type=job.job_type,
                    attempts=job.attempts,
                    delay_minutes=delay_minutes,
                    error=error,
                )

        return new_status

    def recover_stale_locks(self, max_processing_age: timedelta | None = None) -> int:
        """
        Return jobs stuck in ``processing`` longer than ``max_processing_age`` to the queue.

        A recovered job counts the crashed run as an attempt.

        Returns:
            Number of jobs recovered
        """
        if max_processing_age is None:
            max_processing_age = timedelta(minutes=self.config.job_timeout_minutes)
        now = self._clock()
        cutoff = now - max_processing_age

        recovered: list[str] = []
        with self.store.session() as session:
            stale = session.scalars(
                select(PipelineJob).where(
                    PipelineJob.status == JobStatus.PROCESSING.value,
                    PipelineJob.started_at < cutoff,
                )
            ).all()
            for job in stale:
                job.attempts += 1
                job.locked_until = None
                job.worker_id = None
                if job.attempts >= job.max_attempts:
                    self._dead_letter(session, job, "Worker crashed or timed out; attempts exhausted", now)
                else:
                    job.status = JobStatus.PENDING.value
                    job.error_message = "Worker crashed or timed out; auto-recovered"
                recovered.append(job.id)

        if recovered:
            logger.warning("Recovered stale jobs", count=len(recovered), job_ids=recovered)
        return len(recovered)

    def stats(self) -> QueueStats:
        now = self._clock()
        with self.store.session() as session:
            counts = dict(
                session.execute(
                    select(PipelineJob.status, func.count()).group_by(PipelineJob.status)
                ).all()
            )
            pending_by_type = dict(
                session.execute(
                    select(PipelineJob.job_type, func.count())
                    .where(PipelineJob.status == JobStatus.PENDING.value)
                    .group_by(PipelineJob.job_type)
                ).all()
            )
            oldest = session.scalar(
                select(func.min(PipelineJob.created_at)).where(
                    PipelineJob.status == JobStatus.PENDING.value
                )
            )

        return QueueStats(
            pending=counts.get(JobStatus.PENDING.value, 0),
            processing=counts.get(JobStatus.PROCESSING.value, 0),
            completed=counts.get(JobStatus.COMPLETED.value, 0),
            failed=counts.get(JobStatus.FAILED.value, 0),
            cancelled=counts.get(JobStatus.CANCELLED.value, 0),
            pending_by_type=pending_by_type,
            oldest_pending_age_seconds=(now - oldest).total_seconds() if oldest else None,
        )

    def retry_failed(self, job_ids: list[str] | None = None) -> int:
        """Reset failed jobs (all, or the given ids) to pending with fresh attempts."""
        stmt = update(PipelineJob).where(PipelineJob.status == JobStatus.FAILED.value)
        if job_ids:
            stmt = stmt.where(PipelineJob.id.in_(job_ids))
        with self.store.session() as session:
            result = session.execute(
                stmt.values(
                    status=JobStatus.PENDING.value,
                    attempts=0,
                    scheduled_for=None,
                    completed_at=None,
                    error_message=None,
                ).execution_options(synchronize_session=False)
            )
        logger.info("Failed jobs re-queued", count=result.rowcount)
        return result.rowcount

    def cancel(self, job_id: str) -> bool:
        """Cancel a pending job. Processing jobs are left to finish."""
        with self.store.session() as session:
            result = session.execute(
                update(PipelineJob)
                .where(PipelineJob.id == job_id, PipelineJob.status == JobStatus.PENDING.value)
                .values(status=JobStatus.CANCELLED.value, completed_at=self._clock())
                .execution_options(synchronize_session=False)
            )
        cancelled = result.rowcount == 1
        if cancelled:
            logger.info("Job cancelled", job_id=job_id)
        return cancelled

    def purge_old(self, days: int = constants.JOB_PURGE_AFTER_DAYS) -> int:
        """Delete completed and cancelled jobs finished more than ``days`` ago."""
        cutoff = self._clock() - timedelta(days=days)
        with self.store.session() as session:
            result = session.execute(
                delete(PipelineJob)
                .where(
                    and_(
                        PipelineJob.status.in_([JobStatus.COMPLETED.value, JobStatus.CANCELLED.value]),
                        PipelineJob.completed_at < cutoff,
                    )
                )
                .execution_options(synchronize_session=False)
            )
        logger.info("Old jobs purged", count=result.rowcount, older_than_days=days)
        return result.rowcount

    def list_jobs(
        self,
        article_id: str | None = None,
        status: JobStatus | str | None = None,
        job_type: JobType | str | None = None,
    ) -> list[PipelineJob]:
        stmt = select(PipelineJob).order_by(PipelineJob.created_at, PipelineJob.id)
        if article_id is not None:
            stmt = stmt.where(PipelineJob.article_id == article_id)
        if status is not None:
            stmt = stmt.where(PipelineJob.status == JobStatus(status).value)
        if job_type is not None:
            stmt = stmt.where(PipelineJob.job_type == JobType(job_type).value)
        with self.store.session() as session:
            return list(session.scalars(stmt))
