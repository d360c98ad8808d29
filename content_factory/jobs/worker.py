"""Queue worker: claims jobs and dispatches them to stage processors.

Each job runs under a timeout. Any exception fails the job through the
queue, which re-queues it with backoff or dead-letters it; provider
rejections that would fail again are dead-lettered at once. A
``CriticalError`` stops the worker when ``error_handling.stop_on_critical``
is set.
"""

import asyncio
import os
import socket
import time

from loguru import logger

from content_factory.errors import CriticalError, should_retry_job
from content_factory.models.db import PipelineJob
from content_factory.models.jobs import BatchResult, JobType, StageOutcome
from content_factory.stages import PROCESSORS, StageContext, StageProcessor
from content_factory.utils.logging import job_logging_context


def default_worker_id() -> str:
    return f"worker-{socket.gethostname()}-{os.getpid()}"


async def run_job(
    ctx: StageContext,
    job: PipelineJob,
    processors: dict[JobType, StageProcessor] | None = None,
) -> StageOutcome:
    """
    Run the processor for one claimed job under the configured timeout.

    Raises:
        ValueError: Unknown job type or no processor registered for it
        TimeoutError: The processor exceeded ``worker.job_timeout_minutes``
    """
    processors = processors or PROCESSORS
    job_type = JobType(job.job_type)
    processor = processors.get(job_type)
    if processor is None:
        raise ValueError(f"No processor registered for job type {job_type.value}")

    timeout = ctx.config.worker.job_timeout_minutes * 60
    return await asyncio.wait_for(processor(ctx, job), timeout=timeout)


def _error_message(error: BaseException, ctx: StageContext) -> str:
    if isinstance(error, TimeoutError):
        return f"Job timed out after {ctx.config.worker.job_timeout_minutes} minutes"
    return str(error) or type(error).__name__


async def _process_claimed(
    ctx: StageContext,
    job: PipelineJob,
    worker_id: str,
    processors: dict[JobType, StageProcessor] | None,
) -> BaseException | None:
    with job_logging_context(job.id, job.job_type, job.article_id, worker_id):
        return await _run_logged(ctx, job, processors)


async def _run_logged(
    ctx: StageContext,
    job: PipelineJob,
    processors: dict[JobType, StageProcessor] | None,
) -> BaseException | None:
    started = time.perf_counter()
    try:
        outcome = await run_job(ctx, job, processors)
    except Exception as e:
        message = _error_message(e, ctx)
        retryable = should_retry_job(e)
        logger.error(
            "Job failed",
            error_type=type(e).__name__,
            error=message,
            retryable=retryable,
        )
        ctx.queue.fail(job.id, message, retryable=retryable)
        return e

    logger.info(
        "Job processed",
        next_job_id=outcome.next_job_id,
        tokens=outcome.tokens_used,
        cost=round(outcome.cost, 6),
        elapsed_ms=int((time.perf_counter() - started) * 1000),
    )
    return None


async def process_batch(
    ctx: StageContext,
    worker_id: str,
    processors: dict[JobType, StageProcessor] | None = None,
) -> BatchResult:
    """
    Claim up to ``worker.batch_size`` jobs and run them concurrently.

    Returns:
        Counts of claimed, succeeded and failed jobs

    Raises:
        CriticalError: A job raised one and ``stop_on_critical`` is set
    """
    claimed: list[PipelineJob] = []
    for _ in range(ctx.config.worker.batch_size):
        job = ctx.queue.claim_next(worker_id)
        if job is None:
            break
        claimed.append(job)

    result = BatchResult(claimed=len(claimed))
    if not claimed:
        return result

    errors = await asyncio.gather(*(_process_claimed(ctx, job, worker_id, processors) for job in claimed))
    critical: CriticalError | None = None
    for job, error in zip(claimed, errors, strict=True):
        if error is None:
            result.succeeded += 1
            continue
        result.failed += 1
        result.errors.append(f"{job.job_type}:{job.id}: {_error_message(error, ctx)}")
        if isinstance(error, CriticalError) and critical is None:
            critical = error

    logger.info(
        "Batch processed",
        worker_id=worker_id,
        claimed=result.claimed,
        succeeded=result.succeeded,
        failed=result.failed,
    )
    if critical is not None and ctx.config.error_handling.stop_on_critical:
        raise critical
    return result


async def _idle(stop_event: asyncio.Event, seconds: float) -> None:
    try:
        await asyncio.wait_for(stop_event.wait(), timeout=seconds)
    except TimeoutError:
        pass


async def run_worker(
    ctx: StageContext,
    worker_id: str | None = None,
    stop_event: asyncio.Event | None = None,
    max_iterations: int | None = None,
    processors: dict[JobType, StageProcessor] | None = None,
) -> int:
    """
    Poll the queue until stopped.

    Stale processing jobs are recovered on their own interval. The loop ends
    when ``stop_event`` is set, after ``max_iterations`` polls, on a critical
    error, or after ``error_handling.max_consecutive_failures`` batches in a
    row where every job failed.

    Returns:
        Number of jobs claimed
    """
    worker_id = worker_id or default_worker_id()
    stop_event = stop_event or asyncio.Event()
    worker_config = ctx.config.worker
    max_failures = ctx.config.error_handling.max_consecutive_failures

    logger.info("Worker started", worker_id=worker_id, batch_size=worker_config.batch_size)

    iterations = 0
    processed = 0
    consecutive_failures = 0
    last_stale_check: float | None = None

    while not stop_event.is_set():
        if max_iterations is not None and iterations >= max_iterations:
            break
        iterations += 1

        now = time.monotonic()
        if last_stale_check is None or now - last_stale_check >= worker_config.stale_check_interval_seconds:
            ctx.queue.recover_stale_locks()
            last_stale_check = now

        try:
            batch = await process_batch(ctx, worker_id, processors)
        except CriticalError as e:
            logger.critical("Critical error, stopping worker", worker_id=worker_id, stage=e.stage, error=str(e))
            break

        processed += batch.claimed
        if batch.claimed and batch.succeeded == 0:
            consecutive_failures += 1
            if consecutive_failures >= max_failures:
                logger.error(
                    "Too many consecutive failed batches, stopping worker",
                    worker_id=worker_id,
                    consecutive_failures=consecutive_failures,
                )
                break
        elif batch.succeeded:
            consecutive_failures = 0

        if batch.claimed == 0 and (max_iterations is None or iterations < max_iterations):
            await _idle(stop_event, worker_config.poll_interval_seconds)

    logger.info("Worker stopped", worker_id=worker_id, iterations=iterations, processed=processed)
    return processed
