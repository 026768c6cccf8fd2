"""Background execution of deploy jobs."""

from __future__ import annotations

import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import uuid4

from site_publisher.config_validation import require_positive_int
from site_publisher.deploy.base import DeployOptions, DeployOutcome
from site_publisher.deploy.orchestrator import DeploymentOrchestrator
from site_publisher.deploy.runtime import CancelToken
from site_publisher.logging_utils import get_logger

LOGGER = get_logger("worker")

DEFAULT_RETAINED_JOBS = 100


class JobState(str, Enum):
    """Lifecycle state of a background deploy job."""

    queued = "queued"
    running = "running"
    finished = "finished"
    cancelled = "cancelled"


@dataclass
class DeployJob:
    """One submitted deploy and, once finished, its outcome."""

    job_id: str
    target_id: str | None
    state: JobState = JobState.queued
    submitted_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    finished_at: datetime | None = None
    outcome: DeployOutcome | None = None
    cancel_token: CancelToken = field(default_factory=CancelToken)

    def to_dict(self) -> dict[str, Any]:
        """Serialize job for JSON output."""
        return {
            "job_id": self.job_id,
            "target_id": self.target_id,
            "state": self.state.value,
            "submitted_at": self.submitted_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "outcome": self.outcome.to_dict() if self.outcome else None,
        }


class DeployWorker:
    """Runs ``deploy``/``deploy_to`` calls on a thread pool and tracks them by id."""

    def __init__(
        self,
        orchestrator: DeploymentOrchestrator,
        *,
        max_workers: int = 2,
        retained_jobs: int = DEFAULT_RETAINED_JOBS,
    ) -> None:
        require_positive_int(max_workers, "max_workers")
        require_positive_int(retained_jobs, "retained_jobs")
        self.orchestrator = orchestrator
        self.retained_jobs = retained_jobs
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="deploy")
        self._jobs: dict[str, DeployJob] = {}
        self._futures: dict[str, Future[DeployOutcome]] = {}
        self._lock = threading.Lock()

    def submit(
        self, target_id: str | None = None, options: DeployOptions | None = None
    ) -> DeployJob:
        """Queue a deploy to ``target_id`` (or the active target) and return the job."""
        job = DeployJob(job_id=uuid4().hex, target_id=target_id)
        opts = (options or DeployOptions()).with_cancel(job.cancel_token)
        with self._lock:
            self._forget_finished_locked()
            self._jobs[job.job_id] = job
            self._futures[job.job_id] = self._executor.submit(self._run, job, opts)
        LOGGER.info("Deploy job queued", extra={"job_id": job.job_id, "target": target_id})
        return job

    def get(self, job_id: str) -> DeployJob:
        """Return the job with ``job_id``; raises ``KeyError`` when unknown."""
        with self._lock:
            return self._jobs[job_id]

    def jobs(self) -> list[DeployJob]:
        with self._lock:
            return list(self._jobs.values())

    def cancel(self, job_id: str) -> DeployJob:
        """Request cancellation; a queued job never starts, a running one is interrupted."""
        with self._lock:
            job = self._jobs[job_id]
            future = self._futures.get(job_id)
        job.cancel_token.cancel()
        if future is not None and future.cancel():
            self._finish(job, DeployOutcome.failure("Deploy cancelled before it started"))
            job.state = JobState.cancelled
        LOGGER.info("Deploy job cancel requested", extra={"job_id": job_id})
        return job

    def wait(self, job_id: str, timeout: float | None = None) -> DeployOutcome | None:
        """Block until the job finishes and return its outcome."""
        with self._lock:
            future = self._futures[job_id]
        if future.cancelled():
            return self.get(job_id).outcome
        return future.result(timeout=timeout)

    def shutdown(self, *, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait, cancel_futures=True)

    def _run(self, job: DeployJob, options: DeployOptions) -> DeployOutcome:
        job.state = JobState.running
        try:
            if job.target_id is None:
                outcome = self.orchestrator.deploy(options)
            else:
                outcome = self.orchestrator.deploy_to(job.target_id, options)
        except Exception as exc:  # noqa: BLE001
            LOGGER.exception("Deploy job crashed", extra={"job_id": job.job_id})
            outcome = DeployOutcome.failure(
                "Deploy failed unexpectedly", f"{type(exc).__name__}: {exc}"
            )
        self._finish(job, outcome)
        if job.cancel_token.cancelled and outcome.is_failure():
            job.state = JobState.cancelled
        return outcome

    def _finish(self, job: DeployJob, outcome: DeployOutcome) -> None:
        job.outcome = outcome
        job.finished_at = datetime.now(UTC)
        job.state = JobState.finished
        LOGGER.info(
            "Deploy job finished",
            extra={"job_id": job.job_id, "status": outcome.status.value},
        )

    def _forget_finished_locked(self) -> None:
        finished = [job_id for job_id, job in self._jobs.items() if job.finished_at is not None]
        for job_id in finished[: max(0, len(finished) - self.retained_jobs)]:
            del self._jobs[job_id]
            self._futures.pop(job_id, None)
