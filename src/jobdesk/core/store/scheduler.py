"""Store-backed scheduler.

Default :class:`~jobdesk.core.protocols.Scheduler` for deployments where
the job runtime reads state from the shared store: cancelling or pausing
is a state transition persisted through the store.
"""

from __future__ import annotations

from jobdesk.core.enums import JobState
from jobdesk.core.errors import BusinessRuleError, ErrorContext
from jobdesk.core.logging import get_logger
from jobdesk.core.protocols import EntityStore
from jobdesk.core.result import Err, Ok, Result

logger = get_logger(__name__)


class StoreBackedScheduler:
    """Applies scheduler transitions directly to stored entities."""

    def __init__(self, store: EntityStore) -> None:
        self._store = store

    def cancel_job(self, job_id: str) -> Result[JobState]:
        match self._store.get_job(job_id):
            case Err() as err:
                return err
            case Ok(job):
                pass
        if job.state.is_pending:
            new_state = JobState.CANCELLED
        elif job.state.is_running:
            new_state = JobState.STOPPED_BY_USER
        else:
            return Err(
                BusinessRuleError(
                    f"Job {job_id} is {job.state.label.lower()} and cannot be cancelled",
                    context=ErrorContext(entity_id=job_id, entity_kind="job"),
                )
            )
        job.state = new_state
        logger.info("job_cancel_requested", job_id=job_id, new_state=new_state.value)
        return self._store.put_job(job).map(lambda _: new_state)

    def cancel_optimizing_job(self, optimizing_job_id: str) -> Result[None]:
        match self._store.get_optimizing_job(optimizing_job_id):
            case Err() as err:
                return err
            case Ok(optimizing_job):
                pass
        if optimizing_job.state.is_terminal:
            return Err(
                BusinessRuleError(
                    f"Optimizing job {optimizing_job_id} has already finished",
                    context=ErrorContext(entity_id=optimizing_job_id, entity_kind="optimizing_job"),
                )
            )
        optimizing_job.state = JobState.STOPPED_BY_USER
        optimizing_job.paused = False
        return self._store.put_optimizing_job(optimizing_job).map(lambda _: None)

    def pause_optimizing_job(self, optimizing_job_id: str) -> Result[None]:
        return self._set_paused(optimizing_job_id, True)

    def unpause_optimizing_job(self, optimizing_job_id: str) -> Result[None]:
        return self._set_paused(optimizing_job_id, False)

    def _set_paused(self, optimizing_job_id: str, paused: bool) -> Result[None]:
        match self._store.get_optimizing_job(optimizing_job_id):
            case Err() as err:
                return err
            case Ok(optimizing_job):
                pass
        if optimizing_job.state.is_terminal:
            return Err(
                BusinessRuleError(
                    f"Optimizing job {optimizing_job_id} has already finished",
                    context=ErrorContext(entity_id=optimizing_job_id, entity_kind="optimizing_job"),
                )
            )
        if optimizing_job.paused == paused:
            word = "paused" if paused else "not paused"
            return Err(BusinessRuleError(f"Optimizing job {optimizing_job_id} is already {word}"))
        optimizing_job.paused = paused
        return self._store.put_optimizing_job(optimizing_job).map(lambda _: None)
