"""
Batch mutation executor.

Applies one mutation to each identifier independently. A failure on
one identifier is recorded as a status line and never stops its
siblings; there is no rollback.

Flow per identifier::

    prefilter(id) ──skip reason──▶ warning line
         │ None
         ▼
    mutation(id) ──Ok(message)──▶ success line
                 └─Err(error)───▶ failure line (PerItemFailure)

Each line is pushed to the request's status listener and logged as it
is produced.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence

from jobdesk.core.errors import PerItemFailure
from jobdesk.core.logging import get_logger
from jobdesk.core.result import Err, Ok, Result, partition_results, try_result
from jobdesk.ops.context import RequestContext
from jobdesk.ops.lookup import error_message
from jobdesk.ops.outcome import StatusLine

logger = get_logger(__name__)

Mutation = Callable[[str], Result[str]]
Prefilter = Callable[[str], str | None]


def apply_batch(
    entity_ids: Sequence[str],
    mutation: Mutation,
    request: RequestContext,
    prefilter: Prefilter | None = None,
) -> list[StatusLine]:
    """Run *mutation* once per identifier and return one status line each.

    Args:
        entity_ids: Identifiers in the order they were submitted.
        mutation: Returns ``Ok(success message)`` or ``Err(error)``.
        request: Supplies the status listener and request ID.
        prefilter: Returns a skip reason for identifiers that must not be
            mutated, or ``None``.
    """
    lines: list[StatusLine] = []
    results: list[Result[str]] = []
    skipped = 0

    def record(line: StatusLine) -> None:
        lines.append(line)
        request.emit(line)

    for entity_id in entity_ids:
        if prefilter is not None:
            reason = prefilter(entity_id)
            if reason is not None:
                skipped += 1
                logger.info("batch_item_skipped", entity_id=entity_id, reason=reason)
                record(StatusLine.warning(reason, entity_id))
                continue

        result = _attempt(mutation, entity_id)
        results.append(result)
        match result:
            case Ok(message):
                logger.info("batch_item_succeeded", entity_id=entity_id)
                record(StatusLine.success(message, entity_id))
            case Err(error):
                failure = PerItemFailure(entity_id, error_message(error), cause=error)
                logger.warning("batch_item_failed", entity_id=entity_id, error=failure.reason)
                record(StatusLine.error(failure.reason, entity_id))

    succeeded, failed = partition_results(results)
    logger.info("batch_completed", succeeded=len(succeeded), failed=len(failed), skipped=skipped)
    return lines


def _attempt(mutation: Mutation, entity_id: str) -> Result[str]:
    # A raising mutation is an item failure like any other.
    match try_result(lambda: mutation(entity_id)):
        case Ok(result):
            return result
        case Err(error):
            logger.warning("batch_item_raised", entity_id=entity_id, exc_info=error)
            return Err(error)


__all__ = ["Mutation", "Prefilter", "apply_batch"]
