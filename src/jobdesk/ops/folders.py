"""
Folder membership manager.

Real folders own jobs and optimizing jobs through the entity's
``folder_name``; virtual folders hold a set of job ID references.
Single-step operations return ``Result[str]`` (the success message);
multi-step ones return status lines, one per entity touched.
"""

from __future__ import annotations

from collections.abc import Sequence

from jobdesk.core.errors import BusinessRuleError, StoreErrorKind, ValidationError
from jobdesk.core.logging import get_logger
from jobdesk.core.models import UNCLASSIFIED_FOLDER, JobFolder, VirtualFolder
from jobdesk.core.protocols import EntityStore
from jobdesk.core.result import Err, Ok, Result
from jobdesk.ops.batch import apply_batch
from jobdesk.ops.context import RequestContext
from jobdesk.ops.lookup import checked, error_message, required
from jobdesk.ops.outcome import StatusLine

logger = get_logger(__name__)


def _is_not_found(result: Result[object]) -> bool:
    return isinstance(result, Err) and getattr(result.error, "kind", None) is StoreErrorKind.NOT_FOUND


# ── Create / describe ────────────────────────────────────────────────────


def create_folder(store: EntityStore, name: str | None, description: str = "") -> Result[str]:
    if not name or not name.strip():
        return Err(ValidationError("No folder name was provided", field="new_folder"))
    name = name.strip()
    existing = checked(store.get_folder(name))
    if existing.is_ok():
        return Err(BusinessRuleError(f"Job folder {name} already exists"))
    if not _is_not_found(existing):
        return existing.map(lambda _: "")
    result = checked(store.put_folder(JobFolder(name=name, description=description)))
    if result.is_ok():
        logger.info("folder_created", folder=name)
    return result.map(lambda _: f"Created job folder {name}")


def create_virtual_folder(store: EntityStore, name: str | None, description: str = "") -> Result[str]:
    if not name or not name.strip():
        return Err(ValidationError("No virtual folder name was provided", field="new_folder"))
    name = name.strip()
    existing = checked(store.get_virtual_folder(name))
    if existing.is_ok():
        return Err(BusinessRuleError(f"Virtual job folder {name} already exists"))
    if not _is_not_found(existing):
        return existing.map(lambda _: "")
    result = checked(store.put_virtual_folder(VirtualFolder(name=name, description=description)))
    if result.is_ok():
        logger.info("virtual_folder_created", folder=name)
    return result.map(lambda _: f"Created virtual job folder {name}")


def edit_description(store: EntityStore, name: str, description: str, *, virtual: bool) -> Result[str]:
    if virtual:
        match checked(store.get_virtual_folder(name)):
            case Err() as err:
                return err.map(lambda _: "")
            case Ok(vfolder):
                vfolder.description = description
                return checked(store.put_virtual_folder(vfolder)).map(
                    lambda _: f"Updated the description of virtual folder {name}"
                )
    match checked(store.get_folder(name)):
        case Err() as err:
            return err.map(lambda _: "")
        case Ok(folder):
            folder.description = description
            return checked(store.put_folder(folder)).map(lambda _: f"Updated the description of folder {name}")


# ── Delete ───────────────────────────────────────────────────────────────


def delete_folder(
    store: EntityStore,
    name: str,
    request: RequestContext,
    *,
    cascade: bool,
) -> list[StatusLine]:
    """Delete a real folder, optionally removing its contents first.

    The folder is kept when any contained entity could not be removed.
    """
    match checked(store.get_folder(name)):
        case Err(error):
            return [StatusLine.error(error_message(error), name)]
        case Ok(folder) if folder.is_reserved:
            return [StatusLine.error(f"The {UNCLASSIFIED_FOLDER} folder cannot be deleted", name)]

    jobs = required(store.list_jobs(folder_name=name))
    optimizing_jobs = required(store.list_optimizing_jobs(folder_name=name))
    if (jobs or optimizing_jobs) and not cascade:
        return [
            StatusLine.error(
                f"Job folder {name} is not empty; delete its contents or choose to delete them with the folder",
                name,
            )
        ]

    lines: list[StatusLine] = []
    if optimizing_jobs:
        lines += apply_batch(
            [o.optimizing_job_id for o in optimizing_jobs],
            lambda oid: store.remove_optimizing_job(oid).map(lambda _: f"Removed optimizing job {oid}"),
            request,
        )
    if jobs:
        lines += apply_batch(
            [j.job_id for j in jobs],
            lambda jid: store.remove_job(jid).map(lambda _: f"Removed job {jid}"),
            request,
        )

    if any(line.is_error for line in lines):
        lines.append(StatusLine.error(f"Job folder {name} was not removed because some of its contents remain", name))
        return lines

    match checked(store.remove_folder(name)):
        case Ok(_):
            logger.info("folder_deleted", folder=name, cascade=cascade)
            lines.append(StatusLine.success(f"Removed job folder {name}", name))
        case Err(error):
            lines.append(StatusLine.error(f"Unable to remove job folder {name}: {error_message(error)}", name))
    return lines


def delete_virtual_folder(store: EntityStore, name: str) -> Result[str]:
    """Remove a virtual folder; the jobs it references are untouched."""
    return checked(store.remove_virtual_folder(name)).map(lambda _: f"Removed virtual job folder {name}")


# ── Membership ───────────────────────────────────────────────────────────


def move_job(store: EntityStore, job_id: str, folder_name: str) -> Result[str]:
    match checked(store.get_folder(folder_name)):
        case Err() as err:
            return err.map(lambda _: "")
        case Ok(_):
            pass
    return store.move_job(job_id, folder_name).map(lambda _: f"Moved job {job_id} to folder {folder_name}")


def move_optimizing_job(store: EntityStore, optimizing_job_id: str, folder_name: str) -> Result[str]:
    match store.get_folder(folder_name):
        case Err() as err:
            return err.map(lambda _: "")
        case Ok(_):
            pass
    return store.move_optimizing_job(optimizing_job_id, folder_name).map(
        lambda _: f"Moved optimizing job {optimizing_job_id} to folder {folder_name}"
    )


def add_to_virtual_folder(
    store: EntityStore,
    folder_name: str,
    job_ids: Sequence[str],
    request: RequestContext,
) -> list[StatusLine]:
    """Add references, creating the virtual folder when it does not exist."""
    lines: list[StatusLine] = []
    result = checked(store.get_virtual_folder(folder_name))
    if _is_not_found(result):
        vfolder = VirtualFolder(name=folder_name)
        lines.append(StatusLine.info(f"Created virtual job folder {folder_name}", folder_name))
    else:
        match result:
            case Err(error):
                return [StatusLine.error(error_message(error), folder_name)]
            case Ok(vfolder):
                pass

    def add(job_id: str) -> Result[str]:
        found = store.get_job(job_id)
        if found.is_err():
            return found.map(lambda _: "")
        if not vfolder.add(job_id):
            return Ok(f"Job {job_id} is already in virtual folder {folder_name}")
        return Ok(f"Added job {job_id} to virtual folder {folder_name}")

    lines += apply_batch(job_ids, add, request)
    return lines + _save_virtual_folder(store, vfolder)


def remove_from_virtual_folder(
    store: EntityStore,
    folder_name: str,
    job_ids: Sequence[str],
    request: RequestContext,
) -> list[StatusLine]:
    match checked(store.get_virtual_folder(folder_name)):
        case Err(error):
            return [StatusLine.error(error_message(error), folder_name)]
        case Ok(vfolder):
            pass

    def discard(job_id: str) -> Result[str]:
        if not vfolder.discard(job_id):
            return Ok(f"Job {job_id} was not in virtual folder {folder_name}")
        return Ok(f"Removed job {job_id} from virtual folder {folder_name}")

    lines = apply_batch(job_ids, discard, request)
    return lines + _save_virtual_folder(store, vfolder)


def _save_virtual_folder(store: EntityStore, vfolder: VirtualFolder) -> list[StatusLine]:
    match checked(store.put_virtual_folder(vfolder)):
        case Err(error):
            return [StatusLine.error(f"Unable to save virtual folder {vfolder.name}: {error_message(error)}")]
        case Ok(_):
            return []


# ── Publication ──────────────────────────────────────────────────────────


def set_job_published(store: EntityStore, job_id: str, published: bool) -> Result[str]:
    verb = "Published" if published else "De-published"
    match store.get_job(job_id):
        case Err() as err:
            return err.map(lambda _: "")
        case Ok(job):
            job.display_in_read_only = published
            return store.put_job(job).map(lambda _: f"{verb} job {job_id}")


def set_optimizing_job_published(store: EntityStore, optimizing_job_id: str, published: bool) -> Result[str]:
    verb = "Published" if published else "De-published"
    match store.get_optimizing_job(optimizing_job_id):
        case Err() as err:
            return err.map(lambda _: "")
        case Ok(optimizing_job):
            optimizing_job.display_in_read_only = published
            return store.put_optimizing_job(optimizing_job).map(lambda _: f"{verb} optimizing job {optimizing_job_id}")


def set_folder_published(
    store: EntityStore,
    name: str,
    request: RequestContext,
    *,
    published: bool,
    virtual: bool,
    cascade: bool,
) -> list[StatusLine]:
    """Toggle ``display_in_read_only`` on a folder, optionally on its contents too."""
    verb = "Published" if published else "De-published"
    if virtual:
        match checked(store.get_virtual_folder(name)):
            case Err(error):
                return [StatusLine.error(error_message(error), name)]
            case Ok(vfolder):
                vfolder.display_in_read_only = published
                saved = checked(store.put_virtual_folder(vfolder))
        job_ids = sorted(vfolder.job_ids)
        optimizing_ids: list[str] = []
    else:
        match checked(store.get_folder(name)):
            case Err(error):
                return [StatusLine.error(error_message(error), name)]
            case Ok(folder):
                folder.display_in_read_only = published
                saved = checked(store.put_folder(folder))
        job_ids = [j.job_id for j in required(store.list_jobs(folder_name=name))] if cascade else []
        optimizing_ids = (
            [o.optimizing_job_id for o in required(store.list_optimizing_jobs(folder_name=name))] if cascade else []
        )

    match saved:
        case Err(error):
            return [StatusLine.error(f"Unable to update folder {name}: {error_message(error)}", name)]
        case Ok(_):
            lines = [StatusLine.success(f"{verb} folder {name}", name)]

    if cascade:
        lines += apply_batch(job_ids, lambda jid: set_job_published(store, jid, published), request)
        lines += apply_batch(
            optimizing_ids, lambda oid: set_optimizing_job_published(store, oid, published), request
        )
    return lines


__all__ = [
    "create_folder",
    "create_virtual_folder",
    "edit_description",
    "delete_folder",
    "delete_virtual_folder",
    "move_job",
    "move_optimizing_job",
    "add_to_virtual_folder",
    "remove_from_virtual_folder",
    "set_job_published",
    "set_optimizing_job_published",
    "set_folder_published",
]
