"""
Confirmation controller.

Two-phase prompt/confirm for destructive and bulk operations. The
first request renders a form that re-embeds every identifier and every
operation parameter as hidden fields, so the second request carries
the full original selection.

State machine::

    ids empty ───────────────▶ error line + redirect (no form)
    token absent ────────────▶ ConfirmationForm
    token "No" ──────────────▶ "no action was taken" + redirect
    token "Yes" ─────────────▶ execute(ids) + redirect

The options variant (export, report generation) replaces the Yes/No
form with an :class:`OptionsForm` and executes once its discriminator
is present.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence

from jobdesk.core.enums import ConfirmToken
from jobdesk.core.logging import get_logger
from jobdesk.ops.context import Param, RequestContext
from jobdesk.ops.outcome import (
    ConfirmationForm,
    EntityLink,
    HiddenField,
    OptionsForm,
    Outcome,
    Redirect,
    StatusLine,
)

logger = get_logger(__name__)

NO_ACTION_TAKEN = "No action was taken."

# Parameters every confirmation form carries back so the natural list
# view can be rebuilt after the round trip.
ALWAYS_CARRIED = (Param.JOB_FOLDER, Param.VIRTUAL_JOB_FOLDER)


def routing_fields(request: RequestContext) -> list[HiddenField]:
    """Hidden fields that route the second request back to the same operation."""
    fields = [
        HiddenField(Param.CATEGORY, request.category),
        HiddenField(Param.OPERATION, request.operation),
    ]
    if request.sub_operation:
        fields.append(HiddenField(Param.SUB_OPERATION, request.sub_operation))
    submit = request.param(Param.SUBMIT)
    if submit:
        fields.append(HiddenField(Param.SUBMIT, submit))
    return fields


def carried_fields(request: RequestContext, names: Iterable[str], exclude: str = "") -> list[HiddenField]:
    fields: list[HiddenField] = []
    for name in dict.fromkeys([*names, *ALWAYS_CARRIED]):
        if name == exclude:
            continue
        for value in request.params.get(name, []):
            fields.append(HiddenField(name, value))
    return fields


def job_link(job_id: str) -> EntityLink:
    return EntityLink(job_id, "job", "view_job", {Param.JOB_ID: job_id})


def optimizing_job_link(optimizing_job_id: str) -> EntityLink:
    return EntityLink(
        optimizing_job_id, "job", "view_optimizing", {Param.OPTIMIZING_JOB_ID: optimizing_job_id}
    )


def folder_link(name: str) -> EntityLink:
    return EntityLink(name, "job", "view_real", {Param.JOB_FOLDER: name})


def virtual_folder_link(name: str) -> EntityLink:
    return EntityLink(name, "job", "view_virtual", {Param.VIRTUAL_JOB_FOLDER: name})


def plain_link(label: str) -> EntityLink:
    return EntityLink(label, "", "")


def confirm_batch(
    request: RequestContext,
    *,
    ids: Sequence[str],
    id_param: str,
    title: str,
    prompt: str,
    execute: Callable[[list[str]], list[StatusLine]],
    list_view: Redirect,
    empty_message: str,
    link: Callable[[str], EntityLink] = job_link,
    carry: Iterable[str] = (),
) -> Outcome:
    """Run the prompt/confirm state machine for a batch mutation.

    Args:
        request: The inbound request; its token selects the state.
        ids: Target identifiers, already parsed from the request.
        id_param: Field name the identifiers are re-embedded under.
        title: Confirmation page title.
        prompt: Question shown above the identifier list.
        execute: Runs the mutation over the identifiers on "Yes".
        list_view: Natural list view shown afterwards.
        empty_message: Error shown when no identifier was selected.
        link: Builds the link shown for each identifier.
        carry: Operation-specific parameters to re-embed.
    """
    selected = list(ids)
    if not selected:
        logger.info("confirmation_empty_selection", operation=request.operation_name)
        return Outcome.failure(empty_message, redirect=list_view)

    match request.confirmation():
        case ConfirmToken.ABSENT:
            hidden = routing_fields(request)
            hidden.extend(HiddenField(id_param, entity_id) for entity_id in selected)
            hidden.extend(carried_fields(request, carry, exclude=id_param))
            return Outcome.page(
                ConfirmationForm(
                    title=title,
                    prompt=prompt,
                    links=[link(entity_id) for entity_id in selected],
                    hidden=hidden,
                )
            )
        case ConfirmToken.NO:
            logger.info("confirmation_declined", operation=request.operation_name, count=len(selected))
            return Outcome.redirect_to(list_view, [StatusLine.info(NO_ACTION_TAKEN)])
        case ConfirmToken.YES:
            logger.info("confirmation_accepted", operation=request.operation_name, count=len(selected))
            return Outcome.redirect_to(list_view, execute(selected))


def with_options(
    request: RequestContext,
    *,
    ready: bool,
    form: Callable[[], OptionsForm],
    execute: Callable[[], Outcome],
    list_view: Redirect,
) -> Outcome:
    """Options variant: render *form* until *ready*, then execute.

    A "No" answer on the options form cancels like a declined
    confirmation.
    """
    if request.confirmation() is ConfirmToken.NO:
        return Outcome.redirect_to(list_view, [StatusLine.info(NO_ACTION_TAKEN)])
    if not ready:
        return Outcome.page(form())
    return execute()


__all__ = [
    "NO_ACTION_TAKEN",
    "routing_fields",
    "carried_fields",
    "job_link",
    "optimizing_job_link",
    "folder_link",
    "virtual_folder_link",
    "plain_link",
    "confirm_batch",
    "with_options",
]
