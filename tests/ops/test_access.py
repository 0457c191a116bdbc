"""Tests for the capability gate."""

from __future__ import annotations

from jobdesk.core.enums import Capability
from jobdesk.core.models import Job, JobFolder
from jobdesk.ops.access import Allowed, Denied, require, require_all, requires, visible
from jobdesk.ops.context import Principal
from jobdesk.ops.outcome import AccessDeniedBody, Outcome, PageBody


class TestRequire:
    """Rules evaluated in order: disabled, read-only, principal, capability."""

    def test_access_control_disabled_allows_everything(self, ctx, make_request):
        request = make_request("job", "delete_job")
        assert isinstance(require(ctx, request, Capability.DELETE_JOB), Allowed)

    def test_no_principal_is_denied(self, secured_ctx, make_request):
        decision = require(secured_ctx, make_request("job"), Capability.VIEW_JOB)
        assert isinstance(decision, Denied)
        assert decision.capability is Capability.VIEW_JOB

    def test_full_access_grants_everything(self, secured_ctx, make_request, admin):
        request = make_request("job", principal=admin)
        for capability in Capability:
            assert isinstance(require(secured_ctx, request, capability), Allowed)

    def test_named_capability(self, secured_ctx, make_request, viewer):
        request = make_request("job", principal=viewer)
        assert isinstance(require(secured_ctx, request, Capability.VIEW_JOB), Allowed)
        denied = require(secured_ctx, request, Capability.DELETE_JOB)
        assert isinstance(denied, Denied)
        assert denied.reason == "viewer does not hold the delete-job capability"

    def test_read_only_mode_grants_only_view_job(self, read_only_ctx, make_request, admin):
        request = make_request("job", principal=admin)
        assert isinstance(require(read_only_ctx, request, Capability.VIEW_JOB), Allowed)
        assert isinstance(require(read_only_ctx, request, Capability.DELETE_JOB), Denied)
        assert isinstance(require(read_only_ctx, make_request("job"), Capability.VIEW_JOB), Allowed)

    def test_require_all_returns_first_denial(self, secured_ctx, make_request):
        principal = Principal("ops", frozenset({Capability.CANCEL_JOB}))
        decision = require_all(
            secured_ctx, make_request("job", principal=principal), [Capability.CANCEL_JOB, Capability.DELETE_JOB]
        )
        assert isinstance(decision, Denied)
        assert decision.capability is Capability.DELETE_JOB


class TestRequiresDecorator:
    def test_denied_handler_never_runs(self, secured_ctx, make_request, viewer):
        calls = []

        @requires(Capability.DELETE_JOB, message="You do not have permission to delete jobs.")
        def handler(ctx, request):
            calls.append(request)
            return Outcome.page(PageBody(view="x", title="x"))

        outcome = handler(secured_ctx, make_request("job", "delete_job", principal=viewer))
        assert calls == []
        assert isinstance(outcome.body, AccessDeniedBody)
        assert outcome.body.message == "You do not have permission to delete jobs."
        assert outcome.body.capability == "delete-job"
        assert outcome.status_lines == []

    def test_allowed_handler_runs(self, secured_ctx, make_request, admin):
        @requires(Capability.DELETE_JOB, message="no")
        def handler(ctx, request):
            return Outcome.page(PageBody(view="ok", title="ok"))

        assert handler(secured_ctx, make_request("job", principal=admin)).body.view == "ok"
        assert handler.required_capabilities == (Capability.DELETE_JOB,)


class TestVisible:
    def test_everything_visible_outside_read_only_mode(self, ctx):
        assert visible(ctx, Job(job_id="J1", job_class="c"))

    def test_read_only_mode_hides_unpublished(self, read_only_ctx):
        assert not visible(read_only_ctx, Job(job_id="J1", job_class="c"))
        assert visible(read_only_ctx, Job(job_id="J1", job_class="c", display_in_read_only=True))
        assert visible(read_only_ctx, JobFolder(name="F", display_in_read_only=True))
