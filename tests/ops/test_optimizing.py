"""Tests for optimizing-job views and actions."""

from __future__ import annotations

import pytest

from jobdesk.core.enums import JobState
from jobdesk.core.models import JobFolder
from jobdesk.ops import optimizing
from jobdesk.ops.context import Param
from jobdesk.ops.outcome import ConfirmationForm, Redirect, StatusLevel


@pytest.fixture
def run(ctx, make_request):
    """Call *handler* with optimizing job IDs, confirmed by default."""

    def _run(handler, ids, confirmed="Yes", **params):
        fields = {Param.OPTIMIZING_JOB_ID: ids, **params}
        if confirmed is not None:
            fields[Param.CONFIRMED] = confirmed
        return handler(ctx, make_request("job", handler.__name__, fields))

    return _run


class TestViewOptimizing:
    def test_page_lists_iterations_and_rerun(self, ctx, make_request, make_optimizing_job):
        make_optimizing_job("OJ", ["I1", "I2"], rerun_iteration_id="RR")
        request = make_request("job", "view_optimizing", {Param.OPTIMIZING_JOB_ID: "OJ"})
        outcome = optimizing.view_optimizing(ctx, request)
        assert outcome.body.view == "optimizing_job"
        assert [row["job_id"] for row in outcome.body.data["iterations"]] == ["I1", "I2", "RR"]
        assert outcome.body.data["rerun_iteration_id"] == "RR"
        assert outcome.status_lines == []

    def test_missing_iteration_is_reported(self, ctx, make_request, make_optimizing_job, store):
        make_optimizing_job("OJ", ["I1", "I2"])
        store.remove_job("I2")
        request = make_request("job", "view_optimizing", {Param.OPTIMIZING_JOB_ID: "OJ"})
        outcome = optimizing.view_optimizing(ctx, request)
        assert [row["job_id"] for row in outcome.body.data["iterations"]] == ["I1"]
        assert outcome.messages() == ["Iteration I2: No job with ID 'I2' exists"]
        assert outcome.status_lines[0].level is StatusLevel.INFO

    def test_unknown(self, ctx, make_request):
        request = make_request("job", "view_optimizing", {Param.OPTIMIZING_JOB_ID: "NOPE"})
        assert optimizing.view_optimizing(ctx, request).messages() == ["No optimizing job with ID 'NOPE' exists"]

    def test_as_text(self, ctx, make_request, make_optimizing_job):
        make_optimizing_job("OJ", ["I1", "I2"], paused=True)
        request = make_request("job", "view_optimizing_as_text", {Param.OPTIMIZING_JOB_ID: "OJ"})
        text = optimizing.view_optimizing_as_text(ctx, request).raw.read_all().decode()
        assert "Iterations: I1, I2\n" in text
        assert "State: Not Yet Started (paused)\n" in text


class TestDeleteOptimizing:
    def test_prompt_first(self, run, make_optimizing_job, store):
        make_optimizing_job("OJ", ["I1"])
        outcome = run(optimizing.delete_optimizing, ["OJ"], confirmed=None, include_iterations="on")
        assert isinstance(outcome.body, ConfirmationForm)
        assert outcome.body.prompt.endswith("and all of their iterations?")
        assert outcome.body.hidden_values(Param.INCLUDE_ITERATIONS) == ["on"]
        assert store.get_optimizing_job("OJ").is_ok()

    def test_record_only(self, run, make_optimizing_job, store):
        make_optimizing_job("OJ", ["I1"])
        outcome = run(optimizing.delete_optimizing, ["OJ"])
        assert outcome.messages() == ["Deleted optimizing job OJ"]
        assert store.get_job("I1").is_ok()

    def test_failed_iteration_does_not_stop_the_record(self, run, make_optimizing_job, store):
        make_optimizing_job("OJ", ["I1", "I2"], rerun_iteration_id="RR")
        store.failing_removals.add("I2")
        outcome = run(optimizing.delete_optimizing, ["OJ"], include_iterations="on")
        assert outcome.messages() == [
            "Deleted iteration I1",
            "Job I2 is locked by another process",
            "Deleted iteration RR",
            "Deleted optimizing job OJ",
        ]
        assert [line.level for line in outcome.status_lines].count(StatusLevel.ERROR) == 1
        assert store.get_optimizing_job("OJ").is_err()
        assert store.get_job("I2").is_ok()

    def test_store_outage_midway_keeps_earlier_lines(self, run, make_optimizing_job, store):
        make_optimizing_job("OJ1", ["I1"])
        make_optimizing_job("OJ2", ["I2"])
        store.unreachable.add("OJ2")
        outcome = run(optimizing.delete_optimizing, ["OJ1", "OJ2"])
        assert outcome.messages() == ["Deleted optimizing job OJ1", "get_optimizing_job timed out"]
        assert [line.level for line in outcome.status_lines] == [StatusLevel.SUCCESS, StatusLevel.ERROR]
        assert store.get_optimizing_job("OJ1").is_err()

    def test_nothing_selected(self, run):
        assert run(optimizing.delete_optimizing, []).messages() == ["No optimizing jobs were selected."]


class TestMoveAndPublish:
    def test_move_with_iterations(self, run, make_optimizing_job, store):
        store.put_folder(JobFolder(name="Tuning"))
        make_optimizing_job("OJ", ["I1"])
        outcome = run(optimizing.move_optimizing, ["OJ"], new_folder="Tuning", include_iterations="on")
        assert outcome.messages() == ["Moved job I1 to folder Tuning", "Moved optimizing job OJ to folder Tuning"]
        assert store.get_optimizing_job("OJ").unwrap().folder == "Tuning"
        assert store.get_job("I1").unwrap().folder == "Tuning"

    def test_move_requires_destination(self, run, make_optimizing_job):
        make_optimizing_job("OJ", [])
        assert run(optimizing.move_optimizing, ["OJ"]).messages() == ["No destination folder was specified"]

    def test_publish_with_iterations(self, ctx, make_request, make_optimizing_job, store):
        make_optimizing_job("OJ", ["I1"])
        request = make_request(
            "job",
            "mass_optimizing",
            {
                Param.SUBMIT: "Publish",
                Param.OPTIMIZING_JOB_ID: "OJ",
                Param.INCLUDE_ITERATIONS: "on",
                Param.CONFIRMED: "Yes",
            },
        )
        outcome = optimizing.mass_optimizing(ctx, request)
        assert outcome.messages() == ["Published optimizing job OJ", "Published job I1"]
        assert store.get_job("I1").unwrap().display_in_read_only is True


class TestSchedulerActions:
    def test_pause_then_unpause(self, run, make_optimizing_job, store):
        make_optimizing_job("OJ", [])
        assert run(optimizing.pause_optimizing, ["OJ"]).messages() == ["Paused optimizing job OJ"]
        assert store.get_optimizing_job("OJ").unwrap().paused is True
        assert run(optimizing.pause_optimizing, ["OJ"]).messages() == ["Optimizing job OJ is already paused"]
        assert run(optimizing.unpause_optimizing, ["OJ"]).messages() == ["Unpaused optimizing job OJ"]

    def test_cancel(self, run, make_optimizing_job, store):
        make_optimizing_job("OJ", [])
        outcome = run(optimizing.cancel_optimizing, ["OJ"])
        assert outcome.messages() == ["Cancelled optimizing job OJ"]
        assert outcome.redirect == Redirect.to("job", "view_optimizing", optimizing_job_id="OJ")
        assert store.get_optimizing_job("OJ").unwrap().state is JobState.STOPPED_BY_USER

    def test_cancel_finished(self, run, make_optimizing_job):
        make_optimizing_job("OJ", [], state=JobState.COMPLETED_SUCCESSFULLY)
        assert run(optimizing.cancel_optimizing, ["OJ"]).messages() == ["Optimizing job OJ has already finished"]

    def test_denied_for_viewer(self, secured_ctx, make_request, viewer, make_optimizing_job):
        make_optimizing_job("OJ", [])
        request = make_request(
            "job", "pause_optimizing", {Param.OPTIMIZING_JOB_ID: "OJ", Param.CONFIRMED: "Yes"}, principal=viewer
        )
        outcome = optimizing.pause_optimizing(secured_ctx, request)
        assert outcome.body.message == "You do not have permission to control optimizing jobs."


class TestCommentsAndDispatch:
    def test_edit_comments(self, ctx, make_request, make_optimizing_job, store):
        make_optimizing_job("OJ", [])
        request = make_request(
            "job", "edit_optimizing_comments", {Param.OPTIMIZING_JOB_ID: "OJ", Param.COMMENTS: "tuned"}
        )
        outcome = optimizing.edit_optimizing_comments(ctx, request)
        assert outcome.messages() == ["Updated the comments for optimizing job OJ"]
        assert store.get_optimizing_job("OJ").unwrap().comments == "tuned"

    def test_unknown_submit_label(self, ctx, make_request):
        request = make_request("job", "mass_optimizing", {Param.SUBMIT: "Explode"})
        outcome = optimizing.mass_optimizing(ctx, request)
        assert outcome.messages() == ["Unrecognized optimizing job operation 'Explode'."]
