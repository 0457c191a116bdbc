"""Tests for the job class registry operations."""

from __future__ import annotations

from jobdesk.ops import job_classes
from jobdesk.ops.context import Param
from jobdesk.ops.outcome import Redirect


class TestJobClasses:
    def test_add_form_when_no_name(self, ctx, make_request):
        outcome = job_classes.add_job_class(ctx, make_request("job_class", "add_job_class"))
        assert outcome.body.view == "add_job_class"
        assert outcome.status_lines == []

    def test_blank_name_is_an_error(self, ctx, make_request):
        outcome = job_classes.add_job_class(ctx, make_request("job_class", "add_job_class", {Param.JOB_CLASS: " "}))
        assert outcome.body.view == "add_job_class"
        assert outcome.messages() == ["No job class name was provided."]

    def test_add_and_list(self, ctx, make_request, store):
        request = make_request("job_class", "add_job_class", {Param.JOB_CLASS: "loadgen.HttpGetJob"})
        outcome = job_classes.add_job_class(ctx, request)
        assert outcome.messages() == ["Added job class loadgen.HttpGetJob"]
        assert outcome.redirect == Redirect.to("job_class", "view_classes")

        listing = job_classes.view_classes(ctx, make_request("job_class", "view_classes"))
        assert listing.body.view == "job_classes"
        assert listing.body.data["job_classes"] == ["loadgen.HttpGetJob"]

    def test_duplicate(self, ctx, make_request, store):
        store.add_job_class("loadgen.HttpGetJob")
        request = make_request("job_class", "add_job_class", {Param.JOB_CLASS: "loadgen.HttpGetJob"})
        assert job_classes.add_job_class(ctx, request).messages() == [
            "Job class 'loadgen.HttpGetJob' is already defined"
        ]

    def test_invalid_name(self, ctx, make_request):
        request = make_request("job_class", "add_job_class", {Param.JOB_CLASS: "x y"})
        assert job_classes.add_job_class(ctx, request).messages() == ["'x y' is not a valid job class name."]

    def test_delete(self, ctx, make_request, store):
        store.add_job_class("loadgen.HttpGetJob")
        request = make_request(
            "job_class",
            "delete_job_class",
            {Param.JOB_CLASS: ["loadgen.HttpGetJob", "loadgen.Missing"], Param.CONFIRMED: "Yes"},
        )
        outcome = job_classes.delete_job_class(ctx, request)
        assert outcome.messages() == [
            "Removed job class loadgen.HttpGetJob",
            "No job class with ID 'loadgen.Missing' exists",
        ]
        assert store.list_job_classes().unwrap() == []

    def test_viewer_cannot_add(self, secured_ctx, make_request, viewer):
        request = make_request("job_class", "add_job_class", {Param.JOB_CLASS: "a.B"}, principal=viewer)
        outcome = job_classes.add_job_class(secured_ctx, request)
        assert outcome.body.message == "You do not have permission to add job classes."
