"""Tests for compare, export and graph, and the aggregation helpers behind them."""

from __future__ import annotations

from datetime import datetime
from unittest.mock import MagicMock

import pytest

from jobdesk.core.models import Job
from jobdesk.ops import analysis
from jobdesk.ops.aggregate import (
    common_tracker_names,
    homogenize,
    merge_trackers,
    partition_by_class,
    resolve_jobs,
    sort_by_start_time,
)
from jobdesk.ops.context import Param
from jobdesk.ops.outcome import OptionsForm, StatusLevel

T1 = datetime(2024, 3, 1, 8, 0)
T2 = datetime(2024, 3, 1, 9, 0)
T3 = datetime(2024, 3, 1, 10, 0)


@pytest.fixture
def stats_jobs(make_job):
    """A, B share a class; C is an LDAP job. All have statistics."""
    make_job("A", with_stats=True, actual_start_time=T2, parameters={"url": "http://a"})
    make_job("B", with_stats=True, actual_start_time=T1, parameters={"url": "http://b"})
    make_job("C", job_class="loadgen.LdapJob", with_stats=True, actual_start_time=T3)


class TestAggregateHelpers:
    def test_resolve_drops_unknown_and_statless(self, store, make_job):
        make_job("A", with_stats=True)
        make_job("EMPTY")
        jobs, lines = resolve_jobs(store, ["A", "GONE", "EMPTY"])
        assert [job.job_id for job in jobs] == ["A"]
        assert [line.message for line in lines] == [
            "Skipping job GONE: No job with ID 'GONE' exists",
            "Skipping job EMPTY: it has no statistics",
        ]
        assert {line.level for line in lines} == {StatusLevel.WARNING}

    def test_partition_keeps_first_appearance_order(self):
        jobs = [Job("1", "b"), Job("2", "a"), Job("3", "b")]
        groups = partition_by_class(jobs)
        assert list(groups) == ["b", "a"]
        assert [job.job_id for job in groups["b"]] == ["1", "3"]

    def test_homogenize_uses_the_first_class(self):
        kept, lines = homogenize([Job("A", "x.Http"), Job("B", "x.Http"), Job("C", "x.Ldap")])
        assert [job.job_id for job in kept] == ["A", "B"]
        assert lines[0].message == "Skipping job C because its job class (x.Ldap) differs from x.Http"

    def test_sort_by_start_time(self):
        jobs = [
            Job("late", "c", actual_start_time=T2),
            Job("never", "c"),
            Job("early", "c", actual_start_time=T1),
            Job("latest", "c", actual_start_time=T3),
        ]
        assert [job.job_id for job in sort_by_start_time(jobs)] == ["early", "late", "latest", "never"]

    def test_sort_is_stable_for_equal_keys(self):
        jobs = [Job("first", "c", actual_start_time=T1), Job("second", "c", actual_start_time=T1), Job("x", "c")]
        assert [job.job_id for job in sort_by_start_time(jobs)] == ["first", "second", "x"]

    def test_merge_trackers(self, tracker):
        merged = merge_trackers([tracker("rt", 1.0, 3.0), tracker("rt", 8.0)])
        assert merged.count == 3
        assert merged.minimum == 1.0
        assert merged.maximum == 8.0
        assert merge_trackers([]) is None

    def test_common_tracker_names(self, tracker):
        a = Job("A", "c", stat_trackers={"rt": [tracker("rt", 1)], "errors": [tracker("errors", 0)]})
        b = Job("B", "c", stat_trackers={"errors": [tracker("errors", 2)]})
        assert common_tracker_names([a, b]) == ["errors"]


class TestCompare:
    def test_mixed_classes_are_skipped(self, ctx, make_request, stats_jobs):
        request = make_request("job", "mass_op", {Param.JOB_ID: ["A", "B", "C"]})
        outcome = analysis.compare_jobs(ctx, request)
        assert outcome.body.view == "compare"
        assert [row["job_id"] for row in outcome.body.data["jobs"]] == ["B", "A"]
        assert outcome.messages() == [
            "Skipping job C because its job class (loadgen.LdapJob) differs from loadgen.HttpGetJob"
        ]
        assert outcome.body.data["parameters"] == [{"name": "url", "values": ["http://b", "http://a"]}]
        table = outcome.body.data["trackers"][0]
        assert table["tracker_name"] == "Response Time"
        assert table["labels"] == ["Count", "Average", "Minimum", "Maximum"]
        assert table["rows"][0] == {"job_id": "B", "values": ["2", "15.000", "10.000", "20.000"]}

    def test_needs_two_jobs(self, ctx, make_request, stats_jobs):
        outcome = analysis.compare_jobs(ctx, make_request("job", "mass_op", {Param.JOB_ID: ["A", "C"]}))
        assert outcome.body is None
        assert outcome.messages()[-1] == "At least two jobs with statistics are required for a comparison."
        assert outcome.has_errors

    def test_nothing_selected(self, ctx, make_request):
        outcome = analysis.compare_jobs(ctx, make_request("job", "mass_op"))
        assert outcome.messages() == ["No jobs were selected for comparison."]


class TestExport:
    def test_options_form_first(self, ctx, make_request, stats_jobs):
        outcome = analysis.export_jobs(ctx, make_request("job", "mass_op", {Param.JOB_ID: ["A", "B"]}))
        form = outcome.body
        assert isinstance(form, OptionsForm)
        assert form.hidden_values(Param.JOB_ID) == ["A", "B"]
        assert {c.value for c in form.choices if c.name == Param.EXPORT_STAT} == {"Response Time"}
        assert {c.value for c in form.choices if c.name == Param.EXPORT_PARAMETER} == {"url"}
        assert outcome.raw is None

    def test_confirmed_export_is_tab_separated(self, ctx, make_request, stats_jobs):
        request = make_request(
            "job",
            "mass_op",
            {
                Param.JOB_ID: ["A", "B"],
                Param.EXPORT_FIELD: ["job_id"],
                Param.EXPORT_PARAMETER: ["url"],
                Param.EXPORT_STAT: ["Response Time"],
                Param.CONFIRMED: "Yes",
            },
        )
        outcome = analysis.export_jobs(ctx, request)
        assert outcome.raw.filename == "job_data.txt"
        assert outcome.raw.read_all().decode().splitlines() == [
            "Job ID\turl\tResponse Time Count\tResponse Time Average\tResponse Time Minimum\tResponse Time Maximum",
            "B\thttp://b\t2\t15.000\t10.000\t20.000",
            "A\thttp://a\t2\t15.000\t10.000\t20.000",
        ]

    def test_several_classes_get_headers(self, ctx, make_request, stats_jobs):
        request = make_request(
            "job",
            "mass_op",
            {Param.JOB_ID: ["A", "C"], Param.EXPORT_FIELD: ["job_id"], Param.CONFIRMED: "Yes"},
        )
        text = analysis.export_jobs(ctx, request).raw.read_all().decode()
        assert text == "# loadgen.HttpGetJob\nJob ID\nA\n\n# loadgen.LdapJob\nJob ID\nC\n"

    def test_declined(self, ctx, make_request, stats_jobs):
        request = make_request("job", "mass_op", {Param.JOB_ID: ["A"], Param.CONFIRMED: "No"})
        outcome = analysis.export_jobs(ctx, request)
        assert outcome.messages() == ["No action was taken."]
        assert outcome.raw is None


class TestGraph:
    def test_view_graph_links_each_common_tracker(self, ctx, make_request, stats_jobs):
        outcome = analysis.view_graph(ctx, make_request("job", "view_graph", {Param.JOB_ID: ["A", "B"]}))
        assert outcome.body.view == "graph"
        graph = outcome.body.data["graphs"][0]
        assert graph["tracker_name"] == "Response Time"
        assert graph["params"][Param.JOB_ID] == ["B", "A"]

    def test_graph_without_grapher(self, ctx, make_request, stats_jobs):
        request = make_request("job", "graph", {Param.JOB_ID: ["A"], Param.STAT_NAME: "Response Time"})
        outcome = analysis.graph(ctx, request)
        assert outcome.raw.read_all() == b"No grapher is configured on this server."
        assert outcome.has_errors

    def test_graph_renders_merged_series(self, ctx, make_request, stats_jobs):
        grapher = MagicMock(content_type="image/png")
        grapher.render.return_value = b"\x89PNG"
        ctx.grapher = grapher
        request = make_request(
            "job",
            "graph",
            {Param.JOB_ID: ["A", "B"], Param.STAT_NAME: "Response Time", Param.WIDTH: "800"},
        )
        outcome = analysis.graph(ctx, request)
        assert outcome.raw.content_type == "image/png"
        assert outcome.raw.read_all() == b"\x89PNG"
        grapher.render.assert_called_once()
        args, kwargs = grapher.render.call_args
        assert args[0] == "Response Time"
        assert [job_id for job_id, _ in args[1]] == ["B", "A"]
        assert kwargs == {"width": 800, "height": 480}
