"""Tests for status, log viewing and request debugging."""

from __future__ import annotations

from jobdesk import __version__
from jobdesk.core.enums import JobState
from jobdesk.ops import status
from jobdesk.ops.context import Param


class TestStatus:
    def test_status_page(self, ctx, make_request, make_job, make_optimizing_job):
        make_job("P")
        make_job("R", state=JobState.RUNNING)
        make_optimizing_job("OJ", ["I1"])
        outcome = status.status(ctx, make_request("status"))
        data = outcome.body.data
        assert outcome.body.view == "status"
        assert data["version"] == __version__
        assert data["uptime"] == "0d 00:00:00"
        assert data["pending_jobs"] == 1
        assert data["running_jobs"] == 1
        assert data["completed_jobs"] == 1
        assert data["optimizing_jobs"] == 1
        assert data["report_generators"] == ["Text"]

    def test_context_stamps_start_and_job_ids(self, ctx, fixed_now):
        assert ctx.started_at == fixed_now
        assert ctx.new_job_id() == "20240301120000-0000001"
        assert ctx.new_job_id() == "20240301120000-0000002"

    def test_status_as_text(self, ctx, make_request):
        text = status.status_as_text(ctx, make_request("status", "status_as_text")).raw.read_all().decode()
        assert f"version: {__version__}\n" in text
        assert "store_backend: memory\n" in text


class TestViewLog:
    def test_not_configured(self, ctx, make_request):
        outcome = status.view_log(ctx, make_request("status", "view_log"))
        assert outcome.raw.read_all() == b"No log file configured.\n"

    def test_missing_file(self, ctx, make_request, tmp_path):
        path = tmp_path / "absent.log"
        ctx.settings = ctx.settings.model_copy(update={"log_file": str(path)})
        outcome = status.view_log(ctx, make_request("status", "view_log"))
        assert outcome.raw.read_all().decode() == f"Log file {path} does not exist.\n"

    def test_tail_and_view_all(self, ctx, make_request, tmp_path):
        path = tmp_path / "server.log"
        path.write_text("".join(f"line {i}\n" for i in range(1, 6)))
        ctx.settings = ctx.settings.model_copy(update={"log_file": str(path), "log_view_lines": 3})

        tail = status.view_log(ctx, make_request("status", "view_log"))
        assert tail.raw.read_all() == b"line 3\nline 4\nline 5\n"

        two = status.view_log(ctx, make_request("status", "view_log", {Param.VIEW_LINES: "2"}))
        assert two.raw.read_all() == b"line 4\nline 5\n"

        everything = status.view_log(ctx, make_request("status", "view_log", {Param.VIEW_ALL: "on"}))
        assert everything.raw.read_all().decode().count("\n") == 5


class TestDebugRequest:
    def test_echoes_the_request(self, secured_ctx, make_request, admin):
        request = make_request("status", "debug_request", {"x": ["1", "2"]}, principal=admin)
        outcome = status.debug_request(secured_ctx, request)
        assert outcome.body.view == "debug"
        assert outcome.body.data["params"] == {"x": ["1", "2"]}
        assert outcome.body.data["principal"] == "admin"
        assert outcome.body.data["capabilities"] == ["full-access"]

    def test_needs_full_access(self, secured_ctx, make_request, viewer):
        outcome = status.debug_request(secured_ctx, make_request("status", "debug_request", principal=viewer))
        assert outcome.body.kind == "access_denied"
