"""Tests for the batch mutation executor."""

from __future__ import annotations

from jobdesk.core.errors import BusinessRuleError
from jobdesk.core.result import Err, Ok
from jobdesk.ops.batch import apply_batch
from jobdesk.ops.outcome import StatusLevel


class TestApplyBatch:
    """One line per identifier, in order, failures isolated."""

    def test_one_line_per_id_in_order(self, make_request):
        lines = apply_batch(["A", "B", "C"], lambda i: Ok(f"Done {i}"), make_request("job"))
        assert [line.message for line in lines] == ["Done A", "Done B", "Done C"]
        assert [line.entity_id for line in lines] == ["A", "B", "C"]
        assert {line.level for line in lines} == {StatusLevel.SUCCESS}

    def test_failure_does_not_stop_siblings(self, make_request):
        def mutation(entity_id):
            if entity_id == "B":
                return Err(BusinessRuleError("Job B is running"))
            return Ok(f"Done {entity_id}")

        lines = apply_batch(["A", "B", "C"], mutation, make_request("job"))
        assert [line.level for line in lines] == [StatusLevel.SUCCESS, StatusLevel.ERROR, StatusLevel.SUCCESS]
        assert lines[1].message == "Job B is running"

    def test_raising_mutation_is_an_item_failure(self, make_request):
        def mutation(entity_id):
            if entity_id == "A":
                raise RuntimeError("driver exploded")
            return Ok("fine")

        lines = apply_batch(["A", "B"], mutation, make_request("job"))
        assert lines[0].level is StatusLevel.ERROR
        assert lines[0].message == "driver exploded"
        assert lines[1].message == "fine"

    def test_prefilter_skips_without_mutating(self, make_request):
        mutated = []

        def mutation(entity_id):
            mutated.append(entity_id)
            return Ok(entity_id)

        lines = apply_batch(
            ["A", "B"],
            mutation,
            make_request("job"),
            prefilter=lambda i: "skip A" if i == "A" else None,
        )
        assert mutated == ["B"]
        assert lines[0].level is StatusLevel.WARNING
        assert lines[0].message == "skip A"

    def test_lines_are_pushed_to_the_listener_as_produced(self, make_request):
        seen = []
        visible_before = []
        request = make_request("job", status_listener=seen.append)

        def mutation(entity_id):
            visible_before.append(len(seen))
            return Ok(entity_id)

        lines = apply_batch(["A", "B"], mutation, request)
        assert visible_before == [0, 1]
        assert seen == lines

    def test_empty_batch(self, make_request):
        assert apply_batch([], lambda i: Ok(i), make_request("job")) == []
