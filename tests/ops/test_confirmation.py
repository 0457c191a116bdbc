"""Tests for the confirmation state machine."""

from __future__ import annotations

from jobdesk.ops.confirmation import NO_ACTION_TAKEN, confirm_batch, plain_link, with_options
from jobdesk.ops.context import Param
from jobdesk.ops.outcome import ConfirmationForm, OptionsForm, Outcome, Redirect, StatusLevel, StatusLine

LIST_VIEW = Redirect.to("job", "view_real", job_folder="Nightly")


def _confirm(request, ids, executed):
    def execute(selected):
        executed.append(list(selected))
        return [StatusLine.success(f"Deleted job {i}", i) for i in selected]

    return confirm_batch(
        request,
        ids=ids,
        id_param=Param.JOB_ID,
        title="Delete Jobs",
        prompt="Are you sure that you want to delete the following jobs?",
        execute=execute,
        list_view=LIST_VIEW,
        empty_message="No jobs were selected.",
        carry=(Param.MAKE_INTERDEPENDENT,),
    )


class TestConfirmBatch:
    """empty / absent / No / Yes."""

    def test_empty_selection_is_an_error_without_a_form(self, make_request):
        executed = []
        outcome = _confirm(make_request("job", "mass_op", {Param.CONFIRMED: "Yes"}), [], executed)
        assert outcome.messages() == ["No jobs were selected."]
        assert outcome.status_lines[0].level is StatusLevel.ERROR
        assert outcome.body is None
        assert outcome.redirect == LIST_VIEW
        assert executed == []

    def test_absent_token_renders_a_form_and_mutates_nothing(self, make_request):
        executed = []
        request = make_request(
            "job",
            "mass_op",
            {
                Param.SUBMIT: "Delete",
                Param.JOB_ID: ["A", "B"],
                Param.JOB_FOLDER: "Nightly",
                Param.MAKE_INTERDEPENDENT: "on",
            },
        )
        outcome = _confirm(request, ["A", "B"], executed)

        assert executed == []
        form = outcome.body
        assert isinstance(form, ConfirmationForm)
        assert form.answers == ("Yes", "No")
        assert [link.label for link in form.links] == ["A", "B"]
        assert form.hidden_values(Param.JOB_ID) == ["A", "B"]
        assert form.hidden_values(Param.CATEGORY) == ["job"]
        assert form.hidden_values(Param.OPERATION) == ["mass_op"]
        assert form.hidden_values(Param.SUBMIT) == ["Delete"]
        assert form.hidden_values(Param.JOB_FOLDER) == ["Nightly"]
        assert form.hidden_values(Param.MAKE_INTERDEPENDENT) == ["on"]

    def test_no_takes_no_action(self, make_request):
        executed = []
        request = make_request("job", "mass_op", {Param.CONFIRMED: "No"})
        outcome = _confirm(request, ["A"], executed)
        assert executed == []
        assert outcome.messages() == [NO_ACTION_TAKEN]
        assert outcome.status_lines[0].level is StatusLevel.INFO
        assert outcome.redirect == LIST_VIEW

    def test_any_other_answer_counts_as_no(self, make_request):
        executed = []
        _confirm(make_request("job", "mass_op", {Param.CONFIRMED: "maybe"}), ["A"], executed)
        assert executed == []

    def test_yes_executes_once_over_all_ids(self, make_request):
        executed = []
        request = make_request("job", "mass_op", {Param.CONFIRMED: "yes"})
        outcome = _confirm(request, ["A", "B", "C"], executed)
        assert executed == [["A", "B", "C"]]
        assert outcome.messages() == ["Deleted job A", "Deleted job B", "Deleted job C"]
        assert outcome.redirect == LIST_VIEW

    def test_plain_link(self, make_request):
        outcome = confirm_batch(
            make_request("job_class", "delete_job_class"),
            ids=["loadgen.Job"],
            id_param=Param.JOB_CLASS,
            title="t",
            prompt="p",
            execute=lambda ids: [],
            list_view=LIST_VIEW,
            empty_message="none",
            link=plain_link,
        )
        assert outcome.body.links[0].category == ""


class TestWithOptions:
    def _run(self, request, ready):
        return with_options(
            request,
            ready=ready,
            form=lambda: OptionsForm(title="Export Job Data", prompt="Pick"),
            execute=lambda: Outcome(status_lines=[StatusLine.success("exported")]),
            list_view=LIST_VIEW,
        )

    def test_form_until_ready(self, make_request):
        assert isinstance(self._run(make_request("job", "mass_op"), ready=False).body, OptionsForm)

    def test_executes_when_ready(self, make_request):
        assert self._run(make_request("job", "mass_op"), ready=True).messages() == ["exported"]

    def test_no_cancels(self, make_request):
        outcome = self._run(make_request("job", "mass_op", {Param.CONFIRMED: "No"}), ready=True)
        assert outcome.messages() == [NO_ACTION_TAKEN]
        assert outcome.redirect == LIST_VIEW
