import pytest

from funnel_dashboard.bulk_delete import BulkDeleteBusy, BulkDeleteOrchestrator, BulkDeleteState
from funnel_dashboard.models import Err, ErrorKind
from funnel_dashboard.state import SubscriberTable

from conftest import FakeStoreClient


def make_orchestrator(people, **client_kwargs):
    client = FakeStoreClient(people, **client_kwargs)
    table = SubscriberTable(people)
    return client, table, BulkDeleteOrchestrator(client, table, max_workers=3)


def test_nothing_is_deleted_without_confirmation(people):
    client, table, bulk = make_orchestrator(people)
    table.toggle_row(0)
    prompt = bulk.request()

    assert "1 selected subscriber" in prompt
    assert bulk.state is BulkDeleteState.CONFIRMING
    bulk.cancel()
    assert bulk.state is BulkDeleteState.IDLE
    assert client.deleted == []
    assert table.selection.size() == 1


def test_request_with_empty_selection(people):
    _, _, bulk = make_orchestrator(people)
    with pytest.raises(ValueError):
        bulk.request()
    assert bulk.state is BulkDeleteState.IDLE


def test_second_request_while_confirming_is_refused(people):
    _, table, bulk = make_orchestrator(people)
    table.toggle_row(0)
    bulk.request()
    with pytest.raises(BulkDeleteBusy):
        bulk.request()


def test_confirm_without_request_is_refused(people):
    _, _, bulk = make_orchestrator(people)
    with pytest.raises(BulkDeleteBusy):
        bulk.confirm()


def test_full_success_clears_selection_and_reloads(people):
    client, table, bulk = make_orchestrator(people)
    table.toggle_row(0)
    table.toggle_row(2)
    bulk.request()
    outcome = bulk.confirm()

    assert outcome.status is BulkDeleteState.SUCCESS
    assert outcome.succeeded == 2
    assert {email for email, _ in client.deleted} == {"john@example.com", "michael@example.com"}
    assert all(stamp is not None for _, stamp in client.deleted)
    assert table.selection.size() == 0
    assert len(table.records) == 3
    assert bulk.state is BulkDeleteState.IDLE


def test_partial_failure_reports_each_item(people):
    client, table, bulk = make_orchestrator(people, fail_emails={"michael@example.com"}, missing_emails={"emma@example.com"})
    table.select_all_visible()
    bulk.request()
    outcome = bulk.confirm()

    assert outcome.status is BulkDeleteState.PARTIAL_FAILURE
    assert outcome.succeeded == 3
    assert sorted(outcome.failure_lines()) == [
        "emma@example.com: already deleted",
        "michael@example.com: Could not reach the store",
    ]
    assert "Deleted 3 of 5" in outcome.summary


def test_total_remote_failure(people):
    emails = {p.email for p in people}
    client, table, bulk = make_orchestrator(people, fail_emails=emails)
    table.select_all_visible()
    bulk.request()
    outcome = bulk.confirm()
    assert outcome.status is BulkDeleteState.FAILURE
    assert outcome.succeeded == 0


def test_refresh_failure_is_reported_but_not_fatal(people):
    client, table, bulk = make_orchestrator(people)
    table.toggle_row(0)
    bulk.request()
    client.list_error = Err(ErrorKind.REMOTE, "Request timed out.")
    outcome = bulk.confirm()

    assert outcome.status is BulkDeleteState.SUCCESS
    assert outcome.refresh_error is not None
    assert "could not be refreshed" in outcome.summary
    assert bulk.state is BulkDeleteState.IDLE


def test_all_already_deleted_is_a_partial_failure(people):
    emails = {p.email for p in people[:2]}
    client, table, bulk = make_orchestrator(people, missing_emails=emails)
    table.toggle_row(0)
    table.toggle_row(1)
    bulk.request()
    outcome = bulk.confirm()

    assert outcome.status is BulkDeleteState.PARTIAL_FAILURE
    assert outcome.succeeded == 0
    assert len(table.records) == len(people)
