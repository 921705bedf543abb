import datetime
import json
from http.client import RemoteDisconnected

import pytest
import requests
from urllib3.exceptions import MaxRetryError, NewConnectionError, ProtocolError

from funnel_dashboard import api_client
from funnel_dashboard.api_client import MANUAL_ENTRY_IP, RemoteStoreClient, decode_envelope
from funnel_dashboard.models import ErrorKind


def make_response(payload=None, status=200, text=None):
    response = requests.Response()
    response.status_code = status
    response._content = (text if text is not None else json.dumps(payload)).encode("utf-8")
    return response


class ScriptedPost:
    """Replaces requests.post; plays back responses or raises exceptions in order."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls = []

    def __call__(self, url, data=None, timeout=None):
        self.calls.append({"url": url, "data": dict(data), "timeout": timeout})
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@pytest.fixture
def scripted(monkeypatch):
    def install(*outcomes):
        fake = ScriptedPost(*outcomes)
        monkeypatch.setattr(api_client.requests, "post", fake)
        return fake
    return install


@pytest.fixture
def client(config):
    sleeps = []
    c = RemoteStoreClient(config, sleep=sleeps.append)
    c.sleeps = sleeps
    return c


def test_decode_envelope_uses_error_code_first():
    err = decode_envelope(make_response({"success": False, "message": "whatever", "error": "duplicate_email"}))
    assert err.kind is ErrorKind.DUPLICATE_EMAIL


def test_decode_envelope_falls_back_to_message():
    err = decode_envelope(make_response({"success": False, "message": "Subscriber not found or already deleted"}))
    assert err.kind is ErrorKind.NOT_FOUND


def test_decode_envelope_http_and_body_errors():
    assert decode_envelope(make_response({}, status=404)).message == "HTTP error! status: 404"
    assert decode_envelope(make_response(text="<html>")).kind is ErrorKind.REMOTE


def test_list_subscribers_decodes_and_drops_bad_rows(client, scripted):
    fake = scripted(make_response({"success": True, "subscribers": [
        {"firstName": "John", "email": "john@example.com", "timestamp": "2025-01-10T10:30:00Z", "source": ""},
        {"firstName": "", "email": "anon@example.com", "timestamp": "2025-01-09T10:30:00Z"},
        {"firstName": "Ghost", "email": ""},
        {"firstName": "Bad", "email": "bad@example.com", "timestamp": "not a date"},
    ]}))
    result = client.list_subscribers()

    assert result.ok
    assert [r.email for r in result.value] == ["john@example.com", "anon@example.com"]
    assert result.value[0].source == "Landing Page"
    assert result.value[1].first_name == "Unknown"
    assert fake.calls[0]["data"] == {"action": "getSubscribers"}
    assert fake.calls[0]["timeout"] == client.config.load_timeout


def test_list_subscribers_retries_timeouts_and_5xx(client, scripted):
    fake = scripted(
        requests.Timeout(),
        make_response({}, status=503),
        make_response({"success": True, "subscribers": []}),
    )
    result = client.list_subscribers()
    assert result.ok and result.value == []
    assert len(fake.calls) == 3
    assert len(client.sleeps) == 2


def test_list_subscribers_gives_up_after_max_retries(client, scripted):
    fake = scripted(*[requests.ConnectionError("refused")] * 4)
    result = client.list_subscribers()
    assert not result.ok
    assert result.kind is ErrorKind.REMOTE
    assert len(fake.calls) == client.config.max_retries + 1


def test_add_is_not_retried_after_a_timeout(client, scripted):
    fake = scripted(requests.Timeout())
    result = client.add_subscriber("Jane", "jane@example.com")
    assert not result.ok and result.timed_out
    assert len(fake.calls) == 1


def refused():
    reason = NewConnectionError(None, "Failed to establish a new connection: [Errno 111] Connection refused")
    return requests.ConnectionError(MaxRetryError(None, "/exec", reason=reason))


def aborted():
    return requests.ConnectionError(ProtocolError("Connection aborted.", RemoteDisconnected("closed")))


def test_add_is_retried_when_the_store_was_never_reached(client, scripted):
    fake = scripted(refused(), make_response({"success": True, "message": "ok"}))
    assert client.add_subscriber("Jane", "jane@example.com").ok
    assert len(fake.calls) == 2


def test_add_is_retried_after_a_connect_timeout(client, scripted):
    fake = scripted(requests.ConnectTimeout(), make_response({"success": True, "message": "ok"}))
    assert client.add_subscriber("Jane", "jane@example.com").ok
    assert len(fake.calls) == 2


def test_add_is_not_retried_after_the_connection_drops(client, scripted):
    fake = scripted(aborted(), make_response({"success": False, "error": "duplicate_email",
                                              "message": "Email already subscribed"}))
    result = client.add_subscriber("Jane", "jane@example.com")

    assert result.kind is ErrorKind.REMOTE
    assert len(fake.calls) == 1


def test_delete_is_not_retried_after_the_connection_drops(client, scripted):
    stamp = datetime.datetime(2025, 1, 10, 10, 30, tzinfo=datetime.timezone.utc)
    fake = scripted(aborted(), make_response({"success": False, "error": "not_found", "deletedCount": 0,
                                              "message": "Subscriber not found or already deleted"}))
    result = client.delete_subscriber("john@example.com", stamp)

    assert result.kind is ErrorKind.REMOTE
    assert len(fake.calls) == 1


def test_list_is_retried_after_the_connection_drops(client, scripted):
    fake = scripted(aborted(), make_response({"success": True, "subscribers": []}))
    assert client.list_subscribers().ok
    assert len(fake.calls) == 2


def test_add_validates_before_any_request(client, scripted):
    fake = scripted()
    result = client.add_subscriber("Jane", "jane@")
    assert result.kind is ErrorKind.VALIDATION
    assert fake.calls == []


def test_add_sends_the_expected_fields(client, scripted):
    fake = scripted(make_response({"success": True, "message": "Successfully submitted!"}))
    client.add_subscriber(" Jane ", "jane@example.com", source="Dashboard")
    fields = fake.calls[0]["data"]
    assert fields["action"] == "addSubscriber"
    assert fields["firstName"] == "Jane"
    assert fields["source"] == "Dashboard"
    assert fields["ipAddress"] == MANUAL_ENTRY_IP
    assert "timestamp" in fields


def test_delete_sends_timestamp_and_maps_zero_count(client, scripted):
    stamp = datetime.datetime(2025, 1, 10, 10, 30, tzinfo=datetime.timezone.utc)
    fake = scripted(
        make_response({"success": True, "deletedCount": 1}),
        make_response({"success": True, "deletedCount": 0}),
    )
    assert client.delete_subscriber("john@example.com", stamp).value == 1
    assert fake.calls[0]["data"]["timestamp"] == stamp.isoformat()
    assert client.delete_subscriber("john@example.com", stamp).kind is ErrorKind.NOT_FOUND


def test_check_connection_messages(client, scripted):
    scripted(make_response({"success": True, "subscribers": []}))
    assert client.check_connection() == "🟢 Connected: 0 subscribers in the store"
    scripted(make_response({}, status=500), make_response({}, status=500),
             make_response({}, status=500), make_response({}, status=500))
    assert client.check_connection().startswith("🔴 Connection failed")
