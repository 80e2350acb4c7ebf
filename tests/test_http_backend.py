"""Tests for the :mod:`kalasetu.adapters.http` module."""

import asyncio
import datetime
import json
from datetime import UTC
from typing import Any

import httpx
import pytest

from kalasetu.adapters.base import Session
from kalasetu.adapters.http import HTTPBackend
from kalasetu.core.models import (
    Direction,
    Identity,
    Message,
    Request,
    RequestKind,
    RequestStatus,
    Role,
)
from kalasetu.data.views import RequestView
from kalasetu.errors import (
    BackendError,
    DuplicateEmail,
    Forbidden,
    InvalidRole,
    InvalidTransition,
    NotFound,
    SelfRequest,
    Timeout,
    ValidationError,
)

API = "https://api.example.com/api"
SESSION = Session(user_id="uid-asha", token="TOKEN")

ASHA = Identity(id="uid-asha", email="asha@example.com", display_name="Asha", role=Role.ARTISAN)
RAVI = Identity(
    id="uid-ravi",
    email="ravi@example.com",
    display_name="Ravi",
    role=Role.MENTOR,
    skills=["Woodworking"],
    bio="Carpenter",
)


def run(coro: Any) -> Any:
    """Run an async coroutine synchronously for tests."""
    return asyncio.run(coro)


def backend_for(handler) -> HTTPBackend:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HTTPBackend(API + "/", client=client)


def test_search_sends_bearer_token_and_query() -> None:
    """The session token and trimmed skill are sent."""
    captured: dict[str, httpx.Request] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["request"] = request
        return httpx.Response(200, json=[RAVI.model_dump(mode="json")])

    backend = backend_for(handler)
    results = run(backend.search_users(SESSION, " wood "))

    request = captured["request"]
    assert request.headers["Authorization"] == "Bearer TOKEN"
    assert request.url.path == "/api/users/search"
    assert request.url.params["skill"] == "wood"
    assert results == [RAVI]


def test_search_rejects_blank_skill_locally() -> None:
    """A blank skill never reaches the server."""

    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    with pytest.raises(ValidationError):
        run(backend_for(handler).search_users(SESSION, "  "))


def test_send_request_payload_names_the_kind() -> None:
    """The request kind travels in the payload."""

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.method == "POST"
        assert request.url.path == "/api/requests/send"
        body = json.loads(request.content)
        assert body == {
            "kind": "mentorship",
            "recipient_id": "uid-ravi",
            "message": "help me",
        }
        created = Request(
            kind=RequestKind.MENTORSHIP,
            sender_id="uid-asha",
            recipient_id="uid-ravi",
            message="help me",
        )
        return httpx.Response(201, json=created.model_dump(mode="json"))

    request = run(
        backend_for(handler).send_request(SESSION, "uid-ravi", "help me", "mentorship")
    )
    assert request.kind is RequestKind.MENTORSHIP
    assert request.status is RequestStatus.PENDING


def test_respond_and_list_requests() -> None:
    """Request views and responses are parsed into models."""
    stored = Request(sender_id="uid-ravi", recipient_id="uid-asha", message="collab?")

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/api/requests":
            view = RequestView(request=stored, direction=Direction.RECEIVED, counterpart=RAVI)
            return httpx.Response(200, json=[view.model_dump(mode="json")])
        assert request.url.path == f"/api/requests/respond/{stored.id}"
        assert json.loads(request.content) == {"response": "accept"}
        accepted = stored.model_copy(update={"status": RequestStatus.ACCEPTED})
        return httpx.Response(200, json=accepted.model_dump(mode="json"))

    backend = backend_for(handler)
    views = run(backend.get_requests(SESSION))
    assert views[0].direction is Direction.RECEIVED
    assert views[0].counterpart == RAVI

    accepted = run(backend.respond_to_request(SESSION, stored.id, "accept"))
    assert accepted.status is RequestStatus.ACCEPTED

    with pytest.raises(ValidationError):
        run(backend.respond_to_request(SESSION, stored.id, "maybe"))


def test_messages_are_sorted_by_creation_time() -> None:
    """Messages are re-sorted oldest first whatever the wire order."""
    base = datetime.datetime(2024, 1, 15, 10, 0, tzinfo=UTC)
    early = Message(sender_id="uid-asha", receiver_id="uid-ravi", text="first", created_at=base, seq=1)
    late = Message(
        sender_id="uid-ravi",
        receiver_id="uid-asha",
        text="second",
        created_at=base + datetime.timedelta(minutes=1),
        seq=2,
    )

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/messages/uid-ravi"
        return httpx.Response(
            200, json=[late.model_dump(mode="json"), early.model_dump(mode="json")]
        )

    messages = run(backend_for(handler).get_messages(SESSION, "uid-ravi"))
    assert [m.text for m in messages] == ["first", "second"]


def test_sign_up_validates_role_before_sending() -> None:
    """An unknown role fails locally with ``InvalidRole``."""

    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        assert body["id"] == "uid-asha"
        assert body["role"] == "artisan"
        return httpx.Response(201, json=ASHA.model_dump(mode="json"))

    backend = backend_for(handler)
    assert run(backend.sign_up(SESSION, "asha@example.com", "Asha", Role.ARTISAN)) == ASHA
    with pytest.raises(InvalidRole):
        run(backend.sign_up(SESSION, "asha@example.com", "Asha", "admin"))


@pytest.mark.parametrize(
    ("status", "body", "error"),
    [
        (400, {"detail": "Message is required"}, ValidationError),
        (400, {"detail": "nope", "error": "self_request"}, SelfRequest),
        (401, {"detail": "Not authenticated"}, Forbidden),
        (403, {"detail": "Only the recipient can respond"}, Forbidden),
        (404, {"detail": "User not found"}, NotFound),
        (409, {"detail": "Request already accepted"}, InvalidTransition),
        (409, {"detail": "Email already registered"}, DuplicateEmail),
        (400, {"detail": "Email already registered", "error": "duplicate_email"}, DuplicateEmail),
        (422, {"detail": []}, ValidationError),
    ],
)
def test_error_statuses_map_to_typed_errors(status, body, error) -> None:
    """Error codes and statuses map to typed errors."""

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status, json=body)

    with pytest.raises(error):
        run(backend_for(handler).get_user(SESSION, "uid-ravi"))


def test_unexpected_status_is_backend_error() -> None:
    """Unmapped statuses keep their status code."""

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, text="boom")

    with pytest.raises(BackendError) as excinfo:
        run(backend_for(handler).get_profile(SESSION))
    assert excinfo.value.status_code == 500


def test_malformed_payload_is_backend_error() -> None:
    """A body of the wrong shape is a backend error."""

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"unexpected": True})

    with pytest.raises(BackendError):
        run(backend_for(handler).get_profile(SESSION))


@pytest.mark.parametrize(
    ("status", "text"),
    [(204, ""), (200, "<html>maintenance</html>")],
)
def test_success_without_json_body_is_backend_error(status, text) -> None:
    """An empty or non-JSON success body surfaces as a backend error."""

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status, text=text)

    with pytest.raises(BackendError) as excinfo:
        run(backend_for(handler).get_profile(SESSION))
    assert excinfo.value.status_code == status


def test_timeout_is_distinct_from_not_found() -> None:
    """A transport timeout raises ``Timeout``."""

    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(Timeout):
        run(backend_for(handler).get_requests(SESSION))


def test_points_and_close() -> None:
    """Points are read from the wire and the client closes cleanly."""

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/user/points"
        return httpx.Response(200, json={"points": 42})

    backend = backend_for(handler)
    assert run(backend.get_points(SESSION)) == 42
    run(backend.close())
