"""JSON-over-HTTP backend implementing :class:`~kalasetu.adapters.base.Backend`.

It uses :mod:`httpx` to talk to the KalaSetu REST API, which keeps the
implementation fully asynchronous. Error responses are turned back into the
typed exceptions from :mod:`kalasetu.errors`. The server may name the kind
explicitly with an ``error`` field in the JSON body; otherwise the status
code decides.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx
import pydantic

from ..config import DEFAULT_TIMEOUT
from ..core.models import Decision, ForumPost, Identity, Message, Request, RequestKind, Role
from ..data.views import PostView, RequestView
from ..errors import (
    BackendError,
    DuplicateEmail,
    Forbidden,
    InvalidRole,
    InvalidTransition,
    KalaSetuError,
    NotFound,
    SelfRequest,
    Timeout,
    ValidationError,
)
from .base import Backend, Session

log = logging.getLogger(__name__)

ERROR_CODES: dict[str, type[KalaSetuError]] = {
    "validation_error": ValidationError,
    "invalid_role": InvalidRole,
    "self_request": SelfRequest,
    "not_found": NotFound,
    "forbidden": Forbidden,
    "invalid_transition": InvalidTransition,
    "duplicate_email": DuplicateEmail,
}

STATUS_ERRORS: dict[int, type[KalaSetuError]] = {
    400: ValidationError,
    401: Forbidden,
    403: Forbidden,
    404: NotFound,
    409: InvalidTransition,
    422: ValidationError,
}


def raise_for_status(response: httpx.Response) -> None:
    """Raise the typed error matching an unsuccessful ``response``."""
    if response.is_success:
        return
    try:
        body = response.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}
    detail = str(body.get("detail") or response.reason_phrase or "request failed")

    error = ERROR_CODES.get(str(body.get("error", "")))
    if error is None and response.status_code == 409 and "email" in detail.lower():
        error = DuplicateEmail
    if error is None:
        error = STATUS_ERRORS.get(response.status_code)
    if error is None:
        raise BackendError(
            f"{response.request.method} {response.request.url.path} "
            f"failed with {response.status_code}: {detail}",
            status_code=response.status_code,
        )
    raise error(detail)


def json_body(response: httpx.Response) -> Any:
    """Decode a successful response body, which must be JSON."""
    try:
        return response.json()
    except ValueError as exc:
        raise BackendError(
            f"{response.request.method} {response.request.url.path} "
            f"returned a non-JSON body (status {response.status_code})",
            status_code=response.status_code,
        ) from exc


def parse(model: type[pydantic.BaseModel], data: Any) -> Any:
    try:
        return model.model_validate(data)
    except pydantic.ValidationError as exc:
        raise BackendError(f"Malformed {model.__name__} in response: {exc}") from exc


class HTTPBackend(Backend):
    """Backend that sends requests to the KalaSetu REST API."""

    def __init__(
        self,
        api_base: str,
        client: httpx.AsyncClient | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        """Store the API base URL and optional HTTP ``client``."""
        self.api_base = api_base.rstrip("/")
        self.client = client or httpx.AsyncClient()
        self.timeout = timeout

    async def _request(
        self, session: Session, method: str, endpoint: str, **kwargs: Any
    ) -> Any:
        headers = {"Authorization": f"Bearer {session.token}"} if session.token else {}
        url = f"{self.api_base}{endpoint}"
        try:
            response = await self.client.request(
                method, url, headers=headers, timeout=self.timeout, **kwargs
            )
        except httpx.TimeoutException as exc:
            log.warning("%s %s timed out after %ss", method, endpoint, self.timeout)
            raise Timeout(f"{method} {endpoint} timed out after {self.timeout}s") from exc
        raise_for_status(response)
        return json_body(response)

    # ------------------------------------------------------------------
    # Users
    async def sign_up(
        self,
        session: Session,
        email: str,
        display_name: str,
        role: Role | str,
        **profile,
    ) -> Identity:
        try:
            role = Role(role)
        except ValueError:
            raise InvalidRole(f"Unknown role: {role!r}") from None
        payload = {
            "id": session.user_id,
            "email": email,
            "display_name": display_name,
            "role": role.value,
            **profile,
        }
        data = await self._request(session, "POST", "/users/signup", json=payload)
        return parse(Identity, data)

    async def get_profile(self, session: Session) -> Identity:
        return parse(Identity, await self._request(session, "GET", "/users/profile"))

    async def get_user(self, session: Session, user_id: str) -> Identity:
        return parse(Identity, await self._request(session, "GET", f"/users/{user_id}"))

    async def update_profile(self, session: Session, **fields) -> Identity:
        data = await self._request(session, "POST", "/users/profile", json=fields)
        return parse(Identity, data)

    async def search_users(self, session: Session, skill: str) -> list[Identity]:
        if not skill or not skill.strip():
            raise ValidationError("Please enter a skill to search for.")
        data = await self._request(
            session, "GET", "/users/search", params={"skill": skill.strip()}
        )
        return [parse(Identity, item) for item in data]

    async def get_points(self, session: Session) -> int:
        data = await self._request(session, "GET", "/user/points")
        try:
            return int(data["points"])
        except (KeyError, TypeError, ValueError) as exc:
            raise BackendError(f"Malformed points response: {data!r}") from exc

    # ------------------------------------------------------------------
    # Requests
    async def send_request(
        self,
        session: Session,
        recipient_id: str,
        message: str,
        kind: RequestKind | str = RequestKind.COLLABORATION,
    ) -> Request:
        try:
            kind = RequestKind(kind)
        except ValueError:
            raise ValidationError(f"Unknown request kind: {kind!r}") from None
        payload = {
            "kind": kind.value,
            "recipient_id": recipient_id,
            "message": message,
        }
        data = await self._request(session, "POST", "/requests/send", json=payload)
        return parse(Request, data)

    async def get_requests(self, session: Session) -> list[RequestView]:
        data = await self._request(session, "GET", "/requests")
        return [parse(RequestView, item) for item in data]

    async def respond_to_request(
        self, session: Session, request_id: str, decision: Decision | str
    ) -> Request:
        try:
            decision = Decision(decision)
        except ValueError:
            raise ValidationError(f"Invalid decision: {decision!r}") from None
        data = await self._request(
            session,
            "POST",
            f"/requests/respond/{request_id}",
            json={"response": decision.value},
        )
        return parse(Request, data)

    # ------------------------------------------------------------------
    # Messages
    async def send_message(
        self, session: Session, receiver_id: str, text: str
    ) -> Message:
        data = await self._request(
            session,
            "POST",
            "/messages",
            json={"receiver_id": receiver_id, "text": text},
        )
        return parse(Message, data)

    async def get_messages(self, session: Session, peer_id: str) -> list[Message]:
        data = await self._request(session, "GET", f"/messages/{peer_id}")
        messages = [parse(Message, item) for item in data]
        # the wire makes no ordering promise
        messages.sort(key=lambda m: m.order_key)
        return messages

    # ------------------------------------------------------------------
    # Forum
    async def get_forum_posts(self, session: Session) -> list[PostView]:
        data = await self._request(session, "GET", "/forum/posts")
        return [parse(PostView, item) for item in data]

    async def create_forum_post(self, session: Session, content: str) -> ForumPost:
        data = await self._request(
            session, "POST", "/forum/posts", json={"content": content}
        )
        return parse(ForumPost, data)

    async def like_forum_post(self, session: Session, post_id: str) -> ForumPost:
        data = await self._request(session, "POST", f"/forum/posts/{post_id}/like")
        return parse(ForumPost, data)

    async def close(self) -> None:
        """Close the underlying :class:`httpx.AsyncClient`."""
        await self.client.aclose()
