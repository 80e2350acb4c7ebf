"""In-process backend running the engine behind the async interface.

Engine calls run in a worker thread so that the configured timeout can
interrupt the wait. A call that times out may still complete on the engine;
its result is discarded, just as with a remote backend.
"""

from __future__ import annotations

import asyncio
import functools
import logging
from collections.abc import Callable
from typing import Any

from ..config import DEFAULT_TIMEOUT
from ..core.models import Decision, ForumPost, Identity, Message, Request, RequestKind, Role
from ..data.conversations import Subscription
from ..data.engine import Engine
from ..data.views import PostView, RequestView
from ..errors import Timeout
from .base import Backend, Session

log = logging.getLogger(__name__)


class LocalBackend(Backend):
    """Backend bound directly to an :class:`~kalasetu.data.engine.Engine`."""

    def __init__(self, engine: Engine, timeout: float = DEFAULT_TIMEOUT) -> None:
        self.engine = engine
        self.timeout = timeout

    async def _call(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        call = functools.partial(fn, *args, **kwargs)
        try:
            return await asyncio.wait_for(asyncio.to_thread(call), self.timeout)
        except asyncio.TimeoutError:
            log.warning("%s timed out after %ss", fn.__name__, self.timeout)
            raise Timeout(f"{fn.__name__} timed out after {self.timeout}s") from None

    # ------------------------------------------------------------------
    async def sign_up(
        self,
        session: Session,
        email: str,
        display_name: str,
        role: Role | str,
        **profile,
    ) -> Identity:
        return await self._call(
            self.engine.directory.create_identity,
            email,
            display_name,
            role,
            identity_id=session.user_id,
            **profile,
        )

    async def get_profile(self, session: Session) -> Identity:
        return await self._call(self.engine.directory.get_identity, session.user_id)

    async def get_user(self, session: Session, user_id: str) -> Identity:
        return await self._call(self.engine.directory.get_identity, user_id)

    async def update_profile(self, session: Session, **fields) -> Identity:
        return await self._call(
            self.engine.directory.update_profile,
            session.user_id,
            session.user_id,
            **fields,
        )

    async def search_users(self, session: Session, skill: str) -> list[Identity]:
        return await self._call(self.engine.directory.search_by_skill, skill)

    async def get_points(self, session: Session) -> int:
        return await self._call(self.engine.directory.get_points, session.user_id)

    async def send_request(
        self,
        session: Session,
        recipient_id: str,
        message: str,
        kind: RequestKind | str = RequestKind.COLLABORATION,
    ) -> Request:
        return await self._call(
            self.engine.ledger.create_request,
            session.user_id,
            recipient_id,
            message,
            kind,
        )

    async def get_requests(self, session: Session) -> list[RequestView]:
        return await self._call(self.engine.views.requests_for, session.user_id)

    async def respond_to_request(
        self, session: Session, request_id: str, decision: Decision | str
    ) -> Request:
        return await self._call(
            self.engine.ledger.respond, request_id, session.user_id, decision
        )

    async def send_message(
        self, session: Session, receiver_id: str, text: str
    ) -> Message:
        return await self._call(
            self.engine.conversations.send_message, session.user_id, receiver_id, text
        )

    async def get_messages(self, session: Session, peer_id: str) -> list[Message]:
        return await self._call(
            self.engine.conversations.get_conversation, session.user_id, peer_id
        )

    async def get_forum_posts(self, session: Session) -> list[PostView]:
        return await self._call(self.engine.views.forum_feed, session.user_id)

    async def create_forum_post(self, session: Session, content: str) -> ForumPost:
        return await self._call(self.engine.forum.create_post, session.user_id, content)

    async def like_forum_post(self, session: Session, post_id: str) -> ForumPost:
        return await self._call(self.engine.forum.toggle_like, post_id, session.user_id)

    def subscribe(self, session: Session, peer_id: str) -> Subscription:
        """Follow new messages between the caller and ``peer_id``."""
        return self.engine.conversations.subscribe(session.user_id, peer_id)
