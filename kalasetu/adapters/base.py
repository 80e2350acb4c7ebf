"""Base backend interface shared by the local and HTTP implementations."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from ..core.models import (
    Decision,
    ForumPost,
    Identity,
    Message,
    Request,
    RequestKind,
    Role,
)
from ..data.views import PostView, RequestView


@dataclass(frozen=True)
class Session:
    """The caller identity asserted by the auth provider.

    Passed explicitly to every backend call; ``token`` is what the HTTP
    backend forwards as a bearer credential.
    """

    user_id: str
    token: str = ""


class Backend(ABC):
    """Abstract asynchronous backend for the client application."""

    @abstractmethod
    async def sign_up(
        self,
        session: Session,
        email: str,
        display_name: str,
        role: Role | str,
        **profile,
    ) -> Identity:
        """Register the session's user with the given profile."""

    @abstractmethod
    async def get_profile(self, session: Session) -> Identity:
        """Return the caller's own profile."""

    @abstractmethod
    async def get_user(self, session: Session, user_id: str) -> Identity:
        """Return another participant's profile."""

    @abstractmethod
    async def update_profile(self, session: Session, **fields) -> Identity:
        """Merge ``fields`` into the caller's profile."""

    @abstractmethod
    async def search_users(self, session: Session, skill: str) -> list[Identity]:
        """Participants with a skill containing ``skill``."""

    @abstractmethod
    async def get_points(self, session: Session) -> int:
        """The caller's reputation points."""

    @abstractmethod
    async def send_request(
        self,
        session: Session,
        recipient_id: str,
        message: str,
        kind: RequestKind | str = RequestKind.COLLABORATION,
    ) -> Request:
        """Send a collaboration or mentorship request."""

    @abstractmethod
    async def get_requests(self, session: Session) -> list[RequestView]:
        """Requests sent and received by the caller, newest first."""

    @abstractmethod
    async def respond_to_request(
        self, session: Session, request_id: str, decision: Decision | str
    ) -> Request:
        """Accept or reject a request addressed to the caller."""

    @abstractmethod
    async def send_message(
        self, session: Session, receiver_id: str, text: str
    ) -> Message:
        """Send a chat message."""

    @abstractmethod
    async def get_messages(self, session: Session, peer_id: str) -> list[Message]:
        """The conversation between the caller and ``peer_id``, oldest first."""

    @abstractmethod
    async def get_forum_posts(self, session: Session) -> list[PostView]:
        """The forum feed, newest first."""

    @abstractmethod
    async def create_forum_post(self, session: Session, content: str) -> ForumPost:
        """Publish a forum post."""

    @abstractmethod
    async def like_forum_post(self, session: Session, post_id: str) -> ForumPost:
        """Toggle the caller's like on a post."""
