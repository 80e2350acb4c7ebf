"""Read-side views joining requests and posts with current profiles.

Nothing here is stored. Each call looks the counterpart up in the directory
again, so a renamed or re-skilled identity shows up with its current profile
on requests it made long ago.
"""

from __future__ import annotations

from pydantic import BaseModel

from ..core.models import (
    Direction,
    ForumPost,
    Identity,
    Request,
    RequestKind,
    RequestStatus,
    Role,
)
from ..errors import Forbidden, ValidationError
from .directory import IdentityDirectory
from .forum import Forum
from .ledger import RequestLedger


class RequestView(BaseModel):
    request: Request
    direction: Direction
    counterpart: Identity

    @property
    def kind(self) -> RequestKind:
        return self.request.kind

    @property
    def status(self) -> RequestStatus:
        return self.request.status


class PostView(BaseModel):
    post: ForumPost
    author_name: str
    is_liked: bool = False

    @property
    def likes(self) -> int:
        return self.post.likes


class QueryViews:
    def __init__(
        self, directory: IdentityDirectory, ledger: RequestLedger, forum: Forum
    ) -> None:
        self.directory = directory
        self.ledger = ledger
        self.forum = forum

    def _view(self, request: Request, viewer_id: str) -> RequestView:
        return RequestView(
            request=request,
            direction=request.direction_for(viewer_id),
            counterpart=self.directory.get_identity(request.counterpart_of(viewer_id)),
        )

    def requests_for(self, viewer_id: str) -> list[RequestView]:
        return [self._view(r, viewer_id) for r in self.ledger.list_for_identity(viewer_id)]

    def pending_for(self, viewer_id: str) -> list[RequestView]:
        """Requests waiting on ``viewer_id`` to accept or reject."""
        return [
            v
            for v in self.requests_for(viewer_id)
            if v.direction is Direction.RECEIVED and v.status is RequestStatus.PENDING
        ]

    def sent_by(self, viewer_id: str) -> list[RequestView]:
        return [v for v in self.requests_for(viewer_id) if v.direction is Direction.SENT]

    def accepted_for(self, viewer_id: str) -> list[RequestView]:
        return [
            v for v in self.requests_for(viewer_id) if v.status is RequestStatus.ACCEPTED
        ]

    def mentorship_inbox(self, viewer_id: str) -> dict[RequestStatus, list[RequestView]]:
        """Received mentorship requests grouped by status. Mentors only."""
        if self.directory.get_identity(viewer_id).role is not Role.MENTOR:
            raise Forbidden("Only mentors have a mentorship inbox.")
        inbox: dict[RequestStatus, list[RequestView]] = {s: [] for s in RequestStatus}
        for view in self.requests_for(viewer_id):
            if view.direction is Direction.RECEIVED and view.kind is RequestKind.MENTORSHIP:
                inbox[view.status].append(view)
        return inbox

    def forum_feed(
        self, viewer_id: str, limit: int = 20, offset: int = 0
    ) -> list[PostView]:
        if limit < 0 or offset < 0:
            raise ValidationError("limit and offset must not be negative.")
        self.directory.get_identity(viewer_id)
        posts = self.forum.list_posts()[offset : offset + limit]
        return [
            PostView(
                post=post,
                author_name=self.directory.get_identity(post.author_id).display_name,
                is_liked=viewer_id in post.liked_by,
            )
            for post in posts
        ]
