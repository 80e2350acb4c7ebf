"""Community forum posts."""

from __future__ import annotations

import datetime
import logging
from collections.abc import Callable

from ..core.models import ForumPost, utcnow
from ..core.storage import JSONStorage
from ..errors import NotFound, ValidationError
from .directory import IdentityDirectory

log = logging.getLogger(__name__)


class Forum:
    def __init__(
        self,
        storage: JSONStorage,
        directory: IdentityDirectory,
        clock: Callable[[], datetime.datetime] = utcnow,
    ) -> None:
        self.storage = storage
        self.directory = directory
        self.clock = clock

    def create_post(self, author_id: str, content: str) -> ForumPost:
        content = (content or "").strip()
        if not content:
            raise ValidationError("Please write something before posting.")
        self.directory.get_identity(author_id)
        post = self.storage.insert(
            self.storage.posts,
            ForumPost(author_id=author_id, content=content, created_at=self.clock()),
        )
        log.info("Forum post %s by %s", post.id, author_id)
        return post

    def get_post(self, post_id: str) -> ForumPost:
        post = self.storage.posts.get(post_id)
        if post is None:
            raise NotFound(f"Post {post_id} not found.")
        return post

    def toggle_like(self, post_id: str, user_id: str) -> ForumPost:
        """Like ``post_id`` for ``user_id``, or remove the like if already given."""
        self.directory.get_identity(user_id)
        with self.storage.lock:
            post = self.get_post(post_id)
            if user_id in post.liked_by:
                liked_by = [uid for uid in post.liked_by if uid != user_id]
            else:
                liked_by = [*post.liked_by, user_id]
            return self.storage.replace(
                self.storage.posts, post.model_copy(update={"liked_by": liked_by})
            )

    def list_posts(self) -> list[ForumPost]:
        posts = self.storage.rows(self.storage.posts)
        posts.sort(key=lambda p: (p.created_at, p.seq), reverse=True)
        return posts
