"""Simple JSON-backed storage for KalaSetu data models."""

from __future__ import annotations

import json
import logging
import os
import threading
from pathlib import Path
from typing import TypeVar

from pydantic import BaseModel

from .models import ForumPost, Identity, Message, Request

log = logging.getLogger(__name__)

Row = TypeVar("Row", Identity, Request, Message, ForumPost)


class JSONStorage:
    """Persist identities, requests, messages and forum posts.

    Data is persisted to a single JSON file on every mutation which keeps the
    implementation simple while providing durability across process restarts.
    With ``path=None`` nothing is written and the storage lives in memory.

    Callers that need a check-then-write step to be atomic hold ``lock``
    around it; every mutation helper takes it as well.
    """

    def __init__(self, path: Path | str | None = None) -> None:
        """Initialise storage using the JSON file at ``path``."""
        self.path = Path(path) if path is not None else None
        self.lock = threading.RLock()
        self.identities: dict[str, Identity] = {}
        self.requests: dict[str, Request] = {}
        self.messages: dict[str, Message] = {}
        self.posts: dict[str, ForumPost] = {}
        self._seq = 0
        if self.path is not None and self.path.exists():
            self._load()
        else:
            self.save()

    # ------------------------------------------------------------------
    # Internal helpers
    def _load(self) -> None:
        data = json.loads(self.path.read_text(encoding="utf-8"))
        self.identities = {
            item["id"]: Identity(**item) for item in data.get("identities", [])
        }
        self.requests = {item["id"]: Request(**item) for item in data.get("requests", [])}
        self.messages = {item["id"]: Message(**item) for item in data.get("messages", [])}
        self.posts = {item["id"]: ForumPost(**item) for item in data.get("posts", [])}
        self._seq = max(
            (
                row.seq
                for table in (self.identities, self.requests, self.messages, self.posts)
                for row in table.values()
            ),
            default=0,
        )
        log.debug("Loaded %d identities from %s", len(self.identities), self.path)

    def _to_dict(self) -> dict:
        def dump(table: dict[str, BaseModel]) -> list[dict]:
            return [row.model_dump(mode="json") for row in table.values()]

        return {
            "identities": dump(self.identities),
            "requests": dump(self.requests),
            "messages": dump(self.messages),
            "posts": dump(self.posts),
        }

    def save(self) -> None:
        """Persist the current state atomically."""
        if self.path is None:
            return
        tmp = self.path.with_name(self.path.name + ".tmp")
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(self._to_dict(), f, indent=2, ensure_ascii=False)
        os.replace(tmp, self.path)

    def _commit(self, table: dict[str, Row], row: Row) -> Row:
        previous = table.get(row.id)
        table[row.id] = row
        try:
            self.save()
        except OSError:
            # leave memory exactly as it was before the failed write
            if previous is None:
                del table[row.id]
            else:
                table[row.id] = previous
            raise
        return row

    # ------------------------------------------------------------------
    # Mutations
    def insert(self, table: dict[str, Row], row: Row) -> Row:
        """Stamp ``row`` with the next sequence number and persist it."""
        with self.lock:
            stamped = row.model_copy(update={"seq": self._seq + 1})
            self._commit(table, stamped)
            self._seq += 1
            return stamped

    def replace(self, table: dict[str, Row], row: Row) -> Row:
        """Overwrite an existing row with ``row`` and persist it."""
        with self.lock:
            if row.id not in table:
                raise KeyError(row.id)
            return self._commit(table, row)

    def rows(self, table: dict[str, Row]) -> list[Row]:
        """A point-in-time copy of ``table``'s rows, safe to filter without the lock."""
        with self.lock:
            return list(table.values())
