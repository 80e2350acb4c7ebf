"""Wiring of the directory, ledger, conversations and forum over one storage."""

from __future__ import annotations

import datetime
from collections.abc import Callable
from pathlib import Path

from ..core.models import utcnow
from ..core.storage import JSONStorage
from .conversations import ConversationStore
from .directory import IdentityDirectory
from .forum import Forum
from .ledger import RequestLedger
from .views import QueryViews


class Engine:
    def __init__(
        self,
        storage: JSONStorage,
        clock: Callable[[], datetime.datetime] = utcnow,
    ) -> None:
        self.storage = storage
        self.directory = IdentityDirectory(storage, clock)
        self.ledger = RequestLedger(storage, self.directory, clock)
        self.conversations = ConversationStore(storage, self.directory, clock)
        self.forum = Forum(storage, self.directory, clock)
        self.views = QueryViews(self.directory, self.ledger, self.forum)

    @classmethod
    def open(cls, path: Path | str | None = None, **kwargs) -> Engine:
        """Create an engine backed by the JSON file at ``path`` (memory if ``None``)."""
        return cls(JSONStorage(path), **kwargs)
