"""Data models for KalaSetu's core entities.

The models are implemented using :mod:`pydantic` so that they provide
runtime validation and convenient serialisation to and from dictionaries.
Every stored row carries a ``seq`` number assigned by the storage layer on
insert; it breaks ties between rows created within the same timestamp.
"""

from __future__ import annotations

import datetime
import enum
import uuid
from datetime import UTC

from pydantic import BaseModel, ConfigDict, Field


def utcnow() -> datetime.datetime:
    return datetime.datetime.now(tz=UTC)


def new_id() -> str:
    return uuid.uuid4().hex


class Role(str, enum.Enum):
    ARTISAN = "artisan"
    MENTOR = "mentor"


class RequestStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class RequestKind(str, enum.Enum):
    COLLABORATION = "collaboration"
    MENTORSHIP = "mentorship"


class Decision(str, enum.Enum):
    ACCEPT = "accept"
    REJECT = "reject"

    @property
    def status(self) -> RequestStatus:
        if self is Decision.ACCEPT:
            return RequestStatus.ACCEPTED
        return RequestStatus.REJECTED


class Direction(str, enum.Enum):
    SENT = "sent"
    RECEIVED = "received"


class Identity(BaseModel):
    """A registered participant.

    Attributes
    ----------
    id:
        Unique identifier. Supplied by the auth provider or a random hex UUID.
    email:
        Login email, stored lower-cased; unique across the directory.
    display_name:
        Name shown to other participants.
    role:
        ``artisan`` or ``mentor``. Fixed at sign-up.
    skills:
        Ordered skill tags exactly as entered; duplicates are kept.
    materials:
        Ordered list of materials the participant works with.
    points:
        Reputation awarded outside this system. Read-only here.

    """

    id: str = Field(default_factory=new_id)
    email: str
    display_name: str
    role: Role
    location: str | None = None
    skills: list[str] = Field(default_factory=list)
    materials: list[str] = Field(default_factory=list)
    bio: str | None = None
    points: int = 0
    created_at: datetime.datetime = Field(default_factory=utcnow)
    updated_at: datetime.datetime = Field(default_factory=utcnow)
    seq: int = 0

    def has_skill_like(self, needle: str) -> bool:
        """Case-insensitive substring match of ``needle`` against any skill."""
        needle = needle.lower()
        return any(needle in skill.lower() for skill in self.skills)


class ProfileUpdate(BaseModel):
    """Fields a participant may change on their own profile."""

    model_config = ConfigDict(extra="forbid")

    display_name: str | None = None
    bio: str | None = None
    location: str | None = None
    skills: list[str] | None = None
    materials: list[str] | None = None


class Request(BaseModel):
    """A directed ask for collaboration or mentorship."""

    id: str = Field(default_factory=new_id)
    kind: RequestKind = RequestKind.COLLABORATION
    sender_id: str
    recipient_id: str
    message: str
    status: RequestStatus = RequestStatus.PENDING
    created_at: datetime.datetime = Field(default_factory=utcnow)
    updated_at: datetime.datetime = Field(default_factory=utcnow)
    seq: int = 0

    @property
    def is_terminal(self) -> bool:
        return self.status is not RequestStatus.PENDING

    def involves(self, identity_id: str) -> bool:
        return identity_id in (self.sender_id, self.recipient_id)

    def direction_for(self, viewer_id: str) -> Direction:
        if viewer_id == self.recipient_id:
            return Direction.RECEIVED
        return Direction.SENT

    def counterpart_of(self, viewer_id: str) -> str:
        if viewer_id == self.recipient_id:
            return self.sender_id
        return self.recipient_id


def pair_key(a: str, b: str) -> tuple[str, str]:
    """Return the unordered pair ``{a, b}`` in a canonical order."""
    return (a, b) if a <= b else (b, a)


class Message(BaseModel):
    """One turn in a two-party conversation. Immutable once created."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id)
    sender_id: str
    receiver_id: str
    text: str
    created_at: datetime.datetime = Field(default_factory=utcnow)
    seq: int = 0

    @property
    def pair(self) -> tuple[str, str]:
        return pair_key(self.sender_id, self.receiver_id)

    @property
    def order_key(self) -> tuple[datetime.datetime, int]:
        return (self.created_at, self.seq)


class ForumPost(BaseModel):
    id: str = Field(default_factory=new_id)
    author_id: str
    content: str
    liked_by: list[str] = Field(default_factory=list)
    created_at: datetime.datetime = Field(default_factory=utcnow)
    seq: int = 0

    @property
    def likes(self) -> int:
        return len(self.liked_by)
