"""Identity directory: sign-up, lookup, skill search and profile edits."""

from __future__ import annotations

import datetime
import logging
from collections.abc import Callable, Iterable

import pydantic

from ..core.models import Identity, ProfileUpdate, Role, utcnow
from ..core.storage import JSONStorage
from ..errors import DuplicateEmail, Forbidden, InvalidRole, NotFound, ValidationError

log = logging.getLogger(__name__)


def _clean_tags(tags: Iterable[str]) -> list[str]:
    # order and duplicates are preserved, blanks are not
    return [t.strip() for t in tags if t and t.strip()]


def _normalise_email(email: str) -> str:
    email = (email or "").strip().lower()
    local, _, domain = email.partition("@")
    if not local or not domain or "@" in domain:
        raise ValidationError(f"Invalid email address: {email!r}")
    return email


class IdentityDirectory:
    """Holds the identity records every other component refers to."""

    def __init__(
        self, storage: JSONStorage, clock: Callable[[], datetime.datetime] = utcnow
    ) -> None:
        self.storage = storage
        self.clock = clock

    def create_identity(
        self,
        email: str,
        display_name: str,
        role: Role | str,
        *,
        identity_id: str | None = None,
        location: str | None = None,
        skills: Iterable[str] = (),
        materials: Iterable[str] = (),
        bio: str | None = None,
    ) -> Identity:
        try:
            role = Role(role)
        except ValueError:
            raise InvalidRole(f"Unknown role: {role!r}") from None
        email = _normalise_email(email)
        display_name = (display_name or "").strip()
        if not display_name:
            raise ValidationError("Display name is required.")
        skills = _clean_tags(skills)
        bio = (bio or "").strip() or None
        if role is Role.MENTOR and (not skills or not bio):
            raise ValidationError("Mentors must provide skills and a bio.")

        now = self.clock()
        fields = dict(
            email=email,
            display_name=display_name,
            role=role,
            location=(location or "").strip() or None,
            skills=skills,
            materials=_clean_tags(materials),
            bio=bio,
            created_at=now,
            updated_at=now,
        )
        if identity_id is not None:
            fields["id"] = identity_id

        with self.storage.lock:
            if any(i.email == email for i in self.storage.identities.values()):
                raise DuplicateEmail(f"{email} is already registered.")
            if identity_id is not None and identity_id in self.storage.identities:
                raise ValidationError(f"Identity {identity_id} already exists.")
            identity = self.storage.insert(self.storage.identities, Identity(**fields))
        log.info("Registered %s %s (%s)", role.value, identity.id, email)
        return identity

    def get_identity(self, identity_id: str) -> Identity:
        identity = self.storage.identities.get(identity_id)
        if identity is None:
            raise NotFound(f"Identity {identity_id} not found.")
        return identity

    def exists(self, identity_id: str) -> bool:
        return identity_id in self.storage.identities

    def search_by_skill(self, query: str) -> list[Identity]:
        query = (query or "").strip()
        if not query:
            raise ValidationError("Please enter a skill to search for.")
        results = [
            i for i in self.storage.rows(self.storage.identities) if i.has_skill_like(query)
        ]
        results.sort(key=lambda i: i.seq)
        return results

    def update_profile(self, caller_id: str, identity_id: str, **fields) -> Identity:
        """Merge ``fields`` into the caller's own profile.

        Only ``display_name``, ``bio``, ``location``, ``skills`` and
        ``materials`` may be changed; anything else is a validation error.
        Fields passed as ``None`` are left untouched.
        """
        if caller_id != identity_id:
            raise Forbidden("You can only edit your own profile.")
        try:
            update = ProfileUpdate(**fields)
        except pydantic.ValidationError as exc:
            raise ValidationError(str(exc)) from exc

        changes = update.model_dump(exclude_none=True)
        if "display_name" in changes:
            changes["display_name"] = changes["display_name"].strip()
            if not changes["display_name"]:
                raise ValidationError("Display name is required.")
        # blank text clears the field
        for key in ("bio", "location"):
            if key in changes:
                changes[key] = changes[key].strip() or None
        for key in ("skills", "materials"):
            if key in changes:
                changes[key] = _clean_tags(changes[key])

        with self.storage.lock:
            current = self.get_identity(identity_id)
            if not changes:
                return current
            merged = current.model_copy(update=changes)
            if current.role is Role.MENTOR and (not merged.skills or not merged.bio):
                raise ValidationError("Mentors must keep skills and a bio.")
            updated = self.storage.replace(
                self.storage.identities,
                merged.model_copy(update={"updated_at": self.clock()}),
            )
        log.info("Updated profile %s: %s", identity_id, ", ".join(sorted(changes)))
        return updated

    def get_points(self, identity_id: str) -> int:
        return self.get_identity(identity_id).points
