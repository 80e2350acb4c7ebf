"""Request ledger: collaboration and mentorship requests and their status."""

from __future__ import annotations

import datetime
import logging
from collections.abc import Callable

from ..core.models import Decision, Request, RequestKind, RequestStatus, Role, utcnow
from ..core.storage import JSONStorage
from ..errors import Forbidden, InvalidTransition, NotFound, SelfRequest, ValidationError
from .directory import IdentityDirectory

log = logging.getLogger(__name__)


class RequestLedger:
    """Authoritative store of requests.

    A request starts ``pending`` and moves exactly once, to ``accepted`` or
    ``rejected``, by its recipient. Nothing else ever changes its status.
    """

    def __init__(
        self,
        storage: JSONStorage,
        directory: IdentityDirectory,
        clock: Callable[[], datetime.datetime] = utcnow,
    ) -> None:
        self.storage = storage
        self.directory = directory
        self.clock = clock

    def create_request(
        self,
        sender_id: str,
        recipient_id: str,
        message: str,
        kind: RequestKind | str = RequestKind.COLLABORATION,
    ) -> Request:
        if sender_id == recipient_id:
            raise SelfRequest("You cannot send a request to yourself.")
        message = (message or "").strip()
        if not message:
            raise ValidationError("A request needs a message.")
        try:
            kind = RequestKind(kind)
        except ValueError:
            raise ValidationError(f"Unknown request kind: {kind!r}") from None

        self.directory.get_identity(sender_id)
        recipient = self.directory.get_identity(recipient_id)
        if kind is RequestKind.MENTORSHIP and recipient.role is not Role.MENTOR:
            raise ValidationError("Mentorship requests can only be sent to mentors.")

        now = self.clock()
        # no dedup: repeated requests between the same pair are separate rows
        request = self.storage.insert(
            self.storage.requests,
            Request(
                kind=kind,
                sender_id=sender_id,
                recipient_id=recipient_id,
                message=message,
                created_at=now,
                updated_at=now,
            ),
        )
        log.info(
            "%s request %s: %s -> %s", kind.value, request.id, sender_id, recipient_id
        )
        return request

    def get_request(self, request_id: str) -> Request:
        request = self.storage.requests.get(request_id)
        if request is None:
            raise NotFound(f"Request {request_id} not found.")
        return request

    def respond(self, request_id: str, caller_id: str, decision: Decision | str) -> Request:
        try:
            decision = Decision(decision)
        except ValueError:
            raise ValidationError(f"Invalid decision: {decision!r}") from None

        # check-and-set under the storage lock so only one responder wins
        with self.storage.lock:
            request = self.get_request(request_id)
            if caller_id != request.recipient_id:
                raise Forbidden("Only the recipient can respond to a request.")
            if request.status is not RequestStatus.PENDING:
                log.warning(
                    "Rejected %s on request %s: already %s",
                    decision.value,
                    request_id,
                    request.status.value,
                )
                raise InvalidTransition(
                    f"Request {request_id} is already {request.status.value}."
                )
            updated = self.storage.replace(
                self.storage.requests,
                request.model_copy(
                    update={"status": decision.status, "updated_at": self.clock()}
                ),
            )
        log.info("Request %s %s by %s", request_id, updated.status.value, caller_id)
        return updated

    def list_for_identity(self, identity_id: str) -> list[Request]:
        """Every request sent or received by ``identity_id``, newest first."""
        self.directory.get_identity(identity_id)
        rows = [r for r in self.storage.rows(self.storage.requests) if r.involves(identity_id)]
        rows.sort(key=lambda r: (r.created_at, r.seq), reverse=True)
        return rows
