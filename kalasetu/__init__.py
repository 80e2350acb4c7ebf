"""Core package for KalaSetu.

KalaSetu connects artisans with mentors and collaborators. This package holds
the workflow engine behind the client application: the identity directory,
the request ledger, two-party conversations, the community forum and the
read-side views that join them, plus async transports for talking to a
hosted backend.
"""

from .core.models import Identity, Message, Request, RequestKind, RequestStatus, Role
from .core.storage import JSONStorage
from .data.engine import Engine

__all__ = [
    "Engine",
    "Identity",
    "JSONStorage",
    "Message",
    "Request",
    "RequestKind",
    "RequestStatus",
    "Role",
]
