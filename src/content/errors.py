"""
Error hierarchy for the sitesync ingestion pipeline.

Errors fall into two groups, which decides how far a failure reaches:

    File-scoped (IngestionError and subclasses):
        Raised while parsing a single content file. The change classifier
        catches these and turns them into a Rejected outcome for that one
        file; the rest of the notification carries on.

    Notification-scoped (NotificationError and subclasses):
        Raised by the webhook receiver before any file is processed.
        Nothing from the notification is applied.

All errors inherit from SiteSyncError so callers can catch everything the
pipeline raises with a single except clause.
"""
from typing import Iterable, Optional


class SiteSyncError(Exception):
    """Base error for all sitesync operations."""


class IngestionError(SiteSyncError):
    """A single content file could not be ingested."""

    #: Short machine-readable reason used in ingestion outcomes
    code = "IngestionError"


class MalformedStructure(IngestionError):
    """File is not structurally valid (missing delimiters, bad JSON, ...)."""

    code = "MalformedStructure"


class UnexpectedField(IngestionError):
    """Project file carries keys outside the documented schema."""

    code = "UnexpectedField"

    def __init__(self, fields: Iterable[str]):
        self.fields = sorted(fields)
        super().__init__(f"Unexpected field(s): {', '.join(self.fields)}")


class ContentStoreError(SiteSyncError):
    """The content store could not complete an operation."""


class StoreClosedError(ContentStoreError):
    """Operation attempted on a content store after close()."""


class NotificationError(SiteSyncError):
    """A whole notification was rejected before any file was processed."""

    code = "NotificationError"
    retryable = False


class Unauthenticated(NotificationError):
    """Notification signature did not verify against the shared secret."""

    code = "Unauthenticated"


class MalformedNotification(NotificationError):
    """Notification body is not a change-set we understand."""

    code = "MalformedNotification"


class FetchFailure(NotificationError):
    """Changed file content could not be fetched from the repository.

    Transient by nature (network or remote host trouble), so the sender is
    expected to redeliver the notification.
    """

    code = "FetchFailure"
    retryable = True

    def __init__(self, message: str, path: Optional[str] = None):
        self.path = path
        # Filled in by the receiver once the notification is known
        self.repository: Optional[str] = None
        self.commit: Optional[str] = None
        super().__init__(message)
