"""
Webhook Receiver.

Turns an inbound repository notification into ingested content:

    1. Verify the signature over the raw body (before anything is parsed)
    2. Parse the push event and flatten its commits into changed files
    3. Fetch the current content of every routable added/modified file
    4. Hand the changes to the ChangeClassifier
    5. Aggregate per-file outcomes into a ReceiveResult

Signature Scheme:
    The sender signs the raw request body with HMAC-SHA256 using the shared
    secret and sends "sha256=<hexdigest>" (GitHub's X-Hub-Signature-256
    header). The digest is compared with hmac.compare_digest.

Failure Scope:
    Unauthenticated, MalformedNotification and FetchFailure abort the whole
    notification before any file reaches the classifier, so nothing is
    partially applied. Rejected files are not a failure of receive(); they
    are reported in the result.
"""
import hashlib
import hmac
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from jsonschema import ValidationError, validate

from content.errors import FetchFailure, MalformedNotification, Unauthenticated
from content.models import ChangeType, FileChange, IngestionOutcome, RecordKind
from schema import PUSH_EVENT_SCHEMA
from webhook.classifier import ChangeClassifier
from webhook.repository_api import RepositoryClient

logger = logging.getLogger(__name__)

SIGNATURE_PREFIX = "sha256="

# Commit list keys in a push event, in the order they are applied per commit
_CHANGE_KEYS = (
    ("added", ChangeType.ADDED),
    ("modified", ChangeType.MODIFIED),
    ("removed", ChangeType.REMOVED),
)


@dataclass
class ReceiveResult:
    """Aggregate result of one notification."""
    repository: str
    commit: str
    outcomes: List[IngestionOutcome] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.outcomes)

    @property
    def accepted(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.accepted)

    @property
    def rejected(self) -> int:
        return self.total - self.accepted

    def to_dict(self) -> Dict[str, Any]:
        return {
            "repository": self.repository,
            "commit": self.commit,
            "total": self.total,
            "accepted": self.accepted,
            "rejected": self.rejected,
            "outcomes": [outcome.to_dict() for outcome in self.outcomes],
        }


def compute_signature(secret: str, body: bytes) -> str:
    """Return the "sha256=<hex>" signature of body under secret."""
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    return SIGNATURE_PREFIX + digest


def verify_signature(secret: Optional[str], body: bytes, token: Optional[str]) -> bool:
    """Check a notification token against the shared secret in constant time.

    A missing secret never verifies, so an unconfigured receiver rejects
    everything rather than accepting everything.
    """
    if not secret or not token:
        return False
    expected = compute_signature(secret, body)
    return hmac.compare_digest(expected.encode("utf-8"), token.strip().encode("utf-8"))


def flatten_changes(commits: List[Dict[str, Any]]) -> List[FileChange]:
    """Collapse a push's commits into one change per path.

    Commits are applied in order and the last change to a path wins, except
    that a file added and then modified within the same push stays "added".
    Paths keep the order in which they were first seen.
    """
    latest: Dict[str, ChangeType] = {}
    for commit in commits:
        for key, change_type in _CHANGE_KEYS:
            for path in commit.get(key) or []:
                if change_type is ChangeType.MODIFIED and latest.get(path) is ChangeType.ADDED:
                    continue
                latest[path] = change_type
    return [FileChange(path, change_type) for path, change_type in latest.items()]


def parse_push_event(payload: Any) -> Tuple[str, str, List[FileChange]]:
    """Extract (repository, head commit, changes) from a push payload.

    Raises:
        MalformedNotification: If the payload doesn't match the push schema
    """
    try:
        validate(instance=payload, schema=PUSH_EVENT_SCHEMA)
    except ValidationError as e:
        path_str = ".".join(str(p) for p in e.path)
        raise MalformedNotification(
            f"Schema validation failed: {e.message} at path: {path_str}"
        ) from e

    repository = payload["repository"]["full_name"]
    commit = payload["after"]
    return repository, commit, flatten_changes(payload["commits"])


class WebhookReceiver:
    """Authenticates notifications and drives ingestion for their files."""

    def __init__(
        self,
        secret: Optional[str],
        repository_client: RepositoryClient,
        classifier: ChangeClassifier,
    ):
        self.secret = secret
        self.repository_client = repository_client
        self.classifier = classifier
        if not secret:
            logger.warning("No webhook secret configured: every notification will be rejected")

    def authenticate(self, body: bytes, token: Optional[str]) -> None:
        """Raise Unauthenticated unless token is a valid signature of body."""
        if not verify_signature(self.secret, body, token):
            logger.warning("Rejected notification with missing or invalid signature")
            raise Unauthenticated("Notification signature verification failed")

    def receive(self, body: bytes, token: Optional[str]) -> ReceiveResult:
        """Authenticate, fetch and ingest one notification.

        Args:
            body: Raw notification body exactly as received
            token: Signature sent alongside the body

        Returns:
            ReceiveResult with one outcome per changed path

        Raises:
            Unauthenticated: Signature missing or wrong; body is never parsed
            MalformedNotification: Body is not a push event
            FetchFailure: File content could not be fetched (retryable)
        """
        self.authenticate(body, token)

        try:
            payload = json.loads(body)
        except ValueError as e:
            raise MalformedNotification(f"Notification body is not valid JSON: {e}") from e

        repository, commit, changes = parse_push_event(payload)
        logger.info(f"Notification for {repository}@{commit[:12]}: {len(changes)} changed path(s)")
        logger.debug(f"Changed paths: {[(c.path, c.change_type.value) for c in changes]}")

        to_fetch = [c.path for c in changes if self.classifier.route(c) is not RecordKind.UNRECOGNIZED]
        try:
            contents = self.repository_client.fetch_many(repository, commit, to_fetch)
        except FetchFailure as e:
            e.repository, e.commit = repository, commit
            raise

        result = ReceiveResult(
            repository=repository,
            commit=commit,
            outcomes=self.classifier.classify(changes, contents),
        )
        logger.info(
            f"Ingestion complete for {repository}@{commit[:12]}: "
            f"{result.accepted} accepted, {result.rejected} rejected of {result.total}"
        )
        return result
