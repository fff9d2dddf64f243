"""
Change Classifier.

Routes each changed path from a notification to the parser for its record
kind, validates the result and upserts it into the content store:

    Posts/<name>.md       -> frontmatter parser -> validator -> store
    projects/<name>.json  -> project parser     -> validator -> store
    anything else         -> Unrecognized, skipped

Only direct children of the two content directories are routed; directory
names are case-sensitive, extensions are not.

Every file is handled on its own. Whatever goes wrong with one file ends up
in that file's IngestionOutcome and never stops the others.
"""
import logging
from contextlib import nullcontext
from pathlib import PurePosixPath
from typing import Any, Dict, List, Mapping, Sequence, Union

from content.errors import ContentStoreError, IngestionError, MalformedStructure
from content.frontmatter import parse_post
from content.models import (
    ChangeType,
    FieldViolation,
    FileChange,
    IngestionOutcome,
    OutcomeStatus,
    RecordKind,
    REASON_DELETIONS_NOT_SUPPORTED,
    REASON_MISSING_CONTENT,
    REASON_STORE_FAILURE,
    REASON_UNRECOGNIZED_PATH,
)
from content.project_parser import parse_project
from content.store import ContentStore
from content.validator import KEY_FIELDS, Validator

logger = logging.getLogger(__name__)

DEFAULT_POSTS_DIR = "Posts"
DEFAULT_PROJECTS_DIR = "projects"


def _rejected(path: str, kind: RecordKind, reason: str, **kwargs: Any) -> IngestionOutcome:
    return IngestionOutcome(path=path, record_kind=kind, status=OutcomeStatus.REJECTED, reason=reason, **kwargs)


def decode_content(data: Union[str, bytes]) -> str:
    """Decode fetched or read file content as strict UTF-8.

    Raises:
        MalformedStructure: If the bytes are not valid UTF-8
    """
    if isinstance(data, str):
        return data
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise MalformedStructure(f"File is not valid UTF-8 (invalid byte at offset {e.start})") from e


class ChangeClassifier:
    """Classify changed files and ingest the ones that hold content."""

    def __init__(
        self,
        store: ContentStore,
        posts_dir: str = DEFAULT_POSTS_DIR,
        projects_dir: str = DEFAULT_PROJECTS_DIR,
    ):
        self.store = store
        self.validator = Validator(store)
        self.posts_dir = PurePosixPath(posts_dir).as_posix()
        self.projects_dir = PurePosixPath(projects_dir).as_posix()
        # (directory, extension) -> record kind
        self._routes = {
            (self.posts_dir, ".md"): RecordKind.POST,
            (self.projects_dir, ".json"): RecordKind.PROJECT,
        }

    def route_path(self, path: str) -> RecordKind:
        """Return the record kind a repository path holds, by location alone."""
        pure = PurePosixPath(path)
        if not pure.stem:
            return RecordKind.UNRECOGNIZED
        return self._routes.get((pure.parent.as_posix(), pure.suffix.lower()), RecordKind.UNRECOGNIZED)

    def route(self, change: FileChange) -> RecordKind:
        """Return the record kind for a change; deletions are never routed."""
        if change.change_type is ChangeType.REMOVED:
            return RecordKind.UNRECOGNIZED
        return self.route_path(change.path)

    def classify(self, changes: Sequence[FileChange], contents: Mapping[str, Union[str, bytes]]) -> List[IngestionOutcome]:
        """Ingest every routable change.

        Args:
            changes: Changed files from one notification
            contents: Current content (bytes or text) of each routable added/modified path

        Returns:
            One outcome per change, in input order
        """
        outcomes = []
        for change in changes:
            try:
                outcome = self._classify_one(change, contents)
            except Exception as e:
                logger.error(f"Unexpected error ingesting {change.path}: {e}", exc_info=True)
                outcome = _rejected(change.path, self.route(change), "InternalError")
            outcomes.append(outcome)
        return outcomes

    def _classify_one(self, change: FileChange, contents: Mapping[str, Union[str, bytes]]) -> IngestionOutcome:
        if change.change_type is ChangeType.REMOVED:
            kind = self.route_path(change.path)
            if kind is not RecordKind.UNRECOGNIZED:
                logger.info(f"Ignoring deletion of {change.path}: deletions are not supported")
            return _rejected(change.path, RecordKind.UNRECOGNIZED, REASON_DELETIONS_NOT_SUPPORTED)

        kind = self.route(change)
        if kind is RecordKind.UNRECOGNIZED:
            logger.debug(f"Skipping non-content path {change.path}")
            return _rejected(change.path, kind, REASON_UNRECOGNIZED_PATH)

        data = contents.get(change.path)
        if data is None:
            logger.error(f"No content fetched for {change.path}")
            return _rejected(change.path, kind, REASON_MISSING_CONTENT)

        return self.ingest(change.path, kind, data)

    def ingest(self, path: str, kind: RecordKind, data: Union[str, bytes]) -> IngestionOutcome:
        """Decode, parse, validate and store one file whose kind is already known."""
        try:
            text = decode_content(data)
            if kind is RecordKind.POST:
                parsed = parse_post(text)
                fields: Dict[str, Any] = parsed.fields
                body = parsed.body
            else:
                fields = parse_project(text)
                body = ""
        except IngestionError as e:
            logger.warning(f"Rejected {path}: {e.code}: {e}")
            return _rejected(path, kind, e.code, violations=[FieldViolation("(file)", str(e), code=e.code)])

        key = fields.get(KEY_FIELDS[kind])
        key = key if isinstance(key, str) and key else None

        # Validation reads key ownership, so it must run under the key's lock
        lock = self.store.key_lock(kind, key) if key else nullcontext()
        try:
            with lock:
                if kind is RecordKind.POST:
                    result = self.validator.validate_post(fields, body, path)
                else:
                    result = self.validator.validate_project(fields, path)
                if result.ok:
                    self.store.upsert(kind, key, result.record, path)
        except ContentStoreError as e:
            logger.error(f"Content store failure for {path}: {e}")
            return _rejected(path, kind, REASON_STORE_FAILURE, key=key)

        if not result.ok:
            details = "; ".join(str(v) for v in result.violations)
            logger.warning(f"Rejected {path}: {result.reason}: {details}")
            return _rejected(path, kind, result.reason, key=key, violations=result.violations)

        logger.info(f"Accepted {kind.value} '{key}' from {path}")
        return IngestionOutcome(path=path, record_kind=kind, status=OutcomeStatus.ACCEPTED, key=key)
