"""
Content record types.

Posts and Projects are the two durable record kinds. IngestionOutcome and
FieldViolation are transient diagnostics produced per source file and never
persisted.
"""
from dataclasses import dataclass, field, asdict
from datetime import date
from enum import Enum
from typing import Any, Dict, List, Optional


class RecordKind(str, Enum):
    """Kind of record a changed file maps to."""
    POST = "Post"
    PROJECT = "Project"
    UNRECOGNIZED = "Unrecognized"


class OutcomeStatus(str, Enum):
    ACCEPTED = "Accepted"
    REJECTED = "Rejected"


class ChangeType(str, Enum):
    """How a file changed in a notification."""
    ADDED = "added"
    MODIFIED = "modified"
    REMOVED = "removed"


# Reasons used for Rejected outcomes that are not exception codes
REASON_DELETIONS_NOT_SUPPORTED = "DeletionsNotSupported"
REASON_UNRECOGNIZED_PATH = "UnrecognizedPath"
REASON_VALIDATION_FAILED = "ValidationFailed"
REASON_SLUG_CONFLICT = "SlugConflict"
REASON_STORE_FAILURE = "StoreFailure"
REASON_MISSING_CONTENT = "MissingContent"
REASON_UNREADABLE = "Unreadable"


@dataclass
class Post:
    """A blog post parsed from Posts/<name>.md.

    Attributes:
        title: Display title
        slug: Unique short identifier, primary key and URL path segment
        date: Publication date
        tags: Single-word tags, in the order the author wrote them
        body: Markdown text following the frontmatter block
    """
    title: str
    slug: str
    date: date
    tags: List[str] = field(default_factory=list)
    body: str = ""

    @property
    def key(self) -> str:
        return self.slug

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "slug": self.slug,
            "date": self.date.isoformat(),
            "tags": list(self.tags),
            "body": self.body,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Post":
        return cls(
            title=data["title"],
            slug=data["slug"],
            date=date.fromisoformat(data["date"]),
            tags=list(data.get("tags", [])),
            body=data.get("body", ""),
        )


@dataclass
class Project:
    """A portfolio project parsed from projects/<name>.json."""
    name: str
    description: str
    url: str
    image: str

    @property
    def key(self) -> str:
        return self.name

    def to_dict(self) -> Dict[str, Any]:
        # Same casing as the source files so the site renderer sees one schema
        return {
            "Name": self.name,
            "Description": self.description,
            "Url": self.url,
            "Image": self.image,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Project":
        return cls(
            name=data["Name"],
            description=data["Description"],
            url=data["Url"],
            image=data["Image"],
        )


RECORD_TYPES = {
    RecordKind.POST: Post,
    RecordKind.PROJECT: Project,
}


@dataclass(frozen=True)
class FileChange:
    """One changed path from a notification."""
    path: str
    change_type: ChangeType


@dataclass
class FieldViolation:
    """A single field-level validation failure."""
    field: str
    message: str
    code: str = REASON_VALIDATION_FAILED

    def __str__(self) -> str:
        return f"{self.field}: {self.message}"


@dataclass
class IngestionOutcome:
    """Result of ingesting one source file.

    reason is set if and only if status is REJECTED.
    """
    path: str
    record_kind: RecordKind
    status: OutcomeStatus
    reason: Optional[str] = None
    key: Optional[str] = None
    violations: List[FieldViolation] = field(default_factory=list)

    @property
    def accepted(self) -> bool:
        return self.status is OutcomeStatus.ACCEPTED

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "path": self.path,
            "record_kind": self.record_kind.value,
            "status": self.status.value,
        }
        if self.reason is not None:
            data["reason"] = self.reason
        if self.key is not None:
            data["key"] = self.key
        if self.violations:
            data["violations"] = [asdict(v) for v in self.violations]
        return data
