"""
Validator for parsed Post and Project fields.

Field rules live in the JSON schemas loaded by the schema package and are
evaluated with jsonschema's Draft7Validator. iter_errors() is used instead
of validate() so that every problem in a file is reported at once rather
than only the first one.

Two rules can't be expressed in the schemas and are checked here:
    - Post dates must have been parsed into a calendar date
    - Project URLs must be absolute http(s) URLs

Ownership (SlugConflict):
    A key (post slug or project name) may only be written by the source
    file that first published it. Re-ingesting that same file is allowed
    and replaces the record; a different file declaring the same key is
    rejected. Callers that go on to upsert must hold the store's key_lock
    for the key across validate-then-upsert.
"""
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional, Union
from urllib.parse import urlparse

from jsonschema import Draft7Validator

from content.models import (
    FieldViolation,
    Post,
    Project,
    RecordKind,
    REASON_SLUG_CONFLICT,
    REASON_VALIDATION_FAILED,
)
from content.store import ContentStore
from schema import POST_FRONTMATTER_SCHEMA, PROJECT_RECORD_SCHEMA

logger = logging.getLogger(__name__)

MAX_URL_LENGTH = 2048

# Friendlier wording for schema failures, keyed by (top-level field, keyword)
_MESSAGES = {
    ("title", "pattern"): "must not be empty",
    ("slug", "pattern"): "must be lowercase letters and digits separated by single hyphens",
    ("tags", "pattern"): "each tag must be a single word with no whitespace",
    ("Name", "pattern"): "must not be empty",
    ("Url", "minLength"): "must not be empty",
}

# Field holding the record key, per kind
KEY_FIELDS = {
    RecordKind.POST: "slug",
    RecordKind.PROJECT: "Name",
}


@dataclass
class ValidationResult:
    """Either a validated record or the complete list of violations."""
    record: Optional[Union[Post, Project]] = None
    violations: List[FieldViolation] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.record is not None and not self.violations

    @property
    def reason(self) -> Optional[str]:
        if not self.violations:
            return None
        if any(v.code == REASON_SLUG_CONFLICT for v in self.violations):
            return REASON_SLUG_CONFLICT
        return REASON_VALIDATION_FAILED


def is_absolute_url(value: str) -> bool:
    """Check that value is an absolute http(s) URL with a host."""
    if not value or len(value) > MAX_URL_LENGTH or any(c.isspace() for c in value):
        return False
    try:
        parsed = urlparse(value)
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def _schema_violations(validator: Draft7Validator, instance: Dict[str, Any]) -> List[FieldViolation]:
    violations = []

    # Required keys first, one violation per missing key
    for name in validator.schema.get("required", []):
        if name not in instance:
            violations.append(FieldViolation(name, "is required"))

    errors = sorted(validator.iter_errors(instance), key=lambda e: [str(p) for p in e.path])
    for error in errors:
        if error.validator == "required":
            continue
        path = [str(p) for p in error.path]
        field_name = ".".join(path) or "(record)"
        top = path[0] if path else ""
        message = _MESSAGES.get((top, error.validator), error.message)
        violations.append(FieldViolation(field_name, message))

    return violations


class Validator:
    """Validates parsed fields and checks key ownership against the store."""

    def __init__(self, store: ContentStore):
        self.store = store
        self._post_validator = Draft7Validator(POST_FRONTMATTER_SCHEMA)
        self._project_validator = Draft7Validator(PROJECT_RECORD_SCHEMA)

    def _ownership_violation(self, kind: RecordKind, key: Any, source_path: str) -> Optional[FieldViolation]:
        if not isinstance(key, str) or not key:
            return None
        owner = self.store.owner_of(kind, key)
        if owner is None or owner == source_path:
            return None
        logger.warning(f"{kind.value} key '{key}' from {source_path} collides with {owner}")
        return FieldViolation(
            KEY_FIELDS[kind],
            f"'{key}' is already published by {owner}",
            code=REASON_SLUG_CONFLICT,
        )

    def validate_post(self, fields: Dict[str, Any], body: str, source_path: str) -> ValidationResult:
        violations = _schema_violations(self._post_validator, fields)

        if "date" in fields and not isinstance(fields["date"], date):
            violations.append(
                FieldViolation("date", f"{fields['date']!r} is not a valid date (expected YYYY-MM-DD)")
            )

        conflict = self._ownership_violation(RecordKind.POST, fields.get("slug"), source_path)
        if conflict:
            violations.append(conflict)

        if violations:
            return ValidationResult(violations=violations)

        return ValidationResult(record=Post(
            title=fields["title"],
            slug=fields["slug"],
            date=fields["date"],
            tags=list(fields.get("tags", [])),
            body=body,
        ))

    def validate_project(self, fields: Dict[str, Any], source_path: str) -> ValidationResult:
        violations = _schema_violations(self._project_validator, fields)

        url = fields.get("Url")
        if isinstance(url, str) and url and not is_absolute_url(url):
            violations.append(FieldViolation("Url", f"{url!r} is not an absolute http(s) URL"))

        conflict = self._ownership_violation(RecordKind.PROJECT, fields.get("Name"), source_path)
        if conflict:
            violations.append(conflict)

        if violations:
            return ValidationResult(violations=violations)

        return ValidationResult(record=Project(
            name=fields["Name"],
            description=fields["Description"],
            url=fields["Url"],
            image=fields["Image"],
        ))
