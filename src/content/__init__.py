"""Content Package - parsing, validation and storage of site content.

Key Components:
    parse_post: Frontmatter parser for Posts/*.md files
    parse_project: Strict JSON parser for projects/*.json files
    Validator: Field rules plus slug/name ownership checks
    ContentStore: SQLite-backed durable record store with atomic upsert
"""
from .models import (
    ChangeType,
    FieldViolation,
    FileChange,
    IngestionOutcome,
    OutcomeStatus,
    Post,
    Project,
    RecordKind,
)
from .frontmatter import parse_post, ParsedPost
from .project_parser import parse_project
from .store import ContentStore, RecordListing
from .validator import Validator, ValidationResult

__all__ = [
    "ChangeType",
    "ContentStore",
    "FieldViolation",
    "FileChange",
    "IngestionOutcome",
    "OutcomeStatus",
    "ParsedPost",
    "Post",
    "Project",
    "RecordKind",
    "RecordListing",
    "ValidationResult",
    "Validator",
    "parse_post",
    "parse_project",
]
