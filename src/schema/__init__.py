"""Schema Package - JSON Schema Loading.

Loads the JSON schemas used across sitesync once, at import time, and
exposes them as constants.

Available Schemas:
    POST_FRONTMATTER_SCHEMA: Metadata fields of a Posts/*.md file
    PROJECT_RECORD_SCHEMA: A projects/*.json record (strict, no extra keys)
    PUSH_EVENT_SCHEMA: The subset of a push notification we read

Usage:
    from schema import PROJECT_RECORD_SCHEMA
    Draft7Validator(PROJECT_RECORD_SCHEMA).iter_errors(record)
"""
from .schema import (
    POST_FRONTMATTER_SCHEMA,
    PROJECT_RECORD_SCHEMA,
    PUSH_EVENT_SCHEMA,
)

__all__ = [
    "POST_FRONTMATTER_SCHEMA",
    "PROJECT_RECORD_SCHEMA",
    "PUSH_EVENT_SCHEMA",
]
