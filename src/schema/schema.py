"""
Centralized JSON Schema Loading Module.

Loads the JSON schema files that sit beside this module once, at import
time, and exposes them as module-level constants.

Design Principles:
    1. Load Once: Schemas are read when the module is imported, not per use
    2. Fail Fast: A missing or unparseable schema breaks the import
    3. Single Source: Validators elsewhere only ever read these constants

File Location:
    Schemas live in the same directory as this module (src/schema/).
    Paths are resolved from __file__ so the working directory never matters.
"""
import json
from pathlib import Path
from typing import Dict, Any

SCHEMA_DIR = Path(__file__).parent


def _load_schema(schema_filename: str) -> Dict[str, Any]:
    """
    Load a JSON schema file from the schema directory.

    Args:
        schema_filename: Name of the JSON schema file (e.g., "project_record_schema.json")

    Returns:
        Parsed JSON schema as a dictionary, ready for use with jsonschema

    Raises:
        FileNotFoundError: If the schema file doesn't exist at the expected location
        json.JSONDecodeError: If the schema file contains invalid JSON; the
            message names the file that failed
    """
    schema_path = SCHEMA_DIR / schema_filename

    if not schema_path.exists():
        raise FileNotFoundError(
            f"Schema file not found: {schema_path}. "
            f"Expected location: {SCHEMA_DIR}"
        )

    try:
        with open(schema_path, "r") as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise json.JSONDecodeError(
            f"Invalid JSON in schema file {schema_filename}: {e.msg}",
            e.doc,
            e.pos
        ) from e


# Metadata fields of a Posts/*.md file (title, slug, date, tags)
POST_FRONTMATTER_SCHEMA = _load_schema("post_frontmatter_schema.json")

# projects/*.json record with exactly Name, Description, Url, Image
PROJECT_RECORD_SCHEMA = _load_schema("project_record_schema.json")

# Push notification subset: repository, head commit, per-commit file lists
PUSH_EVENT_SCHEMA = _load_schema("push_event_schema.json")
