"""
Project Record Parser.

Project files are flat JSON objects with exactly the documented keys:

    { "Name": "", "Description": "", "Url": "", "Image": "" }

Unlike post frontmatter, the schema is strict: unknown keys are rejected so
that a typo such as "URL" or "Descripton" fails loudly instead of silently
dropping a field.
"""
import json
import logging
from typing import Any, Dict

from content.errors import MalformedStructure, UnexpectedField
from content.frontmatter import BOM

logger = logging.getLogger(__name__)

PROJECT_FIELDS = ("Name", "Description", "Url", "Image")


def parse_project(text: str) -> Dict[str, Any]:
    """Parse a project file into a field mapping.

    Values are returned as found; type checks belong to the validator.
    A single leading byte order mark is ignored.

    Raises:
        MalformedStructure: If the text is not JSON, not an object, or has
            nested object/array values
        UnexpectedField: If keys outside PROJECT_FIELDS are present
    """
    if text.startswith(BOM):
        text = text[len(BOM):]
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise MalformedStructure(
            f"Invalid JSON at line {e.lineno} column {e.colno}: {e.msg}"
        ) from e

    if not isinstance(data, dict):
        raise MalformedStructure(
            f"Project file must be a JSON object, got {type(data).__name__}"
        )

    nested = sorted(k for k, v in data.items() if isinstance(v, (dict, list)))
    if nested:
        raise MalformedStructure(
            f"Project file must be a flat object; nested value(s) for: {', '.join(nested)}"
        )

    unexpected = set(data) - set(PROJECT_FIELDS)
    if unexpected:
        raise UnexpectedField(unexpected)

    return data
