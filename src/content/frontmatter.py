"""
Frontmatter Parser for post files.

Post files carry a small metadata block at the top, delimited by lines
consisting solely of three hyphens, followed by the markdown body:

    ---
    title: "Hello World"
    slug: "hello-world"
    date: "2024-01-15"
    tags: [python, webhooks]
    ---
    Body text...

The block is deliberately not parsed as YAML. Only the flat subset the
authoring workflow documents is accepted: one `key: value` pair per line,
or `key: [item, item, ...]` for a list. Anything that cannot be read as
that subset is a structural error (MalformedStructure).

This parser reports structure only. Whether required fields are present
or well-formed is the validator's concern; an unparseable date is passed
through as text so the validator can report it alongside any other
problems in the same file.
"""
import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Union

from content.errors import MalformedStructure

logger = logging.getLogger(__name__)

DELIMITER = "---"

BOM = "\ufeff"

# Fixed textual format for post dates
DATE_FORMAT = "%Y-%m-%d"

RECOGNIZED_KEYS = ("title", "slug", "date", "tags")

FieldValue = Union[str, List[str], date]


@dataclass
class ParsedPost:
    """Output of the frontmatter parser.

    Attributes:
        fields: Recognized metadata keys mapped to text, list of text, or date
        body: Text strictly after the closing delimiter line
    """
    fields: Dict[str, FieldValue] = field(default_factory=dict)
    body: str = ""


def _is_delimiter(line: str) -> bool:
    return line.rstrip("\r\n \t") == DELIMITER


def _unquote(value: str) -> str:
    """Strip surrounding whitespace and one pair of matching quotes."""
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ('"', "'"):
        return value[1:-1]
    return value


def _parse_list(raw: str, key: str, line_no: int) -> List[str]:
    if not raw.endswith("]"):
        raise MalformedStructure(
            f"Unterminated list for '{key}' on metadata line {line_no}"
        )
    inner = raw[1:-1]
    items = [_unquote(item) for item in inner.split(",")]
    # Trailing commas leave empty items behind
    return [item for item in items if item]


def parse_date(value: str) -> Optional[date]:
    """Parse a post date in DATE_FORMAT, returning None if it doesn't fit."""
    try:
        return datetime.strptime(value, DATE_FORMAT).date()
    except ValueError:
        return None


def split_frontmatter(text: str) -> tuple[List[str], str]:
    """Split raw post text into metadata lines and body.

    A single leading byte order mark is ignored.

    Raises:
        MalformedStructure: If the opening delimiter is not the first
            non-blank line, or no closing delimiter follows it
    """
    if text.startswith(BOM):
        text = text[len(BOM):]
    lines = text.splitlines(keepends=True)

    start = None
    for index, line in enumerate(lines):
        if not line.strip():
            continue
        if not _is_delimiter(line):
            raise MalformedStructure(
                "Frontmatter must start with a '---' line before any other content"
            )
        start = index
        break

    if start is None:
        raise MalformedStructure("File is empty; expected a '---' frontmatter block")

    for index in range(start + 1, len(lines)):
        if _is_delimiter(lines[index]):
            metadata = [line.rstrip("\r\n") for line in lines[start + 1:index]]
            body = "".join(lines[index + 1:])
            return metadata, body

    raise MalformedStructure("Frontmatter block has no closing '---' line")


def parse_metadata(metadata_lines: List[str]) -> Dict[str, FieldValue]:
    """Parse the lines between the delimiters into a field mapping.

    Unknown keys are ignored so newer files keep working with this parser.
    """
    fields: Dict[str, Any] = {}

    for line_no, line in enumerate(metadata_lines, start=1):
        if not line.strip():
            continue

        key, sep, raw_value = line.partition(":")
        key = key.strip()
        if not sep or not key:
            raise MalformedStructure(
                f"Metadata line {line_no} is not a 'key: value' pair: {line.strip()[:80]!r}"
            )

        raw_value = raw_value.strip()
        if raw_value.startswith("["):
            value: Any = _parse_list(raw_value, key, line_no)
        else:
            value = _unquote(raw_value)

        if key not in RECOGNIZED_KEYS:
            logger.debug(f"Ignoring unrecognized frontmatter key '{key}'")
            continue

        if key in fields:
            logger.debug(f"Frontmatter key '{key}' repeated on line {line_no}; last value wins")
        fields[key] = value

    tags = fields.get("tags")
    if isinstance(tags, str):
        fields["tags"] = [tags] if tags else []

    raw_date = fields.get("date")
    if isinstance(raw_date, str):
        parsed = parse_date(raw_date)
        if parsed is not None:
            fields["date"] = parsed

    return fields


def parse_post(text: str) -> ParsedPost:
    """Parse a post file into its metadata fields and markdown body.

    Args:
        text: Raw file content

    Returns:
        ParsedPost with recognized fields and the body text

    Raises:
        MalformedStructure: On missing delimiters or unreadable metadata lines

    Example:
        >>> parsed = parse_post('---\\ntitle: "A"\\nslug: a\\n---\\nHi\\n')
        >>> parsed.fields["title"], parsed.body
        ('A', 'Hi\\n')
    """
    metadata_lines, body = split_frontmatter(text)
    return ParsedPost(fields=parse_metadata(metadata_lines), body=body)
