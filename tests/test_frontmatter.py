"""
Unit Tests for the Frontmatter Parser.

Covers splitting a post file into metadata and body, the flat key/value
subset accepted inside the block, and the structural errors raised when a
file can't be read as that subset.

Running Tests:
    $ pytest tests/test_frontmatter.py -v
"""
from datetime import date

import pytest

from content.errors import MalformedStructure
from content.frontmatter import parse_post, split_frontmatter


class TestParsePost:
    """Well-formed post files."""

    def test_parses_all_recognized_fields(self):
        """Quoted scalars are unquoted, dates parsed and tags split."""
        text = (
            "---\n"
            'title: "Hello World"\n'
            'slug: "hello-world"\n'
            'date: "2024-01-15"\n'
            "tags: [python, webhooks]\n"
            "---\n"
            "Body text.\n"
        )
        parsed = parse_post(text)

        assert parsed.fields == {
            "title": "Hello World",
            "slug": "hello-world",
            "date": date(2024, 1, 15),
            "tags": ["python", "webhooks"],
        }
        assert parsed.body == "Body text.\n"

    def test_body_is_everything_after_closing_delimiter(self):
        """A later '---' line belongs to the body, not the metadata."""
        text = "---\ntitle: A\n---\nfirst\n---\nsecond\n"
        parsed = parse_post(text)

        assert parsed.body == "first\n---\nsecond\n"

    def test_empty_body_allowed(self):
        parsed = parse_post("---\ntitle: A\n---\n")
        assert parsed.body == ""

    def test_leading_blank_lines_before_opening_delimiter(self):
        parsed = parse_post("\n\n---\ntitle: A\n---\nHi\n")
        assert parsed.fields["title"] == "A"

    def test_leading_byte_order_mark_ignored(self):
        parsed = parse_post("\ufeff---\ntitle: A\n---\nHi\n")
        assert parsed.fields["title"] == "A"
        assert parsed.body == "Hi\n"

    def test_crlf_line_endings(self):
        parsed = parse_post('---\r\ntitle: "A"\r\nslug: a\r\n---\r\nHi\r\n')
        assert parsed.fields == {"title": "A", "slug": "a"}
        assert parsed.body == "Hi\r\n"

    def test_unquoted_values_and_single_quotes(self):
        parsed = parse_post("---\ntitle: 'It works'\nslug: it-works\n---\n")
        assert parsed.fields["title"] == "It works"
        assert parsed.fields["slug"] == "it-works"

    def test_value_containing_colon(self):
        """Only the first colon separates key from value."""
        parsed = parse_post('---\ntitle: "Python: a love story"\n---\n')
        assert parsed.fields["title"] == "Python: a love story"

    def test_scalar_tag_becomes_single_item_list(self):
        parsed = parse_post("---\ntags: python\n---\n")
        assert parsed.fields["tags"] == ["python"]

    def test_quoted_list_items_and_trailing_comma(self):
        parsed = parse_post('---\ntags: ["python", \'flask\',]\n---\n')
        assert parsed.fields["tags"] == ["python", "flask"]

    def test_empty_list(self):
        parsed = parse_post("---\ntags: []\n---\n")
        assert parsed.fields["tags"] == []

    def test_unknown_keys_ignored(self):
        parsed = parse_post("---\ntitle: A\nauthor: someone\n---\n")
        assert parsed.fields == {"title": "A"}

    def test_duplicate_key_last_wins(self):
        parsed = parse_post("---\ntitle: First\ntitle: Second\n---\n")
        assert parsed.fields["title"] == "Second"

    def test_unparseable_date_left_as_text(self):
        """The validator reports bad dates, so the parser passes them through."""
        parsed = parse_post("---\ndate: 15/01/2024\n---\n")
        assert parsed.fields["date"] == "15/01/2024"

    def test_missing_fields_are_not_a_parse_error(self):
        parsed = parse_post("---\n---\nJust a body\n")
        assert parsed.fields == {}
        assert parsed.body == "Just a body\n"


class TestMalformedStructure:
    """Files that can't be read as frontmatter plus body."""

    def test_missing_closing_delimiter(self):
        with pytest.raises(MalformedStructure) as exc_info:
            parse_post('---\ntitle: "A"\n')
        assert "closing" in str(exc_info.value)

    def test_missing_opening_delimiter(self):
        with pytest.raises(MalformedStructure):
            parse_post('title: "A"\n---\nBody\n')

    def test_empty_file(self):
        with pytest.raises(MalformedStructure):
            parse_post("")

    def test_whitespace_only_file(self):
        with pytest.raises(MalformedStructure):
            parse_post("\n  \n")

    def test_line_without_colon(self):
        with pytest.raises(MalformedStructure):
            parse_post("---\ntitle A\n---\n")

    def test_line_with_empty_key(self):
        with pytest.raises(MalformedStructure):
            parse_post("---\n: value\n---\n")

    def test_unterminated_list(self):
        with pytest.raises(MalformedStructure) as exc_info:
            parse_post("---\ntags: [python, flask\n---\n")
        assert "tags" in str(exc_info.value)

    def test_error_code(self):
        with pytest.raises(MalformedStructure) as exc_info:
            parse_post("no frontmatter here")
        assert exc_info.value.code == "MalformedStructure"


def test_split_frontmatter_returns_raw_lines():
    metadata, body = split_frontmatter("---\ntitle: A\n\nslug: a\n---\nBody")
    assert metadata == ["title: A", "", "slug: a"]
    assert body == "Body"
