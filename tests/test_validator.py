"""
Unit Tests for the Validator.

Validates parsed post and project fields against the JSON schemas plus the
checks the schemas can't express (dates, absolute URLs, key ownership).

Running Tests:
    $ pytest tests/test_validator.py -v
"""
from datetime import date

import pytest

from content.models import Post, Project, RecordKind
from content.validator import Validator, is_absolute_url


def _post_fields(**overrides):
    fields = {
        "title": "Hello World",
        "slug": "hello-world",
        "date": date(2024, 1, 15),
        "tags": ["python"],
    }
    fields.update(overrides)
    return fields


def _project_fields(**overrides):
    fields = {
        "Name": "Sitesync",
        "Description": "Content sync",
        "Url": "https://example.com/sitesync",
        "Image": "img/sitesync.png",
    }
    fields.update(overrides)
    return fields


@pytest.fixture
def validator(store):
    return Validator(store)


class TestValidatePost:
    """Post frontmatter rules."""

    def test_valid_post(self, validator):
        result = validator.validate_post(_post_fields(), "Body\n", "Posts/hello.md")

        assert result.ok
        assert result.reason is None
        assert result.record == Post(
            title="Hello World", slug="hello-world", date=date(2024, 1, 15),
            tags=["python"], body="Body\n",
        )

    def test_tags_optional(self, validator):
        fields = _post_fields()
        del fields["tags"]
        result = validator.validate_post(fields, "", "Posts/hello.md")

        assert result.ok
        assert result.record.tags == []

    def test_all_missing_fields_reported_together(self, validator):
        result = validator.validate_post({}, "", "Posts/empty.md")

        assert not result.ok
        assert result.reason == "ValidationFailed"
        assert sorted(v.field for v in result.violations) == ["date", "slug", "title"]
        assert all(v.message == "is required" for v in result.violations)

    def test_empty_title(self, validator):
        result = validator.validate_post(_post_fields(title=""), "", "Posts/hello.md")

        assert [str(v) for v in result.violations] == ["title: must not be empty"]

    @pytest.mark.parametrize("slug", ["Hello-World", "hello world", "hello--world", "-hello", "hello_world", ""])
    def test_invalid_slug(self, validator, slug):
        result = validator.validate_post(_post_fields(slug=slug), "", "Posts/hello.md")

        assert not result.ok
        assert [v.field for v in result.violations] == ["slug"]

    def test_unparsed_date(self, validator):
        result = validator.validate_post(_post_fields(date="15/01/2024"), "", "Posts/hello.md")

        assert not result.ok
        assert result.violations[0].field == "date"
        assert "YYYY-MM-DD" in result.violations[0].message

    def test_tag_with_whitespace(self, validator):
        result = validator.validate_post(_post_fields(tags=["ok", "not ok"]), "", "Posts/hello.md")

        assert not result.ok
        assert result.violations[0].field == "tags.1"
        assert "single word" in result.violations[0].message

    def test_slug_owned_by_other_file(self, validator, store):
        store.upsert(RecordKind.POST, "hello-world", Post("Old", "hello-world", date(2024, 1, 1)), "Posts/first.md")

        result = validator.validate_post(_post_fields(), "", "Posts/second.md")

        assert not result.ok
        assert result.reason == "SlugConflict"
        assert "Posts/first.md" in result.violations[0].message

    def test_same_file_may_update_its_slug(self, validator, store):
        store.upsert(RecordKind.POST, "hello-world", Post("Old", "hello-world", date(2024, 1, 1)), "Posts/first.md")

        result = validator.validate_post(_post_fields(title="New"), "", "Posts/first.md")

        assert result.ok

    def test_conflict_reported_with_other_violations(self, validator, store):
        store.upsert(RecordKind.POST, "hello-world", Post("Old", "hello-world", date(2024, 1, 1)), "Posts/first.md")

        result = validator.validate_post(_post_fields(title=""), "", "Posts/second.md")

        assert result.reason == "SlugConflict"
        assert len(result.violations) == 2


class TestValidateProject:
    """Project record rules."""

    def test_valid_project(self, validator):
        result = validator.validate_project(_project_fields(), "projects/sitesync.json")

        assert result.ok
        assert result.record == Project(
            name="Sitesync", description="Content sync",
            url="https://example.com/sitesync", image="img/sitesync.png",
        )

    def test_empty_description_and_image_allowed(self, validator):
        result = validator.validate_project(_project_fields(Description="", Image=""), "projects/s.json")
        assert result.ok

    def test_missing_fields(self, validator):
        result = validator.validate_project({"Name": "X"}, "projects/x.json")

        assert sorted(v.field for v in result.violations) == ["Description", "Image", "Url"]

    def test_non_string_value(self, validator):
        result = validator.validate_project(_project_fields(Description=5), "projects/s.json")

        assert not result.ok
        assert result.violations[0].field == "Description"

    def test_relative_url(self, validator):
        result = validator.validate_project(_project_fields(Url="not a url"), "projects/s.json")

        assert not result.ok
        assert result.violations[0].field == "Url"
        assert "absolute" in result.violations[0].message

    def test_empty_url(self, validator):
        result = validator.validate_project(_project_fields(Url=""), "projects/s.json")

        assert [str(v) for v in result.violations] == ["Url: must not be empty"]

    def test_name_owned_by_other_file(self, validator, store):
        store.upsert(
            RecordKind.PROJECT, "Sitesync",
            Project("Sitesync", "", "https://example.com", ""), "projects/a.json",
        )

        result = validator.validate_project(_project_fields(), "projects/b.json")

        assert result.reason == "SlugConflict"


@pytest.mark.parametrize("url,expected", [
    ("https://example.com", True),
    ("http://example.com/path?q=1", True),
    ("ftp://example.com", False),
    ("example.com", False),
    ("/relative/path", False),
    ("https://", False),
    ("https://exa mple.com", False),
    ("", False),
])
def test_is_absolute_url(url, expected):
    assert is_absolute_url(url) is expected
