"""
Pytest configuration and shared fixtures for all tests.

This module provides shared fixtures and helpers for the test suite,
including:
- A ContentStore in a per-test temporary directory
- A ChangeClassifier wired to that store
- A fake repository client that serves file content from a dict
- Helpers to build signed push notifications
"""
import json
from typing import Dict, Iterable, List, Optional

import pytest

from content.errors import FetchFailure
from content.store import ContentStore
from webhook.classifier import ChangeClassifier
from webhook.receiver import WebhookReceiver, compute_signature

WEBHOOK_SECRET = "test-webhook-secret"
REPOSITORY = "owner/site-content"
COMMIT = "0123456789abcdef0123456789abcdef01234567"


def post_text(title: str = "Hello World", slug: str = "hello-world", date: str = "2024-01-15",
              tags: str = "[python, webhooks]", body: str = "Body text.\n") -> str:
    """Build a well-formed post file."""
    return (
        "---\n"
        f'title: "{title}"\n'
        f'slug: "{slug}"\n'
        f'date: "{date}"\n'
        f"tags: {tags}\n"
        "---\n"
        f"{body}"
    )


def project_text(name: str = "Sitesync", url: str = "https://example.com/sitesync",
                 description: str = "Content sync", image: str = "img/sitesync.png") -> str:
    """Build a well-formed project file."""
    return json.dumps({"Name": name, "Description": description, "Url": url, "Image": image})


def push_payload(added: Iterable[str] = (), modified: Iterable[str] = (),
                 removed: Iterable[str] = (), commits: Optional[List[Dict]] = None) -> Dict:
    """Build a push event with a single commit unless commits are given."""
    if commits is None:
        commits = [{"id": COMMIT, "added": list(added), "modified": list(modified), "removed": list(removed)}]
    return {
        "ref": "refs/heads/main",
        "after": COMMIT,
        "repository": {"full_name": REPOSITORY},
        "commits": commits,
    }


def sign(payload: Dict, secret: str = WEBHOOK_SECRET):
    """Return (body bytes, signature header) for a payload."""
    body = json.dumps(payload).encode("utf-8")
    return body, compute_signature(secret, body)


class FakeRepositoryClient:
    """Serves file content from a dict and records every fetch.

    Paths listed in failing raise FetchFailure when fetched.
    """

    def __init__(self, files: Optional[Dict[str, str]] = None, failing: Iterable[str] = ()):
        self.files = dict(files or {})
        self.failing = set(failing)
        self.fetched: List[str] = []

    def fetch_many(self, repository: str, ref: str, paths: Iterable[str]) -> Dict[str, str]:
        paths = list(paths)
        self.fetched.extend(paths)
        for path in paths:
            if path in self.failing:
                raise FetchFailure(f"Failed to fetch {path}: HTTP 503", path=path)
        return {path: self.files[path] for path in paths}


@pytest.fixture
def store(tmp_path):
    """ContentStore backed by a temporary directory, closed after the test."""
    content_store = ContentStore(str(tmp_path / "content"))
    yield content_store
    content_store.close()


@pytest.fixture
def classifier(store):
    return ChangeClassifier(store)


@pytest.fixture
def repository_client():
    return FakeRepositoryClient()


@pytest.fixture
def receiver(classifier, repository_client):
    return WebhookReceiver(
        secret=WEBHOOK_SECRET,
        repository_client=repository_client,
        classifier=classifier,
    )
