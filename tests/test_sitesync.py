"""
Tests for service wiring in the sitesync entry point.

Running Tests:
    $ pytest tests/test_sitesync.py -v
"""
import os
from unittest.mock import patch

from sitesync.sitesync import build_service


def test_build_service_from_config(tmp_path):
    config = {
        "webhook": {"secret": "inline-secret"},
        "content": {"posts_dir": "content/posts", "projects_dir": "content/projects"},
        "storage": {"path": str(tmp_path / "content")},
        "pushover": {"enabled": False},
    }

    store, receiver, notifier = build_service(config)
    try:
        assert receiver.secret == "inline-secret"
        assert receiver.classifier.posts_dir == "content/posts"
        assert receiver.classifier.store is store
        assert receiver.repository_client.raw_base_url == "https://raw.githubusercontent.com"
        assert notifier.enabled is False
        assert os.path.exists(store.db_path)
    finally:
        store.close()


def test_build_service_secret_from_environment(tmp_path):
    config = {"webhook": {"secret_file": "/nonexistent/secret"}, "storage": {"path": str(tmp_path)}}

    with patch.dict(os.environ, {"WEBHOOK_SECRET": "env-secret"}):
        store, receiver, _ = build_service(config)
    store.close()

    assert receiver.secret == "env-secret"
    assert receiver.classifier.posts_dir == "Posts"
