"""
sitesync Core Module.

Entry point and wiring for the sitesync content ingestion service.

The sitesync entry point embeds Gunicorn to run the webhook receiver as a
production WSGI application, which:
1. Receives signed push notifications from the content repository
   (POST /webhook/github)
2. Fetches changed Posts/*.md and projects/*.json files at the pushed commit
3. Parses, validates and upserts them into the SQLite content store
4. Serves the stored records to the site renderer (GET /api/...)

The content store is created once at startup and closed when Gunicorn
exits, so its lifecycle matches the process.

Functions:
    build_service(config) -> (ContentStore, WebhookReceiver, PushoverNotifier)
    configure_logging(debug) -> None
    main() -> None

Example:
    Run via console script:
        $ sitesync
        Starting Gunicorn for sitesync webhook receiver
        Gunicorn server is ready to accept connections
"""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from typing import Any, Dict, Tuple

from config import load_config, resolve_secret
from content.store import ContentStore
from notifications.pushover import PushoverLoggingHandler, PushoverNotifier
from webhook.classifier import ChangeClassifier, DEFAULT_POSTS_DIR, DEFAULT_PROJECTS_DIR
from webhook.receiver import WebhookReceiver
from webhook.repository_api import RepositoryClient

logger = logging.getLogger(__name__)

DEFAULT_STORAGE_PATH = "./data/content"
LOG_FILE = "sitesync.log"


def configure_logging(debug: bool = False) -> None:
    """Configure root logging: rotating file (10MB x 3) plus stdout."""
    log_level = logging.DEBUG if debug else logging.INFO

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Clear any existing handlers to avoid duplicates (e.g., from gunicorn)
    root_logger.handlers.clear()

    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    log_handler = RotatingFileHandler(
        LOG_FILE,
        maxBytes=10 * 1024 * 1024,  # 10MB
        backupCount=3
    )
    log_handler.setLevel(log_level)
    log_handler.setFormatter(formatter)
    root_logger.addHandler(log_handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)


def build_service(config: Dict[str, Any]) -> Tuple[ContentStore, WebhookReceiver, PushoverNotifier]:
    """Create the content store, receiver and notifier from configuration.

    The caller owns the returned store and must close() it at shutdown.
    """
    storage_path = config.get("storage", {}).get("path", DEFAULT_STORAGE_PATH)
    content_config = config.get("content", {})

    store = ContentStore(storage_path)
    classifier = ChangeClassifier(
        store,
        posts_dir=content_config.get("posts_dir", DEFAULT_POSTS_DIR),
        projects_dir=content_config.get("projects_dir", DEFAULT_PROJECTS_DIR),
    )
    logger.info(f"Routing {classifier.posts_dir}/*.md as posts and {classifier.projects_dir}/*.json as projects")

    secret = resolve_secret(config.get("webhook", {}), "secret", "WEBHOOK_SECRET")
    receiver = WebhookReceiver(
        secret=secret,
        repository_client=RepositoryClient.from_config(config),
        classifier=classifier,
    )
    notifier = PushoverNotifier.from_config(config)
    return store, receiver, notifier


def main(debug: bool = False) -> None:
    """Main entry point for the sitesync console command.

    Args:
        debug: Enable DEBUG logging and disable the worker timeout so a
               debugger can sit on a breakpoint. Also set by --debug or
               SITESYNC_DEBUG=true.

    Architecture:
        sitesync main() -> Gunicorn (1 worker, threads) -> Flask app
    """
    from gunicorn.app.base import BaseApplication
    from webhook import gunicorn_config
    from webhook.webhook import create_app

    if not debug:
        debug = os.environ.get("SITESYNC_DEBUG", "").lower() in ("true", "1", "yes")
        if "--debug" in sys.argv[1:]:
            debug = True

    configure_logging(debug)
    if debug:
        logger.info("Debug mode enabled: verbose logging and worker timeout disabled")

    logger.info("Loading configuration from config.yml")
    config = load_config()

    store, receiver, notifier = build_service(config)
    if notifier.enabled:
        logging.getLogger().addHandler(PushoverLoggingHandler(notifier))

    app = create_app(receiver, store, notifier=notifier, config=config)

    class StandaloneApplication(BaseApplication):
        """Custom Gunicorn application for embedding within the sitesync entry point."""

        def __init__(self, app, options=None):
            self.options = options or {}
            self.application = app
            super().__init__()

        def load_config(self):
            for key, value in vars(gunicorn_config).items():
                if key in self.cfg.settings and value is not None:
                    self.cfg.set(key.lower(), value)

            def on_exit_hook(server):
                server.log.info("Shutting down Gunicorn, closing content store")
                store.close()

            self.cfg.set("on_exit", on_exit_hook)

            if self.options.get("debug"):
                self.cfg.set("timeout", 0)
                self.cfg.set("loglevel", "debug")

        def load(self):
            return self.application

    try:
        StandaloneApplication(app, {"debug": debug}).run()
    finally:
        # Gunicorn exits through SystemExit; make sure the store is closed either way
        store.close()


if __name__ == "__main__":
    main()
