"""Content Webhook Package.

Receives signed push notifications from the content repository, works out
which changed files are posts or projects, fetches them and ingests them
into the content store.

Key Components:
    create_app: Flask application factory (webhook + query endpoints)
    WebhookReceiver: Signature check, change extraction, fetch, ingest
    ChangeClassifier: Routes each changed path to its parser
    RepositoryClient: Fetches raw file content with timeout and retries

Endpoints:
    POST /webhook/github: Receives push notifications
    GET /api/posts, /api/projects: Query interface for the site renderer
    GET /health: Health check endpoint for monitoring
"""
from .classifier import ChangeClassifier
from .receiver import ReceiveResult, WebhookReceiver
from .repository_api import RepositoryClient
from .webhook import create_app

__all__ = ["ChangeClassifier", "ReceiveResult", "RepositoryClient", "WebhookReceiver", "create_app"]
