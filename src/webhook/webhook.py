"""
Content Webhook Receiver - Flask Application.

HTTP surface of sitesync. Accepts push notifications from the content
repository, hands them to the WebhookReceiver, and serves the ingested
records to the site renderer.

Endpoints:
    POST /webhook/github           Push notification (signed)
    GET  /api/posts                All posts, optionally filtered by ?tag=
    GET  /api/posts/<slug>         One post
    GET  /api/projects             All projects
    GET  /api/projects/<name>      One project
    GET  /health                   Liveness check

Webhook Status Codes:
    - 200: Notification processed (individual files may still be rejected;
           see "rejected" and "outcomes" in the body)
    - 400: Body is not a push notification we understand
    - 401: Signature missing or invalid (body never parsed)
    - 503: Changed files could not be fetched; safe to redeliver
    - 500: Unexpected error

Logging Strategy:
    - INFO: Notification receipt and aggregate outcome
    - DEBUG: Per-file outcomes
    - WARNING: Authentication failures
    - ERROR: Fetch failures and unexpected exceptions (with traceback)
"""
import logging
from typing import Any, Dict, Optional

from flask import Flask, request, jsonify, current_app
from flask_cors import CORS

from config import load_config
from content.errors import FetchFailure, MalformedNotification, SiteSyncError, Unauthenticated
from content.models import RecordKind
from content.store import ContentStore
from notifications.pushover import PushoverNotifier
from webhook.receiver import WebhookReceiver

# Logging is configured in sitesync.main() - this module uses the configured logger
logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "X-Hub-Signature-256"
EVENT_HEADER = "X-GitHub-Event"
DELIVERY_HEADER = "X-GitHub-Delivery"

# Seconds a sender should wait before redelivering after a fetch failure
FETCH_RETRY_AFTER_SECONDS = 30

# Push payloads for a content repository are small; anything bigger is refused
MAX_CONTENT_LENGTH = 5 * 1024 * 1024


def create_app(receiver: WebhookReceiver, store: ContentStore,
               notifier: Optional[PushoverNotifier] = None,
               config: Optional[Dict[str, Any]] = None) -> Flask:
    """Factory function to create and configure the Flask application.

    Dependencies are injected so tests can pass a receiver wired to a fake
    repository client and a store in a temporary directory.

    Args:
        receiver: WebhookReceiver that authenticates and ingests notifications
        store: ContentStore backing the query endpoints
        notifier: Optional PushoverNotifier (created from config if None)
        config: Optional configuration dictionary (loaded from config.yml if None)

    Returns:
        Configured Flask application instance
    """
    app = Flask(__name__)
    app.config["MAX_CONTENT_LENGTH"] = MAX_CONTENT_LENGTH

    if config is None:
        config = load_config()

    # CORS only matters for the read-only query endpoints
    cors_config = config.get("cors", {})
    if cors_config.get("enabled", False):
        cors_origins = cors_config.get("origins", [])
        if cors_origins:
            CORS(app, resources={r"/api/*": {"origins": cors_origins}})
            logger.info(f"CORS enabled for origins: {cors_origins}")
        else:
            logger.warning("CORS enabled but no origins configured")
    else:
        logger.info("CORS is disabled in configuration")

    if notifier is None:
        notifier = PushoverNotifier.from_config(config)

    app.config["RECEIVER"] = receiver
    app.config["CONTENT_STORE"] = store
    app.config["PUSHOVER_NOTIFIER"] = notifier

    @app.route("/webhook/github", methods=["POST"])
    def receive_push():
        """Webhook endpoint for repository push notifications.

        The raw body is passed to the receiver untouched because the
        signature covers the exact bytes that were sent.

        Success Response (200):
            {
              "status": "success",
              "repository": "owner/site-content",
              "commit": "<sha>",
              "total": 3, "accepted": 2, "rejected": 1,
              "outcomes": [{"path": "Posts/a.md", "record_kind": "Post",
                            "status": "Accepted", "key": "a"}, ...]
            }
        """
        receiver = current_app.config["RECEIVER"]
        notifier = current_app.config["PUSHOVER_NOTIFIER"]

        body = request.get_data(cache=False)
        token = request.headers.get(SIGNATURE_HEADER)
        event = request.headers.get(EVENT_HEADER, "push")
        delivery = request.headers.get(DELIVERY_HEADER, "-")

        try:
            if event != "push":
                receiver.authenticate(body, token)
                logger.info(f"Acknowledged '{event}' event (delivery {delivery})")
                message = "pong" if event == "ping" else f"Event '{event}' ignored"
                return jsonify({"status": "success", "message": message}), 200

            logger.info(f"Received push notification (delivery {delivery})")
            result = receiver.receive(body, token)

        except Unauthenticated as e:
            notifier.notify_unauthenticated(request.remote_addr)
            return jsonify({"status": "error", "error": e.code, "message": "Unauthorized"}), 401

        except MalformedNotification as e:
            logger.error(f"Malformed notification (delivery {delivery}): {e}")
            return jsonify({"status": "error", "error": e.code, "message": str(e)}), 400

        except FetchFailure as e:
            logger.error(f"Fetch failure for delivery {delivery}: {e}")
            notifier.notify_fetch_failure(e.repository or "unknown", e.commit or "", str(e))
            response = jsonify({
                "status": "error",
                "error": e.code,
                "retryable": True,
                "message": str(e),
            })
            response.headers["Retry-After"] = str(FETCH_RETRY_AFTER_SECONDS)
            return response, 503

        except Exception as e:
            logger.error(f"Unexpected error processing notification: {e}", exc_info=True)
            return jsonify({"status": "error", "message": "Internal server error"}), 500

        summary = result.to_dict()
        for outcome in summary["outcomes"]:
            logger.debug(f"Outcome: {outcome}")

        rejections = [
            o for o in summary["outcomes"]
            if o["status"] == "Rejected" and o["record_kind"] != RecordKind.UNRECOGNIZED.value
        ]
        if rejections:
            notifier.notify_rejections(result.repository, result.commit, rejections, accepted=result.accepted)

        return jsonify({"status": "success", **summary}), 200

    @app.route("/api/posts", methods=["GET"])
    def list_posts():
        """List published posts, optionally only those carrying ?tag=<tag>."""
        tag = request.args.get("tag")
        posts = [
            post.to_dict()
            for post in current_app.config["CONTENT_STORE"].list(RecordKind.POST)
            if tag is None or tag in post.tags
        ]
        return jsonify({"posts": posts, "count": len(posts)}), 200

    @app.route("/api/posts/<slug>", methods=["GET"])
    def get_post(slug: str):
        post = current_app.config["CONTENT_STORE"].get(RecordKind.POST, slug)
        if post is None:
            return jsonify({"status": "error", "message": "Post not found"}), 404
        return jsonify(post.to_dict()), 200

    @app.route("/api/projects", methods=["GET"])
    def list_projects():
        projects = [p.to_dict() for p in current_app.config["CONTENT_STORE"].list(RecordKind.PROJECT)]
        return jsonify({"projects": projects, "count": len(projects)}), 200

    @app.route("/api/projects/<path:name>", methods=["GET"])
    def get_project(name: str):
        project = current_app.config["CONTENT_STORE"].get(RecordKind.PROJECT, name)
        if project is None:
            return jsonify({"status": "error", "message": "Project not found"}), 404
        return jsonify(project.to_dict()), 200

    @app.errorhandler(SiteSyncError)
    def handle_store_error(e):
        # Reached only from the query endpoints; the webhook handles its own errors
        logger.error(f"Query failed: {e}")
        return jsonify({"status": "error", "message": "Content store unavailable"}), 503

    @app.route("/health", methods=["GET"])
    def health_check():
        """Health check endpoint for container orchestration and load balancers.

        Reports unhealthy once the content store has been closed at shutdown.
        """
        store = current_app.config["CONTENT_STORE"]
        if store.closed:
            return jsonify({"status": "unhealthy"}), 503
        return jsonify({"status": "healthy"}), 200

    return app
