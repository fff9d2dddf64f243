"""sitesync - content ingestion and publishing service.

Keeps a site's posts and projects in sync with the git repository they are
authored in: a push to the repository triggers a signed webhook, and the
changed Posts/*.md and projects/*.json files are fetched, validated and
stored for the site to serve.

Exported Functions:
    main: Entry point for the sitesync console command
    build_service: Wire store, receiver and notifier from configuration
"""
from .sitesync import build_service, main

__all__ = ["build_service", "main"]
