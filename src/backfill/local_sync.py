"""
Local Checkout Backfill.

Ingests every content file of a local checkout of the content repository,
for a first deployment (the store starts empty and only hears about files
that change afterwards) or to recover a lost database.

Files go through the same ChangeClassifier as webhook notifications, so
routing, validation and slug ownership behave exactly as they do live.
Running a backfill twice is harmless: unchanged records are not rewritten.

Usage:
    $ sitesync-backfill /path/to/site-content
    $ sitesync-backfill /path/to/site-content --storage-path ./data/content

    Or import and use directly:
        >>> from backfill.local_sync import LocalSyncService
        >>> service = LocalSyncService(classifier, "/path/to/site-content")
        >>> results = service.sync()
"""

import argparse
import logging
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple

from config import load_config
from content.models import IngestionOutcome, OutcomeStatus, RecordKind, REASON_UNREADABLE
from content.store import ContentStore
from webhook.classifier import ChangeClassifier, DEFAULT_POSTS_DIR, DEFAULT_PROJECTS_DIR

logger = logging.getLogger(__name__)


class LocalSyncService:
    """Ingest the content files found in a local checkout."""

    def __init__(self, classifier: ChangeClassifier, checkout: str):
        self.classifier = classifier
        self.checkout = Path(checkout)

    def discover(self) -> Iterator[Tuple[str, RecordKind]]:
        """Yield (repository path, kind) for every routable file, sorted by path."""
        for directory in (self.classifier.posts_dir, self.classifier.projects_dir):
            root = self.checkout / directory
            if not root.is_dir():
                logger.warning(f"Content directory not found in checkout: {root}")
                continue
            for entry in sorted(root.iterdir()):
                if not entry.is_file():
                    continue
                path = entry.relative_to(self.checkout).as_posix()
                kind = self.classifier.route_path(path)
                if kind is not RecordKind.UNRECOGNIZED:
                    yield path, kind

    def sync(self) -> Dict[str, Any]:
        """Ingest every discovered file.

        Returns:
            Dictionary with "checkout", "accepted", "rejected" counts and
            the per-file "outcomes"
        """
        outcomes: List[IngestionOutcome] = []
        for path, kind in self.discover():
            try:
                data = (self.checkout / path).read_bytes()
            except OSError as e:
                logger.error(f"Could not read {path}: {e}")
                outcomes.append(IngestionOutcome(
                    path=path,
                    record_kind=kind,
                    status=OutcomeStatus.REJECTED,
                    reason=REASON_UNREADABLE,
                ))
                continue
            outcomes.append(self.classifier.ingest(path, kind, data))

        accepted = sum(1 for outcome in outcomes if outcome.accepted)
        logger.info(f"Backfill of {self.checkout}: {accepted} accepted, {len(outcomes) - accepted} rejected")
        return {
            "checkout": str(self.checkout),
            "accepted": accepted,
            "rejected": len(outcomes) - accepted,
            "outcomes": [outcome.to_dict() for outcome in outcomes],
        }


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Ingest a local checkout of the content repository.")
    parser.add_argument("checkout", help="Path to the local checkout")
    parser.add_argument(
        "--storage-path",
        default=None,
        help="Content store directory (default: storage.path from config.yml)",
    )
    parser.add_argument("--verbose", action="store_true", help="Log every file outcome")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    checkout = Path(args.checkout)
    if not checkout.is_dir():
        print(f"Checkout not found or not a directory: {checkout}")
        return 1

    config = load_config()
    content_config = config.get("content", {})
    storage_path = args.storage_path or config.get("storage", {}).get("path", "./data/content")

    with ContentStore(storage_path) as store:
        classifier = ChangeClassifier(
            store,
            posts_dir=content_config.get("posts_dir", DEFAULT_POSTS_DIR),
            projects_dir=content_config.get("projects_dir", DEFAULT_PROJECTS_DIR),
        )
        results = LocalSyncService(classifier, str(checkout)).sync()

    for outcome in results["outcomes"]:
        if outcome["status"] != "Accepted":
            print(f"Rejected {outcome['path']}: {outcome.get('reason')}")
    print(f"Backfill complete. Accepted: {results['accepted']}, Rejected: {results['rejected']}")
    return 0 if results["rejected"] == 0 else 2


if __name__ == "__main__":
    raise SystemExit(main())
