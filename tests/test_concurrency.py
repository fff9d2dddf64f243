"""
Concurrency Tests for Ingestion.

Two notifications processed on separate threads, the way Gunicorn's
threaded worker runs them, must both land every file, and two files
racing for one slug must leave exactly one owner.

Running Tests:
    $ pytest tests/test_concurrency.py -v
"""
import threading

from conftest import FakeRepositoryClient, WEBHOOK_SECRET, post_text, push_payload, sign
from content.models import RecordKind
from webhook.receiver import WebhookReceiver


def _run_in_threads(receiver, payloads):
    results = [None] * len(payloads)
    errors = []
    barrier = threading.Barrier(len(payloads))

    def worker(index, payload):
        body, signature = sign(payload)
        barrier.wait()
        try:
            results[index] = receiver.receive(body, signature)
        except Exception as e:
            errors.append(e)

    threads = [threading.Thread(target=worker, args=(i, p)) for i, p in enumerate(payloads)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert errors == []
    return results


def test_two_notifications_with_100_distinct_files(store, classifier):
    files = {f"Posts/post-{i}.md": post_text(title=f"Post {i}", slug=f"post-{i}") for i in range(100)}
    receiver = WebhookReceiver(WEBHOOK_SECRET, FakeRepositoryClient(files), classifier)
    paths = sorted(files)

    results = _run_in_threads(receiver, [
        push_payload(added=paths[:50]),
        push_payload(added=paths[50:]),
    ])

    assert [r.accepted for r in results] == [50, 50]
    listing = store.list(RecordKind.POST)
    assert len(listing) == 100
    assert {p.slug for p in listing} == {f"post-{i}" for i in range(100)}


def test_racing_files_for_one_slug(store, classifier):
    files = {
        "Posts/first.md": post_text(title="First", slug="contested"),
        "Posts/second.md": post_text(title="Second", slug="contested"),
    }
    receiver = WebhookReceiver(WEBHOOK_SECRET, FakeRepositoryClient(files), classifier)

    results = _run_in_threads(receiver, [
        push_payload(added=["Posts/first.md"]),
        push_payload(added=["Posts/second.md"]),
    ])

    outcomes = [r.outcomes[0] for r in results]
    assert sorted(o.accepted for o in outcomes) == [False, True]
    loser = next(o for o in outcomes if not o.accepted)
    winner = next(o for o in outcomes if o.accepted)
    assert loser.reason == "SlugConflict"
    assert store.owner_of(RecordKind.POST, "contested") == winner.path
