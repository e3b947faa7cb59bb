import threading
import time

import pytest

from localradar_ai.common.errors import ProviderError
from localradar_ai.semantic_db.core import MatchingEngine
from localradar_ai.semantic_db.models import CatalogItem, Collection, Match


class FakeEmbedder:
    """Maps embedded text to a canned response; unknown text gets `default`."""

    def __init__(self, vectors=None, default=None, fail=(), fail_times=None, slow=(), delay=1.0):
        self.vectors = dict(vectors or {})
        self.default = default
        self.fail = set(fail)
        self.fail_times = dict(fail_times or {})
        self.slow = set(slow)
        self.delay = delay
        self.calls = []
        self._lock = threading.Lock()

    def embed(self, text):
        with self._lock:
            self.calls.append(text)
            remaining = self.fail_times.get(text, 0)
            if remaining:
                self.fail_times[text] = remaining - 1
        if remaining:
            raise ProviderError("fake", f"transient failure for {text!r}")
        if text in self.fail:
            raise ProviderError("fake", f"cannot embed {text!r}")
        if text in self.slow:
            time.sleep(self.delay)
        return self.vectors.get(text, self.default)


class FakeRepository:
    def __init__(self, catalog=None, failing=()):
        self.catalog = dict(catalog or {})
        self.failing = set(failing)
        self.calls = []

    def fetch(self, collection):
        self.calls.append(collection)
        if collection in self.failing:
            raise ProviderError("fake-repo", f"{collection.value} unavailable")
        return list(self.catalog.get(collection, []))


class FakeLLM:
    """Returns queued replies in order (the last one repeats), or raises `error`."""

    def __init__(self, replies=None, error=None):
        self.replies = list(replies or [""])
        self.error = error
        self.calls = []

    def complete(self, system_instruction, messages, max_tokens=150):
        self.calls.append((system_instruction, list(messages), max_tokens))
        if self.error is not None:
            raise self.error
        if len(self.replies) > 1:
            return self.replies.pop(0)
        return self.replies[0]


def make_item(collection, item_id, distance=None, **attributes):
    return CatalogItem(id=item_id, collection=collection, attributes=attributes, distance_km=distance)


def make_match(item_id, similarity, collection=Collection.ITEMS):
    item = make_item(collection, item_id, name=item_id)
    return Match(category=collection, item=item, similarity=similarity, original_similarity=similarity)


@pytest.fixture
def build_engine():
    engines = []

    def _build(repository, embedder, **kwargs):
        kwargs.setdefault("concurrency", 2)
        kwargs.setdefault("timeout", 2.0)
        kwargs.setdefault("retries", 0)
        kwargs.setdefault("retry_delay", 0)
        engine = MatchingEngine(repository, embedder, **kwargs)
        engines.append(engine)
        return engine

    yield _build
    for engine in engines:
        engine.close()
