"""
Catalog Matching Core
---------------------
Scores every catalog record against an attribute map:

    1. embed the query attributes
    2. scan collections (the requested type first)
    3. embed each record's attributes with bounded concurrency
    4. cosine similarity + category / color / distance adjustments
    5. keep records above the acceptance threshold, best first
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from contextlib import contextmanager
from typing import Any, Iterable, Iterator, List, Mapping, Optional, Set

from ..common.errors import ProviderError
from .embeddings import EmbeddingCache
from .models import (
    COLLECTION_ORDER, CatalogItem, Collection, Match,
    attributes_to_text, parse_distance,
)
from .vectors import EmbeddingVector, cosine_similarity, normalize_embedding

logger = logging.getLogger(__name__)

CATEGORY_BOOST = 0.2
COLOR_BOOST = 0.15
DISTANCE_BOOST = 0.1
DISTANCE_PENALTY = 0.05

HIGH_SIMILARITY_LOG_LEVEL = 0.5


def _requested_type(attributes: Mapping[str, Any]) -> Optional[str]:
    value = attributes.get("type")
    if value is None:
        return None
    value = str(value).strip().lower()
    return value or None


def type_matches_collection(type_value: Optional[str], collection: Collection) -> bool:
    """
    Cross-containment between a requested type and a collection name,
    tolerant of singular/plural: "shop", "shops", "coffee shop" and "sho"
    all match Collection.SHOPS.
    """
    if not type_value:
        return False
    wanted = type_value.strip().lower()
    if not wanted:
        return False
    return (
        wanted in collection.value
        or wanted in collection.singular
        or collection.singular in wanted
    )


def prioritize_collections(
        attributes: Mapping[str, Any],
        collections: Iterable[Collection] = COLLECTION_ORDER,
) -> List[Collection]:
    """Move collections matching attributes["type"] to the front, keeping relative order."""
    collections = list(collections)
    wanted = _requested_type(attributes)
    if not wanted:
        return collections

    matched = [c for c in collections if type_matches_collection(wanted, c)]
    if matched:
        logger.info(f"Prioritizing collections: {[c.value for c in matched]}")
    return matched + [c for c in collections if c not in matched]


def adjust_similarity(
        base: float,
        collection: Collection,
        item: CatalogItem,
        attributes: Mapping[str, Any],
        default_max_distance_km: float = 10.0,
) -> float:
    """Apply the category, color and distance heuristics to a base similarity."""
    adjusted = base

    if type_matches_collection(_requested_type(attributes), collection):
        adjusted += CATEGORY_BOOST

    query_color = attributes.get("color")
    item_color = item.attributes.get("color")
    if query_color and item_color and str(query_color).strip().lower() == str(item_color).strip().lower():
        adjusted += COLOR_BOOST

    if collection.is_geo and item.distance_km is not None:
        max_distance = parse_distance(attributes.get("distance"))
        if max_distance is None:
            max_distance = default_max_distance_km
        if item.distance_km <= max_distance:
            adjusted += DISTANCE_BOOST
        else:
            adjusted -= DISTANCE_PENALTY

    return adjusted


class _EmbedCall:
    """One queued embedding; its clock starts when a worker picks it up."""

    def __init__(self, pool: ThreadPoolExecutor, embed, text: str, start_by: float):
        self.started = threading.Event()
        self.start_by = start_by
        self.future: Future = pool.submit(self._run, embed, text)

    def _run(self, embed, text: str) -> Optional[EmbeddingVector]:
        self.started.set()
        return embed(text)


class MatchingEngine:
    """
    Scans the catalog for records similar to an attribute map.

    Every match() call embeds through its own bounded pool, so concurrent
    queries never queue behind each other's records.

    Args:
        repository: object with fetch(Collection) -> List[CatalogItem]
        embedder: object with embed(text) -> raw embedding response
        threshold: adjusted similarity a record must exceed to be kept
        default_max_distance_km: distance cap when the query names none
        concurrency: embedding requests in flight per match() call
        timeout: seconds one embedding attempt may run once started
        retries: extra attempts after a failed embedding request
        cache: optional EmbeddingCache shared across queries
    """

    def __init__(
            self,
            repository,
            embedder,
            threshold: float = 0.6,
            default_max_distance_km: float = 10.0,
            concurrency: int = 4,
            timeout: float = 15.0,
            retries: int = 1,
            cache: Optional[EmbeddingCache] = None,
            retry_delay: float = 0.5,
    ):
        self.repository = repository
        self.embedder = embedder
        self.threshold = threshold
        self.default_max_distance_km = default_max_distance_km
        self.concurrency = max(1, concurrency)
        self.timeout = timeout
        self.retries = max(0, retries)
        self.cache = cache
        self.retry_delay = retry_delay
        self._pools: Set[ThreadPoolExecutor] = set()
        self._pools_lock = threading.Lock()
        self._closed = False

    @property
    def call_budget(self) -> float:
        """Seconds one embedding may take once started, retries and back-off included."""
        return self.timeout * (self.retries + 1) + self.retry_delay * self.retries

    # ── lifecycle ─────────────────────────────────────────
    def close(self) -> None:
        with self._pools_lock:
            self._closed = True
            pools = list(self._pools)
        for pool in pools:
            pool.shutdown(wait=False, cancel_futures=True)

    def __enter__(self) -> "MatchingEngine":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    @contextmanager
    def _fan_out(self) -> Iterator[ThreadPoolExecutor]:
        pool = ThreadPoolExecutor(max_workers=self.concurrency, thread_name_prefix="embed")
        with self._pools_lock:
            if self._closed:
                pool.shutdown(wait=False)
                raise RuntimeError("MatchingEngine is closed")
            self._pools.add(pool)
        try:
            yield pool
        finally:
            with self._pools_lock:
                self._pools.discard(pool)
            # a hung provider call keeps its thread until its transport timeout fires
            pool.shutdown(wait=False, cancel_futures=True)

    # ── embeddings ────────────────────────────────────────
    def _embed(self, text: str) -> Optional[EmbeddingVector]:
        if self.cache is not None:
            cached = self.cache.get(text)
            if cached is not None:
                return cached

        raw = None
        for attempt in range(self.retries + 1):
            try:
                raw = self.embedder.embed(text)
                break
            except ProviderError as e:
                logger.warning(f"Embedding attempt {attempt + 1}/{self.retries + 1} failed: {e}")
                if attempt == self.retries:
                    return None
                time.sleep(self.retry_delay)

        vector = normalize_embedding(raw)
        if vector is not None and self.cache is not None:
            self.cache.set(text, vector)
        return vector

    def _wait(self, call: _EmbedCall, label: str) -> Optional[EmbeddingVector]:
        if not call.started.wait(timeout=max(0.0, call.start_by - time.monotonic())):
            if call.future.cancel():
                logger.warning(f"Embedding for {label} never got a worker, skipping")
                return None
        try:
            return call.future.result(timeout=self.call_budget)
        except FutureTimeoutError:
            logger.warning(f"Embedding timed out for {label}")
        except Exception as e:
            logger.warning(f"Error getting embedding for {label}: {e}")
        return None

    # ── matching ──────────────────────────────────────────
    def match(self, attributes: Mapping[str, Any]) -> List[Match]:
        """
        Return every catalog record whose adjusted similarity exceeds the
        threshold, ordered best first (ties keep scan order).
        """
        matches: List[Match] = []

        query_text = attributes_to_text(attributes)
        if not query_text:
            logger.error("No valid attributes found")
            return matches
        logger.info(f"Attributes text: {query_text}")

        with self._fan_out() as pool:
            query_call = _EmbedCall(pool, self._embed, query_text, time.monotonic() + self.call_budget)
            query_vector = self._wait(query_call, "query attributes")
            if query_vector is None:
                logger.error("Failed to get embedding for attributes")
                return matches

            for collection in prioritize_collections(attributes):
                try:
                    items = self.repository.fetch(collection)
                except Exception as e:
                    logger.error(f"Error fetching '{collection.value}', skipping collection: {e}")
                    continue

                logger.info(f"{collection.value} items: {len(items) if items else 0}")
                if not items:
                    continue

                matches.extend(self._score_collection(pool, collection, items, query_vector, attributes))

        logger.info(f"Total matches found: {len(matches)}")
        matches.sort(key=lambda m: m.similarity, reverse=True)

        if matches:
            logger.info("Top 3 matches: " + "; ".join(
                f"{m.category.value}/{m.item.id} similarity={m.similarity:.3f} "
                f"original={m.original_similarity:.3f} distance={m.distance_km}"
                for m in matches[:3]
            ))
        return matches

    def _score_collection(
            self,
            pool: ThreadPoolExecutor,
            collection: Collection,
            items: List[CatalogItem],
            query_vector: EmbeddingVector,
            attributes: Mapping[str, Any],
    ) -> List[Match]:
        started_at = time.monotonic()
        pending = []
        for item in items:
            if not item.attributes:
                logger.info(f"Skipping item in {collection.value} without attributes")
                continue
            item_text = attributes_to_text(item.attributes)
            if not item_text:
                logger.info(f"Skipping item in {collection.value} with empty attributes text")
                continue
            # worst case the call waits for every earlier wave to use its full budget
            wave = len(pending) // self.concurrency + 1
            call = _EmbedCall(pool, self._embed, item_text, started_at + wave * self.call_budget)
            pending.append((item, item_text, call))

        kept = []
        for item, item_text, call in pending:
            item_vector = self._wait(call, f"item {item.id} in {collection.value}")
            if item_vector is None:
                logger.warning(f"Failed to get embedding for item {item.id} in {collection.value}, skipping")
                continue

            similarity = cosine_similarity(query_vector, item_vector)
            if similarity > HIGH_SIMILARITY_LOG_LEVEL:
                logger.debug(f"High similarity match ({similarity:.3f}) in {collection.value}: {item_text}")

            adjusted = adjust_similarity(
                similarity, collection, item, attributes, self.default_max_distance_km
            )
            if adjusted > self.threshold:
                kept.append(Match(
                    category=collection,
                    item=item,
                    similarity=adjusted,
                    original_similarity=similarity,
                    distance_km=item.distance_km,
                ))
                logger.info(
                    f"Added match with adjusted similarity {adjusted:.3f} (original: {similarity:.3f})"
                )
        return kept
