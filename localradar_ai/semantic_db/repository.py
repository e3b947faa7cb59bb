"""
Firestore catalog repository
----------------------------
Each catalog collection (jobs, items, events, shops, services) is a
Firestore collection of documents shaped like:

    {"attributes": {"type": "...", "color": "...", "latitude": 13.0, ...}, ...}
"""

from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from google.cloud import firestore

from ..common.errors import ProviderError
from .models import CatalogItem, Collection

logger = logging.getLogger(__name__)


class FirestoreCatalogRepository:
    name = "firestore"

    def __init__(
            self,
            project_id: Optional[str],
            origin: Tuple[float, float],
            timeout: float = 15.0,
            client: Optional[firestore.Client] = None,
    ):
        self.project_id = project_id
        self.origin = origin
        self.timeout = timeout
        self._db = client  # lazy client

    @property
    def db(self) -> firestore.Client:
        if self._db is None:
            self._db = firestore.Client(project=self.project_id)
        return self._db

    def fetch(self, collection: Collection) -> List[CatalogItem]:
        """
        Stream every document of a collection. Geo collections come back
        with distance_km relative to the configured origin.
        """
        try:
            docs = list(self.db.collection(collection.value).stream(timeout=self.timeout))
        except Exception as e:
            raise ProviderError(self.name, f"failed to read '{collection.value}': {e}") from e

        items = []
        for doc in docs:
            data = doc.to_dict() or {}
            items.append(CatalogItem.from_document(doc.id, data, collection, origin=self.origin))

        logger.info(f"Fetched {len(items)} records from '{collection.value}'")
        return items
