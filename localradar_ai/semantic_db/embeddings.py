"""
Embedding providers
-------------------
    HuggingFaceEmbeddingProvider  - HF inference API (raw JSON, any shape)
    VertexEmbeddingProvider       - Vertex AI TextEmbeddingModel
    EmbeddingCache                - LRU of normalised vectors keyed by text hash

Providers return the raw response; normalisation happens in vectors.py.
"""

from __future__ import annotations

import hashlib
import logging
import threading
from collections import OrderedDict
from typing import Any, List, Optional

import requests
from google.cloud import aiplatform
from vertexai.language_models import TextEmbeddingModel

from ..common.errors import ProviderError

logger = logging.getLogger(__name__)


class HuggingFaceEmbeddingProvider:
    name = "huggingface"

    def __init__(
            self,
            api_key: str,
            model: str = "facebook/bart-base",
            base_url: str = "https://api-inference.huggingface.co/models",
            timeout: float = 15.0,
            session: Optional[requests.Session] = None,
    ):
        self.api_key = api_key
        self.url = f"{base_url.rstrip('/')}/{model}"
        self.timeout = timeout
        self._session = session
        self._local = threading.local()

    @property
    def session(self) -> requests.Session:
        """The injected session, or one per worker thread."""
        if self._session is not None:
            return self._session
        if not hasattr(self._local, "session"):
            self._local.session = requests.Session()
        return self._local.session

    def embed(self, text: str) -> Any:
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        try:
            response = self.session.post(self.url, json={"inputs": text}, headers=headers, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except requests.exceptions.RequestException as e:
            raise ProviderError(self.name, str(e)) from e
        except ValueError as e:
            raise ProviderError(self.name, f"response is not JSON: {e}") from e

        # a loading or rate-limited model can answer 200 with an error body
        if isinstance(data, dict) and "error" in data:
            raise ProviderError(self.name, str(data["error"]))
        return data


class VertexEmbeddingProvider:
    name = "vertex"

    def __init__(self, project_id: str, region: str = "us-central1", model: str = "text-embedding-004"):
        self.project_id = project_id
        self.region = region
        self.model_name = model
        self._model = None
        self._model_lock = threading.Lock()

    @property
    def model(self):
        if self._model is None:
            with self._model_lock:
                if self._model is None:
                    aiplatform.init(project=self.project_id, location=self.region)
                    self._model = TextEmbeddingModel.from_pretrained(self.model_name)
        return self._model

    def embed(self, text: str) -> List[float]:
        try:
            embeddings = self.model.get_embeddings([text])
        except Exception as e:
            raise ProviderError(self.name, str(e)) from e
        if not embeddings:
            raise ProviderError(self.name, "no embedding returned")
        return list(embeddings[0].values)


class EmbeddingCache:
    """
    Thread-safe LRU of normalised vectors keyed by the SHA-256 of the
    embedded text, so an unchanged catalog is embedded only once.
    """

    def __init__(self, max_entries: int = 2048):
        self.max_entries = max_entries
        self._store: "OrderedDict[str, List[float]]" = OrderedDict()
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    @staticmethod
    def key(text: str) -> str:
        return hashlib.sha256(text.encode("utf-8")).hexdigest()

    def get(self, text: str) -> Optional[List[float]]:
        key = self.key(text)
        with self._lock:
            vector = self._store.get(key)
            if vector is None:
                self.misses += 1
                return None
            self._store.move_to_end(key)
            self.hits += 1
            return vector

    def set(self, text: str, vector: List[float]) -> None:
        if self.max_entries <= 0:
            return
        key = self.key(text)
        with self._lock:
            self._store[key] = vector
            self._store.move_to_end(key)
            while len(self._store) > self.max_entries:
                self._store.popitem(last=False)

    def __len__(self) -> int:
        return len(self._store)
