"""
Catalog DB with Semantic Matching
---------------------------------
Public API:

    MatchingEngine(...).match(attributes)
    FirestoreCatalogRepository(...).fetch(collection)
"""

from .models import (Collection, CatalogItem, Match, COLLECTION_ORDER, GEO_COLLECTIONS,
                     calculate_distance, attributes_to_text)
from .vectors import normalize_embedding, cosine_similarity

from .core import MatchingEngine   # noqa: F401  (re-export)
from .repository import FirestoreCatalogRepository   # noqa: F401  (re-export)
