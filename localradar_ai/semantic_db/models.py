"""
Catalog Models and Utilities
----------------------------
Collections, catalog records, matches and the geographic helpers used
while scoring them.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from enum import Enum
from math import radians, cos, sin, asin, sqrt
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Union

AttributeValue = Union[str, int, float, bool]
AttributeMap = Dict[str, AttributeValue]

EARTH_RADIUS_KM = 6371


class Collection(Enum):
    JOBS = "jobs"
    ITEMS = "items"
    EVENTS = "events"
    SHOPS = "shops"
    SERVICES = "services"

    @property
    def singular(self) -> str:
        return self.value[:-1]

    @property
    def is_geo(self) -> bool:
        return self in GEO_COLLECTIONS


# Fixed scan order before any type-based prioritisation
COLLECTION_ORDER = (
    Collection.JOBS,
    Collection.ITEMS,
    Collection.EVENTS,
    Collection.SHOPS,
    Collection.SERVICES,
)

GEO_COLLECTIONS = frozenset({Collection.SHOPS, Collection.EVENTS, Collection.JOBS})


@dataclass(frozen=True)
class CatalogItem:
    """
    One record fetched from a catalog collection. Records are shared by every
    Match built from them, so attributes and data are read-only views.
    """
    id: str
    collection: Collection
    attributes: Mapping[str, Any]
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    distance_km: Optional[float] = None  # derived per fetch, never persisted
    data: Mapping[str, Any] = field(default_factory=dict)  # full stored document

    def __post_init__(self):
        object.__setattr__(self, "attributes", MappingProxyType(dict(self.attributes)))
        object.__setattr__(self, "data", MappingProxyType(dict(self.data)))

    @classmethod
    def from_document(
            cls,
            doc_id: str,
            data: Mapping[str, Any],
            collection: Collection,
            origin: Optional[tuple] = None,
    ) -> "CatalogItem":
        """
        Build an item from a stored document. Coordinates may live at the
        top level or inside attributes; geo collections get distance_km
        relative to origin when both coordinates are present.
        """
        attributes = data.get("attributes")
        if not isinstance(attributes, Mapping):
            attributes = {}
        attributes = dict(attributes)

        lat = _coordinate(data, attributes, "latitude", "lat")
        lon = _coordinate(data, attributes, "longitude", "lon")

        distance = None
        if collection.is_geo and origin is not None and lat is not None and lon is not None:
            distance = round(calculate_distance(origin[0], origin[1], lat, lon), 2)

        return cls(
            id=doc_id,
            collection=collection,
            attributes=attributes,
            latitude=lat,
            longitude=lon,
            distance_km=distance,
            data=dict(data),
        )

    def to_dict(self) -> Dict[str, Any]:
        out = dict(self.data)
        out["id"] = self.id
        out["attributes"] = dict(self.attributes)
        if self.distance_km is not None:
            out["distance"] = self.distance_km
        return out


@dataclass(frozen=True)
class Match:
    """A candidate that passed the acceptance threshold"""
    category: Collection
    item: CatalogItem
    similarity: float  # adjusted similarity, used for ranking
    original_similarity: float  # raw cosine similarity
    distance_km: Optional[float] = None

    @property
    def adjusted_similarity(self) -> float:
        return self.similarity

    def to_dict(self) -> Dict[str, Any]:
        return {
            "category": self.category.value,
            "item": self.item.to_dict(),
            "similarity": self.similarity,
            "originalSimilarity": self.original_similarity,
            "distance": self.distance_km,
        }


def _coordinate(data: Mapping, attributes: Mapping, *names: str) -> Optional[float]:
    for source in (data, attributes):
        for name in names:
            value = source.get(name)
            if value is None or value == "":
                continue
            try:
                return float(value)
            except (TypeError, ValueError):
                continue
    return None


def calculate_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Calculate distance between two points in kilometers using Haversine formula"""
    if lat1 == lat2 and lon1 == lon2:
        return 0.0

    lat1, lon1, lat2, lon2 = map(radians, [lat1, lon1, lat2, lon2])
    dlat = lat2 - lat1
    dlon = lon2 - lon1

    a = sin(dlat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(dlon / 2) ** 2
    # rounding can push a a hair above 1 for antipodal points
    c = 2 * asin(sqrt(min(1.0, a)))
    return EARTH_RADIUS_KM * c


def coerce_attribute_value(value: Any) -> Optional[AttributeValue]:
    """Reduce an extracted value to a scalar; None means drop the key."""
    if value is None:
        return None
    if isinstance(value, (str, int, float, bool)):
        return value.strip() if isinstance(value, str) else value
    if isinstance(value, (list, tuple)):
        parts = [str(v).strip() for v in value if v is not None and str(v).strip()]
        return ", ".join(parts) if parts else None
    return json.dumps(value, sort_keys=True, default=str)


def attributes_to_text(attributes: Mapping[str, Any]) -> str:
    """Join attributes as "key: value" pairs, skipping empty values."""
    return ", ".join(
        f"{key}: {value}"
        for key, value in attributes.items()
        if value is not None and value != ""
    )


_LEADING_NUMBER = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")


def parse_distance(value: Any) -> Optional[float]:
    """Read the leading number of a distance value ("5", 5, "5 km" -> 5.0)."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return float(value)
    match = _LEADING_NUMBER.match(str(value))
    return float(match.group(1)) if match else None
