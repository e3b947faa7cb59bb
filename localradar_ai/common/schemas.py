import json

from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional

from ..semantic_db.models import Match


class ChatRequest(BaseModel):
    user_input: str = Field(..., max_length=2000)


class MatchOut(BaseModel):
    category: str
    item: Dict[str, Any]
    similarity: float
    original_similarity: float
    distance_km: Optional[float] = None

    @classmethod
    def from_match(cls, match: Match) -> "MatchOut":
        return cls(
            category=match.category.value,
            # Firestore values (timestamps, geo points) are reduced to JSON-safe types
            item=json.loads(json.dumps(match.item.to_dict(), default=str)),
            similarity=match.similarity,
            original_similarity=match.original_similarity,
            distance_km=match.distance_km,
        )


class MatchResult(BaseModel):
    message: str
    items: List[MatchOut] = []
    error: bool = False
