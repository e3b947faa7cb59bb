# orchestrator_agent/agent.py

"""
Search orchestration
--------------------
prompt → attributes → matches → message, with one relaxed retry:

    INITIAL ──(no matches)──▶ RELAXED ──(no matches)──▶ NO_RESULT
       │                        │
       └──(matches)──▶ MATCHED ◀┘
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, List, Mapping, Optional, Tuple

from ..chatbot_agent.agent import ResponseComposer
from ..common.errors import ConfigError
from ..common.llm import GeminiClient, GroqClient
from ..common.schemas import MatchOut, MatchResult
from ..config import Settings, load_settings
from ..extractor_agent.agent import AttributeExtractor
from ..semantic_db.core import MatchingEngine
from ..semantic_db.embeddings import EmbeddingCache, HuggingFaceEmbeddingProvider, VertexEmbeddingProvider
from ..semantic_db.models import AttributeMap, Match
from ..semantic_db.repository import FirestoreCatalogRepository

logger = logging.getLogger(__name__)

NOT_UNDERSTOOD_MESSAGE = "I couldn't understand your request. Could you please provide more details?"
NO_RESULT_MESSAGE = (
    'I couldn\'t find any items matching "{prompt}" in our database. '
    "Could you try a more general search?"
)
TECHNICAL_ISSUE_MESSAGE = (
    "I encountered a technical issue while processing your request. "
    "Please try again with a simpler query."
)


class SearchPhase(Enum):
    INITIAL = "initial"
    RELAXED = "relaxed"
    MATCHED = "matched"
    NO_RESULT = "no_result"


def relax_attributes(attributes: Mapping[str, Any], prompt: str) -> AttributeMap:
    """Keep only type and color, and add the raw prompt as a query attribute."""
    relaxed: AttributeMap = {}
    for key in ("type", "color"):
        if attributes.get(key):
            relaxed[key] = attributes[key]
    relaxed["query"] = prompt
    return relaxed


class SearchOrchestrator:
    """Runs one prompt end to end and never raises."""

    def __init__(self, extractor: AttributeExtractor, engine: MatchingEngine,
                 composer: ResponseComposer, top_k: int = 3):
        self.extractor = extractor
        self.engine = engine
        self.composer = composer
        self.top_k = top_k

    def search(self, prompt: str, attributes: AttributeMap) -> Tuple[SearchPhase, AttributeMap, List[Match]]:
        """
        Run the matching phases. Returns the final phase, the attribute map
        that produced the matches and the matches themselves.
        """
        matches = self.engine.match(attributes)
        logger.info(f"[{SearchPhase.INITIAL.value}] matching items: {len(matches)}")
        if matches:
            return SearchPhase.MATCHED, attributes, matches

        relaxed = relax_attributes(attributes, prompt)
        logger.info(f"No matches found, trying with simpler attributes: {relaxed}")
        matches = self.engine.match(relaxed)
        logger.info(f"[{SearchPhase.RELAXED.value}] simple matches found: {len(matches)}")
        if matches:
            return SearchPhase.MATCHED, relaxed, matches

        return SearchPhase.NO_RESULT, relaxed, []

    def handle_prompt(self, prompt: str) -> MatchResult:
        logger.info(f"Handling prompt: {prompt}")
        try:
            if not prompt or not prompt.strip():
                return MatchResult(message=NOT_UNDERSTOOD_MESSAGE, items=[])
            prompt = prompt.strip()

            attributes = self.extractor.extract(prompt)
            if not attributes:
                return MatchResult(message=NOT_UNDERSTOOD_MESSAGE, items=[])

            phase, used, matches = self.search(prompt, attributes)
            if phase is SearchPhase.NO_RESULT:
                return MatchResult(message=NO_RESULT_MESSAGE.format(prompt=prompt), items=[])

            message = self.composer.compose(prompt, used, matches)
            return MatchResult(
                message=message,
                items=[MatchOut.from_match(m) for m in matches[:self.top_k]],
            )
        except Exception:
            logger.exception("Error handling prompt")
            return MatchResult(message=TECHNICAL_ISSUE_MESSAGE, items=[], error=True)

    def close(self) -> None:
        self.engine.close()


# ─── wiring ──────────────────────────────────────────────────────

def build_llm(settings: Settings):
    if settings.llm_provider == "groq":
        if not settings.groq_api_key:
            raise ConfigError("GROQ_API_KEY must be set when LLM_PROVIDER=groq")
        return GroqClient(
            api_key=settings.groq_api_key,
            model=settings.groq_model,
            url=settings.groq_api_url,
            timeout=settings.request_timeout_sec,
        )
    if not settings.google_api_key:
        raise ConfigError("GOOGLE_API_KEY must be set when LLM_PROVIDER=gemini")
    return GeminiClient(
        api_key=settings.google_api_key,
        model=settings.llm_model,
        timeout=settings.request_timeout_sec,
    )


def build_embedder(settings: Settings):
    if settings.embed_provider == "vertex":
        if not settings.project_id:
            raise ConfigError("PROJECT_ID must be set when EMBED_PROVIDER=vertex")
        return VertexEmbeddingProvider(
            project_id=settings.project_id,
            region=settings.region,
            model=settings.vertex_embed_model,
        )
    if not settings.huggingface_api_key:
        raise ConfigError("HUGGINGFACE_API_KEY must be set when EMBED_PROVIDER=huggingface")
    return HuggingFaceEmbeddingProvider(
        api_key=settings.huggingface_api_key,
        model=settings.hf_embed_model,
        base_url=settings.hf_api_url,
        timeout=settings.request_timeout_sec,
    )


def build_orchestrator(settings: Optional[Settings] = None) -> SearchOrchestrator:
    settings = settings or load_settings()
    llm = build_llm(settings)

    repository = FirestoreCatalogRepository(
        project_id=settings.project_id,
        origin=(settings.origin_lat, settings.origin_lon),
        timeout=settings.request_timeout_sec,
    )
    cache = EmbeddingCache(settings.embed_cache_size) if settings.embed_cache_size > 0 else None
    engine = MatchingEngine(
        repository=repository,
        embedder=build_embedder(settings),
        threshold=settings.match_threshold,
        default_max_distance_km=settings.default_max_distance_km,
        concurrency=settings.embed_concurrency,
        timeout=settings.request_timeout_sec,
        retries=settings.embed_retries,
        cache=cache,
    )

    return SearchOrchestrator(
        extractor=AttributeExtractor(llm, max_tokens=settings.llm_max_tokens),
        engine=engine,
        composer=ResponseComposer(llm, max_tokens=settings.llm_max_tokens),
        top_k=settings.top_k,
    )
