"""
LocalRadar configuration
------------------------
Settings are read from the environment (optionally pre-loaded from a .env
file) once, frozen into a Settings object and handed to every component.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from .common.errors import ConfigError


# Fixed user origin used for every distance calculation
DEFAULT_USER_LAT = 13.041820
DEFAULT_USER_LON = 77.528481


@dataclass(frozen=True)
class Settings:
    # Google Cloud
    project_id: Optional[str] = None
    region: str = "us-central1"

    # LLM (attribute extraction + response composition)
    llm_provider: str = "gemini"  # gemini|groq
    llm_model: str = "gemini-2.0-flash"
    google_api_key: Optional[str] = None
    groq_api_key: Optional[str] = None
    groq_model: str = "llama3-8b-8192"
    groq_api_url: str = "https://api.groq.com/openai/v1/chat/completions"
    llm_max_tokens: int = 150

    # Embeddings
    embed_provider: str = "huggingface"  # huggingface|vertex
    huggingface_api_key: Optional[str] = None
    hf_embed_model: str = "facebook/bart-base"
    hf_api_url: str = "https://api-inference.huggingface.co/models"
    vertex_embed_model: str = "text-embedding-004"
    embed_concurrency: int = 4
    embed_retries: int = 1
    embed_cache_size: int = 2048

    # Matching policy
    origin_lat: float = DEFAULT_USER_LAT
    origin_lon: float = DEFAULT_USER_LON
    match_threshold: float = 0.6
    top_k: int = 3
    default_max_distance_km: float = 10.0

    # Transport
    request_timeout_sec: float = 15.0

    # Logging
    log_level: str = "INFO"
    log_file: Optional[str] = None


def _env_str(name: str, default: Optional[str] = None) -> Optional[str]:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip()


def _env_number(name: str, default, cast):
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return cast(raw.strip())
    except ValueError as exc:
        raise ConfigError(f"{name} must be a valid {cast.__name__}, got {raw!r}") from exc


def load_settings(dotenv: bool = True) -> Settings:
    """Build Settings from the environment, loading .env first unless disabled."""
    if dotenv:
        load_dotenv()

    settings = Settings(
        project_id=_env_str("PROJECT_ID"),
        region=_env_str("REGION", "us-central1"),
        llm_provider=_env_str("LLM_PROVIDER", "gemini").lower(),
        llm_model=_env_str("LLM_MODEL", "gemini-2.0-flash"),
        google_api_key=_env_str("GOOGLE_API_KEY"),
        groq_api_key=_env_str("GROQ_API_KEY"),
        groq_model=_env_str("GROQ_MODEL", "llama3-8b-8192"),
        groq_api_url=_env_str("GROQ_API_URL", "https://api.groq.com/openai/v1/chat/completions"),
        llm_max_tokens=_env_number("LLM_MAX_TOKENS", 150, int),
        embed_provider=_env_str("EMBED_PROVIDER", "huggingface").lower(),
        huggingface_api_key=_env_str("HUGGINGFACE_API_KEY"),
        hf_embed_model=_env_str("HF_EMBED_MODEL", "facebook/bart-base"),
        hf_api_url=_env_str("HF_API_URL", "https://api-inference.huggingface.co/models"),
        vertex_embed_model=_env_str("VERTEX_EMBED_MODEL", "text-embedding-004"),
        embed_concurrency=_env_number("EMBED_CONCURRENCY", 4, int),
        embed_retries=_env_number("EMBED_RETRIES", 1, int),
        embed_cache_size=_env_number("EMBED_CACHE_SIZE", 2048, int),
        origin_lat=_env_number("USER_LAT", DEFAULT_USER_LAT, float),
        origin_lon=_env_number("USER_LON", DEFAULT_USER_LON, float),
        match_threshold=_env_number("MATCH_THRESHOLD", 0.6, float),
        top_k=_env_number("MATCH_TOP_K", 3, int),
        default_max_distance_km=_env_number("DEFAULT_MAX_DISTANCE_KM", 10.0, float),
        request_timeout_sec=_env_number("REQUEST_TIMEOUT_SEC", 15.0, float),
        log_level=_env_str("LOG_LEVEL", "INFO").upper(),
        log_file=_env_str("LOG_FILE"),
    )

    if settings.llm_provider not in ("gemini", "groq"):
        raise ConfigError(f"LLM_PROVIDER must be 'gemini' or 'groq', got {settings.llm_provider!r}")
    if settings.embed_provider not in ("huggingface", "vertex"):
        raise ConfigError(
            f"EMBED_PROVIDER must be 'huggingface' or 'vertex', got {settings.embed_provider!r}"
        )
    if settings.embed_concurrency < 1:
        raise ConfigError("EMBED_CONCURRENCY must be at least 1")
    if settings.top_k < 1:
        raise ConfigError("MATCH_TOP_K must be at least 1")

    return settings
