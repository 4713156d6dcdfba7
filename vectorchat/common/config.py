"""
Configuration Management for vectorchat

Loads configuration from ~/.vectorchat/config.json and environment variables.
"""

import os
import json
import logging
from pathlib import Path
from dataclasses import dataclass, field
from typing import List, Optional

logger = logging.getLogger("vectorchat.common.config")

# Default config paths
CONFIG_DIR = Path.home() / ".vectorchat"
CONFIG_PATH = CONFIG_DIR / "config.json"

# Chat models the API accepts, mapped to the provider that also embeds for them
AVAILABLE_MODELS = {
    "gpt-4o": "openai",
    "gpt-4o-mini": "openai",
    "gpt-4-turbo": "openai",
    "gpt-3.5-turbo": "openai",
    "gemini-2.0-flash": "gemini",
    "gemini-1.5-pro": "gemini",
    "gemini-1.5-flash": "gemini",
}

EMBEDDING_PROVIDERS = ("openai", "gemini")


@dataclass
class VectorStoreConfig:
    """enVector vector store configuration"""
    endpoint: str = "localhost:50050"
    api_key: str = ""
    key_path: str = str(CONFIG_DIR / "keys")
    key_id: str = "vectorchat_key"
    default_collection: Optional[str] = None
    known_collections: List[str] = field(default_factory=list)


@dataclass
class EmbeddingConfig:
    """Embedding provider configuration"""
    provider: str = "openai"
    openai_api_key: str = ""
    openai_model: str = "text-embedding-3-small"
    gemini_api_key: str = ""
    gemini_model: str = "models/text-embedding-004"


@dataclass
class LLMConfig:
    """Optional LLM used to classify questions the rules cannot handle"""
    provider: str = "openai"
    anthropic_api_key: str = ""
    anthropic_model: str = "claude-sonnet-4-20250514"
    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"
    google_api_key: str = ""
    google_model: str = "gemini-2.0-flash"


@dataclass
class QueryConfig:
    """Query pipeline limits"""
    default_limit: int = 10
    count_cap: int = 1000
    history_cap: int = 20
    search_timeout: float = 10.0
    max_question_length: int = 10000


@dataclass
class ServerConfig:
    """HTTP server configuration"""
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "info"


@dataclass
class VectorChatConfig:
    """Main vectorchat configuration"""
    vector_store: VectorStoreConfig = field(default_factory=VectorStoreConfig)
    embedding: EmbeddingConfig = field(default_factory=EmbeddingConfig)
    llm: LLMConfig = field(default_factory=LLMConfig)
    query: QueryConfig = field(default_factory=QueryConfig)
    server: ServerConfig = field(default_factory=ServerConfig)


def _parse_vector_store_config(data: dict) -> VectorStoreConfig:
    """Parse vector_store section from config dict"""
    store_data = data.get("vector_store", {})
    return VectorStoreConfig(
        endpoint=store_data.get("endpoint", "localhost:50050"),
        api_key=store_data.get("api_key", ""),
        key_path=store_data.get("key_path", str(CONFIG_DIR / "keys")),
        key_id=store_data.get("key_id", "vectorchat_key"),
        default_collection=store_data.get("default_collection") or None,
        known_collections=list(store_data.get("known_collections", [])),
    )


def _parse_embedding_config(data: dict) -> EmbeddingConfig:
    embedding_data = data.get("embedding", {})
    return EmbeddingConfig(
        provider=embedding_data.get("provider", "openai"),
        openai_api_key=embedding_data.get("openai_api_key", ""),
        openai_model=embedding_data.get("openai_model", "text-embedding-3-small"),
        gemini_api_key=embedding_data.get("gemini_api_key", ""),
        gemini_model=embedding_data.get("gemini_model", "models/text-embedding-004"),
    )


def _parse_llm_config(data: dict) -> LLMConfig:
    llm_data = data.get("llm", {})
    return LLMConfig(
        provider=llm_data.get("provider", "openai"),
        anthropic_api_key=llm_data.get("anthropic_api_key", ""),
        anthropic_model=llm_data.get("anthropic_model", "claude-sonnet-4-20250514"),
        openai_api_key=llm_data.get("openai_api_key", ""),
        openai_model=llm_data.get("openai_model", "gpt-4o-mini"),
        google_api_key=llm_data.get("google_api_key", ""),
        google_model=llm_data.get("google_model", "gemini-2.0-flash"),
    )


def _parse_query_config(data: dict) -> QueryConfig:
    query_data = data.get("query", {})
    return QueryConfig(
        default_limit=int(query_data.get("default_limit", 10)),
        count_cap=int(query_data.get("count_cap", 1000)),
        history_cap=int(query_data.get("history_cap", 20)),
        search_timeout=float(query_data.get("search_timeout", 10.0)),
        max_question_length=int(query_data.get("max_question_length", 10000)),
    )


def _parse_server_config(data: dict) -> ServerConfig:
    server_data = data.get("server", {})
    return ServerConfig(
        host=server_data.get("host", "0.0.0.0"),
        port=int(server_data.get("port", 8000)),
        log_level=server_data.get("log_level", "info"),
    )


def load_config(path: Optional[Path] = None) -> VectorChatConfig:
    """
    Load configuration from file and environment variables.

    Priority (highest to lowest):
    1. Environment variables
    2. Config file (~/.vectorchat/config.json)
    3. Default values
    """
    config = VectorChatConfig()
    config_path = path or CONFIG_PATH

    if config_path.exists():
        try:
            with open(config_path) as f:
                data = json.load(f)

            config.vector_store = _parse_vector_store_config(data)
            config.embedding = _parse_embedding_config(data)
            config.llm = _parse_llm_config(data)
            config.query = _parse_query_config(data)
            config.server = _parse_server_config(data)
        except (json.JSONDecodeError, IOError) as e:
            logger.warning("Failed to load config file %s: %s", config_path, e)

    if os.getenv("ENVECTOR_ENDPOINT"):
        config.vector_store.endpoint = os.getenv("ENVECTOR_ENDPOINT")
    if os.getenv("ENVECTOR_API_KEY"):
        config.vector_store.api_key = os.getenv("ENVECTOR_API_KEY")
    if os.getenv("ENVECTOR_KEY_PATH"):
        config.vector_store.key_path = os.getenv("ENVECTOR_KEY_PATH")
    if os.getenv("VECTORCHAT_DEFAULT_COLLECTION"):
        config.vector_store.default_collection = os.getenv("VECTORCHAT_DEFAULT_COLLECTION")
    if os.getenv("VECTORCHAT_COLLECTIONS"):
        config.vector_store.known_collections = [
            c.strip() for c in os.getenv("VECTORCHAT_COLLECTIONS").split(",") if c.strip()
        ]

    # Provider keys feed both the embedding provider and the optional LLM
    openai_key = os.getenv("OPENAI_API_KEY")
    if openai_key:
        config.embedding.openai_api_key = openai_key
        config.llm.openai_api_key = openai_key
    gemini_key = os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY")
    if gemini_key:
        config.embedding.gemini_api_key = gemini_key
        config.llm.google_api_key = gemini_key
    if os.getenv("ANTHROPIC_API_KEY"):
        config.llm.anthropic_api_key = os.getenv("ANTHROPIC_API_KEY")

    if os.getenv("EMBEDDING_PROVIDER"):
        config.embedding.provider = os.getenv("EMBEDDING_PROVIDER")
    if os.getenv("OPENAI_EMBEDDING_MODEL"):
        config.embedding.openai_model = os.getenv("OPENAI_EMBEDDING_MODEL")
    if os.getenv("GEMINI_EMBEDDING_MODEL"):
        config.embedding.gemini_model = os.getenv("GEMINI_EMBEDDING_MODEL")
    if os.getenv("VECTORCHAT_LLM_PROVIDER"):
        config.llm.provider = os.getenv("VECTORCHAT_LLM_PROVIDER")

    if os.getenv("VECTORCHAT_SEARCH_TIMEOUT"):
        config.query.search_timeout = float(os.getenv("VECTORCHAT_SEARCH_TIMEOUT"))
    if os.getenv("VECTORCHAT_COUNT_CAP"):
        config.query.count_cap = int(os.getenv("VECTORCHAT_COUNT_CAP"))
    if os.getenv("VECTORCHAT_HISTORY_CAP"):
        config.query.history_cap = int(os.getenv("VECTORCHAT_HISTORY_CAP"))

    if os.getenv("VECTORCHAT_PORT"):
        config.server.port = int(os.getenv("VECTORCHAT_PORT"))
    if os.getenv("LOG_LEVEL"):
        config.server.log_level = os.getenv("LOG_LEVEL").lower()

    return config


def resolve_provider(provider: Optional[str], model: Optional[str], default: str = "openai") -> str:
    """Pick the embedding provider for a request.

    An explicit provider wins; otherwise the provider behind the requested chat
    model is used, falling back to ``default``.
    """
    if provider:
        return provider.lower()
    if model and model in AVAILABLE_MODELS:
        return AVAILABLE_MODELS[model]
    return default


def configure_logging(level: str = "info") -> None:
    """Configure root logging for the server entry points"""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
