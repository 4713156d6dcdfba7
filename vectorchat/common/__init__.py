"""
vectorchat Common Module

Shared infrastructure for the retriever pipeline and the API layers.
"""

from .config import VectorChatConfig, load_config
from .embedding_service import EmbeddingService
from .envector_client import EnVectorRepository
from .vector_repository import InMemoryVectorRepository, VectorRepository

__all__ = [
    "VectorChatConfig",
    "load_config",
    "EmbeddingService",
    "EnVectorRepository",
    "InMemoryVectorRepository",
    "VectorRepository",
]
