"""
Embedding Service

Turns question text into query vectors through a hosted embedding API
(OpenAI or Gemini). Vectors are L2 normalized so a dot product equals
cosine similarity.
"""

import logging
from typing import List, Optional

import google.generativeai as genai
import numpy as np
from openai import OpenAI

from .config import EMBEDDING_PROVIDERS, EmbeddingConfig
from .errors import EmbeddingGenerationError, ProviderNotConfiguredError, ValidationError

logger = logging.getLogger("vectorchat.common.embedding_service")


def normalize(vector: List[float]) -> List[float]:
    arr = np.asarray(vector, dtype=np.float64)
    norm = np.linalg.norm(arr)
    if norm == 0:
        return arr.tolist()
    return (arr / norm).tolist()


class EmbeddingService:
    """
    Embedding generation for search queries.

    One instance per process, built from EmbeddingConfig. Provider clients
    are created on first use so an unconfigured provider costs nothing
    until a request asks for it.
    """

    def __init__(self, config: Optional[EmbeddingConfig] = None):
        self._config = config or EmbeddingConfig()
        self._openai_client = None
        self._gemini_configured = False

    @property
    def default_provider(self) -> str:
        return (self._config.provider or "openai").lower()

    def supported_providers(self) -> List[str]:
        return list(EMBEDDING_PROVIDERS)

    def is_configured(self, provider: Optional[str] = None) -> bool:
        provider = (provider or self.default_provider).lower()
        if provider == "openai":
            return bool(self._config.openai_api_key)
        if provider == "gemini":
            return bool(self._config.gemini_api_key)
        return False

    def generate_embedding(self, text: str, provider: Optional[str] = None) -> List[float]:
        """
        Generate a normalized embedding for a single text.

        Args:
            text: Text to embed
            provider: "openai" or "gemini"; defaults to the configured provider

        Returns:
            Embedding vector (L2 normalized)

        Raises:
            ValidationError: empty text or unknown provider
            ProviderNotConfiguredError: provider has no API key
            EmbeddingGenerationError: provider call failed
        """
        if not isinstance(text, str) or not text.strip():
            raise ValidationError("text", text, "Text to embed must be a non-empty string")

        provider = (provider or self.default_provider).lower()
        if provider not in EMBEDDING_PROVIDERS:
            raise ValidationError(
                "provider", provider, f"Provider must be one of {', '.join(EMBEDDING_PROVIDERS)}"
            )
        if not self.is_configured(provider):
            raise ProviderNotConfiguredError(provider, "embedding generation")

        logger.debug("Generating embedding with %s (%d chars)", provider, len(text))
        try:
            if provider == "gemini":
                vector = self._embed_gemini(text)
            else:
                vector = self._embed_openai(text)
        except Exception as e:
            raise EmbeddingGenerationError(provider, e, text) from e

        if not vector:
            raise EmbeddingGenerationError(provider, ValueError("No embedding returned"), text)
        return normalize(vector)

    def generate_embeddings(self, texts: List[str], provider: Optional[str] = None) -> List[List[float]]:
        """Embed several texts, one request per text"""
        return [self.generate_embedding(t, provider) for t in texts]

    def _embed_openai(self, text: str) -> List[float]:
        if self._openai_client is None:
            self._openai_client = OpenAI(api_key=self._config.openai_api_key)
        response = self._openai_client.embeddings.create(
            model=self._config.openai_model,
            input=text,
        )
        return list(response.data[0].embedding)

    def _embed_gemini(self, text: str) -> List[float]:
        if not self._gemini_configured:
            genai.configure(api_key=self._config.gemini_api_key)
            self._gemini_configured = True
        result = genai.embed_content(
            model=self._config.gemini_model,
            content=text,
            task_type="retrieval_query",
        )
        return list(result["embedding"])
