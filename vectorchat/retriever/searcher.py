"""
Searcher

Embeds question text and searches one collection of the vector repository.
Retrieval failures never reach the caller: they are logged, reported as a
``search_degraded`` event and returned as ``None``.
"""

import asyncio
import logging
from dataclasses import replace
from typing import Any, Dict, Optional

from ..common.embedding_service import EmbeddingService
from ..common.errors import (
    SearchOperationError,
    ValidationError,
    VectorChatError,
    VectorConnectionError,
)
from ..common.events import COUNT_CAP_HIT, SEARCH_DEGRADED, EventSink, LoggingEventSink, emit
from ..common.schemas.search import SearchQuery, SearchResult
from ..common.vector_repository import VectorRepository

logger = logging.getLogger("vectorchat.retriever.searcher")


class Searcher:
    """
    Search orchestration over a VectorRepository.

    Embedding and repository calls are blocking; both run in a worker thread
    under one timeout. A timed-out call is abandoned, not awaited.
    """

    def __init__(
        self,
        repository: VectorRepository,
        embedding_service: EmbeddingService,
        timeout: float = 10.0,
        default_limit: int = 10,
        count_cap: int = 1000,
        events: Optional[EventSink] = None,
    ):
        """
        Initialize searcher.

        Args:
            repository: Vector store to search
            embedding_service: For embedding query text
            timeout: Seconds allowed for embedding + search
            default_limit: Hits requested when no limit is given
            count_cap: Hits requested for count questions
            events: Sink for structured events
        """
        self._repository = repository
        self._embedding = embedding_service
        self._timeout = timeout
        self._default_limit = default_limit
        self._count_cap = count_cap
        self._events = events or LoggingEventSink()

    @property
    def count_cap(self) -> int:
        return self._count_cap

    async def semantic_search(
        self,
        collection: Optional[str],
        query_text: str,
        provider: Optional[str] = None,
        limit: Optional[int] = None,
        filters: Optional[Dict[str, Any]] = None,
        score_threshold: Optional[float] = None,
    ) -> Optional[SearchResult]:
        """
        Search ``collection`` for text similar to ``query_text``.

        Returns:
            SearchResult (``truncated`` set when the limit was reached),
            or None when retrieval failed

        Raises:
            ValidationError: no collection or empty query text
        """
        if not collection or not str(collection).strip():
            raise ValidationError(
                "collection",
                collection,
                "A collection is required; name one in the question, the request or an earlier turn",
            )
        if not isinstance(query_text, str) or not query_text.strip():
            raise ValidationError("query_text", query_text, "Search text cannot be empty")

        limit = limit or self._default_limit
        query = SearchQuery(
            text=query_text,
            limit=limit,
            filters=dict(filters or {}),
            score_threshold=score_threshold,
        )

        try:
            result = await asyncio.wait_for(
                self._embed_and_search(collection, query, provider),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError as e:
            error = VectorConnectionError(e, operation=f"search timed out after {self._timeout}s")
            return self._degrade(collection, error)
        except VectorChatError as e:
            return self._degrade(collection, e)
        except Exception as e:
            return self._degrade(collection, SearchOperationError(e, query=query_text, collection=collection))

        if len(result.hits) >= limit:
            result = replace(result, truncated=True)
            if limit >= self._count_cap:
                emit(self._events, COUNT_CAP_HIT, collection=collection, cap=limit)

        logger.debug(
            "Search in %s returned %d hits in %dms", collection, len(result.hits), result.execution_time_ms
        )
        return result

    async def _embed_and_search(
        self, collection: str, query: SearchQuery, provider: Optional[str]
    ) -> SearchResult:
        vector = await asyncio.to_thread(self._embedding.generate_embedding, query.text, provider)
        return await asyncio.to_thread(self._repository.search, collection, replace(query, vector=vector))

    def _degrade(self, collection: str, error: VectorChatError) -> None:
        logger.warning("Search in %s degraded: %s", collection, error.message)
        emit(
            self._events,
            SEARCH_DEGRADED,
            collection=collection,
            code=error.code,
            error=error.message,
        )
        return None

    async def test_connection(self) -> bool:
        try:
            return bool(await asyncio.to_thread(self._repository.test_connection))
        except Exception as e:
            logger.warning("Connection test failed: %s", e)
            return False
