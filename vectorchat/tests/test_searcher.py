"""
Tests for Searcher

Tests embedding + repository orchestration and degradation to None.
"""

import logging
import time

import pytest
from unittest.mock import Mock


@pytest.fixture
def searcher(repository, embedding_service, events):
    from vectorchat.retriever.searcher import Searcher
    return Searcher(repository, embedding_service, timeout=2.0, events=events)


class TestSemanticSearch:
    @pytest.mark.asyncio
    async def test_hits_best_first(self, searcher, embedding_service):
        result = await searcher.semantic_search("artworks", "neon city", provider="openai")

        assert [h.id for h in result.hits] == ["a1", "a2", "a3"]
        assert result.truncated is False
        embedding_service.generate_embedding.assert_called_once_with("neon city", "openai")

    @pytest.mark.asyncio
    async def test_filters_applied(self, searcher):
        result = await searcher.semantic_search("artworks", "art", filters={"name": "chris dyer"})

        assert [h.id for h in result.hits] == ["a1", "a3"]

    @pytest.mark.asyncio
    async def test_limit_reached_marks_truncated(self, searcher, events):
        from vectorchat.common.events import COUNT_CAP_HIT

        result = await searcher.semantic_search("artworks", "art", limit=2)

        assert result.count == 2
        assert result.truncated is True
        assert COUNT_CAP_HIT not in events.names()

    @pytest.mark.asyncio
    async def test_count_cap_hit_event(self, repository, embedding_service, events):
        from vectorchat.common.events import COUNT_CAP_HIT
        from vectorchat.retriever.searcher import Searcher

        searcher = Searcher(repository, embedding_service, count_cap=3, events=events)

        result = await searcher.semantic_search("artworks", "art", limit=3)

        assert result.truncated is True
        assert events.first(COUNT_CAP_HIT).fields == {"collection": "artworks", "cap": 3}

    @pytest.mark.asyncio
    async def test_missing_collection_raises(self, searcher):
        from vectorchat.common.errors import ValidationError

        with pytest.raises(ValidationError):
            await searcher.semantic_search(None, "cats")

    @pytest.mark.asyncio
    async def test_empty_text_raises(self, searcher):
        from vectorchat.common.errors import ValidationError

        with pytest.raises(ValidationError):
            await searcher.semantic_search("artworks", "  ")


class TestDegradation:
    """Retrieval failures are reported and turned into None"""

    @pytest.mark.asyncio
    async def test_unreachable_store(self, repository, embedding_service, events, caplog):
        from vectorchat.common.events import SEARCH_DEGRADED
        from vectorchat.retriever.searcher import Searcher

        repository.connected = False
        searcher = Searcher(repository, embedding_service, events=events)

        with caplog.at_level(logging.WARNING, logger="vectorchat.retriever.searcher"):
            result = await searcher.semantic_search("artworks", "cats")

        assert result is None
        assert events.first(SEARCH_DEGRADED).fields["code"] == "VECTOR_STORE_CONNECTION_FAILED"
        assert "degraded" in caplog.text

    @pytest.mark.asyncio
    async def test_unknown_collection(self, searcher, events):
        from vectorchat.common.events import SEARCH_DEGRADED

        result = await searcher.semantic_search("nope", "cats")

        assert result is None
        assert events.first(SEARCH_DEGRADED).fields["code"] == "COLLECTION_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_embedding_provider_not_configured(self, repository, events):
        from vectorchat.common.embedding_service import EmbeddingService
        from vectorchat.common.events import SEARCH_DEGRADED
        from vectorchat.retriever.searcher import Searcher

        searcher = Searcher(repository, EmbeddingService(), events=events)

        assert await searcher.semantic_search("artworks", "cats") is None
        assert events.first(SEARCH_DEGRADED).fields["code"] == "PROVIDER_NOT_CONFIGURED"

    @pytest.mark.asyncio
    async def test_unexpected_error_is_wrapped(self, repository, events):
        from vectorchat.common.events import SEARCH_DEGRADED
        from vectorchat.retriever.searcher import Searcher

        embedder = Mock()
        embedder.generate_embedding.side_effect = RuntimeError("boom")
        searcher = Searcher(repository, embedder, events=events)

        assert await searcher.semantic_search("artworks", "cats") is None
        assert events.first(SEARCH_DEGRADED).fields["code"] == "SEARCH_FAILED"

    @pytest.mark.asyncio
    async def test_timeout(self, repository, events):
        from vectorchat.common.events import SEARCH_DEGRADED
        from vectorchat.retriever.searcher import Searcher

        def slow_embedding(text, provider=None):
            time.sleep(0.5)
            return [1.0, 0.0, 0.0]

        embedder = Mock()
        embedder.generate_embedding.side_effect = slow_embedding
        searcher = Searcher(repository, embedder, timeout=0.05, events=events)

        assert await searcher.semantic_search("artworks", "cats") is None
        event = events.first(SEARCH_DEGRADED)
        assert event.fields["code"] == "VECTOR_STORE_CONNECTION_FAILED"
        assert "timed out" in event.fields["error"]


class TestConnection:
    @pytest.mark.asyncio
    async def test_connected(self, searcher):
        assert await searcher.test_connection() is True

    @pytest.mark.asyncio
    async def test_disconnected(self, repository, searcher):
        repository.connected = False
        assert await searcher.test_connection() is False

    @pytest.mark.asyncio
    async def test_connection_error_is_false(self, embedding_service):
        from vectorchat.retriever.searcher import Searcher

        repo = Mock()
        repo.test_connection.side_effect = OSError("no route")
        searcher = Searcher(repo, embedding_service)

        assert await searcher.test_connection() is False


class TestCancellation:
    @pytest.mark.asyncio
    async def test_cancel_is_not_degraded(self, repository, events):
        import asyncio
        import threading
        from vectorchat.common.events import SEARCH_DEGRADED
        from vectorchat.retriever.searcher import Searcher

        started = threading.Event()
        release = threading.Event()

        def slow_embedding(text, provider=None):
            started.set()
            release.wait(2)
            return [1.0, 0.0, 0.0]

        embedder = Mock()
        embedder.generate_embedding.side_effect = slow_embedding
        searcher = Searcher(repository, embedder, timeout=5.0, events=events)

        task = asyncio.create_task(searcher.semantic_search("artworks", "cats"))
        while not started.is_set():
            await asyncio.sleep(0.01)
        task.cancel()

        try:
            with pytest.raises(asyncio.CancelledError):
                await task
        finally:
            release.set()

        assert SEARCH_DEGRADED not in events.names()
