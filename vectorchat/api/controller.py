"""
Query Controller

One request/response cycle: understand the question, search when the intent
needs data, synthesize the answer and hand back the next context.

Failures before an intent exists are fatal (QueryProcessingError). Failures
while searching never propagate: the answer is synthesized without data.
"""

import asyncio
import logging
import time
from typing import Dict, Optional

from ..common.config import VectorChatConfig, load_config, resolve_provider
from ..common.embedding_service import EmbeddingService
from ..common.envector_client import EnVectorRepository
from ..common.errors import QueryProcessingError, VectorChatError
from ..common.events import SEARCH_DEGRADED, EventSink, LoggingEventSink, emit
from ..common.llm_client import LLMClient
from ..common.schemas.conversation import ConversationContext
from ..common.schemas.intent import SEARCHABLE_TYPES
from ..common.schemas.query import NaturalQueryRequest, NaturalQueryResponse
from ..common.vector_repository import VectorRepository
from ..retriever.context import ConversationTracker
from ..retriever.nlp_service import NLPService
from ..retriever.query_processor import QueryProcessor
from ..retriever.searcher import Searcher
from ..retriever.synthesizer import Synthesizer

logger = logging.getLogger("vectorchat.api.controller")


class QueryController:
    """Composes NLP, search and synthesis for the ask operation."""

    def __init__(
        self,
        searcher: Searcher,
        nlp_service: NLPService,
        synthesizer: Optional[Synthesizer] = None,
        default_provider: str = "openai",
        events: Optional[EventSink] = None,
    ):
        self._searcher = searcher
        self._nlp = nlp_service
        self._synthesizer = synthesizer or Synthesizer(count_cap=searcher.count_cap)
        self._default_provider = default_provider
        self._events = events or LoggingEventSink()

    async def handle_natural_query(self, request: NaturalQueryRequest) -> NaturalQueryResponse:
        """
        Answer one question.

        Raises:
            QueryProcessingError: the question could not be resolved to an intent
        """
        started = time.perf_counter()

        try:
            nlp_result = await asyncio.to_thread(
                self._nlp.process_query,
                request.collection,
                request.question,
                request.context,
                request.model,
            )
        except Exception as e:
            logger.warning("Query processing failed: %s", e)
            raise QueryProcessingError(request.question, e) from e

        intent = nlp_result.intent
        search_results = None

        if intent.type in SEARCHABLE_TYPES:
            provider = resolve_provider(request.provider, request.model, self._default_provider)
            try:
                search_results = await self._searcher.semantic_search(
                    nlp_result.collection,
                    nlp_result.search_query.text,
                    provider=provider,
                    limit=nlp_result.search_query.limit,
                    filters=nlp_result.search_query.filters,
                    score_threshold=nlp_result.search_query.score_threshold,
                )
            except Exception as e:
                logger.warning("Search step failed, answering without data: %s", e)
                emit(
                    self._events,
                    SEARCH_DEGRADED,
                    collection=nlp_result.collection,
                    code=e.code if isinstance(e, VectorChatError) else type(e).__name__,
                    error=str(e),
                )
                search_results = None

        answer = self._synthesizer.generate_response(intent, search_results, request.question)

        context = nlp_result.context or request.context or ConversationContext()
        return NaturalQueryResponse(
            answer=answer,
            query_type=intent.type,
            data=[hit.to_dict() for hit in search_results.hits] if search_results is not None else None,
            execution_time_ms=int((time.perf_counter() - started) * 1000),
            context=context.with_answer(answer),
        )

    async def test_connection(self) -> Dict[str, bool]:
        return {"connected": await self._searcher.test_connection()}


def build_controller(
    config: Optional[VectorChatConfig] = None,
    repository: Optional[VectorRepository] = None,
    embedding_service: Optional[EmbeddingService] = None,
    llm_client: Optional[LLMClient] = None,
    events: Optional[EventSink] = None,
) -> QueryController:
    """
    Wire a QueryController from configuration.

    Collaborators passed in are used as-is; anything missing is built from
    ``config``. Without an explicit repository, enVector is used.
    """
    config = config or load_config()
    events = events or LoggingEventSink()

    if repository is None:
        repository = EnVectorRepository(config.vector_store)

    embedding_service = embedding_service or EmbeddingService(config.embedding)

    if llm_client is None:
        llm_client = LLMClient.from_config(config.llm)
    if not llm_client.is_available:
        logger.info("No LLM configured; non-English questions use the rule classifier")

    processor = QueryProcessor(
        llm_client=llm_client if llm_client.is_available else None,
        known_collections=config.vector_store.known_collections,
        events=events,
    )
    tracker = ConversationTracker(
        history_cap=config.query.history_cap,
        default_collection=config.vector_store.default_collection,
    )
    nlp_service = NLPService(
        processor=processor,
        tracker=tracker,
        query_config=config.query,
        events=events,
    )
    searcher = Searcher(
        repository=repository,
        embedding_service=embedding_service,
        timeout=config.query.search_timeout,
        default_limit=config.query.default_limit,
        count_cap=config.query.count_cap,
        events=events,
    )
    return QueryController(
        searcher=searcher,
        nlp_service=nlp_service,
        synthesizer=Synthesizer(count_cap=config.query.count_cap),
        default_provider=config.embedding.provider,
        events=events,
    )
