"""
NLP Service

Single entry point for question understanding: validation, reference
resolution, classification, search-query construction and the next
conversation context.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from ..common.config import QueryConfig
from ..common.errors import ValidationError
from ..common.events import INTENT_DETECTED, EventSink, LoggingEventSink, emit
from ..common.schemas.conversation import ConversationContext
from ..common.schemas.intent import QueryIntent
from ..common.schemas.search import SearchQuery
from .context import ConversationTracker
from .query_processor import QueryProcessor

logger = logging.getLogger("vectorchat.retriever.nlp_service")


@dataclass(frozen=True)
class NLPQueryResult:
    intent: QueryIntent
    search_query: SearchQuery
    context: ConversationContext
    collection: Optional[str]


class NLPService:
    """Composes reformulation, extraction and classification for one turn."""

    def __init__(
        self,
        processor: Optional[QueryProcessor] = None,
        tracker: Optional[ConversationTracker] = None,
        query_config: Optional[QueryConfig] = None,
        events: Optional[EventSink] = None,
    ):
        self._config = query_config or QueryConfig()
        self._events = events or LoggingEventSink()
        self._processor = processor or QueryProcessor(events=self._events)
        self._tracker = tracker or ConversationTracker(history_cap=self._config.history_cap)

    @property
    def processor(self) -> QueryProcessor:
        return self._processor

    @property
    def tracker(self) -> ConversationTracker:
        return self._tracker

    def process_query(
        self,
        collection: Optional[str],
        question: str,
        context: Optional[ConversationContext] = None,
        model: Optional[str] = None,
    ) -> NLPQueryResult:
        """
        Resolve a question into an intent and a search query.

        Args:
            collection: Collection given with the request, if any
            question: Raw user question
            context: Context returned by the previous turn
            model: Chat model the caller selected (reported in events)

        Returns:
            NLPQueryResult whose context has this question appended

        Raises:
            ValidationError: empty or oversized question
        """
        self._validate(question)

        resolved = self._tracker.reformulate_query(question, context)
        if resolved != question:
            logger.debug("Reformulated %r -> %r", question, resolved)

        parsed = self._processor.parse(resolved, [collection] if collection else None)
        intent = parsed.intent
        target_collection = self._tracker.resolve_collection(intent, collection, context)

        limit = self._config.count_cap if intent.type == "count" else self._config.default_limit
        search_query = SearchQuery(
            text=parsed.text,
            limit=limit,
            filters=dict(intent.extracted_filters),
        )

        next_context = self._tracker.record_turn(
            context,
            question,
            intent,
            target_collection,
            topic=self._processor.extract_topic(parsed.text),
        )

        emit(
            self._events,
            INTENT_DETECTED,
            type=intent.type,
            confidence=intent.confidence,
            collection=target_collection,
            delegated=parsed.delegated,
            model=model,
        )

        return NLPQueryResult(
            intent=intent,
            search_query=search_query,
            context=next_context,
            collection=target_collection,
        )

    def _validate(self, question: str) -> None:
        if not isinstance(question, str) or not question.strip():
            raise ValidationError("question", question, "Question cannot be empty")
        if len(question) > self._config.max_question_length:
            raise ValidationError(
                "question",
                question,
                f"Question too long (max {self._config.max_question_length:,} characters)",
            )
