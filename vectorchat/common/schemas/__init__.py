"""
vectorchat Schemas

Conversation context values, query intents, ask request/response models
and search request/result types.
"""

from .conversation import ConversationContext, ConversationTurn, DEFAULT_HISTORY_CAP
from .intent import (
    QueryIntent,
    CountIntent,
    FilterIntent,
    AggregateIntent,
    SearchIntent,
    UnknownIntent,
    INTENT_TYPES,
    SEARCHABLE_TYPES,
)
from .query import NaturalQueryRequest, NaturalQueryResponse
from .search import SearchQuery, SearchHit, SearchResult

__all__ = [
    "ConversationContext",
    "ConversationTurn",
    "DEFAULT_HISTORY_CAP",
    "QueryIntent",
    "CountIntent",
    "FilterIntent",
    "AggregateIntent",
    "SearchIntent",
    "UnknownIntent",
    "INTENT_TYPES",
    "SEARCHABLE_TYPES",
    "NaturalQueryRequest",
    "NaturalQueryResponse",
    "SearchQuery",
    "SearchHit",
    "SearchResult",
]
