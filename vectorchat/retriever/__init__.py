"""
Retriever - Natural-language questions over vector collections

Key Components:
- QueryProcessor: Extracts filters and classifies intent
- ConversationTracker: Resolves references to earlier turns
- NLPService: Single entry point for question understanding
- Searcher: Searches the vector repository, degrading on failure
- Synthesizer: Deterministic answer text per intent

Pipeline:
1. Reformulate the question against the conversation context
2. Classify intent and build the search query
3. Search the resolved collection (search, filter and count only)
4. Synthesize the answer
"""

from .query_processor import QueryProcessor, ParsedQuery
from .context import ConversationTracker
from .nlp_service import NLPService, NLPQueryResult
from .searcher import Searcher
from .synthesizer import Synthesizer, format_hits_for_display

__all__ = [
    "QueryProcessor",
    "ParsedQuery",
    "ConversationTracker",
    "NLPService",
    "NLPQueryResult",
    "Searcher",
    "Synthesizer",
    "format_hits_for_display",
]
