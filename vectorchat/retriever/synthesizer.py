"""
Synthesizer

Deterministic answer text for an intent and its search results. No I/O and
no clock access: identical inputs always give identical answers.

When nothing was found, the answer cannot tell an absent entity from a
disconnected database, so it names both possibilities.
"""

from typing import List, Optional

from ..common.schemas.intent import (
    AggregateIntent,
    CountIntent,
    FilterIntent,
    QueryIntent,
    SearchIntent,
)
from ..common.schemas.search import SearchHit, SearchResult


COUNT_TEMPLATE = "Found {count} results{suffix}."

COUNT_PARTIAL_TEMPLATE = (
    "Found at least {count} results{suffix}. "
    "The search stops at {count} matches, so the count may be partial."
)

COUNT_UNAVAILABLE = (
    "I can help you count items in the database. "
    "However, I need access to the database to provide exact numbers."
)

FILTER_FOUND_TEMPLATE = "Found {count} results for {entity}. Here are the items I found."

FILTER_HEDGE_TEMPLATE = (
    "I searched for items related to {entity}, but couldn't find any results. "
    "This might be because the database is not connected or the entity doesn't exist."
)

SEARCH_FOUND_TEMPLATE = 'Found {count} relevant results for your search: "{question}".'

SEARCH_HEDGE_TEMPLATE = (
    'I searched for "{question}" but couldn\'t find any results. '
    "This might be because the database is not connected or there are no matching items."
)

AGGREGATE_ACKNOWLEDGEMENT = (
    "I can help with aggregate queries, but I need access to the database "
    "to calculate statistics and summaries."
)

DEFAULT_HEDGE_TEMPLATE = (
    'I understand you\'re asking about: "{question}". However, I need access to the '
    "database to provide specific information. Please ensure the vector database is connected."
)


class Synthesizer:
    """Maps (intent, results, question) to answer text."""

    def __init__(self, count_cap: int = 1000):
        self._count_cap = count_cap

    def generate_response(
        self,
        intent: QueryIntent,
        search_results: Optional[SearchResult],
        question: str,
    ) -> str:
        """
        Build the answer for one turn.

        Args:
            intent: Classified intent
            search_results: Results, or None when search was skipped or degraded
            question: The question as the user asked it

        Returns:
            Answer text
        """
        hits = search_results.hits if search_results is not None else []
        entity = intent.entity

        if isinstance(intent, CountIntent):
            if search_results is None:
                return COUNT_UNAVAILABLE
            suffix = f" for {entity}" if entity else ""
            if search_results.truncated or len(hits) >= self._count_cap:
                return COUNT_PARTIAL_TEMPLATE.format(count=len(hits), suffix=suffix)
            return COUNT_TEMPLATE.format(count=len(hits), suffix=suffix)

        if isinstance(intent, FilterIntent) and entity:
            if hits:
                return FILTER_FOUND_TEMPLATE.format(count=len(hits), entity=entity)
            return FILTER_HEDGE_TEMPLATE.format(entity=entity)

        # A filter without an entity is answered like a search
        if isinstance(intent, (SearchIntent, FilterIntent)):
            if hits:
                return SEARCH_FOUND_TEMPLATE.format(count=len(hits), question=question)
            return SEARCH_HEDGE_TEMPLATE.format(question=question)

        if isinstance(intent, AggregateIntent):
            return AGGREGATE_ACKNOWLEDGEMENT

        return DEFAULT_HEDGE_TEMPLATE.format(question=question)


def format_hits_for_display(hits: List[SearchHit], limit: int = 5) -> str:
    """
    Render hits as a short markdown list for CLI and MCP output.

    Args:
        hits: Hits, best first
        limit: Max hits to render

    Returns:
        Markdown text
    """
    if not hits:
        return "_No results._"

    lines = []
    for i, hit in enumerate(hits[:limit], 1):
        lines.append(f"{i}. **{hit.label}** [{hit.id}] (score {hit.score:.2f})")
    if len(hits) > limit:
        lines.append(f"... and {len(hits) - limit} more")
    return "\n".join(lines)
