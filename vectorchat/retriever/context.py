"""
Conversation Context

Resolves references to earlier turns (pronouns, "same", "also") and produces
the next ConversationContext value. Contexts are never modified in place.
"""

import re
from typing import Optional

from ..common.schemas.conversation import (
    DEFAULT_HISTORY_CAP,
    ConversationContext,
    ConversationTurn,
)
from ..common.schemas.intent import QueryIntent

_PRONOUN_RE = re.compile(r"\b(they|them|their|it|its)\b", re.IGNORECASE)
_POSSESSIVE_PRONOUNS = {"their", "its"}
_SAME_RE = re.compile(r"\bsame\b", re.IGNORECASE)
_ALSO_RE = re.compile(r"\balso\b", re.IGNORECASE)
_TRAILING_PUNCT_RE = re.compile(r"\s*([?.!]*)\s*$")


class ConversationTracker:
    """
    Cross-turn reference resolution.

    History only disambiguates the current question; it never contributes
    results to an answer.
    """

    def __init__(
        self,
        history_cap: int = DEFAULT_HISTORY_CAP,
        default_collection: Optional[str] = None,
    ):
        self.history_cap = max(1, history_cap)
        self.default_collection = default_collection

    def reformulate_query(self, question: str, context: Optional[ConversationContext] = None) -> str:
        """
        Rewrite ``question`` so it stands on its own.

        - they/them/it resolve to the last entity; their/its become "<entity>'s"
        - "same" names the last collection
        - "also" prefixes the last entity when the question doesn't mention it

        Without a last entity, pronouns are left as they are.
        """
        if context is None:
            return question

        text = question
        entity = context.last_entity

        if entity:
            def _replace(match: re.Match) -> str:
                if match.group(1).lower() in _POSSESSIVE_PRONOUNS:
                    return f"{entity}'s"
                return entity

            text = _PRONOUN_RE.sub(_replace, text)
            if _ALSO_RE.search(text) and entity.lower() not in text.lower():
                text = f"{entity} {text}"

        collection = context.last_collection
        if collection and _SAME_RE.search(text) and collection.lower() not in text.lower():
            text = _TRAILING_PUNCT_RE.sub(lambda m: f" in {collection}{m.group(1)}", text, count=1)

        return text

    def resolve_collection(
        self,
        intent: QueryIntent,
        request_collection: Optional[str] = None,
        context: Optional[ConversationContext] = None,
    ) -> Optional[str]:
        """Request, then named in question, then context, then configured default"""
        for candidate in (
            request_collection,
            intent.collection,
            context.last_collection if context else None,
            self.default_collection,
        ):
            if candidate and candidate.strip():
                return candidate.strip()
        return None

    def record_turn(
        self,
        context: Optional[ConversationContext],
        question: str,
        intent: QueryIntent,
        collection: Optional[str],
        topic: Optional[str] = None,
    ) -> ConversationContext:
        """Return the context for the next turn with this question appended"""
        context = context or ConversationContext()
        turn = ConversationTurn(
            question=question,
            query_type=intent.type,
            collection=collection,
        )
        return context.with_turn(
            turn,
            cap=self.history_cap,
            last_query_type=intent.type,
            last_collection=collection or context.last_collection,
            last_entity=intent.entity or context.last_entity,
            last_target=intent.target or context.last_target,
            current_topic=topic or context.current_topic,
        )
