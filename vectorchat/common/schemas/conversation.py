"""
Conversation context schema.

A ConversationContext is a value: every turn produces a new context and the
previous one is never modified, so concurrent requests can share nothing.
Field aliases are the camelCase names API clients send and receive.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_HISTORY_CAP = 20


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ConversationTurn(BaseModel):
    """One question/answer exchange"""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    question: str
    answer: str = ""
    timestamp: datetime = Field(default_factory=_utcnow)
    query_type: Optional[str] = Field(default=None, alias="queryType")
    collection: Optional[str] = None


class ConversationContext(BaseModel):
    """What the conversation has established so far"""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    last_entity: Optional[str] = Field(default=None, alias="lastEntity")
    last_collection: Optional[str] = Field(default=None, alias="lastCollection")
    last_query_type: Optional[str] = Field(default=None, alias="lastQueryType")
    last_target: Optional[str] = Field(default=None, alias="lastTarget")
    current_topic: Optional[str] = Field(default=None, alias="currentTopic")
    conversation_history: Tuple[ConversationTurn, ...] = Field(
        default=(), alias="conversationHistory"
    )

    @property
    def turn_count(self) -> int:
        return len(self.conversation_history)

    def with_turn(
        self,
        turn: ConversationTurn,
        cap: int = DEFAULT_HISTORY_CAP,
        **updates: Any,
    ) -> "ConversationContext":
        """Return a new context with ``turn`` appended (oldest turns dropped past ``cap``)"""
        history = (self.conversation_history + (turn,))[-max(1, cap):]
        return self.model_copy(update={**updates, "conversation_history": history})

    def with_answer(self, answer: str) -> "ConversationContext":
        """Return a new context whose newest turn records ``answer``"""
        if not self.conversation_history:
            return self
        *earlier, latest = self.conversation_history
        answered = latest.model_copy(update={"answer": answer})
        return self.model_copy(update={"conversation_history": tuple(earlier) + (answered,)})

    def to_payload(self) -> Dict[str, Any]:
        """JSON-ready dict using the camelCase wire names"""
        return self.model_dump(mode="json", by_alias=True)
