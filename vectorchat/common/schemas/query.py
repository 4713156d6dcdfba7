"""
Request/response models for the ask operation.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .conversation import ConversationContext


class NaturalQueryRequest(BaseModel):
    """A question plus whatever the caller knows about the conversation"""
    model_config = ConfigDict(populate_by_name=True)

    question: str
    collection: Optional[str] = None
    provider: Optional[str] = None     # embedding provider: "openai" or "gemini"
    model: Optional[str] = None        # chat model the caller selected
    context: Optional[ConversationContext] = None


class NaturalQueryResponse(BaseModel):
    answer: str
    query_type: str
    # None when no search ran or the search degraded
    data: Optional[List[Dict[str, Any]]] = None
    execution_time_ms: int = 0
    context: ConversationContext = Field(default_factory=ConversationContext)

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)
