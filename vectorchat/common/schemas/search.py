"""
Search schema shared by the vector repository and the retriever.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..errors import ValidationError


@dataclass(frozen=True)
class SearchQuery:
    """A resolved search request against one collection"""
    text: Optional[str] = None
    vector: Optional[List[float]] = None
    limit: int = 10
    filters: Dict[str, Any] = field(default_factory=dict)
    score_threshold: Optional[float] = None

    def __post_init__(self):
        if not isinstance(self.limit, int) or self.limit <= 0:
            raise ValidationError("limit", self.limit, "Limit must be a positive integer")


@dataclass(frozen=True)
class SearchHit:
    """A single matching point"""
    id: str
    score: float
    payload: Dict[str, Any] = field(default_factory=dict)

    @property
    def label(self) -> str:
        """Short display label taken from the payload"""
        for key in ("name", "title", "file_name", "text"):
            value = self.payload.get(key)
            if value:
                return str(value)[:80]
        return self.id

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "score": self.score, "payload": self.payload}


@dataclass(frozen=True)
class SearchResult:
    """Hits returned by the repository, best first"""
    hits: List[SearchHit] = field(default_factory=list)
    execution_time_ms: int = 0
    total_count: int = 0
    # True when the repository returned as many hits as were requested,
    # so the real number of matches may be larger
    truncated: bool = False

    @property
    def count(self) -> int:
        return len(self.hits)
