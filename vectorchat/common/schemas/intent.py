"""
Query intent variants.

An intent is one of five tagged variants. Each carries the fixed confidence
of the rule tier that produced it, so classification is reproducible.
"""

from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, Optional, Union

COUNT_CONFIDENCE = 0.9
FILTER_CONFIDENCE = 0.8
AGGREGATE_CONFIDENCE = 0.75
SEARCH_CONFIDENCE = 0.7
SEARCH_FALLBACK_CONFIDENCE = 0.5
UNKNOWN_CONFIDENCE = 0.0
DELEGATED_CONFIDENCE = 0.6


@dataclass(frozen=True)
class _Intent:
    confidence: float
    extracted_filters: Dict[str, Any] = field(default_factory=dict)
    target: Optional[str] = None        # what is counted or listed: "artists", "images"
    collection: Optional[str] = None    # collection named in the question

    type: ClassVar[str] = ""

    @property
    def entity(self) -> Optional[str]:
        return self.extracted_filters.get("name")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "confidence": self.confidence,
            "extracted_filters": dict(self.extracted_filters),
            "target": self.target,
            "collection": self.collection,
        }


@dataclass(frozen=True)
class CountIntent(_Intent):
    confidence: float = COUNT_CONFIDENCE
    type: ClassVar[str] = "count"


@dataclass(frozen=True)
class FilterIntent(_Intent):
    confidence: float = FILTER_CONFIDENCE
    type: ClassVar[str] = "filter"


@dataclass(frozen=True)
class AggregateIntent(_Intent):
    confidence: float = AGGREGATE_CONFIDENCE
    type: ClassVar[str] = "aggregate"


@dataclass(frozen=True)
class SearchIntent(_Intent):
    confidence: float = SEARCH_CONFIDENCE
    type: ClassVar[str] = "search"


@dataclass(frozen=True)
class UnknownIntent(_Intent):
    confidence: float = UNKNOWN_CONFIDENCE
    type: ClassVar[str] = "unknown"


QueryIntent = Union[CountIntent, FilterIntent, AggregateIntent, SearchIntent, UnknownIntent]

INTENT_TYPES = {
    cls.type: cls
    for cls in (CountIntent, FilterIntent, AggregateIntent, SearchIntent, UnknownIntent)
}

# Intents that trigger a repository search
SEARCHABLE_TYPES = frozenset({"search", "filter", "count"})
