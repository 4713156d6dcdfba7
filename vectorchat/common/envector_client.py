"""
EnVector Repository

VectorRepository backed by an enVector server through pyenvector. Each
collection is an enVector index whose metadata column holds the JSON payload.
"""

import json
import logging
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

from .config import VectorStoreConfig
from .errors import (
    CollectionNotFoundError,
    SearchOperationError,
    ValidationError,
    VectorConnectionError,
)
from .schemas.search import SearchHit, SearchQuery, SearchResult
from .vector_repository import matches_filters

logger = logging.getLogger("vectorchat.common.envector_client")


def _to_plain(obj: Any) -> Any:
    """Convert SDK result objects into plain dicts/lists"""
    if obj is None or isinstance(obj, (str, int, float, bool)):
        return obj
    if isinstance(obj, dict):
        return {str(k): _to_plain(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_to_plain(item) for item in obj]
    for attr in ("model_dump", "to_dict"):
        if hasattr(obj, attr):
            return _to_plain(getattr(obj, attr)())
    if hasattr(obj, "__dict__"):
        return {k: _to_plain(v) for k, v in vars(obj).items() if not k.startswith("_")}
    return repr(obj)


def parse_search_rows(raw: Any) -> List[SearchHit]:
    """
    Parse enVector search output into hits, best first.

    The SDK returns one row list per query vector; metadata is a JSON string.
    Rows carrying a distance instead of a score are converted to similarity.
    """
    rows = _to_plain(raw) or []
    if rows and isinstance(rows[0], list):
        rows = rows[0]

    hits = []
    for position, row in enumerate(rows):
        if not isinstance(row, dict):
            continue
        metadata = row.get("metadata", {})
        if isinstance(metadata, str):
            try:
                metadata = json.loads(metadata)
            except json.JSONDecodeError:
                metadata = {"raw": metadata}
        if not isinstance(metadata, dict):
            metadata = {"raw": metadata}

        if row.get("score") is not None:
            score = float(row["score"])
        else:
            score = 1.0 - float(row.get("distance", 0.0))
        hit_id = row.get("id", metadata.get("id", position))
        hits.append(SearchHit(id=str(hit_id), score=score, payload=metadata))

    hits.sort(key=lambda h: h.score, reverse=True)
    return hits


class EnVectorRepository:
    """
    enVector-backed VectorRepository.

    The SDK is initialized lazily on first use. Payload filters and the score
    threshold are applied on the decoded metadata, so filtered searches fetch
    ``oversample`` times the requested limit.
    """

    def __init__(
        self,
        config: Optional[VectorStoreConfig] = None,
        auto_key_setup: bool = True,
        oversample: int = 4,
    ):
        self._config = config or VectorStoreConfig()
        self._auto_key_setup = auto_key_setup
        self._oversample = max(1, oversample)
        self._initialized = False

    @property
    def endpoint(self) -> str:
        return self._config.endpoint

    def _sdk(self):
        import pyenvector as ev
        return ev

    def _ensure_initialized(self) -> None:
        if self._initialized:
            return

        key_path = Path(self._config.key_path).expanduser()
        try:
            key_path.mkdir(parents=True, exist_ok=True)
            self._sdk().init(
                address=self._config.endpoint,
                key_path=str(key_path),
                key_id=self._config.key_id,
                eval_mode="rmp",
                auto_key_setup=self._auto_key_setup,
                access_token=self._config.api_key or None,
            )
        except Exception as e:
            raise VectorConnectionError(e, operation="init", endpoint=self.endpoint) from e
        self._initialized = True
        logger.info("Connected to enVector at %s", self.endpoint)

    def list_collections(self) -> List[str]:
        self._ensure_initialized()
        try:
            return [str(name) for name in self._sdk().get_index_list()]
        except Exception as e:
            raise VectorConnectionError(e, operation="get_index_list", endpoint=self.endpoint) from e

    def test_connection(self) -> bool:
        try:
            self.list_collections()
            return True
        except VectorConnectionError as e:
            logger.warning("enVector connection test failed: %s", e)
            return False

    def search(self, collection: str, query: SearchQuery) -> SearchResult:
        if query.vector is None:
            raise ValidationError("vector", None, "A query vector is required")
        if collection not in self.list_collections():
            raise CollectionNotFoundError(collection)

        needs_post_filter = bool(query.filters) or query.score_threshold is not None
        top_k = query.limit * self._oversample if needs_post_filter else query.limit

        started = time.perf_counter()
        try:
            raw = self._sdk().Index(collection).search(
                query.vector, top_k=top_k, output_fields=["metadata"]
            )
        except Exception as e:
            raise SearchOperationError(e, query=query.text, collection=collection) from e

        matched = [
            hit for hit in parse_search_rows(raw)
            if (query.score_threshold is None or hit.score >= query.score_threshold)
            and matches_filters(hit.payload, query.filters)
        ]
        return SearchResult(
            hits=matched[:query.limit],
            execution_time_ms=int((time.perf_counter() - started) * 1000),
            total_count=len(matched),
        )
