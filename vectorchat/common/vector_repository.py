"""
Vector repository interface.

The retriever talks to any store implementing VectorRepository. Errors are
part of the contract: implementations raise CollectionNotFoundError,
VectorConnectionError, SearchOperationError or ValidationError.
"""

import time
import uuid
from pathlib import PurePosixPath
from typing import Any, Dict, List, Optional, Protocol

import numpy as np

from .errors import CollectionNotFoundError, ValidationError, VectorConnectionError
from .schemas.search import SearchHit, SearchQuery, SearchResult


class VectorRepository(Protocol):
    def search(self, collection: str, query: SearchQuery) -> SearchResult:
        ...

    def test_connection(self) -> bool:
        ...


def _payload_extension(payload: Dict[str, Any]) -> Optional[str]:
    ext = payload.get("extension")
    if not ext and payload.get("file_name"):
        ext = PurePosixPath(str(payload["file_name"])).suffix
    if not ext:
        return None
    return str(ext).lower().lstrip(".")


def matches_filters(payload: Dict[str, Any], filters: Optional[Dict[str, Any]]) -> bool:
    """Exact-match payload filtering, case-insensitive for strings.

    ``extension`` also matches the suffix of ``file_name`` and ignores a
    leading dot, so "jpeg" matches a payload holding "photo.JPEG".
    """
    if not filters:
        return True
    for key, expected in filters.items():
        if key == "extension":
            actual = _payload_extension(payload)
            if actual is None or actual != str(expected).lower().lstrip("."):
                return False
            continue
        actual = payload.get(key)
        if actual is None:
            return False
        if isinstance(actual, str) and isinstance(expected, str):
            if actual.strip().lower() != expected.strip().lower():
                return False
        elif actual != expected:
            return False
    return True


class InMemoryVectorRepository:
    """
    numpy-backed repository for local runs and tests.

    Scores are cosine similarities. ``connected=False`` simulates an
    unreachable store.
    """

    def __init__(self, connected: bool = True):
        self.connected = connected
        self._collections: Dict[str, Dict[str, Any]] = {}

    def create_collection(self, name: str, dim: int) -> None:
        self._collections[name] = {"dim": dim, "ids": [], "vectors": [], "payloads": []}

    def add(
        self,
        collection: str,
        vectors: List[List[float]],
        payloads: Optional[List[Dict[str, Any]]] = None,
        ids: Optional[List[str]] = None,
    ) -> List[str]:
        if not vectors:
            raise ValidationError("vectors", vectors, "At least one vector is required")
        if collection not in self._collections:
            self.create_collection(collection, len(vectors[0]))
        store = self._collections[collection]
        payloads = payloads or [{} for _ in vectors]
        ids = ids or [str(uuid.uuid4()) for _ in vectors]
        if not (len(vectors) == len(payloads) == len(ids)):
            raise ValidationError("payloads", payloads, "Vectors, payloads and ids must align")
        for vector in vectors:
            if len(vector) != store["dim"]:
                raise ValidationError(
                    "vector", vector, f"Vector dimension must be {store['dim']}, got {len(vector)}"
                )
        store["ids"].extend(ids)
        store["vectors"].extend(vectors)
        store["payloads"].extend(dict(p) for p in payloads)
        return ids

    def list_collections(self) -> List[str]:
        self._check_connected("list_collections")
        return sorted(self._collections)

    def test_connection(self) -> bool:
        return self.connected

    def search(self, collection: str, query: SearchQuery) -> SearchResult:
        self._check_connected("search")
        if collection not in self._collections:
            raise CollectionNotFoundError(collection)
        if query.vector is None:
            raise ValidationError("vector", None, "A query vector is required")

        started = time.perf_counter()
        store = self._collections[collection]
        if not store["vectors"]:
            return SearchResult(hits=[], execution_time_ms=0, total_count=0)

        matrix = np.asarray(store["vectors"], dtype=np.float64)
        q = np.asarray(query.vector, dtype=np.float64)
        if q.shape[0] != matrix.shape[1]:
            raise ValidationError(
                "vector", query.vector, f"Vector dimension must be {matrix.shape[1]}, got {q.shape[0]}"
            )
        norms = np.linalg.norm(matrix, axis=1) * (np.linalg.norm(q) or 1.0)
        norms[norms == 0] = 1.0
        scores = matrix @ q / norms

        matched: List[SearchHit] = []
        for i in np.argsort(-scores, kind="stable"):
            score = float(scores[i])
            if query.score_threshold is not None and score < query.score_threshold:
                continue
            payload = store["payloads"][i]
            if not matches_filters(payload, query.filters):
                continue
            matched.append(SearchHit(id=store["ids"][i], score=score, payload=dict(payload)))

        return SearchResult(
            hits=matched[:query.limit],
            execution_time_ms=int((time.perf_counter() - started) * 1000),
            total_count=len(matched),
        )

    def _check_connected(self, operation: str) -> None:
        if not self.connected:
            raise VectorConnectionError(
                ConnectionRefusedError("vector store unreachable"),
                operation=operation,
                endpoint="memory",
            )
