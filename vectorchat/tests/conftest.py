"""Shared fixtures: an in-memory store, a fake embedder and an event recorder."""

from typing import List
from unittest.mock import Mock

import pytest

from vectorchat.common.events import QueryEvent


class RecordingSink:
    """Event sink that keeps every event it receives"""

    def __init__(self):
        self.events: List[QueryEvent] = []

    def emit(self, event: QueryEvent) -> None:
        self.events.append(event)

    def names(self) -> List[str]:
        return [e.name for e in self.events]

    def first(self, name: str) -> QueryEvent:
        return next(e for e in self.events if e.name == name)


@pytest.fixture
def events():
    return RecordingSink()


@pytest.fixture
def embedding_service():
    """Embeds every text to the same 3-dim vector"""
    service = Mock()
    service.generate_embedding.return_value = [1.0, 0.0, 0.0]
    return service


@pytest.fixture
def repository():
    from vectorchat.common.vector_repository import InMemoryVectorRepository

    repo = InMemoryVectorRepository()
    repo.add(
        "artworks",
        vectors=[[1.0, 0.0, 0.0], [0.9, 0.1, 0.0], [0.0, 1.0, 0.0]],
        payloads=[
            {"name": "Chris Dyer", "file_name": "neon-city.png"},
            {"name": "Alice", "file_name": "sunset.JPEG"},
            {"name": "Chris Dyer", "file_name": "forest.jpg"},
        ],
        ids=["a1", "a2", "a3"],
    )
    return repo
