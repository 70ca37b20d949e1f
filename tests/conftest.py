"""Shared fixtures: on-disk Whoosh indices and an in-memory fake engine."""

from typing import Any, Dict, List, Optional, Tuple

import pytest
from whoosh import index as whoosh_index
from whoosh.fields import ID, TEXT, Schema

from libs.common.errors import EngineFailureError, InvalidLocationError
from libs.index_store.base import IndexHandle, ScoredDocument, SearchEngine


def make_schema() -> Schema:
    return Schema(
        doc_id=ID(stored=True, unique=True),
        title=TEXT(stored=True),
        body=TEXT(stored=True),
        category=ID(stored=True, sortable=True),
    )


FRUIT_DOCS = [
    {"doc_id": "f1", "title": "Apple pie", "body": "apple apple cinnamon", "category": "dessert"},
    {"doc_id": "f2", "title": "Apple crumble", "body": "apple oats butter", "category": "dessert"},
    {"doc_id": "f3", "title": "Apple juice", "body": "pressed apple drink", "category": "drink"},
    {"doc_id": "f4", "title": "Banana bread", "body": "banana flour sugar", "category": "baking"},
]

VEGETABLE_DOCS = [
    {"doc_id": "v1", "title": "Carrot soup", "body": "carrot ginger apple", "category": "soup"},
    {"doc_id": "v2", "title": "Leek soup", "body": "leek potato", "category": "soup"},
]


@pytest.fixture
def make_index(tmp_path):
    """Build a Whoosh index under ``tmp_path/<name>`` and return its location."""
    def _make(name: str, documents: List[Dict[str, Any]]) -> str:
        path = tmp_path / name
        path.mkdir()
        ix = whoosh_index.create_in(str(path), make_schema())
        writer = ix.writer()
        for document in documents:
            writer.add_document(**document)
        writer.commit()
        ix.close()
        return str(path)
    return _make


class FakeIndexHandle(IndexHandle):
    """Handle returning fixed ``(score, fields)`` hits, best first."""

    def __init__(self, name: str, location: str, hits: List[Tuple[float, Dict[str, Any]]], fail: bool = False):
        super().__init__(name, location)
        self.hits = sorted(hits, key=lambda hit: -hit[0])
        self.fail = fail
        self.closed = False
        self.calls: List[Tuple[Optional[str], Optional[str], int]] = []

    def search(self, query_expression, collapse_key, limit):
        self.calls.append((query_expression, collapse_key, limit))
        if self.fail:
            raise EngineFailureError("boom", index=self.name)
        return [
            ScoredDocument(index=self.name, docnum=i, score=score, fields=dict(fields))
            for i, (score, fields) in enumerate(self.hits[:limit])
        ]

    def close(self):
        self.closed = True


class FakeSearchEngine(SearchEngine):
    """Engine whose valid locations are the keys of ``corpora``."""

    def __init__(self, corpora: Dict[str, List[Tuple[float, Dict[str, Any]]]], failing: Tuple[str, ...] = ()):
        self.corpora = corpora
        self.failing = set(failing)
        self.opened: List[FakeIndexHandle] = []

    def open(self, name, location):
        if location not in self.corpora:
            raise InvalidLocationError(index=name, location=location)
        handle = FakeIndexHandle(name, location, self.corpora[location], fail=location in self.failing)
        self.opened.append(handle)
        return handle


@pytest.fixture
def fake_engine():
    return FakeSearchEngine({
        "/data/a": [(3.0, {"id": "a1"}), (1.0, {"id": "a2"})],
        "/data/b": [(2.5, {"id": "b1"}), (0.5, {"id": "b2"})],
        "/data/c": [(9.0, {"id": "c1"}), (8.0, {"id": "c2"}), (7.0, {"id": "c3"})],
        "/data/broken": [(1.0, {"id": "x"})],
    }, failing=("/data/broken",))
