"""Whoosh search engine backend.

Each location is a directory holding a Whoosh index. Indices are built by
other tools; this backend only opens and searches them.
"""

from pathlib import Path
from typing import List, Optional

import structlog
from whoosh import index as whoosh_index
from whoosh.index import Index
from whoosh.qparser import MultifieldParser
from whoosh.query import Every, Query

from libs.common.errors import EngineFailureError, InvalidLocationError
from .base import IndexHandle, ScoredDocument, SearchEngine

logger = structlog.get_logger("index_store.whoosh")


class WhooshIndexHandle(IndexHandle):
    """Handle over an opened Whoosh index."""

    def __init__(self, name: str, location: str, ix: Index):
        super().__init__(name, location)
        self._ix = ix
        schema = ix.schema
        # Full-text fields first; fall back to every field for ID-only schemas
        self._search_fields = [n for n, f in schema.items() if f.scorable] or schema.names()

    def _parse(self, query_expression: Optional[str]) -> Query:
        if query_expression is None or not query_expression.strip():
            return Every()
        parser = MultifieldParser(self._search_fields, schema=self._ix.schema)
        return parser.parse(query_expression)

    def search(
        self,
        query_expression: Optional[str],
        collapse_key: Optional[str],
        limit: int
    ) -> List[ScoredDocument]:
        if limit == 0:
            return []

        # A key missing from this schema has nothing to collapse on
        collapse = collapse_key if collapse_key and collapse_key in self._ix.schema else None

        try:
            query = self._parse(query_expression)
            with self._ix.searcher() as searcher:
                hits = searcher.search(query, limit=limit, collapse=collapse)
                return [
                    ScoredDocument(
                        index=self.name,
                        docnum=hit.docnum,
                        score=float(hit.score) if hit.score is not None else 0.0,
                        fields=dict(hit.fields()),
                    )
                    for hit in hits
                ]
        except Exception as e:
            logger.error(
                "Whoosh search failed",
                index=self.name,
                query=query_expression,
                collapse=collapse_key,
                error=str(e)
            )
            raise EngineFailureError(str(e), index=self.name) from e

    def close(self) -> None:
        self._ix.close()


class WhooshSearchEngine(SearchEngine):
    """Opens Whoosh indices stored in directories.

    Parameters
    - indexname: Name of the index inside each directory (Whoosh allows several)
    """

    def __init__(self, indexname: Optional[str] = None):
        self.indexname = indexname

    def open(self, name: str, location: str) -> WhooshIndexHandle:
        if not location:
            raise InvalidLocationError("Empty index location", index=name, location=location)

        path = Path(location)
        if not path.is_dir() or not whoosh_index.exists_in(str(path), indexname=self.indexname):
            raise InvalidLocationError("No index found at location", index=name, location=location)

        try:
            ix = whoosh_index.open_dir(str(path), indexname=self.indexname)
        except Exception as e:
            raise InvalidLocationError(str(e), index=name, location=location) from e

        logger.debug("Whoosh index opened", index=name, location=location, doc_count=ix.doc_count())
        return WhooshIndexHandle(name, location, ix)
