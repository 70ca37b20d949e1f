"""Base search engine interface.

Defines the abstract contract the index registry depends on, independent of
the backing full-text engine. The registry only ever needs three things from
an engine: open an index at a location, search an open index, and release it.
"""

from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class ScoredDocument:
    """A single search hit.

    ``index`` is the name of the index the document came from, so merged
    results across indices stay attributable.
    """
    index: str
    docnum: int
    score: float
    fields: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert the hit to a JSON-friendly dictionary."""
        return asdict(self)


class IndexHandle(ABC):
    """An opened index.

    Handles are owned by the registry; nothing else should keep a reference
    to one after it has been closed.
    """

    def __init__(self, name: str, location: str):
        self.name = name
        self.location = location

    @abstractmethod
    def search(
        self,
        query_expression: Optional[str],
        collapse_key: Optional[str],
        limit: int
    ) -> List[ScoredDocument]:
        """Search the index.

        Returns
        - At most ``limit`` documents sorted by descending score, with at most
          one document per distinct ``collapse_key`` value when one is given

        Raises
        - ``EngineFailureError`` for any failure inside the engine
        """
        pass

    @abstractmethod
    def close(self) -> None:
        """Release engine resources held by this handle."""
        pass


class SearchEngine(ABC):
    """Abstract base class for search engine backends."""

    @abstractmethod
    def open(self, name: str, location: str) -> IndexHandle:
        """Open the index stored at ``location``.

        Raises
        - ``InvalidLocationError`` when no openable index exists there
        """
        pass
