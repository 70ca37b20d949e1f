"""Search engine factory.

Centralizes creation of concrete ``SearchEngine`` backends so callers don't
depend on implementation details. New engines can be added without changing
call sites.
"""

from enum import Enum
from typing import Any

import structlog

from libs.common.config import IndexServiceConfig
from .base import SearchEngine
from .whoosh_engine import WhooshSearchEngine

logger = structlog.get_logger("index_store.factory")


class SearchEngineType(Enum):
    """Supported search engine types."""
    WHOOSH = "whoosh"


class SearchEngineFactory:
    """Factory for creating search engine instances."""

    @staticmethod
    def create(engine_type: SearchEngineType, **kwargs: Any) -> SearchEngine:
        """Create a search engine instance.

        Parameters
        - engine_type: A ``SearchEngineType`` enum value
        - kwargs: Backend-specific options forwarded to the implementation
        """
        if engine_type == SearchEngineType.WHOOSH:
            return WhooshSearchEngine(indexname=kwargs.get("indexname"))

        raise ValueError(f"Unsupported search engine type: {engine_type}")


def create_search_engine(config: IndexServiceConfig) -> SearchEngine:
    """Create the search engine selected by ``ML_INDEX_ENGINE``."""
    try:
        engine_type = SearchEngineType(config.ml_index_engine)
    except ValueError:
        raise ValueError(f"Unsupported search engine type: {config.ml_index_engine}")

    logger.info("Search engine selected", engine=engine_type.value)
    return SearchEngineFactory.create(engine_type, indexname=config.ml_index_whoosh_indexname)
