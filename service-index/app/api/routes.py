"""API routes for the index service.

    GET    /{index_name}         200 if open (or the meta-index), 404 otherwise
    PUT    /{index_name}?path=   open an index; 400 no path, 403 bad path, 405 meta-index
    DELETE /{index_name}         close an index; 404 not open, 405 meta-index
    GET    /{index_name}/query   query one index, or every index via the meta-index

Error responses carry no body. Domain errors are raised as
``IndexServiceError`` and translated by ``index_service_error_handler``.
"""

import time
from typing import Dict, Optional

from fastapi import APIRouter, Depends, Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
import structlog

from libs.common.errors import (
    ErrorKind,
    IndexServiceError,
    InvalidParameterError,
    MissingParameterError,
)
from libs.index_store.location_cache import LocationCache
from ..registry.index_manager import META_INDEX_NAME, IndexManager
from ..runtime.metrics import MetricsCollector

logger = structlog.get_logger("index_service.api")

router = APIRouter()

# Methods available on the meta-index. Used in Allow headers
META_INDEX_METHODS = "GET"

STATUS_BY_KIND: Dict[ErrorKind, int] = {
    ErrorKind.INVALID_LOCATION: 403,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.RESERVED_NAME: 405,
    ErrorKind.ENGINE_FAILURE: 500,
    ErrorKind.MISSING_PARAMETER: 400,
    ErrorKind.INVALID_PARAMETER: 400,
    ErrorKind.CACHE_STORAGE: 500,
}


async def index_service_error_handler(request: Request, exc: IndexServiceError) -> Response:
    """Translate a domain error into a bodiless status response."""
    status_code = STATUS_BY_KIND[exc.kind]
    headers = {"Allow": META_INDEX_METHODS} if exc.kind is ErrorKind.RESERVED_NAME else None

    log = logger.error if status_code >= 500 else logger.info
    log(
        "Request failed",
        method=request.method,
        request_path=request.url.path,
        kind=exc.kind.value,
        status=status_code,
        error=str(exc),
        **exc.context
    )
    return Response(status_code=status_code, headers=headers)


def get_index_manager(request: Request) -> IndexManager:
    """Get index manager from application state."""
    return request.app.state.index_manager


def get_location_cache(request: Request) -> LocationCache:
    """Get location cache from application state."""
    return request.app.state.location_cache


def get_metrics(request: Request) -> MetricsCollector:
    """Get metrics collector from application state."""
    return request.app.state.metrics_collector


def parse_limit(raw: Optional[str]) -> int:
    """Parse the mandatory ``limit`` query parameter."""
    if raw is None:
        raise MissingParameterError(parameter="limit")
    try:
        limit = int(raw)
    except ValueError:
        raise InvalidParameterError(parameter="limit", value=raw)
    if limit < 0:
        raise InvalidParameterError(parameter="limit", value=raw)
    return limit


@router.get("/{index_name}")
async def get_index(
    index_name: str,
    index_manager: IndexManager = Depends(get_index_manager)
):
    """Report whether an index is open."""
    if index_name == META_INDEX_NAME or index_manager.has(index_name):
        return Response(status_code=200)
    return Response(status_code=404)


@router.put("/{index_name}")
async def put_index(
    index_name: str,
    path: Optional[str] = None,
    index_manager: IndexManager = Depends(get_index_manager),
    location_cache: LocationCache = Depends(get_location_cache)
):
    """Open the index stored at ``path`` under ``index_name``.

    Succeeds if the index already exists. The cache is written with the
    location of the open handle, which is the authoritative one.
    """
    if path is None:
        raise MissingParameterError(parameter="path", index=index_name)

    try:
        outcome = index_manager.create(index_name, path)
        location_cache.set_entry(index_name, index_manager.get_location(index_name))
    except IndexServiceError:
        raise
    except Exception as e:
        logger.exception("Index creation failed", index=index_name, location=path, error=str(e))
        return Response(status_code=500)

    return Response(status_code=200, headers={"X-Index-Outcome": outcome.value})


@router.delete("/{index_name}")
async def delete_index(
    index_name: str,
    index_manager: IndexManager = Depends(get_index_manager),
    location_cache: LocationCache = Depends(get_location_cache)
):
    """Close the index ``index_name`` and forget its cached location."""
    index_manager.remove(index_name)
    location_cache.remove_entry(index_name)
    return Response(status_code=200)


@router.get("/{index_name}/query")
async def query_index(
    index_name: str,
    q: Optional[str] = None,
    collapse: Optional[str] = None,
    limit: Optional[str] = None,
    index_manager: IndexManager = Depends(get_index_manager),
    metrics_collector: MetricsCollector = Depends(get_metrics)
):
    """Query one index, or all open indices when targeting the meta-index."""
    parsed_limit = parse_limit(limit)
    start_time = time.time()

    try:
        if index_name == META_INDEX_NAME:
            scope = "all"
            results = index_manager.query_all(q, collapse, parsed_limit)
        else:
            scope = "single"
            results = index_manager.query(index_name, q, collapse, parsed_limit)
    except IndexServiceError:
        raise
    except Exception as e:
        logger.exception("Query failed", index=index_name, query=q, error=str(e))
        return Response(status_code=500)

    metrics_collector.record_query(scope, time.time() - start_time)

    return JSONResponse(content=jsonable_encoder([doc.to_dict() for doc in results]))
