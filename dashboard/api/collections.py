from fastapi import APIRouter, Body, Depends, HTTPException, Query, Response
from typing import Any, Dict
import logging

from dashboard.core.container import Container, get_container
from dashboard.core.errors import DashboardError, DocumentNotFound, DocumentStoreError, UnknownCollection
from dashboard.schemas.collection import DistinctValues, DocumentList, FilterQuery
from dashboard.services.collections import CollectionService

router = APIRouter(prefix="/collections", tags=["collections"])
logger = logging.getLogger(__name__)


def http_error(e: DashboardError) -> HTTPException:
    if isinstance(e, (UnknownCollection, DocumentNotFound)):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, DocumentStoreError):
        logger.error(f"Document store failure: {e}")
        return HTTPException(status_code=502, detail=str(e))
    return HTTPException(status_code=500, detail=str(e))


def get_service(collection: str, container: Container = Depends(get_container)) -> CollectionService:
    try:
        return container.services.get(collection)
    except UnknownCollection as e:
        raise http_error(e)


@router.get("/{collection}", response_model=DocumentList)
async def list_documents(
    refresh: bool = Query(False),
    service: CollectionService = Depends(get_service),
):
    try:
        documents = await service.list_all(force_refresh=refresh)
    except DashboardError as e:
        raise http_error(e)
    return DocumentList(collection=service.collection, count=len(documents), documents=documents)


@router.get("/{collection}/search", response_model=DocumentList)
async def search_documents(
    q: str = Query(""),
    service: CollectionService = Depends(get_service),
):
    try:
        documents = await service.search(q)
    except DashboardError as e:
        raise http_error(e)
    return DocumentList(collection=service.collection, count=len(documents), documents=documents)


@router.post("/{collection}/query", response_model=DocumentList)
async def query_documents(
    query: FilterQuery = Body(...),
    service: CollectionService = Depends(get_service),
):
    try:
        documents = await service.find_by_filter(query.filters, force_refresh=query.refresh)
    except DashboardError as e:
        raise http_error(e)
    return DocumentList(collection=service.collection, count=len(documents), documents=documents)


@router.get("/{collection}/distinct/{field}", response_model=DistinctValues)
async def distinct_values(field: str, service: CollectionService = Depends(get_service)):
    try:
        values = await service.distinct_values(field)
    except DashboardError as e:
        raise http_error(e)
    return DistinctValues(collection=service.collection, field=field, values=values)


@router.get("/{collection}/{document_id}")
async def get_document(
    document_id: str,
    refresh: bool = Query(False),
    service: CollectionService = Depends(get_service),
) -> Dict[str, Any]:
    try:
        return await service.find_by_id(document_id, force_refresh=refresh)
    except DashboardError as e:
        raise http_error(e)


@router.post("/{collection}", status_code=201)
async def create_document(
    document: Dict[str, Any] = Body(...),
    service: CollectionService = Depends(get_service),
) -> Dict[str, Any]:
    try:
        return await service.create(document)
    except DashboardError as e:
        raise http_error(e)


@router.patch("/{collection}/{document_id}")
async def update_document(
    document_id: str,
    patch: Dict[str, Any] = Body(...),
    service: CollectionService = Depends(get_service),
) -> Dict[str, Any]:
    try:
        return await service.update(document_id, patch)
    except DashboardError as e:
        raise http_error(e)


@router.delete("/{collection}/{document_id}", status_code=204)
async def delete_document(document_id: str, service: CollectionService = Depends(get_service)):
    try:
        await service.delete(document_id)
    except DashboardError as e:
        raise http_error(e)
    return Response(status_code=204)
