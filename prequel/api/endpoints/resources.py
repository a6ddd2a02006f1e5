import logging
from typing import Any, Dict

from fastapi import APIRouter, HTTPException, status

from prequel.core import schemas
from prequel.core.deferred import Deferred
from prequel.core.errors import PrequelError
from prequel.core.prequelize import PrequelModel


async def resolve(result: Deferred):
    # Validation-style errors become HTTP errors; CardinalityError is a bug and propagates
    try:
        return await result
    except PrequelError as error:
        logging.info(f"Request rejected with {error.status_code}: {error.detail}")
        raise HTTPException(status_code=error.status_code, detail=error.detail)


def mutation_response(result) -> schemas.MutationResponse:
    return schemas.MutationResponse(count=result.count, rows=result.rows)


def build_resource_router(model: PrequelModel) -> APIRouter:
    """CRUD routes for one prequel model, mounted under /<model name>."""
    router = APIRouter(prefix=f"/{model.name}", tags=[model.name])

    # List with total count
    @router.get("", response_model=schemas.CountedResponse)
    async def list_records(limit: int = 100, offset: int = 0):
        return await resolve(
            model.find_and_count_all({"limit": limit, "offset": offset})
        )

    # Query with simplified where/include
    @router.post("/query")
    async def query_records(query: schemas.QueryRequest):
        return await resolve(model.find_all(query.model_dump(exclude_none=True)))

    # Get one record
    @router.get("/{record_id}")
    async def get_record(record_id: int):
        return await resolve(model.get(record_id))

    # Create a record
    @router.post("", status_code=status.HTTP_201_CREATED)
    async def create_record(data: Dict[str, Any]):
        return await resolve(model.create(data))

    # Update several records by id, all or nothing
    @router.patch("", response_model=schemas.MutationResponse)
    async def update_records(request: schemas.UpdateManyRequest):
        result = await resolve(model.update_many(request.ids, request.data))
        return mutation_response(result)

    # Update one record
    @router.patch("/{record_id}", response_model=schemas.MutationResponse)
    async def update_record(record_id: int, data: Dict[str, Any]):
        result = await resolve(model.update(record_id, data))
        return mutation_response(result)

    # Delete one record
    @router.delete("/{record_id}", response_model=schemas.MutationResponse)
    async def delete_record(record_id: int):
        result = await resolve(model.remove(record_id))
        return mutation_response(result)

    return router
