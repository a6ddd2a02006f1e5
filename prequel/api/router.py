from typing import Mapping

from fastapi import APIRouter

from prequel.api.endpoints.resources import build_resource_router
from prequel.core.prequelize import PrequelModel


def build_api_router(models: Mapping[str, PrequelModel]) -> APIRouter:
    api_router = APIRouter()

    # Combine one resource router per bound model
    for model in models.values():
        api_router.include_router(build_resource_router(model))

    return api_router
