# controller/search_controller.py
from typing import Any, Dict
from fastapi import APIRouter, Depends, status
from controller.controller_dependencies import get_search_service, rate_limits
from model.api import PillSearchRequest, ResumeDetailsRequest, WeightedSearchRequest
from service.search_service import SearchService
from util.constants import InternalURIs

search_router = APIRouter(dependencies=rate_limits())


@search_router.post(InternalURIs.SEARCH_PILLS, status_code=status.HTTP_200_OK)
async def search_pills(
    payload: PillSearchRequest,
    service: SearchService = Depends(get_search_service),
) -> Dict[str, Any]:
    return await service.pill_matrix(payload)


@search_router.post(InternalURIs.SEARCH_PILLS_WEIGHTED, status_code=status.HTTP_200_OK)
async def search_pills_weighted(
    payload: WeightedSearchRequest,
    service: SearchService = Depends(get_search_service),
) -> Dict[str, Any]:
    return await service.weighted(payload)


@search_router.post(InternalURIs.RESUME_DETAILS, status_code=status.HTTP_200_OK)
async def resume_details(
    payload: ResumeDetailsRequest,
    service: SearchService = Depends(get_search_service),
) -> Dict[str, Any]:
    return await service.resume_details(payload)
