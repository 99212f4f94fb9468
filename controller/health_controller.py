# controller/health_controller.py
from fastapi import APIRouter
from model.api import HealthResponse
from util.constants import InternalURIs

health_router = APIRouter()


@health_router.get(InternalURIs.HEALTH, response_model=HealthResponse)
@health_router.post(InternalURIs.HEALTH, response_model=HealthResponse)
async def health() -> HealthResponse:
    return HealthResponse()
