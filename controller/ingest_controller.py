# controller/ingest_controller.py
from fastapi import APIRouter, Depends, File, UploadFile, status
from controller.controller_dependencies import (
    enforce_max_upload_size,
    get_ingest_service,
    rate_limits,
)
from model.api import IngestResponse
from service.ingest_service import IngestService
from util.constants import InternalURIs

ingest_router = APIRouter(dependencies=rate_limits())


@ingest_router.post(
    InternalURIs.INGEST,
    response_model=IngestResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(enforce_max_upload_size)],
)
async def ingest_resume(
    file: UploadFile = File(...),
    service: IngestService = Depends(get_ingest_service),
) -> IngestResponse:
    return await service.ingest_upload(file)
