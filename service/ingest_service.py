import logging
from fastapi import UploadFile
from core.ingestion import IngestionPipeline
from model.api import IngestResponse

logger = logging.getLogger(__name__)


class IngestService:
    def __init__(self, pipeline: IngestionPipeline) -> None:
        self._pipeline = pipeline

    async def ingest_upload(self, file: UploadFile) -> IngestResponse:
        """
        Index one uploaded PDF.
        Logs: file name and byte size only (no payloads).
        """
        try:
            data = await file.read()
            await file.seek(0)
        except Exception:
            logger.error("ingest.read.error")
            raise
        filename = file.filename or "upload.pdf"
        logger.info("ingest.upload file=%s bytes=%d", filename, len(data))
        result = await self._pipeline.ingest_pdf(data, filename)
        return IngestResponse(
            resume_id=result.resume_id, chunks=result.chunks, filename=result.filename
        )
