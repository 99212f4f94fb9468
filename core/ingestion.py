import hashlib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union
from core.canon import normalize
from core.chunker import chunk
from core.embeddings import EmbeddingBatcher
from core.entities import IngestResult, TextChunk
from core.interfaces import MetadataStore, ObjectStore
from core.pdf_text import extract_text
from util.enums import FlattenMode
from util.errors import AppError, NoExtractableContentError
from util.functions import batched
from util.timing import timed
import logging

logger = logging.getLogger(__name__)

PDF_CONTENT_TYPE = "application/pdf"


@dataclass(frozen=True)
class IngestConfig:
    min_len: int = 130
    max_len: int = 240
    max_chars: int = 200_000
    batch_size: int = 48


@dataclass
class FolderReport:
    success: List[IngestResult] = field(default_factory=list)
    failed: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def total_chunks(self) -> int:
        return sum(r.chunks for r in self.success)


class IngestionPipeline:
    """
    One document at a time:
    bytes -> object store -> resume record -> canonical text -> chunks
    -> embeddings + inserts in matching batches.
    """

    def __init__(
        self,
        embedder: EmbeddingBatcher,
        metadata: MetadataStore,
        objects: ObjectStore,
        config: Optional[IngestConfig] = None,
    ) -> None:
        self._embedder = embedder
        self._metadata = metadata
        self._objects = objects
        self._config = config or IngestConfig()

    def prepare(self, text: str) -> List[TextChunk]:
        """Canonicalize (soft flatten), cap the length, chunk."""
        cfg = self._config
        canon = normalize(text, FlattenMode.SOFT)
        if len(canon) > cfg.max_chars:
            canon = canon[: cfg.max_chars]
        return chunk(canon, cfg.min_len, cfg.max_len)

    async def ingest_pdf(self, data: bytes, filename: str) -> IngestResult:
        """
        Store the PDF under a content hash, then index its text.
        Nothing is written when the document has no extractable text.
        """
        with timed(logger, "ingest.pdf", bytes=len(data)) as fields:
            chunks = self.prepare(extract_text(data))
            fields["chunks"] = len(chunks)
            if not chunks:
                logger.warning("ingest.empty file=%s", filename)
                raise NoExtractableContentError()

            sha = hashlib.sha256(data).hexdigest()
            key = f"{sha}/{sha}.pdf"
            pdf_url = await self._objects.put(key, data, PDF_CONTENT_TYPE)
            return await self._store(chunks, filename, pdf_url, sha)

    async def ingest_text(
        self, text: str, name: str, pdf_url: Optional[str] = None
    ) -> IngestResult:
        """Index already extracted text (no source file)."""
        chunks = self.prepare(text)
        if not chunks:
            logger.warning("ingest.empty name=%s", name)
            raise NoExtractableContentError()
        sha = hashlib.sha256(text.encode("utf-8")).hexdigest()
        return await self._store(chunks, name, pdf_url, sha)

    async def _store(
        self,
        chunks: List[TextChunk],
        name: str,
        pdf_url: Optional[str],
        sha: str,
    ) -> IngestResult:
        resume = await self._metadata.create_resume(name, pdf_url, sha)
        # embed and insert with the same batch boundaries
        for group in batched(chunks, self._config.batch_size):
            vecs = await self._embedder.embed_batch([c.text for c in group])
            await self._metadata.insert_chunks(resume.id, list(group), vecs)
        logger.info("ingest.ok resume=%s chunks=%d", resume.id, len(chunks))
        return IngestResult(resume_id=resume.id, chunks=len(chunks), filename=name)

    async def ingest_folder(
        self, path: Union[str, Path], recursive: bool = False
    ) -> FolderReport:
        """
        Ingest every *.pdf under `path` sequentially. A failing file is
        recorded and the rest continue.
        """
        root = Path(path)
        if not root.exists():
            raise FileNotFoundError(f"Path does not exist: {root}")
        if root.is_file():
            files = [root]
        else:
            pattern = "**/*" if recursive else "*"
            files = sorted(
                p
                for p in root.glob(pattern)
                if p.is_file() and p.suffix.lower() == ".pdf"
            )

        report = FolderReport()
        logger.info("ingest.folder path=%s files=%d", root, len(files))
        for i, f in enumerate(files, start=1):
            try:
                result = await self.ingest_pdf(f.read_bytes(), f.name)
            except (AppError, OSError) as e:
                msg = getattr(e, "detail", None) or str(e)
                logger.error("ingest.file.error file=%s err=%s", f.name, msg)
                report.failed.append({"file": f.name, "error": str(msg)})
                continue
            logger.info(
                "ingest.file.ok [%d/%d] file=%s chunks=%d",
                i,
                len(files),
                f.name,
                result.chunks,
            )
            report.success.append(result)
        return report
