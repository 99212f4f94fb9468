from typing import Dict, List, Optional, Protocol, Sequence
import numpy as np
from core.entities import (
    ChunkRecord,
    ResumeRecord,
    SimilarityHit,
    TextChunk,
    WeightedHit,
)


class EmbeddingProvider(Protocol):
    """Raw embeddings, one per input text, same order. Fixed model/dimension."""

    async def embed(self, texts: List[str]) -> List[Sequence[float]]: ...


class NearestNeighborStore(Protocol):
    async def best_per_resume(
        self, q: np.ndarray, resume_id: Optional[str] = None
    ) -> List[SimilarityHit]:
        """Best chunk per resume for one unit query vector."""
        ...

    async def topk_per_resume(
        self, q: np.ndarray, k: int, resume_id: Optional[str] = None
    ) -> List[SimilarityHit]:
        """Up to k chunks per resume, each carrying its 1-based rank."""
        ...

    async def weighted_top_k(
        self, qs: np.ndarray, weights: Sequence[float], limit: int, offset: int
    ) -> List[WeightedHit]:
        """Resumes ordered by sum(best_sim(pill) * weight), one page of them."""
        ...


class MetadataStore(Protocol):
    async def get_resumes(self, ids: Sequence[str]) -> Dict[str, ResumeRecord]: ...

    async def get_chunks(self, ids: Sequence[str]) -> Dict[str, ChunkRecord]: ...

    async def create_resume(
        self, name: str, pdf_url: Optional[str], sha256: Optional[str]
    ) -> ResumeRecord: ...

    async def insert_chunks(
        self, resume_id: str, chunks: Sequence[TextChunk], embeddings: np.ndarray
    ) -> List[str]: ...


class ObjectStore(Protocol):
    async def put(self, key: str, data: bytes, content_type: str) -> str:
        """Write bytes under `key`; returns the stable public URL."""
        ...
