import asyncio
from typing import List, Optional, Sequence
import httpx
import numpy as np
from sentence_transformers import SentenceTransformer
from core.interfaces import EmbeddingProvider
from util.constants import ExternalURIs
from util.errors import UpstreamError
from util.functions import batched
from util.timing import timed
import logging

logger = logging.getLogger(__name__)

EMBED_BATCH_SIZE = 48


def unit_rows(vecs: np.ndarray) -> np.ndarray:
    """
    Divide every row by its Euclidean norm (zero rows are divided by 1),
    so cosine similarity reduces to a dot product.
    """
    norms = np.linalg.norm(vecs, axis=1, keepdims=True)
    norms[norms == 0] = 1.0
    return (vecs / norms).astype(np.float32, copy=False)


class EmbeddingBatcher:
    """
    Order-preserving batched embedding. Batching is a transport detail:
    one vector per input, and any failing batch fails the whole call.
    """

    def __init__(
        self, provider: EmbeddingProvider, batch_size: int = EMBED_BATCH_SIZE
    ) -> None:
        self._provider = provider
        self._batch_size = max(1, int(batch_size))

    async def embed_batch(self, texts: Sequence[str]) -> np.ndarray:
        if not texts:
            return np.zeros((0, 0), dtype=np.float32)

        rows: List[Sequence[float]] = []
        with timed(logger, "embed.batch", n=len(texts), batch=self._batch_size):
            for group in batched(list(texts), self._batch_size):
                try:
                    vecs = await self._provider.embed(list(group))
                except UpstreamError:
                    raise
                except Exception as e:
                    logger.error("embed.batch.error err=%s", type(e).__name__)
                    raise UpstreamError("Embedding provider failed") from e
                if len(vecs) != len(group):
                    logger.error(
                        "embed.batch.count expected=%d got=%d", len(group), len(vecs)
                    )
                    raise UpstreamError("Embedding provider returned wrong count")
                rows.extend(vecs)

        try:
            arr = np.asarray(rows, dtype=np.float32)
        except ValueError as e:
            raise UpstreamError("Embedding provider returned ragged vectors") from e
        if arr.ndim != 2:
            raise UpstreamError("Embedding provider returned ragged vectors")
        return unit_rows(arr)


class SentenceTransformerProvider:
    """
    Local model, loaded lazily on first use and kept CPU-friendly.
    Encoding runs in a worker thread so the event loop stays free.
    """

    def __init__(self, model_name: str, device: str = "cpu") -> None:
        self._model_name = model_name
        self._device = device
        self._model: Optional[SentenceTransformer] = None

    def _load(self) -> SentenceTransformer:
        if self._model is None:
            with timed(logger, "embed.model.load", model=self._model_name):
                self._model = SentenceTransformer(self._model_name, device=self._device)
        return self._model

    def _encode(self, texts: List[str]) -> List[Sequence[float]]:
        vecs = self._load().encode(texts, convert_to_numpy=True)
        return list(vecs)

    async def embed(self, texts: List[str]) -> List[Sequence[float]]:
        return await asyncio.to_thread(self._encode, texts)


class OpenAIEmbeddingProvider:
    """
    OpenAI-compatible /v1/embeddings endpoint. The http client is owned by
    the caller.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        api_key: str,
        model: str = "text-embedding-3-small",
        url: str = ExternalURIs.OPENAI_EMBEDDINGS,
    ) -> None:
        self._client = client
        self._api_key = api_key
        self._model = model
        self._url = url

    async def embed(self, texts: List[str]) -> List[Sequence[float]]:
        try:
            res = await self._client.post(
                self._url,
                headers={
                    "Authorization": f"Bearer {self._api_key}",
                    "content-type": "application/json",
                },
                json={"model": self._model, "input": texts},
            )
        except httpx.RequestError as e:
            logger.error("embed.openai.request_error err=%s", type(e).__name__)
            raise UpstreamError("Embedding request failed") from e

        if res.status_code // 100 != 2:
            logger.error("embed.openai.bad_status %d", res.status_code)
            raise UpstreamError("Embedding provider error")

        data = res.json().get("data") or []
        ordered = sorted(data, key=lambda d: d.get("index", 0))
        return [d["embedding"] for d in ordered]
