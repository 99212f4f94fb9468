# config/wiring.py
from dataclasses import dataclass
from typing import Optional
import httpx
from config.settings import Settings
from core.embeddings import (
    EmbeddingBatcher,
    OpenAIEmbeddingProvider,
    SentenceTransformerProvider,
)
from core.engine import EngineConfig, MatchEngine
from core.ingestion import IngestConfig, IngestionPipeline
from core.interfaces import EmbeddingProvider
from repository.memory_store import InMemoryStore
from repository.supabase_store import SupabaseStore
from util.enums import EmbeddingBackend, StoreBackend
import logging

logger = logging.getLogger(__name__)


@dataclass
class Container:
    """
    Clients built once and handed to the engine and the ingest pipeline.
    Lifecycle belongs to whoever built it: build_container() -> use -> aclose().
    """

    engine: MatchEngine
    pipeline: IngestionPipeline
    http: Optional[httpx.AsyncClient] = None

    async def aclose(self) -> None:
        if self.http is not None:
            await self.http.aclose()
            self.http = None


def engine_config(s: Settings) -> EngineConfig:
    return EngineConfig(
        max_pills=s.MAX_PILLS,
        min_weight=s.MIN_PILL_WEIGHT,
        max_weight=s.MAX_PILL_WEIGHT,
        default_weight=s.DEFAULT_PILL_WEIGHT,
        max_results_per_pill=s.MAX_RESULTS_PER_PILL,
        default_weighted_limit=s.DEFAULT_WEIGHTED_TOP_K,
        default_results_per_pill=s.DEFAULT_DETAILS_RESULTS_PER_PILL,
        concurrency=s.MATCH_CONCURRENCY,
        slow_ms=s.SLOW_QUERY_MS,
    )


def ingest_config(s: Settings) -> IngestConfig:
    return IngestConfig(
        min_len=s.CHUNK_MIN_LEN,
        max_len=s.CHUNK_MAX_LEN,
        max_chars=s.MAX_TEXT_CHARS,
        batch_size=s.EMBED_BATCH_SIZE,
    )


def build_container(
    s: Settings, provider: Optional[EmbeddingProvider] = None
) -> Container:
    """
    Pick collaborators from settings. `provider` overrides the embedding
    backend (tests, scripts).
    """
    http: Optional[httpx.AsyncClient] = None
    needs_http = s.STORE_BACKEND == StoreBackend.SUPABASE or (
        provider is None and s.EMBEDDING_BACKEND == EmbeddingBackend.OPENAI
    )
    if needs_http:
        http = httpx.AsyncClient(timeout=httpx.Timeout(s.HTTP_TIMEOUT_SECONDS))

    if provider is None:
        if s.EMBEDDING_BACKEND == EmbeddingBackend.OPENAI:
            provider = OpenAIEmbeddingProvider(
                http, s.OPENAI_API_KEY, model=s.OPENAI_EMBEDDING_MODEL
            )
        else:
            provider = SentenceTransformerProvider(s.EMBEDDING_MODEL_NAME)

    if s.STORE_BACKEND == StoreBackend.SUPABASE:
        store = SupabaseStore(
            http, s.SUPABASE_URL, s.SUPABASE_SERVICE_KEY, bucket=s.SUPABASE_BUCKET
        )
    else:
        store = InMemoryStore(public_url=s.MEMORY_PUBLIC_URL)

    embedder = EmbeddingBatcher(provider, batch_size=s.EMBED_BATCH_SIZE)
    logger.info(
        "wiring.ready store=%s embedding=%s",
        StoreBackend(s.STORE_BACKEND).value,
        type(provider).__name__,
    )
    return Container(
        engine=MatchEngine(embedder, store, store, engine_config(s)),
        pipeline=IngestionPipeline(embedder, store, store, ingest_config(s)),
        http=http,
    )
