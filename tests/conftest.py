"""
Shared in-process collaborators for engine, ingestion and API tests.
"""

import hashlib
import re
from typing import Dict, Iterable, List, Optional, Sequence

import numpy as np
import pytest

from core.embeddings import EmbeddingBatcher
from core.engine import EngineConfig, MatchEngine
from core.entities import ChunkRecord, ResumeRecord, SimilarityHit, WeightedHit


class KeyedProvider:
    """Fixed vector per text; unknown text embeds to all zeros."""

    def __init__(
        self,
        vectors: Dict[str, Sequence[float]],
        dim: Optional[int] = None,
        fail_on: Iterable[str] = (),
    ) -> None:
        self.vectors = {k: list(v) for k, v in vectors.items()}
        self.dim = dim or len(next(iter(self.vectors.values())))
        self.fail_on = set(fail_on)
        self.calls: List[List[str]] = []

    async def embed(self, texts: List[str]) -> List[List[float]]:
        self.calls.append(list(texts))
        if self.fail_on & set(texts):
            raise RuntimeError("provider down")
        return [self.vectors.get(t, [0.0] * self.dim) for t in texts]


class BagOfWordsProvider:
    """Token counts hashed into `dim` buckets; stable across processes."""

    def __init__(self, dim: int = 4096) -> None:
        self.dim = dim
        self.batch_sizes: List[int] = []

    async def embed(self, texts: List[str]) -> List[List[float]]:
        self.batch_sizes.append(len(texts))
        out = []
        for t in texts:
            v = [0.0] * self.dim
            for tok in re.findall(r"[a-z0-9]+", t.lower()):
                v[int(hashlib.md5(tok.encode()).hexdigest(), 16) % self.dim] += 1.0
            out.append(v)
        return out


class BrokenProvider:
    async def embed(self, texts: List[str]) -> List[List[float]]:
        raise RuntimeError("provider down")


def one_hot(vocab: Sequence[str]) -> Dict[str, List[float]]:
    return {
        word: [1.0 if j == i else 0.0 for j in range(len(vocab))]
        for i, word in enumerate(vocab)
    }


class ScriptedIndex:
    """
    Nearest-neighbor store with canned answers per phrase. The phrase is
    recovered from the one-hot query vector; a zero vector is unknown.
    """

    def __init__(
        self,
        vocab: Sequence[str],
        best: Optional[Dict[str, List[SimilarityHit]]] = None,
        topk: Optional[Dict[str, List[SimilarityHit]]] = None,
        weighted: Optional[List[WeightedHit]] = None,
        fail_on: Iterable[str] = (),
    ) -> None:
        self.vocab = list(vocab)
        self.best = best or {}
        self.topk = topk or {}
        self.weighted = weighted or []
        self.fail_on = set(fail_on)
        self.calls: List[tuple] = []

    def _phrase(self, q: np.ndarray) -> Optional[str]:
        q = np.asarray(q)
        if not q.any():
            return None
        return self.vocab[int(np.argmax(q))]

    def _answer(
        self, table: Dict[str, List[SimilarityHit]], phrase, resume_id
    ) -> List[SimilarityHit]:
        if phrase in self.fail_on:
            raise RuntimeError("index down")
        hits = list(table.get(phrase, []))
        if resume_id is not None:
            hits = [h for h in hits if h.resume_id == resume_id]
        return hits

    async def best_per_resume(self, q, resume_id=None):
        phrase = self._phrase(q)
        self.calls.append(("best", phrase, resume_id))
        return self._answer(self.best, phrase, resume_id)

    async def topk_per_resume(self, q, k, resume_id=None):
        phrase = self._phrase(q)
        self.calls.append(("topk", phrase, k, resume_id))
        return [h for h in self._answer(self.topk, phrase, resume_id) if h.rank <= k]

    async def weighted_top_k(self, qs, weights, limit, offset):
        self.calls.append(
            ("weighted", [self._phrase(q) for q in qs], list(weights), limit, offset)
        )
        return list(self.weighted[:limit])


class RecordingMetadata:
    """Read side of the metadata store, counting bulk lookups."""

    def __init__(
        self,
        resumes: Iterable[ResumeRecord] = (),
        chunks: Iterable[ChunkRecord] = (),
    ) -> None:
        self.resumes = {r.id: r for r in resumes}
        self.chunks = {c.id: c for c in chunks}
        self.resume_calls: List[List[str]] = []
        self.chunk_calls: List[List[str]] = []

    async def get_resumes(self, ids):
        self.resume_calls.append(list(ids))
        return {i: self.resumes[i] for i in ids if i in self.resumes}

    async def get_chunks(self, ids):
        self.chunk_calls.append(list(ids))
        return {i: self.chunks[i] for i in ids if i in self.chunks}


def chunk_record(chunk_id, resume_id, text, page=1) -> ChunkRecord:
    return ChunkRecord(
        id=chunk_id,
        resume_id=resume_id,
        text=text,
        page_number=page,
        coordinates={"char_start": 0, "char_end": len(text), "text_length": len(text)},
    )


@pytest.fixture
def make_engine():
    """
    make_engine(vocab, metadata=None, **index_kwargs) -> (engine, provider, index)
    """

    def _make(vocab, metadata=None, config=None, provider_fail_on=(), **index_kwargs):
        provider = KeyedProvider(one_hot(vocab), fail_on=provider_fail_on)
        index = ScriptedIndex(vocab, **index_kwargs)
        engine = MatchEngine(
            EmbeddingBatcher(provider),
            index,
            metadata if metadata is not None else RecordingMetadata(),
            config or EngineConfig(),
        )
        return engine, provider, index

    return _make


@pytest.fixture
def people():
    return RecordingMetadata(
        resumes=[
            ResumeRecord(id="A", name="Alice", pdf_url="memory://resumes/a.pdf"),
            ResumeRecord(id="B", name="Bob", pdf_url="memory://resumes/b.pdf"),
            ResumeRecord(id="C", name="Carol"),
        ],
        chunks=[
            chunk_record("a1", "A", "Built Java services on Spring Boot."),
            chunk_record("a2", "A", "Tuned JVM garbage collection."),
            chunk_record("b1", "B", "Some Java in university."),
            chunk_record("b2", "B", "Profiled JVM workloads in production.", page=2),
            chunk_record("b3", "B", "Wrote Python data pipelines."),
        ],
    )


@pytest.fixture
def bow_provider():
    return BagOfWordsProvider()


@pytest.fixture
def broken_provider():
    return BrokenProvider()


@pytest.fixture
def keyed_provider():
    """keyed_provider(vectors, fail_on=()) -> KeyedProvider"""

    def _make(vectors, dim=None, fail_on=()):
        return KeyedProvider(vectors, dim=dim, fail_on=fail_on)

    return _make
