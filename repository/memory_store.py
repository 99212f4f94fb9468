import uuid
from typing import Dict, List, Optional, Sequence
import numpy as np
from core.entities import (
    ChunkRecord,
    ResumeRecord,
    SimilarityHit,
    TextChunk,
    WeightedHit,
)


class InMemoryStore:
    """
    Process-local stand-in for the metadata, nearest-neighbor and object
    collaborators. Exact cosine search over unit vectors with numpy;
    similarities are clipped to [0, 1].

    Flow: insert_chunks() appends rows; the stacked matrix is rebuilt lazily
    on the next lookup.
    """

    def __init__(self, public_url: str = "memory://resumes") -> None:
        self._public_url = public_url.rstrip("/")
        self._resumes: Dict[str, ResumeRecord] = {}
        self._chunks: Dict[str, ChunkRecord] = {}
        self._chunk_ids: List[str] = []
        self._vectors: List[np.ndarray] = []
        self._matrix: Optional[np.ndarray] = None
        self._owners: Optional[np.ndarray] = None
        self.objects: Dict[str, bytes] = {}

    # ----- object store -----

    async def put(self, key: str, data: bytes, content_type: str) -> str:
        self.objects[key] = bytes(data)
        return f"{self._public_url}/{key}"

    # ----- metadata store -----

    async def create_resume(
        self, name: str, pdf_url: Optional[str], sha256: Optional[str]
    ) -> ResumeRecord:
        rec = ResumeRecord(id=str(uuid.uuid4()), name=name, pdf_url=pdf_url, sha256=sha256)
        self._resumes[rec.id] = rec
        return rec

    async def insert_chunks(
        self, resume_id: str, chunks: Sequence[TextChunk], embeddings: np.ndarray
    ) -> List[str]:
        if len(chunks) != len(embeddings):
            raise ValueError("one embedding per chunk is required")
        ids: List[str] = []
        for c, v in zip(chunks, embeddings):
            cid = str(uuid.uuid4())
            self._chunks[cid] = ChunkRecord(
                id=cid,
                resume_id=resume_id,
                text=c.text,
                page_number=c.page_number,
                coordinates=c.coordinates,
            )
            self._chunk_ids.append(cid)
            self._vectors.append(np.asarray(v, dtype=np.float32))
            ids.append(cid)
        self._matrix = None
        return ids

    async def get_resumes(self, ids: Sequence[str]) -> Dict[str, ResumeRecord]:
        return {i: self._resumes[i] for i in ids if i in self._resumes}

    async def get_chunks(self, ids: Sequence[str]) -> Dict[str, ChunkRecord]:
        return {i: self._chunks[i] for i in ids if i in self._chunks}

    # ----- nearest-neighbor store -----

    def _index(self):
        if self._matrix is None:
            if self._vectors:
                self._matrix = np.vstack(self._vectors)
            else:
                self._matrix = np.zeros((0, 0), dtype=np.float32)
            self._owners = np.array(
                [self._chunks[c].resume_id for c in self._chunk_ids], dtype=object
            )
        return self._matrix, self._owners

    def _ranked_by_resume(
        self, q: np.ndarray, resume_id: Optional[str]
    ) -> Dict[str, List[tuple]]:
        """resume_id -> [(similarity, chunk_id), ...] best first."""
        mat, owners = self._index()
        if mat.shape[0] == 0:
            return {}
        sims = np.clip(mat @ np.asarray(q, dtype=np.float32), 0.0, 1.0)
        out: Dict[str, List[tuple]] = {}
        # stable: equal similarities keep insertion order
        for i in np.argsort(-sims, kind="stable"):
            rid = owners[i]
            if resume_id is not None and rid != resume_id:
                continue
            out.setdefault(rid, []).append((float(sims[i]), self._chunk_ids[i]))
        return out

    async def best_per_resume(
        self, q: np.ndarray, resume_id: Optional[str] = None
    ) -> List[SimilarityHit]:
        ranked = self._ranked_by_resume(q, resume_id)
        hits = [
            SimilarityHit(resume_id=rid, chunk_id=rows[0][1], similarity=rows[0][0])
            for rid, rows in ranked.items()
        ]
        return sorted(hits, key=lambda h: h.similarity, reverse=True)

    async def topk_per_resume(
        self, q: np.ndarray, k: int, resume_id: Optional[str] = None
    ) -> List[SimilarityHit]:
        out: List[SimilarityHit] = []
        for rid, rows in self._ranked_by_resume(q, resume_id).items():
            for rank, (sim, cid) in enumerate(rows[: max(1, k)], start=1):
                out.append(
                    SimilarityHit(resume_id=rid, chunk_id=cid, similarity=sim, rank=rank)
                )
        return out

    async def weighted_top_k(
        self, qs: np.ndarray, weights: Sequence[float], limit: int, offset: int
    ) -> List[WeightedHit]:
        per_pill = [self._ranked_by_resume(q, None) for q in qs]
        resume_ids: Dict[str, None] = {}
        for ranked in per_pill:
            for rid in ranked:
                resume_ids.setdefault(rid, None)

        rows: List[WeightedHit] = []
        for rid in resume_ids:
            scores: List[Optional[float]] = []
            chunk_ids: List[Optional[str]] = []
            total = 0.0
            for ranked, w in zip(per_pill, weights):
                best = ranked.get(rid)
                if best:
                    sim, cid = best[0]
                    total += sim * float(w)
                    scores.append(sim)
                    chunk_ids.append(cid)
                else:
                    scores.append(None)
                    chunk_ids.append(None)
            rows.append(
                WeightedHit(
                    resume_id=rid,
                    weighted_score=total,
                    pill_scores=scores,
                    pill_chunk_ids=chunk_ids,
                    rank=0,
                )
            )
        rows.sort(key=lambda r: r.weighted_score, reverse=True)
        page = rows[offset : offset + limit]
        return [
            WeightedHit(
                resume_id=r.resume_id,
                weighted_score=r.weighted_score,
                pill_scores=r.pill_scores,
                pill_chunk_ids=r.pill_chunk_ids,
                rank=offset + i,
            )
            for i, r in enumerate(page, start=1)
        ]
