from typing import Any, Dict, List, Optional, Sequence
import httpx
import numpy as np
from core.entities import (
    ChunkRecord,
    ResumeRecord,
    SimilarityHit,
    TextChunk,
    WeightedHit,
)
from repository import namespaces as ns
from util.constants import ExternalURIs
from util.errors import UpstreamError
import logging

logger = logging.getLogger(__name__)


def _vector_literal(v: np.ndarray) -> str:
    # pgvector text form, e.g. "[0.1,0.2]"
    return "[" + ",".join(repr(float(x)) for x in v) + "]"


def _in_filter(ids: Sequence[str]) -> str:
    return "in.(" + ",".join(f'"{i}"' for i in ids) + ")"


class SupabaseStore:
    """
    PostgREST + Storage adapter for the resumes / resume_chunks tables and
    the similarity RPCs. Read-only at query time; inserts only during ingest.
    The http client is owned by the caller.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        base_url: str,
        service_key: str,
        bucket: str = "resumes",
    ) -> None:
        self._client = client
        self._base = base_url.rstrip("/")
        self._bucket = bucket
        self._headers = {
            "apikey": service_key,
            "Authorization": f"Bearer {service_key}",
        }

    async def _request(
        self,
        method: str,
        path: str,
        *,
        op: str,
        json: Any = None,
        params: Optional[Dict[str, str]] = None,
        content: Optional[bytes] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Any:
        try:
            res = await self._client.request(
                method,
                f"{self._base}{path}",
                json=json,
                params=params,
                content=content,
                headers={**self._headers, **(headers or {})},
            )
        except httpx.RequestError as e:
            logger.error("store.request_error op=%s err=%s", op, type(e).__name__)
            raise UpstreamError("Store request failed") from e

        if res.status_code // 100 != 2:
            logger.error("store.bad_status op=%s status=%d", op, res.status_code)
            raise UpstreamError("Store error")
        if not res.content:
            return None
        try:
            return res.json()
        except ValueError as e:
            logger.error("store.bad_payload op=%s", op)
            raise UpstreamError("Store returned malformed payload") from e

    async def _rpc(self, name: str, payload: Dict[str, Any]) -> List[Dict[str, Any]]:
        rows = await self._request(
            "POST", f"{ExternalURIs.SUPABASE_RPC}/{name}", op=name, json=payload
        )
        return rows or []

    # ----- nearest-neighbor store -----

    async def best_per_resume(
        self, q: np.ndarray, resume_id: Optional[str] = None
    ) -> List[SimilarityHit]:
        if resume_id is not None:
            return await self._topk_chunks(q, resume_id, 1)
        rows = await self._rpc(ns.RPC_BEST_PER_RESUME, {"q": _vector_literal(q)})
        return [
            SimilarityHit(
                resume_id=str(r["resume_id"]),
                chunk_id=str(r["best_chunk_id"]) if r.get("best_chunk_id") else None,
                similarity=float(r["similarity"]),
            )
            for r in rows
        ]

    async def topk_per_resume(
        self, q: np.ndarray, k: int, resume_id: Optional[str] = None
    ) -> List[SimilarityHit]:
        if resume_id is not None:
            return await self._topk_chunks(q, resume_id, k)
        rows = await self._rpc(
            ns.RPC_TOPK_PER_RESUME, {"q": _vector_literal(q), "k": int(k)}
        )
        return [
            SimilarityHit(
                resume_id=str(r["resume_id"]),
                chunk_id=str(r["chunk_id"]) if r.get("chunk_id") else None,
                similarity=float(r["similarity"]),
                rank=int(r.get("rank") or 1),
            )
            for r in rows
        ]

    async def _topk_chunks(
        self, q: np.ndarray, resume_id: str, k: int
    ) -> List[SimilarityHit]:
        rows = await self._rpc(
            ns.RPC_TOPK_CHUNKS, {"q": _vector_literal(q), "r": resume_id, "k": int(k)}
        )
        ordered = sorted(rows, key=lambda r: float(r["similarity"]), reverse=True)
        return [
            SimilarityHit(
                resume_id=resume_id,
                chunk_id=str(r.get("chunk_id") or r.get("id") or "") or None,
                similarity=float(r["similarity"]),
                rank=i,
            )
            for i, r in enumerate(ordered[:k], start=1)
        ]

    async def weighted_top_k(
        self, qs: np.ndarray, weights: Sequence[float], limit: int, offset: int
    ) -> List[WeightedHit]:
        rows = await self._rpc(
            ns.RPC_WEIGHTED_SEARCH,
            {
                "pills_embeddings": [_vector_literal(q) for q in qs],
                "pills_weights": [float(w) for w in weights],
                "top_k": int(limit),
                "offset_k": int(offset),
            },
        )
        return [
            WeightedHit(
                resume_id=str(r["resume_id"]),
                weighted_score=float(r["weighted_score"]),
                pill_scores=[
                    None if s is None else float(s) for s in r.get("pill_scores") or []
                ],
                pill_chunk_ids=[
                    None if c is None else str(c) for c in r.get("pill_chunks") or []
                ],
                rank=int(r.get("rank") or offset + i),
            )
            for i, r in enumerate(rows, start=1)
        ]

    # ----- metadata store -----

    async def get_resumes(self, ids: Sequence[str]) -> Dict[str, ResumeRecord]:
        if not ids:
            return {}
        rows = await self._request(
            "GET",
            f"{ExternalURIs.SUPABASE_REST}/{ns.RESUMES}",
            op="resumes.get",
            params={"select": "id,name,pdf_url", "id": _in_filter(ids)},
        )
        return {
            str(r["id"]): ResumeRecord(
                id=str(r["id"]), name=r.get("name") or "", pdf_url=r.get("pdf_url")
            )
            for r in rows or []
        }

    async def get_chunks(self, ids: Sequence[str]) -> Dict[str, ChunkRecord]:
        if not ids:
            return {}
        rows = await self._request(
            "GET",
            f"{ExternalURIs.SUPABASE_REST}/{ns.RESUME_CHUNKS}",
            op="chunks.get",
            params={
                "select": "id,resume_id,text,page_number,coordinates",
                "id": _in_filter(ids),
            },
        )
        return {
            str(r["id"]): ChunkRecord(
                id=str(r["id"]),
                resume_id=str(r.get("resume_id") or ""),
                text=r.get("text") or "",
                page_number=r.get("page_number"),
                coordinates=r.get("coordinates"),
            )
            for r in rows or []
        }

    async def create_resume(
        self, name: str, pdf_url: Optional[str], sha256: Optional[str]
    ) -> ResumeRecord:
        rows = await self._request(
            "POST",
            f"{ExternalURIs.SUPABASE_REST}/{ns.RESUMES}",
            op="resumes.insert",
            json={"name": name, "pdf_url": pdf_url, "sha256": sha256},
            headers={"Prefer": "return=representation"},
        )
        if not rows:
            raise UpstreamError("Store did not return the created resume")
        r = rows[0]
        return ResumeRecord(
            id=str(r["id"]), name=r.get("name") or name, pdf_url=pdf_url, sha256=sha256
        )

    async def insert_chunks(
        self, resume_id: str, chunks: Sequence[TextChunk], embeddings: np.ndarray
    ) -> List[str]:
        payload = [
            {
                "resume_id": resume_id,
                "page_number": c.page_number,
                "coordinates": c.coordinates,
                "text": c.text,
                "embedding": [float(x) for x in v],
            }
            for c, v in zip(chunks, embeddings)
        ]
        rows = await self._request(
            "POST",
            f"{ExternalURIs.SUPABASE_REST}/{ns.RESUME_CHUNKS}",
            op="chunks.insert",
            json=payload,
            params={"select": "id"},
            headers={"Prefer": "return=representation"},
        )
        return [str(r["id"]) for r in rows or []]

    # ----- object store -----

    async def put(self, key: str, data: bytes, content_type: str) -> str:
        await self._request(
            "POST",
            f"{ExternalURIs.SUPABASE_STORAGE}/{self._bucket}/{key}",
            op="storage.put",
            content=data,
            headers={"content-type": content_type, "x-upsert": "true"},
        )
        return f"{self._base}{ExternalURIs.SUPABASE_PUBLIC_STORAGE}/{self._bucket}/{key}"
