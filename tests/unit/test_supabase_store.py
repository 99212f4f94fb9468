"""
Unit tests for the PostgREST/Storage adapter against a mocked transport.
"""

import asyncio
import json

import httpx
import numpy as np
import pytest

from core.entities import TextChunk
from repository.supabase_store import SupabaseStore
from util.errors import UpstreamError

BASE = "https://db.example.test"


def run_with(handler, call):
    """Build a store on a MockTransport, run `call(store)`, close the client."""

    async def go():
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        try:
            return await call(SupabaseStore(client, BASE, "service-key", bucket="cv"))
        finally:
            await client.aclose()

    return asyncio.run(go())


@pytest.mark.unit
def test_best_per_resume_rpc():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(
            200,
            json=[
                {"resume_id": "r1", "best_chunk_id": "c1", "similarity": 0.8},
                {"resume_id": "r2", "best_chunk_id": None, "similarity": 0.1},
            ],
        )

    hits = run_with(handler, lambda s: s.best_per_resume(np.array([0.5, 0.25])))

    req = seen[0]
    assert req.url.path == "/rest/v1/rpc/best_per_resume"
    assert req.headers["apikey"] == "service-key"
    assert json.loads(req.content) == {"q": "[0.5,0.25]"}
    assert [(h.resume_id, h.chunk_id, h.similarity) for h in hits] == [
        ("r1", "c1", 0.8),
        ("r2", None, 0.1),
    ]


@pytest.mark.unit
def test_single_resume_lookup_uses_topk_chunks():
    seen = []

    def handler(request):
        seen.append(json.loads(request.content))
        return httpx.Response(
            200,
            json=[
                {"chunk_id": "c2", "similarity": 0.4},
                {"chunk_id": "c1", "similarity": 0.9},
            ],
        )

    hits = run_with(
        handler, lambda s: s.topk_per_resume(np.array([1.0]), 2, resume_id="r9")
    )

    assert seen == [{"q": "[1.0]", "r": "r9", "k": 2}]
    assert [(h.chunk_id, h.rank) for h in hits] == [("c1", 1), ("c2", 2)]
    assert all(h.resume_id == "r9" for h in hits)


@pytest.mark.unit
def test_weighted_search_payload_and_rows():
    seen = []

    def handler(request):
        seen.append(json.loads(request.content))
        return httpx.Response(
            200,
            json=[
                {
                    "resume_id": "r1",
                    "weighted_score": 1.2,
                    "pill_scores": [0.6, None],
                    "pill_chunks": ["c1", None],
                }
            ],
        )

    rows = run_with(
        handler,
        lambda s: s.weighted_top_k(np.array([[1.0, 0.0], [0.0, 1.0]]), [2, 0.5], 5, 10),
    )

    assert seen[0]["pills_embeddings"] == ["[1.0,0.0]", "[0.0,1.0]"]
    assert seen[0]["pills_weights"] == [2.0, 0.5]
    assert (seen[0]["top_k"], seen[0]["offset_k"]) == (5, 10)
    assert rows[0].pill_scores == [0.6, None]
    assert rows[0].pill_chunk_ids == ["c1", None]
    assert rows[0].rank == 11


@pytest.mark.unit
def test_bulk_reads_use_in_filter():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(
            200,
            json=[
                {
                    "id": "c1",
                    "resume_id": "r1",
                    "text": "Java",
                    "page_number": 1,
                    "coordinates": {"char_start": 0, "char_end": 4, "text_length": 4},
                }
            ],
        )

    chunks = run_with(handler, lambda s: s.get_chunks(["c1", "c2"]))

    assert seen[0].url.params["id"] == 'in.("c1","c2")'
    assert chunks["c1"].text == "Java"
    assert run_with(handler, lambda s: s.get_chunks([])) == {}
    assert len(seen) == 1


@pytest.mark.unit
def test_writes_and_upload():
    seen = []

    def handler(request):
        seen.append(request)
        if request.url.path.endswith("/resumes"):
            return httpx.Response(201, json=[{"id": "r1", "name": "cv.pdf"}])
        if request.url.path.endswith("/resume_chunks"):
            return httpx.Response(201, json=[{"id": "c1"}])
        return httpx.Response(200, json={"Key": "cv/k.pdf"})

    async def flow(s):
        url = await s.put("k/k.pdf", b"%PDF-1.7", "application/pdf")
        resume = await s.create_resume("cv.pdf", url, "abc")
        ids = await s.insert_chunks(
            resume.id,
            [TextChunk("Java", 0, 4, 1)],
            np.array([[1.0, 0.0]], dtype=np.float32),
        )
        return url, resume, ids

    url, resume, ids = run_with(handler, flow)

    assert url == f"{BASE}/storage/v1/object/public/cv/k/k.pdf"
    assert seen[0].headers["x-upsert"] == "true"
    assert seen[0].content == b"%PDF-1.7"
    assert resume.id == "r1"
    assert seen[1].headers["prefer"] == "return=representation"
    body = json.loads(seen[2].content)
    assert body[0]["embedding"] == [1.0, 0.0]
    assert body[0]["coordinates"] == {"char_start": 0, "char_end": 4, "text_length": 4}
    assert ids == ["c1"]


@pytest.mark.unit
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(500, json={"message": "boom"}),
        httpx.Response(200, content=b"<html>"),
    ],
)
def test_bad_responses_are_upstream_errors(response):
    with pytest.raises(UpstreamError):
        run_with(lambda request: response, lambda s: s.best_per_resume(np.array([1.0])))


@pytest.mark.unit
def test_transport_errors_are_upstream_errors():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(UpstreamError):
        run_with(handler, lambda s: s.get_resumes(["r1"]))
