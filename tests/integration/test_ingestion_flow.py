"""
Integration test for the ingest -> search round trip on the in-memory store.
Tests: PDF/text -> canonical chunks -> embeddings -> matrix with evidence.
"""

import asyncio
import hashlib

import fitz
import pytest

from core.embeddings import EmbeddingBatcher
from core.engine import MatchEngine, SearchOptions
from core.entities import Pill
from core.ingestion import IngestConfig, IngestionPipeline
from repository.memory_store import InMemoryStore
from util.errors import NoExtractableContentError

RESUME_LINES = [
    "ALICE EXAMPLE",
    "Senior backend engineer.",
    "Built Java microservices with Spring Boot and Kafka.",
    "Ran Kubernetes clusters on AWS for five years.",
    "Mentored a team of six engineers.",
]


def make_pdf(lines):
    doc = fitz.open()
    page = doc.new_page()
    page.insert_text((72, 72), "\n".join(lines), fontsize=11)
    data = doc.tobytes()
    doc.close()
    return data


@pytest.fixture
def stack(bow_provider):
    store = InMemoryStore()
    embedder = EmbeddingBatcher(bow_provider, batch_size=2)
    pipeline = IngestionPipeline(
        embedder, store, store, IngestConfig(min_len=40, max_len=80, batch_size=2)
    )
    engine = MatchEngine(embedder, store, store)
    return store, pipeline, engine, bow_provider


@pytest.mark.integration
def test_ingested_pdf_is_searchable(stack):
    store, pipeline, engine, provider = stack
    data = make_pdf(RESUME_LINES)

    result = asyncio.run(pipeline.ingest_pdf(data, "alice.pdf"))

    sha = hashlib.sha256(data).hexdigest()
    assert result.filename == "alice.pdf"
    assert result.chunks >= 2
    assert store.objects[f"{sha}/{sha}.pdf"] == data
    # embed and insert batches share boundaries
    assert all(n <= 2 for n in provider.batch_sizes)
    assert sum(provider.batch_sizes) == result.chunks

    resume = asyncio.run(store.get_resumes([result.resume_id]))[result.resume_id]
    assert resume.name == "alice.pdf"
    assert resume.sha256 == sha
    assert resume.pdf_url == f"memory://resumes/{sha}/{sha}.pdf"

    matrix = asyncio.run(
        engine.search([Pill("Kubernetes")], SearchOptions(include_chunk_ids=True))
    )
    assert [r.resume_id for r in matrix.resumes] == [result.resume_id]
    entry = matrix.resumes[0].scores[0][0]
    assert entry.similarity > 0
    assert "Kubernetes" in entry.evidence_text
    assert entry.coordinates["text_length"] == len(entry.evidence_text)
    assert entry.page_number == 1


@pytest.mark.integration
def test_ingested_text_chunks_respect_bounds(stack):
    store, pipeline, engine, _ = stack
    text = " ".join(RESUME_LINES * 4)
    result = asyncio.run(pipeline.ingest_text(text, "alice.txt"))

    matrix = asyncio.run(
        engine.search([Pill("mentored")], SearchOptions(results_per_pill=10))
    )
    entries = matrix.resumes[0].scores[0]
    assert result.chunks > 4
    assert 1 <= len(entries) <= 10
    for e in entries:
        assert len(e.evidence_text) <= 80
    assert [e.rank for e in entries] == list(range(1, len(entries) + 1))


@pytest.mark.integration
def test_document_without_text_writes_nothing(stack):
    store, pipeline, _, provider = stack
    with pytest.raises(NoExtractableContentError) as exc:
        asyncio.run(pipeline.ingest_pdf(b"definitely not a pdf", "junk.pdf"))
    assert exc.value.status_code == 422
    assert store.objects == {}
    assert provider.batch_sizes == []

    with pytest.raises(NoExtractableContentError):
        asyncio.run(pipeline.ingest_text("  \n\n ", "blank.txt"))


@pytest.mark.integration
def test_folder_ingest_records_failures_and_continues(stack, tmp_path):
    _, pipeline, _, _ = stack
    (tmp_path / "a_good.pdf").write_bytes(make_pdf(RESUME_LINES))
    (tmp_path / "b_bad.pdf").write_bytes(b"garbage")
    (tmp_path / "notes.txt").write_text("ignored", encoding="utf-8")
    nested = tmp_path / "nested"
    nested.mkdir()
    (nested / "c_deep.PDF").write_bytes(make_pdf(RESUME_LINES[:3]))

    flat = asyncio.run(pipeline.ingest_folder(tmp_path))
    assert [r.filename for r in flat.success] == ["a_good.pdf"]
    assert [f["file"] for f in flat.failed] == ["b_bad.pdf"]
    assert flat.total_chunks == flat.success[0].chunks

    deep = asyncio.run(pipeline.ingest_folder(tmp_path, recursive=True))
    assert sorted(r.filename for r in deep.success) == ["a_good.pdf", "c_deep.PDF"]


@pytest.mark.integration
def test_missing_folder(stack, tmp_path):
    _, pipeline, _, _ = stack
    with pytest.raises(FileNotFoundError):
        asyncio.run(pipeline.ingest_folder(tmp_path / "absent"))
