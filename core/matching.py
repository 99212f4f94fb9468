import warnings
from typing import Dict, Iterable, List, Optional, Sequence
from core.entities import ChunkRecord, ScoreEntry, SimilarityHit, Winner
from core.interfaces import MetadataStore
from util.errors import DataConsistencyWarning
import logging

logger = logging.getLogger(__name__)


def reduce_variants(
    variants: Sequence[str], results: Sequence[Sequence[SimilarityHit]]
) -> Dict[str, Winner]:
    """
    Per-resume winner across a pill's variants: the maximum similarity,
    never a sum or average. Ties keep the earlier variant. Resume order is
    discovery order (variant order, then hit order).
    """
    winners: Dict[str, Winner] = {}
    for variant, hits in zip(variants, results):
        for h in hits:
            current = winners.get(h.resume_id)
            if current is None or h.similarity > current.max_sim:
                winners[h.resume_id] = Winner(
                    resume_id=h.resume_id,
                    max_sim=float(h.similarity),
                    best_chunk_id=h.chunk_id,
                    winning_variant=variant,
                )
    return winners


def group_top_n(
    variant: str, hits: Sequence[SimilarityHit], n: int
) -> Dict[str, List[Winner]]:
    """
    Multi-result mode: each resume's hits sorted by rank (1 = strongest),
    truncated to n.
    """
    grouped: Dict[str, List[SimilarityHit]] = {}
    for h in hits:
        grouped.setdefault(h.resume_id, []).append(h)
    out: Dict[str, List[Winner]] = {}
    for rid, rows in grouped.items():
        rows.sort(key=lambda h: h.rank)
        out[rid] = [
            Winner(
                resume_id=rid,
                max_sim=float(h.similarity),
                best_chunk_id=h.chunk_id,
                winning_variant=variant,
                rank=h.rank,
            )
            for h in rows[:n]
        ]
    return out


async def attach_evidence(
    metadata: MetadataStore, chunk_ids: Iterable[Optional[str]]
) -> Dict[str, ChunkRecord]:
    """One bulk lookup for every referenced chunk; never per-chunk calls."""
    ids = list(dict.fromkeys(cid for cid in chunk_ids if cid))
    if not ids:
        return {}
    found = await metadata.get_chunks(ids)
    logger.info("match.evidence requested=%d found=%d", len(ids), len(found))
    return found


def score_entry(
    winner: Optional[Winner],
    chunks: Dict[str, ChunkRecord],
    multi: bool = False,
) -> ScoreEntry:
    """
    Winner -> ScoreEntry with evidence. No winner gives the placeholder.
    A chunk id missing from the metadata store keeps the similarity but
    degrades to empty evidence.
    """
    if winner is None:
        return ScoreEntry.placeholder()

    entry = ScoreEntry(
        similarity=winner.max_sim,
        chunk_id=winner.best_chunk_id,
        rank=winner.rank if multi else None,
        variant=winner.winning_variant,
    )
    ch = chunks.get(winner.best_chunk_id) if winner.best_chunk_id else None
    if ch is None:
        if winner.best_chunk_id:
            warnings.warn(
                f"chunk {winner.best_chunk_id} referenced by resume "
                f"{winner.resume_id} is missing from the metadata store",
                DataConsistencyWarning,
                stacklevel=2,
            )
        return entry
    entry.evidence_text = ch.text
    entry.page_number = ch.page_number
    entry.coordinates = ch.coordinates
    return entry
