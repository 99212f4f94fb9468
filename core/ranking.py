from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence
from core.entities import WeightedHit, Winner
from util.functions import coerce_int


@dataclass
class RankedResume:
    resume_id: str
    score: float
    # winners[i] belongs to pill i; an empty list means no match
    winners: List[List[Winner]]


@dataclass
class Page:
    rows: List[RankedResume]
    offset: int
    limit: Optional[int]
    has_more: bool


def union_resume_ids(per_pill: Sequence[Dict[str, List[Winner]]]) -> List[str]:
    """Every resume touched by any pill, in discovery order."""
    seen: Dict[str, None] = {}
    for winners in per_pill:
        for rid in winners:
            seen.setdefault(rid, None)
    return list(seen)


def representative(winners: List[Winner]) -> float:
    """max_sim in single-result mode, the rank-1 similarity in multi-result mode."""
    return winners[0].max_sim if winners else 0.0


def rank_resumes(
    per_pill: Sequence[Dict[str, List[Winner]]],
    weights: Optional[Sequence[float]] = None,
) -> List[RankedResume]:
    """
    Aggregate per-pill winners into one row per resume, best first.

    - Unweighted (weights=None): sum of representative similarities.
    - Weighted: sum of similarity * weight.
    The sort is stable, so equal scores keep discovery order.
    """
    rows: List[RankedResume] = []
    for rid in union_resume_ids(per_pill):
        cells = [winners.get(rid, []) for winners in per_pill]
        if weights is None:
            score = sum(representative(c) for c in cells)
        else:
            score = sum(representative(c) * w for c, w in zip(cells, weights))
        rows.append(RankedResume(resume_id=rid, score=float(score), winners=cells))
    return sorted(rows, key=lambda r: r.score, reverse=True)


def rows_from_weighted(
    hits: Sequence[WeightedHit], variants: Sequence[str]
) -> List[RankedResume]:
    """
    Reformat rows that the store already weighted and ordered. Nothing is
    re-scored or re-sorted here.
    """
    out: List[RankedResume] = []
    for h in hits:
        cells: List[List[Winner]] = []
        for i, variant in enumerate(variants):
            sim = h.pill_scores[i] if i < len(h.pill_scores) else None
            cid = h.pill_chunk_ids[i] if i < len(h.pill_chunk_ids) else None
            if sim is None and cid is None:
                cells.append([])
                continue
            cells.append(
                [
                    Winner(
                        resume_id=h.resume_id,
                        max_sim=float(sim or 0.0),
                        best_chunk_id=cid,
                        winning_variant=variant,
                    )
                ]
            )
        out.append(
            RankedResume(
                resume_id=h.resume_id, score=float(h.weighted_score), winners=cells
            )
        )
    return out


def paginate(
    rows: Sequence[RankedResume],
    limit: Any = None,
    offset: Any = 0,
    default_limit: Optional[int] = None,
) -> Page:
    """
    offset, then limit. Negative or non-numeric offset becomes 0; a bad
    limit falls back to `default_limit` (None = everything).
    has_more is a heuristic: the page came back full.
    """
    off = coerce_int(offset, 0)
    lim = default_limit
    if limit is not None:
        lim = coerce_int(limit, default_limit, minimum=1)
    if lim is None:
        return Page(rows=list(rows[off:]), offset=off, limit=None, has_more=False)
    page = list(rows[off : off + lim])
    return Page(rows=page, offset=off, limit=lim, has_more=len(page) == lim)
