import asyncio
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence
import numpy as np
from core.embeddings import EmbeddingBatcher
from core.entities import (
    Pill,
    ResultMatrix,
    ResumeRecord,
    ResumeRow,
    SimilarityHit,
    Winner,
)
from core.interfaces import MetadataStore, NearestNeighborStore
from core.matching import attach_evidence, group_top_n, reduce_variants, score_entry
from core.ranking import RankedResume, paginate, rank_resumes, rows_from_weighted
from core.variants import canonical_phrase, expand_variants
from util.enums import ErrorMessage
from util.errors import AppError, QueryValidationError, UpstreamError
from util.functions import coerce_int, unique_labels
from util.timing import timed
import logging

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EngineConfig:
    max_pills: int = 20
    min_weight: float = 0.1
    max_weight: float = 2.0
    default_weight: float = 1.0
    min_results_per_pill: int = 1
    max_results_per_pill: int = 10
    default_weighted_limit: int = 15
    default_results_per_pill: int = 3
    concurrency: int = 8
    slow_ms: Optional[int] = None


@dataclass(frozen=True)
class SearchOptions:
    """
    Mode flags for one query.
    - results_per_pill: None = single-result mode (one winner per pill),
      N = top-N chunks per resume (no synonym expansion in that mode).
    - weighted: aggregate with pill weights instead of a plain sum.
    - delegate_weighting: the store ranks and pages; we only reformat.
    - resume_id: restrict every lookup to one resume (details view).
    """

    limit: Any = None
    offset: Any = 0
    include_chunk_ids: bool = False
    results_per_pill: Optional[int] = None
    expand_variants: bool = True
    weighted: bool = False
    delegate_weighting: bool = False
    resume_id: Optional[str] = None


@dataclass
class _Lookup:
    pill_index: int
    variant: str
    row: int  # row in the embedded matrix


class MatchEngine:
    """
    Query flow: pills -> variants -> embeddings -> one nearest-neighbor
    lookup per variant (bounded concurrency) -> per-pill winners ->
    ranked, paginated resume x pill matrix with evidence.

    Stateless: every intermediate map lives inside one `search` call.
    Clients are injected and owned by the caller.
    """

    def __init__(
        self,
        embedder: EmbeddingBatcher,
        index: NearestNeighborStore,
        metadata: MetadataStore,
        config: Optional[EngineConfig] = None,
    ) -> None:
        self._embedder = embedder
        self._index = index
        self._metadata = metadata
        self._config = config or EngineConfig()

    @property
    def config(self) -> EngineConfig:
        return self._config

    def validate(self, pills: Sequence[Pill], options: SearchOptions) -> None:
        cfg = self._config
        if len(pills) > cfg.max_pills:
            raise QueryValidationError(ErrorMessage.TOO_MANY_PILLS.value.message)
        for p in pills:
            if not isinstance(p.text, str) or not p.text.strip():
                raise QueryValidationError(
                    ErrorMessage.MISSING_PILL_TEXT.value.message
                )
            if p.weight is None:
                continue
            w = p.weight
            if isinstance(w, bool) or not isinstance(w, (int, float)):
                raise QueryValidationError(ErrorMessage.BAD_WEIGHT.value.message)
            if not (cfg.min_weight <= w <= cfg.max_weight):
                raise QueryValidationError(ErrorMessage.BAD_WEIGHT.value.message)
        n = options.results_per_pill
        if n is not None and (
            isinstance(n, bool)
            or not isinstance(n, int)
            or not (cfg.min_results_per_pill <= n <= cfg.max_results_per_pill)
        ):
            raise QueryValidationError(
                ErrorMessage.BAD_RESULTS_PER_PILL.value.message
            )

    def weight_of(self, pill: Pill) -> float:
        if pill.weight is None:
            return self._config.default_weight
        return float(pill.weight)

    async def search(
        self, pills: Sequence[Pill], options: SearchOptions
    ) -> ResultMatrix:
        self.validate(pills, options)
        labels = unique_labels([p.text for p in pills])
        multi = options.results_per_pill
        if not pills:
            return ResultMatrix(pills=[], resumes=[], results_per_pill=multi)

        if options.delegate_weighting:
            return await self._search_delegated(pills, labels, options)

        plan = self._plan(pills, options)
        logger.info(
            "match.search pills=%d lookups=%d multi=%s weighted=%s",
            len(pills),
            len(plan),
            multi,
            options.weighted,
        )

        with timed(
            logger, "match.search", slow_ms=self._config.slow_ms, pills=len(pills)
        ) as fields:
            vecs = await self._embedder.embed_batch([lk.variant for lk in plan])
            results = await self._run_lookups(plan, vecs, options)
            per_pill = self._reduce(pills, plan, results, multi)

            weights = [self.weight_of(p) for p in pills] if options.weighted else None
            ranked = rank_resumes(per_pill, weights)
            if options.resume_id and not any(
                r.resume_id == options.resume_id for r in ranked
            ):
                ranked.append(
                    RankedResume(
                        resume_id=options.resume_id,
                        score=0.0,
                        winners=[[] for _ in pills],
                    )
                )

            page = paginate(ranked, options.limit, options.offset)
            matrix = await self._render(labels, page.rows, options)
            fields["resumes"] = len(page.rows)
        matrix.offset, matrix.limit = page.offset, page.limit
        matrix.has_more = page.has_more
        return matrix

    def _plan(self, pills: Sequence[Pill], options: SearchOptions) -> List[_Lookup]:
        """
        One lookup per variant per pill. A phrase shared by two pills is
        embedded and queried once for each of them.
        """
        plan: List[_Lookup] = []
        expand = options.expand_variants and options.results_per_pill is None
        for i, p in enumerate(pills):
            variants = expand_variants(p) if expand else [canonical_phrase(p.text)]
            for v in variants:
                plan.append(_Lookup(pill_index=i, variant=v, row=len(plan)))
        return plan

    async def _run_lookups(
        self, plan: List[_Lookup], vecs: np.ndarray, options: SearchOptions
    ) -> List[List[SimilarityHit]]:
        """
        Independent read-only lookups under a semaphore. The first failure
        cancels whatever is still pending and fails the request.
        """
        sem = asyncio.Semaphore(max(1, self._config.concurrency))

        async def _one(lk: _Lookup) -> List[SimilarityHit]:
            async with sem:
                q = vecs[lk.row]
                try:
                    if options.results_per_pill is None:
                        hits = await self._index.best_per_resume(
                            q, resume_id=options.resume_id
                        )
                    else:
                        hits = await self._index.topk_per_resume(
                            q, options.results_per_pill, resume_id=options.resume_id
                        )
                except AppError:
                    raise
                except Exception as e:
                    logger.error(
                        "match.lookup.error pill=%d err=%s",
                        lk.pill_index,
                        type(e).__name__,
                    )
                    raise UpstreamError("Nearest-neighbor lookup failed") from e
                logger.debug(
                    "match.lookup pill=%d variant=%s hits=%d",
                    lk.pill_index,
                    lk.variant,
                    len(hits),
                )
                return list(hits)

        tasks = [asyncio.create_task(_one(lk)) for lk in plan]
        try:
            return list(await asyncio.gather(*tasks))
        except BaseException:
            for t in tasks:
                t.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

    @staticmethod
    def _reduce(
        pills: Sequence[Pill],
        plan: List[_Lookup],
        results: List[List[SimilarityHit]],
        multi: Optional[int],
    ) -> List[Dict[str, List[Winner]]]:
        per_pill: List[Dict[str, List[Winner]]] = []
        for i in range(len(pills)):
            mine = [lk for lk in plan if lk.pill_index == i]
            if multi is None:
                winners = reduce_variants(
                    [lk.variant for lk in mine], [results[lk.row] for lk in mine]
                )
                per_pill.append({rid: [w] for rid, w in winners.items()})
            else:
                lk = mine[0]
                per_pill.append(group_top_n(lk.variant, results[lk.row], multi))
        return per_pill

    async def _search_delegated(
        self, pills: Sequence[Pill], labels: List[str], options: SearchOptions
    ) -> ResultMatrix:
        """Store-side weighted ranking and paging; rows are reformatted only."""
        cfg = self._config
        offset = coerce_int(options.offset, 0)
        limit = cfg.default_weighted_limit
        if options.limit is not None:
            limit = coerce_int(options.limit, limit, minimum=1)
        phrases = [canonical_phrase(p.text) for p in pills]
        weights = [self.weight_of(p) for p in pills]

        with timed(
            logger, "match.weighted", slow_ms=self._config.slow_ms, limit=limit
        ) as fields:
            vecs = await self._embedder.embed_batch(phrases)
            try:
                hits = await self._index.weighted_top_k(vecs, weights, limit, offset)
            except AppError:
                raise
            except Exception as e:
                logger.error("match.weighted.error err=%s", type(e).__name__)
                raise UpstreamError("Weighted lookup failed") from e
            rows = rows_from_weighted(hits, phrases)
            fields["resumes"] = len(rows)
            matrix = await self._render(labels, rows, options)

        matrix.offset, matrix.limit = offset, limit
        matrix.has_more = len(hits) == limit
        return matrix

    async def _render(
        self, labels: List[str], rows: List[RankedResume], options: SearchOptions
    ) -> ResultMatrix:
        """
        Bulk-fetch resume metadata and chunk evidence for the page, then
        fill every (resume, pill) cell; cells without a winner get the
        placeholder entry.
        """
        multi = options.results_per_pill
        resumes: Dict[str, ResumeRecord] = {}
        if rows:
            resumes = await self._metadata.get_resumes([r.resume_id for r in rows])
        chunks = await attach_evidence(
            self._metadata,
            (w.best_chunk_id for r in rows for cell in r.winners for w in cell),
        )

        out: List[ResumeRow] = []
        for r in rows:
            meta = resumes.get(r.resume_id)
            cells = []
            for cell in r.winners:
                if cell:
                    cells.append(
                        [score_entry(w, chunks, multi=multi is not None) for w in cell]
                    )
                else:
                    cells.append([score_entry(None, chunks)])
            out.append(
                ResumeRow(
                    resume_id=r.resume_id,
                    resume_name=meta.name if meta else "Unknown",
                    pdf_url=meta.pdf_url if meta else None,
                    score=r.score,
                    scores=cells,
                )
            )
        return ResultMatrix(
            pills=labels,
            resumes=out,
            results_per_pill=multi,
            include_chunk_ids=options.include_chunk_ids,
        )
