import logging
from typing import Any, Dict, List
from core.engine import MatchEngine, SearchOptions
from core.entities import Pill
from model.api import (
    PillIn,
    PillSearchRequest,
    ResumeDetailsRequest,
    WeightedSearchRequest,
)

logger = logging.getLogger(__name__)


def _pills(items: List[PillIn]) -> List[Pill]:
    return [p.to_pill() for p in items]


class SearchService:
    """
    Maps the HTTP request shapes onto MatchEngine mode flags and returns the
    wire form of the result matrix.
    """

    def __init__(self, engine: MatchEngine) -> None:
        self._engine = engine

    async def pill_matrix(self, req: PillSearchRequest) -> Dict[str, Any]:
        options = SearchOptions(
            limit=req.topkResumes,
            offset=req.offset,
            include_chunk_ids=req.includeChunkIds,
            results_per_pill=req.resultsPerPill,
            expand_variants=req.expandVariants,
            weighted=req.weighted,
        )
        matrix = await self._engine.search(_pills(req.pills), options)
        logger.info(
            "search.pills.ok pills=%d resumes=%d", len(req.pills), len(matrix.resumes)
        )
        return matrix.to_dict()

    async def weighted(self, req: WeightedSearchRequest) -> Dict[str, Any]:
        options = SearchOptions(
            limit=req.top_k,
            offset=req.offset,
            include_chunk_ids=req.includeChunkIds,
            weighted=True,
            delegate_weighting=True,
        )
        matrix = await self._engine.search(_pills(req.pills), options)
        logger.info(
            "search.weighted.ok pills=%d resumes=%d has_more=%s",
            len(req.pills),
            len(matrix.resumes),
            matrix.has_more,
        )
        return matrix.to_dict()

    async def resume_details(self, req: ResumeDetailsRequest) -> Dict[str, Any]:
        n = req.results_per_pill
        if n is None:
            n = self._engine.config.default_results_per_pill
        options = SearchOptions(
            include_chunk_ids=req.includeChunkIds,
            results_per_pill=n,
            resume_id=req.resume_id,
        )
        matrix = await self._engine.search(_pills(req.pills), options)
        logger.info(
            "search.details.ok resume=%s pills=%d", req.resume_id, len(req.pills)
        )
        return matrix.to_dict()
