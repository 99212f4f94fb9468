from typing import Any, List, Optional
from pydantic import BaseModel, Field
from core.entities import Pill


class PillIn(BaseModel):
    # Optional so a missing text surfaces as the engine's 400, not a 422
    pill: Optional[str] = None
    # Any so booleans and strings reach the engine check as a 400, not coerced
    weight: Any = None
    synonyms: List[str] = Field(default_factory=list)

    def to_pill(self) -> Pill:
        return Pill(
            text=self.pill or "", weight=self.weight, synonyms=list(self.synonyms)
        )


class PillSearchRequest(BaseModel):
    pills: List[PillIn] = Field(default_factory=list)
    # Pagination knobs stay loose: bad values are clamped, not rejected
    topkResumes: Any = None
    offset: Any = 0
    includeChunkIds: bool = False
    resultsPerPill: Any = None
    weighted: bool = False
    expandVariants: bool = True


class WeightedSearchRequest(BaseModel):
    pills: List[PillIn] = Field(default_factory=list)
    top_k: Any = None
    offset: Any = 0
    includeChunkIds: bool = False


class ResumeDetailsRequest(BaseModel):
    resume_id: str = Field(min_length=1)
    pills: List[PillIn] = Field(default_factory=list)
    results_per_pill: Any = None
    includeChunkIds: bool = False


class IngestResponse(BaseModel):
    resume_id: str
    chunks: int
    filename: str


class HealthResponse(BaseModel):
    status: str = "ok"

