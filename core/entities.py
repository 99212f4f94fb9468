from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class Pill:
    """
    One weighted query concept. Identity is the pill's position in the
    request, never its text.
    """

    text: str
    weight: Optional[float] = None  # None -> DEFAULT_PILL_WEIGHT
    synonyms: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class TextChunk:
    """
    Bounded slice of canonical text, before an embedding is attached.
    """

    text: str
    char_start: int
    char_end: int
    page_number: int  # heuristic estimate, see core.chunker.estimate_page

    @property
    def text_length(self) -> int:
        return self.char_end - self.char_start

    @property
    def coordinates(self) -> Dict[str, int]:
        return {
            "char_start": self.char_start,
            "char_end": self.char_end,
            "text_length": self.text_length,
        }


@dataclass(frozen=True)
class ResumeRecord:
    id: str
    name: str
    pdf_url: Optional[str] = None
    sha256: Optional[str] = None


@dataclass(frozen=True)
class ChunkRecord:
    id: str
    resume_id: str
    text: str
    page_number: Optional[int]
    coordinates: Optional[Dict[str, Any]]


@dataclass(frozen=True)
class SimilarityHit:
    resume_id: str
    chunk_id: Optional[str]
    similarity: float
    rank: int = 1  # 1-based, ascending = better


@dataclass(frozen=True)
class WeightedHit:
    """
    Row of the delegated weighted lookup: the store has already combined
    per-pill similarities into `weighted_score` and ordered the rows.
    """

    resume_id: str
    weighted_score: float
    pill_scores: List[Optional[float]]
    pill_chunk_ids: List[Optional[str]]
    rank: int


@dataclass(frozen=True)
class Winner:
    resume_id: str
    max_sim: float
    best_chunk_id: Optional[str]
    winning_variant: str
    rank: int = 1


@dataclass
class ScoreEntry:
    similarity: float
    evidence_text: str = ""
    page_number: Optional[int] = None
    coordinates: Optional[Dict[str, Any]] = None
    chunk_id: Optional[str] = None
    rank: Optional[int] = None
    variant: Optional[str] = None

    @classmethod
    def placeholder(cls) -> "ScoreEntry":
        return cls(similarity=0.0)

    def to_dict(self, include_chunk_ids: bool = False) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "similarity": self.similarity,
            "evidence_text": self.evidence_text,
            "page_number": self.page_number,
            "coordinates": self.coordinates,
        }
        if self.rank is not None:
            out["rank"] = self.rank
        if self.variant is not None:
            out["variant"] = self.variant
        if include_chunk_ids:
            out["chunk_id"] = self.chunk_id
        return out


@dataclass
class ResumeRow:
    resume_id: str
    resume_name: str
    pdf_url: Optional[str]
    score: float
    # One list per pill, aligned with ResultMatrix.pills by index.
    scores: List[List[ScoreEntry]]


@dataclass
class ResultMatrix:
    pills: List[str]  # unique display labels, index-aligned with the request
    resumes: List[ResumeRow]
    offset: int = 0
    limit: Optional[int] = None
    has_more: bool = False
    results_per_pill: Optional[int] = None
    include_chunk_ids: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """
        Wire shape: `scores` is keyed by pill label. Single-result mode gives
        one ScoreEntry per pill, multi-result mode gives {"results": [...]}.
        """
        rows: List[Dict[str, Any]] = []
        for r in self.resumes:
            scores: Dict[str, Any] = {}
            for label, entries in zip(self.pills, r.scores):
                dumped = [e.to_dict(self.include_chunk_ids) for e in entries]
                if self.results_per_pill is None:
                    scores[label] = dumped[0]
                else:
                    scores[label] = {"results": dumped}
            rows.append(
                {
                    "resume_id": r.resume_id,
                    "resume_name": r.resume_name,
                    "pdf_url": r.pdf_url,
                    "score": r.score,
                    "scores": scores,
                }
            )
        out: Dict[str, Any] = {
            "pills": list(self.pills),
            "resumes": rows,
            "offset": self.offset,
            "limit": self.limit,
            "has_more": self.has_more,
        }
        if self.results_per_pill is not None:
            out["results_per_pill"] = self.results_per_pill
        return out


@dataclass
class IngestResult:
    resume_id: str
    chunks: int
    filename: str
