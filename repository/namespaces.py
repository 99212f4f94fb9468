from typing import Final

# Tables
RESUMES: Final[str] = "resumes"
RESUME_CHUNKS: Final[str] = "resume_chunks"

# Similarity RPCs
RPC_BEST_PER_RESUME: Final[str] = "best_per_resume"
RPC_TOPK_PER_RESUME: Final[str] = "topk_per_resume"
RPC_TOPK_CHUNKS: Final[str] = "topk_chunks"  # one resume, k chunks
RPC_WEIGHTED_SEARCH: Final[str] = "weighted_pill_search_with_chunks"
