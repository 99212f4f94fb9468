# util/functions.py
from typing import Any, List, Optional, Sequence


def clip_words(text: str, max_words: int = 100) -> str:
    """
    - Trim 'text' to at most `max_words` tokens separated by whitespace.
    - Adds an ellipsis when trimming occurs.
    """
    words = text.split()
    if len(words) <= max_words:
        return text
    return " ".join(words[:max_words]) + " …"


def coerce_int(value: Any, default: Optional[int], *, minimum: int = 0) -> Optional[int]:
    """
    Parse pagination-style integers. Anything non-numeric, boolean,
    or below `minimum` falls back to `default`.
    """
    if isinstance(value, bool):
        return default
    try:
        n = int(value)
    except (TypeError, ValueError, OverflowError):
        return default
    return n if n >= minimum else default


def batched(items: Sequence[Any], size: int) -> List[Sequence[Any]]:
    step = max(1, int(size))
    return [items[i : i + step] for i in range(0, len(items), step)]


def unique_labels(texts: Sequence[str]) -> List[str]:
    """
    Response keys for pills. Repeated texts get a "#n" suffix so two pills
    sharing text never collapse into one column.
    """
    used: set[str] = set()
    out: List[str] = []
    for t in texts:
        label, n = t, 1
        while label in used:
            n += 1
            label = f"{t}#{n}"
        used.add(label)
        out.append(label)
    return out
