import json
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union
from core.entities import Pill


def canonical_phrase(text: str) -> str:
    return (text or "").strip().lower()


def expand_variants(pill: Pill, synonyms: Optional[Iterable[str]] = None) -> List[str]:
    """
    Pill text first, then its synonyms: lowercased, trimmed, empties dropped,
    deduplicated in first-seen order.
    Falls back to `pill.synonyms` when `synonyms` is not given.
    """
    extra = pill.synonyms if synonyms is None else synonyms
    seen: set[str] = set()
    out: List[str] = []
    for raw in [pill.text, *extra]:
        v = canonical_phrase(raw)
        if v and v not in seen:
            seen.add(v)
            out.append(v)
    return out


def load_synonyms(path: Union[str, Path]) -> Dict[str, List[str]]:
    """
    Read a {"pill": ["synonym", ...]} JSON file. Keys are canonicalized so
    lookups via `synonyms_for` are case-insensitive.
    """
    raw = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(raw, dict):
        raise ValueError("synonyms file must contain a JSON object")
    out: Dict[str, List[str]] = {}
    for key, values in raw.items():
        if isinstance(values, str):
            values = [values]
        out.setdefault(canonical_phrase(key), []).extend(
            str(v) for v in values or []
        )
    return out


def synonyms_for(text: str, table: Dict[str, List[str]]) -> List[str]:
    return list(table.get(canonical_phrase(text), []))
