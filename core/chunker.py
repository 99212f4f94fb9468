import re
from typing import Final, List, Tuple
from core.entities import TextChunk

# Sentence end followed by whitespace, or a newline block followed by text.
_UNIT_BREAK: Final = re.compile(r"(?<=[.?!])\s+|\n+(?=\S)")

CHARS_PER_PAGE: Final[int] = 3000


def estimate_page(char_start: int) -> int:
    """
    Page estimate from the character offset (~3000 chars per page).
    Real page boundaries are not tracked, so this is only an approximation.
    """
    return char_start // CHARS_PER_PAGE + 1


def split_units(text: str) -> List[Tuple[int, str]]:
    """
    Sentence-like units as (source_offset, trimmed_text), empties dropped.
    """
    out: List[Tuple[int, str]] = []
    pos = 0
    for m in _UNIT_BREAK.finditer(text):
        _push_unit(out, text, pos, m.start())
        pos = m.end()
    _push_unit(out, text, pos, len(text))
    return out


def _push_unit(out: List[Tuple[int, str]], text: str, start: int, end: int) -> None:
    raw = text[start:end]
    stripped = raw.strip()
    if stripped:
        out.append((start + len(raw) - len(raw.lstrip()), stripped))


class _Window:
    """Accumulates units and records emitted chunks with their offsets."""

    def __init__(self, max_len: int) -> None:
        self.max_len = max_len
        self.buf = ""
        self.start = 0
        self.chunks: List[TextChunk] = []

    def emit(self, text: str, start: int) -> None:
        self.chunks.append(
            TextChunk(
                text=text,
                char_start=start,
                char_end=start + len(text),
                page_number=estimate_page(start),
            )
        )

    def reset(self, text: str, start: int) -> None:
        """
        Start a new buffer. Anything past max_len is force-cut at exactly
        max_len and the remainder carried forward.
        """
        self.buf, self.start = text, start
        while len(self.buf) > self.max_len:
            self.emit(self.buf[: self.max_len], self.start)
            rest = self.buf[self.max_len :]
            self.buf = rest.lstrip()
            self.start += self.max_len + len(rest) - len(self.buf)


def chunk(text: str, min_len: int = 130, max_len: int = 240) -> List[TextChunk]:
    """
    Sentence-aware sliding window over canonical text.

    - Units are appended greedily while the joined text stays within max_len.
    - A full buffer (>= min_len) is emitted and the pending unit starts a new one.
    - A short buffer that cannot take the next unit is force-cut at max_len.
    - No chunk is longer than max_len; offsets never move backwards.
    Empty text gives an empty list.
    """
    if max_len <= 0:
        raise ValueError("max_len must be positive")
    if min_len < 0 or min_len > max_len:
        raise ValueError("min_len must be within [0, max_len]")

    w = _Window(max_len)
    for offset, unit in split_units(text or ""):
        if not w.buf:
            w.reset(unit, offset)
            continue
        combined = f"{w.buf} {unit}"
        if len(combined) <= max_len:
            w.buf = combined
        elif len(w.buf) >= min_len:
            w.emit(w.buf, w.start)
            w.reset(unit, offset)
        else:
            # short buffer + long unit: cut the joined text at max_len
            w.reset(combined, w.start)
    if w.buf:
        w.emit(w.buf, w.start)
    return w.chunks
