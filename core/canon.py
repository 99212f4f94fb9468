import re
import unicodedata
from typing import Final, Union
from util.enums import FlattenMode

_CONTROL: Final = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")
_INLINE_WS: Final = re.compile(r"[^\S\n]+")
_WS_BEFORE_NL: Final = re.compile(r"[^\S\n]+\n")
_MANY_NL: Final = re.compile(r"\n{3,}")

# letters, hyphen, a line break (blank lines too), then the continuation
# (checked for lowercase)
_WRAPPED_WORD: Final = re.compile(
    r"([^\W\d_]{2,})-\s*\n\s*(?=([^\W\d_]))"
)

_DASH_RUN: Final = re.compile(r"[‒—–ᅳ]+")
_BULLET: Final = re.compile(
    r"^[^\S\n]*(?:[•‣∙◦·*●○-]|[‒—–ᅳ]+)\s+(?=\S)", re.M
)
_DASH_PAD: Final = re.compile(r"^-[^\S\n]{2,}", re.M)

_SOFT_WRAP: Final = re.compile(r"(?<=[^\W_])[ \t]*\n(?!\n)[ \t]*(?=([^\W_]))")
_SOFT_AFTER_PUNCT: Final = re.compile(r"(?<=[,;:])[ \t]*\n(?!\n)[ \t]*")

_PARAGRAPH: Final = re.compile(r"\n{2,}")
_LINE_BREAK: Final = re.compile(r"[ \t]*\n[ \t]*")
_PARA_MARK: Final = "\x00"  # control chars are gone by the time flattening runs

_HEADER: Final = r"[A-Z][A-Z0-9/& \-]{5,}\b"
_HEADER_AFTER_PERIOD: Final = re.compile(r"(?<!\.)\.(?=" + _HEADER + ")")
_HEADER_START: Final = re.compile(_HEADER)
_LEADING_WS: Final = re.compile(r"^\s+")


def _join_wrapped_word(m: re.Match) -> str:
    return m.group(1) if m.group(2).islower() else m.group(0)


def _join_soft_wrap(m: re.Match) -> str:
    nxt = m.group(1)
    return " " if (nxt.islower() or nxt.isdigit()) else m.group(0)


def _flatten_all(t: str) -> str:
    """
    Every single newline becomes a space; paragraph breaks survive.
    A break already separating "x." from an ALL-CAPS header is kept so that
    re-normalizing does not undo the header split.
    """
    t = _PARAGRAPH.sub(_PARA_MARK, t)

    def _line(m: re.Match) -> str:
        start, end = m.start(), m.end()
        if (
            start >= 1
            and t[start - 1] == "."
            and (start < 2 or t[start - 2] != ".")
            and _HEADER_START.match(t, end)
        ):
            return "\n"
        return " "

    t = _LINE_BREAK.sub(_line, t)
    return t.replace(_PARA_MARK, "\n\n")


def normalize(raw: str, flatten: Union[FlattenMode, str] = FlattenMode.NONE) -> str:
    """
    Canonical resume text. Pure and idempotent:
    normalize(normalize(x, f), f) == normalize(x, f).

    - NFC, control chars dropped (newline kept), whitespace runs collapsed.
    - Line-wrapped hyphenation merged, bullets unified to "- ", dash glyphs to "—".
    - flatten="soft" unwraps sentence-internal breaks, "all" keeps paragraphs only.
    - Result ends with exactly one newline.
    """
    mode = FlattenMode(flatten)

    t = unicodedata.normalize("NFC", raw or "")
    # compose again: a stripped control char may have split a base + mark pair
    t = unicodedata.normalize("NFC", _CONTROL.sub("", t))

    t = _INLINE_WS.sub(" ", t.replace("\t", " "))
    t = _WS_BEFORE_NL.sub("\n", t)
    t = _MANY_NL.sub("\n\n", t)

    t = _WRAPPED_WORD.sub(_join_wrapped_word, t)

    t = _BULLET.sub("- ", t)
    t = _DASH_PAD.sub("- ", t)
    t = _DASH_RUN.sub("—", t)

    if mode is FlattenMode.SOFT:
        t = _SOFT_WRAP.sub(_join_soft_wrap, t)
        t = _SOFT_AFTER_PUNCT.sub(" ", t)
    elif mode is FlattenMode.ALL:
        t = _flatten_all(t)

    # light section breaks lost by flattening
    t = _HEADER_AFTER_PERIOD.sub(".\n", t)

    t = _LEADING_WS.sub("", t)
    t = _WS_BEFORE_NL.sub("\n", t)
    return t.rstrip() + "\n"


def flatten_for_preview(text: str) -> str:
    """Single-line preview string."""
    return re.sub(r"\s+", " ", text or "").strip()
