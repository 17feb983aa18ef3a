from __future__ import annotations
import re
import unicodedata

_CHAR_MAP = {
    "’": "'",
    "‘": "'",
    "“": "\"",
    "”": "\"",
    "−": "-",
    "–": "-",
    "≥": ">=",
    "≤": "<=",
}

_NUMBER_WORDS = {
    "zero": 0, "one": 1, "two": 2, "three": 3, "four": 4, "five": 5,
    "six": 6, "seven": 7, "eight": 8, "nine": 9, "ten": 10,
    "eleven": 11, "twelve": 12, "thirteen": 13, "fourteen": 14, "fifteen": 15,
    "sixteen": 16, "seventeen": 17, "eighteen": 18, "nineteen": 19, "twenty": 20,
}

_INT_RE = re.compile(r"^[+-]?\d+$")

def _nfkc_normalize(s: str) -> str:
    if not s:
        return ""
    s = unicodedata.normalize("NFKC", s)
    for src, dst in _CHAR_MAP.items():
        s = s.replace(src, dst)
    return s

def norm_text(s: str) -> str:
    s = _nfkc_normalize(s or "")
    s = s.strip()
    s = re.sub(r"\s+", " ", s)
    return s

def norm_answer_text(s: str) -> str:
    s = norm_text(s)
    while s and s[-1] in ".!?,":
        s = s[:-1]
    s = s.strip()
    return s

def parse_int(s: str) -> int | None:
    text = norm_answer_text(s).replace(" ", "")
    if not text:
        return None
    if _INT_RE.match(text):
        return int(text)
    return _NUMBER_WORDS.get(text.casefold())

def norm_number_list(s: str) -> str:
    s = _nfkc_normalize(s or "")
    s = s.strip()
    # normalize separators to comma
    s = s.replace(";", ",").replace("\n", ",")
    s = re.sub(r"\s*,\s*", ", ", s.strip())
    s = re.sub(r"(,\s*){2,}", ", ", s)
    s = s.strip().strip(",")
    return s

def split_tokens(s: str) -> list[str]:
    s = norm_number_list(s)
    if not s:
        return []
    parts = [p.strip() for p in s.split(",")]
    out: list[str] = []
    for part in parts:
        # "12 12 5 7" counts as four answers
        out.extend(p for p in part.split(" ") if p)
    return out
