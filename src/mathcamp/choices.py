from __future__ import annotations

from .normalize import norm_text

def option_label(idx: int) -> str:
    return chr(ord("A") + idx)

def resolve_choice(user_input: str, options: list[str]) -> str | None:
    if not options:
        return None
    raw = norm_text(user_input or "")
    if not raw:
        return None
    cleaned = raw.strip().rstrip(").")

    if len(cleaned) == 1 and cleaned.isalpha():
        idx = ord(cleaned.upper()) - ord("A")
        if 0 <= idx < len(options):
            return str(options[idx])

    normalized = {norm_text(str(opt)).casefold(): str(opt) for opt in options}
    key = norm_text(raw).casefold()
    if key in normalized:
        return normalized[key]
    return None
