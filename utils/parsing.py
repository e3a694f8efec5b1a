"""
utils/parsing.py
----------------
Helpers for reading command arguments.
"""

from typing import Optional, Sequence


def parse_int(value: str) -> Optional[int]:
    try:
        return int(value.lstrip("#"))
    except (ValueError, AttributeError):
        return None


def split_fields(args: Sequence[str], count: int) -> list[str]:
    """
    Re-join command arguments and split them on ``|``.

    ``/addcard Rust books | Good reads | lang, books`` → ['Rust books', 'Good reads', 'lang, books'].
    Missing trailing fields come back as empty strings.
    """
    parts = [p.strip() for p in " ".join(args).split("|", count - 1)]
    return parts + [""] * (count - len(parts))


def split_search(args: Sequence[str]) -> tuple[str, list[str]]:
    """
    Separate free-text search words from ``#tag`` filters.

    Returns:
        (search text, tag names or ids without the leading '#').
    """
    words, tags = [], []
    for arg in args:
        if arg.startswith("#") and len(arg) > 1:
            tags.append(arg[1:])
        else:
            words.append(arg)
    return " ".join(words), tags


def parse_tag_list(text: str) -> list[str]:
    return [t.strip().lstrip("#") for t in text.split(",") if t.strip()]
