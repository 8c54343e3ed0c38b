"""Text normalization helpers shared by indexing and querying."""

from __future__ import annotations

_WEAK_WORDS = frozenset(
    {
        "请问",
        "什么",
        "如何",
        "哪里",
        "哪个",
        "是否",
        "有没有",
        "吗",
        "呢",
        "the",
        "a",
        "an",
        "is",
        "are",
        "do",
        "does",
    }
)


def _is_ascii_alnum(ch: str) -> bool:
    return ch.isascii() and ch.isalnum()


def add_space_between_ascii_and_non_ascii(text: str) -> str:
    """Insert a space wherever ASCII alphanumerics meet other characters."""
    result: list[str] = []
    previous = False
    for ch in text:
        current = _is_ascii_alnum(ch)
        if result and previous != current and not ch.isspace():
            result.append(" ")
        result.append(ch)
        previous = current
    return "".join(result)


def is_weak_word(token: str) -> bool:
    """Return True for filler words that carry little search meaning."""
    return token in _WEAK_WORDS