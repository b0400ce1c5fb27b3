"""Short, URL-safe share codes for newly created quizzes."""

from __future__ import annotations

import string
import time

_ALPHABET = string.ascii_lowercase


def issue_share_code(now_ms: int | None = None) -> str:
    """Encode the last three digits of a millisecond timestamp as lowercase letters.

    Only 1000 codes exist, so two quizzes created in the same millisecond slot
    collide. The store's unique constraint on ``share_code`` is what keeps codes
    unique; callers retry with a suffix on conflict.
    """
    if now_ms is None:
        now_ms = time.time_ns() // 1_000_000
    return encode_base26(now_ms % 1000)


def encode_base26(value: int) -> str:
    """Spreadsheet-column style encoding: 0 -> 'a', 25 -> 'z', 26 -> 'aa'."""
    if value < 0:
        raise ValueError("Only non-negative values can be encoded.")
    letters: list[str] = []
    value += 1
    while value > 0:
        value, remainder = divmod(value - 1, 26)
        letters.append(_ALPHABET[remainder])
    return "".join(reversed(letters))
