"""Split an encoded image body across the sheet's fragment columns and back."""

from __future__ import annotations

import math
from typing import Iterable, List

# one sheet column per fragment (part1..part3)
FRAGMENT_COUNT = 3


def split_payload(body: str, n: int = FRAGMENT_COUNT) -> List[str]:
    """Split ``body`` into ``n`` contiguous fragments.

    Every fragment is ``ceil(len(body) / n)`` characters long except the
    trailing ones, which may be shorter or empty. An empty body yields ``n``
    empty strings.
    """
    if n < 1:
        raise ValueError("n must be >= 1")
    size = math.ceil(len(body) / n)
    if size == 0:
        return [""] * n
    return [body[i * size:(i + 1) * size] for i in range(n)]


def join_payload(fragments: Iterable[str]) -> str:
    return "".join(fragments)
