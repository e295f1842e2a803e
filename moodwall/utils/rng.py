"""Deterministic placeholder art for cards posted without an image."""

import hashlib
import json
import random
from pathlib import Path
from typing import List, Optional

DATA_PATH = Path(__file__).resolve().parents[1] / "data" / "placeholders.json"


class PlaceholderError(RuntimeError):
    pass


def seeded_random(seed: str, salt: str = "") -> random.Random:
    """Create a deterministic random.Random instance from seed and optional salt.

    Args:
        seed: Base seed string, usually the card id
        salt: Optional salt to modify the seed

    Returns:
        random.Random instance that will produce deterministic sequences
    """
    combined = f"{seed}{salt}"
    hash_obj = hashlib.sha256(combined.encode('utf-8'))
    int_seed = int(hash_obj.hexdigest(), 16)

    # Mask to fit within Python's random seed range
    int_seed = int_seed & ((1 << 31) - 1)

    return random.Random(int_seed)


_PLACEHOLDER_CACHE: Optional[List[str]] = None


def get_placeholders() -> List[str]:
    global _PLACEHOLDER_CACHE
    if _PLACEHOLDER_CACHE is None:
        try:
            data = json.loads(DATA_PATH.read_text(encoding="utf-8"))
        except FileNotFoundError as e:
            raise PlaceholderError(f"Placeholder data file not found at: {DATA_PATH}") from e
        except json.JSONDecodeError as e:
            raise PlaceholderError(f"Invalid JSON in {DATA_PATH}: {e}") from e

        svgs = data.get("placeholders")
        if not isinstance(svgs, list) or not svgs:
            raise PlaceholderError("Placeholder data must contain at least one SVG.")
        _PLACEHOLDER_CACHE = svgs
    return list(_PLACEHOLDER_CACHE)


def pick_placeholder(card_id: str) -> str:
    """Same card id, same placeholder, on every client and every reload."""
    svgs = get_placeholders()
    return seeded_random(card_id, "placeholder").choice(svgs)
