"""Card <-> sheet row mapping.

A row is the flat list of cells in columns A..L of the cards sheet, in the
order given by ``COLUMNS``. Values read back from the sheet are usually
strings, so the read path parses numbers leniently and never raises.
"""

from __future__ import annotations

import math
from typing import Any, List, Optional, Sequence

from .chunks import FRAGMENT_COUNT
from .models import Card

COLUMNS = [
    "id", "text", "mood", "style", "header",
    "part1", "part2", "part3",
    "x", "y", "r", "created_at",
]

FRAGMENT_START = COLUMNS.index("part1")
POSITION_START = COLUMNS.index("x")
POSITION_COLUMNS = COLUMNS[POSITION_START:POSITION_START + 3]

HEADER_IDS = ("id", "ID")

FORMULA_PREFIXES = ("=", "+", "-", "@", "'")
FORMULA_NEUTRALIZER = "'"


def neutralize_formula(value: str) -> str:
    """Keep the sheet from evaluating user text as a formula.

    A leading apostrophe is doubled too, since the sheet eats the first one.
    """
    if value and value[0] in FORMULA_PREFIXES:
        return FORMULA_NEUTRALIZER + value
    return value


def to_number(value: Any, default: int = 0):
    """Parse a cell or payload value as a number, ``default`` when it can't be.

    Integral values come back as ``int`` so "12" and 12.0 both store as 12.
    """
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        num = value
    elif isinstance(value, str):
        s = value.strip()
        if not s:
            return default
        try:
            num = float(s)
        except ValueError:
            return default
    else:
        return default

    if math.isnan(num) or math.isinf(num):
        return default
    if float(num).is_integer():
        return int(num)
    return num


def parse_mood(value: Any) -> int:
    mood = to_number(value, 1)
    if not isinstance(mood, int) or not 1 <= mood <= 5:
        return 1
    return mood


def _text(value: Any) -> str:
    if value is None:
        return ""
    return neutralize_formula(str(value))


def position_cells(card: Card) -> List[Any]:
    return [to_number(card.x), to_number(card.y), to_number(card.r)]


def card_to_row(card: Card) -> List[Any]:
    fragments = list(card.fragments or [])
    if len(fragments) > FRAGMENT_COUNT:
        raise ValueError(f"at most {FRAGMENT_COUNT} fragments fit in a row, got {len(fragments)}")
    fragments += [""] * (FRAGMENT_COUNT - len(fragments))

    return [
        _text(card.id),
        _text(card.text),
        parse_mood(card.mood),
        _text(card.style),
        _text(card.header),
        *[_text(f) for f in fragments],
        *position_cells(card),
        _text(card.created_at),
    ]


def row_to_card(row: Optional[Sequence[Any]]) -> Optional[Card]:
    """Map a sheet row back to a Card.

    Returns None for empty rows, rows without an id and the header row.
    Empty fragment cells are dropped, so an empty middle fragment does not
    keep its position.
    """
    if not row:
        return None

    cells = ["" if c is None else c for c in row]
    cells += [""] * (len(COLUMNS) - len(cells))

    card_id = str(cells[0])
    if not card_id or card_id in HEADER_IDS:
        return None

    fragment_cells = cells[FRAGMENT_START:FRAGMENT_START + FRAGMENT_COUNT]
    return Card(
        id=card_id,
        text=str(cells[1]),
        mood=parse_mood(cells[2]),
        style=str(cells[3]),
        header=str(cells[4]),
        fragments=[str(p) for p in fragment_cells if str(p)],
        x=to_number(cells[POSITION_START]),
        y=to_number(cells[POSITION_START + 1]),
        r=to_number(cells[POSITION_START + 2]),
        created_at=str(cells[11]),
    )
