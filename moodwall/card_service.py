"""Card orchestration over the sheet store.

Every mutating call re-lists the sheet, resolves the target row by id and
then writes by row position. Nothing is locked: a create racing another
create can push the board past ``max_cards``, and a delete landing between
another request's scan and its write makes that write hit a shifted row.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from fractions import Fraction
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from .card_rows import HEADER_IDS, POSITION_START, card_to_row, position_cells, row_to_card, to_number
from .chunks import FRAGMENT_COUNT, join_payload
from .config import Settings
from .errors import CapacityError, NotFoundError, SizeError, StorageUnavailable, ValidationError
from .models import DEFAULT_STYLE, MAX_TEXT_LENGTH, Card, CardCreate, CardView
from .sheets_store import SheetsStore
from .utils.rng import pick_placeholder

log = logging.getLogger("moodwall.card_service")

# base64 carries 3 bytes per 4 chars; the budget gets 10% slack
BASE64_RATIO = Fraction(3, 4)
SIZE_TOLERANCE = Fraction(11, 10)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(dt: datetime) -> str:
    return dt.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def new_card_id(dt: datetime) -> str:
    return f"card_{int(round(dt.timestamp() * 1000))}"


def estimate_image_bytes(fragments: Iterable[str]) -> Fraction:
    return sum(len(f) for f in fragments) * BASE64_RATIO


def to_view(card: Card) -> CardView:
    if card.fragments:
        image_src = card.header + join_payload(card.fragments)
        placeholder = None
    else:
        image_src = None
        placeholder = pick_placeholder(card.id)
    return CardView(**card.model_dump(), image_src=image_src, placeholder=placeholder)


class CardService:
    def __init__(
        self,
        store: SheetsStore,
        settings: Settings,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.store = store
        self.settings = settings
        self._clock = clock or _utc_now

    # -------- checks --------
    @staticmethod
    def _check_text(text: str) -> None:
        if len(text) > MAX_TEXT_LENGTH:
            raise ValidationError(f"text must be at most {MAX_TEXT_LENGTH} characters")

    @staticmethod
    def _check_fragments(fragments: List[str]) -> List[str]:
        """Validate the part count; an all-empty split means no image."""
        if len(fragments) not in (0, FRAGMENT_COUNT):
            raise ValidationError(f"fragments must hold 0 or {FRAGMENT_COUNT} parts, got {len(fragments)}")
        return fragments if any(fragments) else []

    def _check_size(self, fragments: List[str]) -> None:
        estimate = estimate_image_bytes(fragments)
        limit = self.settings.max_image_bytes * SIZE_TOLERANCE
        if estimate > limit:
            log.info("rejecting image of ~%.0f bytes (limit %.0f)", float(estimate), float(limit))
            raise SizeError(f"Image too large (max {self.settings.max_image_size_kb} KB)")

    def _require_store(self) -> None:
        if not self.store.available:
            raise StorageUnavailable()

    def _scan(self) -> List[List[Any]]:
        return self.store.list_rows(raise_errors=True)

    @staticmethod
    def _locate(rows: List[List[Any]], card_id: str) -> Tuple[int, Card]:
        for index, row in enumerate(rows):
            if row and str(row[0]) == card_id:
                card = row_to_card(row)
                if card is not None:
                    return index, card
        raise NotFoundError(f"Card not found: {card_id}")

    # -------- operations --------
    def list_cards(self) -> List[Card]:
        if not self.store.available:
            return []
        cards = []
        for row in self.store.list_rows():
            card = row_to_card(row)
            if card is not None:
                cards.append(card)
        return cards

    def create(self, payload: CardCreate) -> Card:
        text = payload.text or ""
        self._check_text(text)
        fragments = self._check_fragments(list(payload.fragments))
        if not text.strip() and not fragments:
            raise ValidationError("card needs text or an image")
        if payload.id in HEADER_IDS:
            raise ValidationError(f"Reserved card id: {payload.id}")
        x, y, r = to_number(payload.x), to_number(payload.y), to_number(payload.r)

        self._require_store()
        rows = self._scan()
        existing = [c for c in (row_to_card(row) for row in rows) if c is not None]
        if len(existing) >= self.settings.max_cards:
            log.info("board full (%d/%d), rejecting create", len(existing), self.settings.max_cards)
            raise CapacityError(f"Board is full ({self.settings.max_cards} cards)")
        if payload.id and any(c.id == payload.id for c in existing):
            raise ValidationError(f"Duplicate card id: {payload.id}")

        self._check_size(fragments)

        now = self._clock()
        card = Card(
            id=payload.id or new_card_id(now),
            text=text,
            mood=payload.mood,
            style=payload.style or DEFAULT_STYLE,
            header=(payload.header or "") if fragments else "",
            fragments=fragments,
            x=x,
            y=y,
            r=r,
            created_at=format_timestamp(now),
        )
        self.store.append_row(card_to_row(card))
        log.info("created card %s", card.id)
        return card

    def update_position(self, card_id: str, x: Any = None, y: Any = None, r: Any = None) -> Card:
        """Move a card. Omitted coordinates keep their stored value."""
        self._require_store()
        index, card = self._locate(self._scan(), card_id)

        updates = {k: to_number(v) for k, v in (("x", x), ("y", y), ("r", r)) if v is not None}
        moved = card.model_copy(update=updates)
        self.store.update_range(index, position_cells(moved), start_column=POSITION_START)
        return moved

    def update(self, card_id: str, changes: Dict[str, Any]) -> Card:
        """Overwrite the given fields; id and createdAt never change."""
        changes = {k: v for k, v in changes.items() if v is not None and k not in ("id", "created_at")}
        if "text" in changes:
            self._check_text(changes["text"])
        if "fragments" in changes:
            changes["fragments"] = self._check_fragments(list(changes["fragments"]))
        for key in ("x", "y", "r"):
            if key in changes:
                changes[key] = to_number(changes[key])

        self._require_store()
        index, card = self._locate(self._scan(), card_id)

        merged = card.model_copy(update=changes)
        if not merged.fragments:
            merged = merged.model_copy(update={"header": ""})
        if "fragments" in changes:
            self._check_size(merged.fragments)

        self.store.update_range(index, card_to_row(merged))
        log.info("overwrote card %s", card_id)
        return merged

    def delete(self, card_id: str) -> None:
        self._require_store()
        index, _ = self._locate(self._scan(), card_id)
        self.store.delete_row(index)
        log.info("deleted card %s (row %d)", card_id, index)
