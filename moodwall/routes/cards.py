"""FastAPI routes for the shared mood board.

Endpoints:
- GET    /api/cards
- POST   /api/cards
- PATCH  /api/cards/{card_id}   (position only)
- PUT    /api/cards/{card_id}   (overwrite fields)
- DELETE /api/cards/{card_id}
"""

from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException

from ..card_service import CardService, to_view
from ..config import get_settings
from ..errors import (
    CapacityError,
    MoodwallError,
    NotFoundError,
    SizeError,
    StorageTransportError,
    StorageUnavailable,
    ValidationError,
)
from ..models import CardCreate, CardResponse, CardUpdate, CardView, MessageResponse, PositionUpdate
from ..sheets_store import get_store

log = logging.getLogger("moodwall.routes.cards")
router = APIRouter(prefix="/api/cards", tags=["cards"])

_SERVICE: Optional[CardService] = None


def get_card_service() -> CardService:
    global _SERVICE
    if _SERVICE is None:
        _SERVICE = CardService(get_store(), get_settings())
    return _SERVICE


_STATUS = [
    (ValidationError, 400),
    (NotFoundError, 404),
    (CapacityError, 409),
    (SizeError, 413),
    (StorageUnavailable, 503),
]


def http_error(e: MoodwallError, action: str) -> HTTPException:
    for exc_type, status in _STATUS:
        if isinstance(e, exc_type):
            return HTTPException(status_code=status, detail=str(e))
    if not isinstance(e, StorageTransportError):
        log.exception("unexpected error while trying to %s card", action)
    return HTTPException(status_code=500, detail=f"Failed to {action} card")


@router.get("", response_model=List[CardView])
def list_cards(service: CardService = Depends(get_card_service)) -> List[CardView]:
    return [to_view(c) for c in service.list_cards()]


@router.post("", response_model=CardResponse, status_code=201)
def create_card(req: CardCreate, service: CardService = Depends(get_card_service)) -> CardResponse:
    try:
        card = service.create(req)
    except MoodwallError as e:
        raise http_error(e, "add")
    return CardResponse(message="Card added", card=to_view(card))


@router.patch("/{card_id}", response_model=CardResponse)
def move_card(card_id: str, req: PositionUpdate, service: CardService = Depends(get_card_service)) -> CardResponse:
    try:
        card = service.update_position(card_id, x=req.x, y=req.y, r=req.r)
    except MoodwallError as e:
        raise http_error(e, "update")
    return CardResponse(message="Card updated", card=to_view(card))


@router.put("/{card_id}", response_model=CardResponse)
def overwrite_card(card_id: str, req: CardUpdate, service: CardService = Depends(get_card_service)) -> CardResponse:
    try:
        card = service.update(card_id, req.model_dump(exclude_unset=True))
    except MoodwallError as e:
        raise http_error(e, "update")
    return CardResponse(message="Card updated", card=to_view(card))


@router.delete("/{card_id}", response_model=MessageResponse)
def delete_card(card_id: str, service: CardService = Depends(get_card_service)) -> MessageResponse:
    try:
        service.delete(card_id)
    except MoodwallError as e:
        raise http_error(e, "delete")
    return MessageResponse(message="Card deleted")
