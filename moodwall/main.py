import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .card_service import CardService
from .config import get_settings
from .errors import StorageTransportError
from .models import BoardConfig
from .routes.cards import get_card_service
from .routes.cards import router as cards_router
from .routes.images import router as images_router
from .sheets_store import get_store

settings = get_settings()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
)
log = logging.getLogger("moodwall.main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    store = get_store()
    if store.available:
        try:
            store.ensure_header()
        except StorageTransportError:
            # the board still serves; reads degrade to an empty list
            log.warning("could not check the sheet header at startup")
    yield


app = FastAPI(title="Moodwall", version="0.1.0", lifespan=lifespan)

app.include_router(cards_router)
app.include_router(images_router)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
def health():
    return {"ok": True}


@app.get("/api/config", response_model=BoardConfig)
def board_config(service: CardService = Depends(get_card_service)) -> BoardConfig:
    return BoardConfig(
        max_cards=service.settings.max_cards,
        max_image_size_kb=service.settings.max_image_size_kb,
        storage_available=service.store.available,
    )
