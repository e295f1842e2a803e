from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from typing import Any, List, Optional, Union

Number = Union[int, float]

DEFAULT_STYLE = "polaroid"
MAX_TEXT_LENGTH = 500


class Card(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    text: str = ""
    mood: int = 1
    style: str = DEFAULT_STYLE
    header: str = ""
    fragments: List[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("fragments", "parts"),
    )
    x: Number = 0
    y: Number = 0
    r: Number = 0
    created_at: str = Field("", alias="createdAt")


class CardView(Card):
    image_src: Optional[str] = Field(None, alias="imageSrc")
    placeholder: Optional[str] = None


class CardCreate(BaseModel):
    # id is optional; the board assigns card_<epoch-ms> when omitted
    id: Optional[str] = Field(None, min_length=1, max_length=100)
    text: Optional[str] = ""
    mood: int = Field(3, ge=1, le=5)
    style: Optional[str] = DEFAULT_STYLE
    header: Optional[str] = ""
    fragments: List[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("fragments", "parts"),
    )
    x: Any = None
    y: Any = None
    r: Any = None


class CardUpdate(BaseModel):
    text: Optional[str] = None
    mood: Optional[int] = Field(None, ge=1, le=5)
    style: Optional[str] = None
    header: Optional[str] = None
    fragments: Optional[List[str]] = Field(
        None,
        validation_alias=AliasChoices("fragments", "parts"),
    )
    x: Any = None
    y: Any = None
    r: Any = None


class PositionUpdate(BaseModel):
    x: Any = None
    y: Any = None
    r: Any = None


class CardResponse(BaseModel):
    message: str
    card: CardView


class MessageResponse(BaseModel):
    message: str


class ImageUploadResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    mime: str
    header: str
    fragments: List[str]
    size_bytes: int = Field(..., alias="sizeBytes")
    width: int
    height: int
    quality: int


class BoardConfig(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    max_cards: int = Field(..., alias="maxCards")
    max_image_size_kb: int = Field(..., alias="maxImageSizeKb")
    storage_available: bool = Field(..., alias="storageAvailable")
