from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from fastapi.concurrency import run_in_threadpool

from ..chunks import split_payload
from ..config import Settings, get_settings
from ..errors import ImageTooLarge, InvalidImage
from ..image_codec import compress_image
from ..models import ImageUploadResponse

router = APIRouter(prefix="/api/images", tags=["images"])


@router.post("", response_model=ImageUploadResponse)
async def upload_image(image: UploadFile = File(...), settings: Settings = Depends(get_settings)):
    """Recompress an uploaded picture and return it split for a card payload."""
    raw = await image.read()
    try:
        encoded = await run_in_threadpool(compress_image, raw, settings.max_image_bytes)
    except InvalidImage as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ImageTooLarge as e:
        raise HTTPException(status_code=413, detail=str(e))

    return ImageUploadResponse(
        mime=encoded.mime,
        header=encoded.header,
        fragments=split_payload(encoded.body),
        size_bytes=encoded.size_bytes,
        width=encoded.width,
        height=encoded.height,
        quality=encoded.quality,
    )
