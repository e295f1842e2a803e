import base64
import math
from dataclasses import dataclass
from typing import Tuple

import cv2
import numpy as np

from .errors import ImageTooLarge, InvalidImage

MAX_DIM = 1200
MIN_DIM = 600

START_QUALITY = 90
MIN_QUALITY = 50
QUALITY_STEP = 10

JPEG_MIME = "image/jpeg"


@dataclass
class EncodedImage:
    mime: str
    header: str
    body: str
    size_bytes: int
    width: int
    height: int
    quality: int

    @property
    def data_url(self) -> str:
        return self.header + self.body


def _round_half_up(v: float) -> int:
    return int(math.floor(v + 0.5))


def target_size(width: int, height: int) -> Tuple[int, int]:
    """Box the longer side into [MIN_DIM, MAX_DIM], keeping the aspect ratio."""
    longest = max(width, height)
    if longest > MAX_DIM:
        ratio = MAX_DIM / longest
    elif longest < MIN_DIM:
        ratio = MIN_DIM / longest
    else:
        return width, height
    return max(1, _round_half_up(width * ratio)), max(1, _round_half_up(height * ratio))


def decode_image(raw: bytes) -> np.ndarray:
    if not raw:
        raise InvalidImage("Invalid image")
    arr = np.frombuffer(raw, dtype=np.uint8)
    frame = cv2.imdecode(arr, cv2.IMREAD_COLOR)
    if frame is None:
        raise InvalidImage("Invalid image")
    return frame


def _resize(frame: np.ndarray, width: int, height: int) -> np.ndarray:
    h, w = frame.shape[:2]
    if (w, h) == (width, height):
        return frame
    interp = cv2.INTER_AREA if width < w else cv2.INTER_CUBIC
    return cv2.resize(frame, (width, height), interpolation=interp)


def _encode_jpeg(frame: np.ndarray, quality: int) -> bytes:
    ok, buf = cv2.imencode(".jpg", frame, [int(cv2.IMWRITE_JPEG_QUALITY), quality])
    if not ok:
        raise InvalidImage("Image could not be encoded")
    return buf.tobytes()


def compress_image(raw: bytes, max_bytes: int) -> EncodedImage:
    """Resize and recompress ``raw`` into a JPEG of at most ``max_bytes``.

    Quality starts at 90 and drops by 10 while the result is over budget and
    quality is still >= 50, so the last attempt is made at 40.
    """
    frame = decode_image(raw)
    h, w = frame.shape[:2]
    width, height = target_size(w, h)
    frame = _resize(frame, width, height)

    quality = START_QUALITY
    data = _encode_jpeg(frame, quality)
    while len(data) > max_bytes and quality >= MIN_QUALITY:
        quality -= QUALITY_STEP
        data = _encode_jpeg(frame, quality)

    if len(data) > max_bytes:
        raise ImageTooLarge()

    return EncodedImage(
        mime=JPEG_MIME,
        header=f"data:{JPEG_MIME};base64,",
        body=base64.b64encode(data).decode("ascii"),
        size_bytes=len(data),
        width=width,
        height=height,
        quality=quality,
    )
