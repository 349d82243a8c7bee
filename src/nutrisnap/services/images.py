"""Image preparation for inference requests."""

import base64
from io import BytesIO

from PIL import Image, UnidentifiedImageError

from nutrisnap.domain.errors import InvalidImageError

MAX_WIDTH = 800
JPEG_QUALITY = 80


def prepare_image(image_bytes: bytes) -> str:
    """Downscale to at most 800px wide, re-encode as JPEG, return a data URL."""
    try:
        with Image.open(BytesIO(image_bytes)) as img:
            img.load()
            converted = _to_rgb(img)
    except (UnidentifiedImageError, OSError, ValueError) as exc:
        raise InvalidImageError("Invalid image format. Please try again.") from exc

    if converted.width > MAX_WIDTH:
        height = max(1, round(converted.height * MAX_WIDTH / converted.width))
        converted = converted.resize((MAX_WIDTH, height), Image.Resampling.LANCZOS)

    buffer = BytesIO()
    converted.save(buffer, "JPEG", quality=JPEG_QUALITY)
    return _to_data_url(buffer.getvalue(), "image/jpeg")


def _to_rgb(img: Image.Image) -> Image.Image:
    """Flatten transparency onto white and normalise the colour mode."""
    if img.mode == "RGBA":
        background = Image.new("RGB", img.size, (255, 255, 255))
        background.paste(img, mask=img.split()[-1])
        return background
    if img.mode != "RGB":
        return img.convert("RGB")
    return img.copy()


def _to_data_url(image_bytes: bytes, mime_type: str) -> str:
    """Convert bytes to a base64 data URL for image input."""
    encoded = base64.b64encode(image_bytes).decode("utf-8")
    return f"data:{mime_type};base64,{encoded}"
