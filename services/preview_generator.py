"""Preview generator service.

Provides a small OOP wrapper around Pillow that checks an uploaded image
really decodes and produces a preview that fits within 256x256 pixels,
returned as a PNG data URI the client can show next to the result.

Example:
    pg = PreviewGenerator(max_size=(256, 256))
    preview_uri = pg.create_preview(image_bytes)
"""
from __future__ import annotations

import base64
import io
from typing import Tuple

from PIL import Image, UnidentifiedImageError

from services.errors import InvalidImage

_PIL_FORMATS = {
    "image/jpeg": "JPEG",
    "image/png": "PNG",
    "image/webp": "WEBP",
}


class PreviewGenerator:
    """Validate image bytes and generate previews.

    Args:
        max_size: Maximum width and height for the preview. Defaults to (256, 256).
        background: Background color used when flattening images with alpha.
    """

    def __init__(self, max_size: Tuple[int, int] = (256, 256), background: Tuple[int, int, int] | None = None):
        self.max_size = max_size
        self.background = background or (255, 255, 255)

    def verify(self, data: bytes, mime_type: str) -> None:
        """Raise InvalidImage unless `data` decodes as the declared image format."""
        try:
            with Image.open(io.BytesIO(data)) as img:
                detected = img.format
                img.verify()
        except (UnidentifiedImageError, OSError, SyntaxError) as exc:
            raise InvalidImage("Uploaded bytes are not a readable image.") from exc

        expected = _PIL_FORMATS.get(mime_type)
        if expected is not None and detected != expected:
            raise InvalidImage(f"Image content is {detected}, but was declared as {mime_type}.")

    def create_preview(self, data: bytes) -> str:
        """Return a `data:image/png;base64,...` preview of the image.

        Raises:
            InvalidImage: If the bytes cannot be opened as an image.
        """
        try:
            src = Image.open(io.BytesIO(data))
            src.load()
        except (UnidentifiedImageError, OSError) as exc:
            raise InvalidImage("Decoded bytes are not a supported image format") from exc

        src = src.convert("RGBA")
        src.thumbnail(self.max_size, Image.LANCZOS)

        # Flatten alpha against the background color
        background = Image.new("RGB", src.size, self.background)
        background.paste(src, mask=src.split()[3])

        out_io = io.BytesIO()
        background.save(out_io, format="PNG", optimize=True)
        encoded = base64.b64encode(out_io.getvalue()).decode("utf-8")
        return f"data:image/png;base64,{encoded}"
