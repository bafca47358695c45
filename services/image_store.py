"""Image references for scan reports.

Two storage modes are supported:

- ``inline``: the report keeps the whole image as a base64 data URI, so the
  report row is self-contained.
- ``disk``: the original bytes are written under
  ``<DATABASE_DIR>/images/<owner_id>/<report_id>.<ext>`` and the report keeps
  the URL of the owner-scoped image endpoint.
"""

from __future__ import annotations

import base64
import logging
import re
import shutil
from pathlib import Path
from typing import Optional, Tuple

import aiofiles
import aiofiles.os

from models.scan_report import UploadedImage

LOGGER = logging.getLogger(__name__)

_EXTENSIONS = {"image/jpeg": "jpg", "image/png": "png", "image/webp": "webp"}
_MIME_BY_EXTENSION = {ext: mime for mime, ext in _EXTENSIONS.items()}
_DATA_URI = re.compile(r"^data:(?P<mime>[\w/+.-]+);base64,(?P<data>.*)$", re.DOTALL)
_SAFE_ID = re.compile(r"^[A-Za-z0-9_-]+$")


def image_url_for(report_id: str) -> str:
    return f"/api/reports/{report_id}/image"


class ImageStore:
    """Build and resolve `image_reference` values."""

    def __init__(self, image_dir: Path | str, mode: str = "inline") -> None:
        if mode not in ("inline", "disk"):
            raise ValueError(f"Unknown image storage mode: {mode!r}")
        self.image_dir = Path(image_dir)
        self.mode = mode

    async def store(self, owner_id: str, report_id: str, image: UploadedImage) -> str:
        """Return the image reference to record on the report, writing to disk if configured."""
        if self.mode == "inline":
            return image.to_data_uri()

        path = self._path_for(owner_id, report_id, _EXTENSIONS.get(image.mime_type, "jpg"))
        await aiofiles.os.makedirs(path.parent, exist_ok=True)
        async with aiofiles.open(path, "wb") as f:
            await f.write(image.data)
        return image_url_for(report_id)

    async def load(self, owner_id: str, report_id: str, image_reference: str) -> Optional[Tuple[bytes, str]]:
        """Return `(bytes, mime_type)` for a stored reference, or None if it cannot be resolved."""
        match = _DATA_URI.match(image_reference)
        if match:
            return base64.b64decode(match.group("data")), match.group("mime")

        for ext, mime in _MIME_BY_EXTENSION.items():
            path = self._path_for(owner_id, report_id, ext)
            if await aiofiles.os.path.exists(path):
                async with aiofiles.open(path, "rb") as f:
                    return await f.read(), mime
        return None

    async def discard(self, owner_id: str, report_id: str) -> None:
        """Remove the file written for one report (disk mode); a missing file is ignored."""
        if self.mode == "inline":
            return
        for ext in _MIME_BY_EXTENSION:
            path = self._path_for(owner_id, report_id, ext)
            if await aiofiles.os.path.exists(path):
                await aiofiles.os.remove(path)
                LOGGER.info("Discarded unsaved image %s", path)

    def remove_owner_images(self, owner_id: str) -> None:
        """Remove the owner's image directory (disk mode); missing directories are ignored."""
        owner_dir = self.image_dir / self._checked(owner_id)
        if owner_dir.exists():
            shutil.rmtree(owner_dir, ignore_errors=True)
            LOGGER.info("Removed stored images for owner %s", owner_id)

    def _path_for(self, owner_id: str, report_id: str, ext: str) -> Path:
        return self.image_dir / self._checked(owner_id) / f"{self._checked(report_id)}.{ext}"

    @staticmethod
    def _checked(part: str) -> str:
        if not _SAFE_ID.match(part):
            raise ValueError(f"Unsafe path component: {part!r}")
        return part
