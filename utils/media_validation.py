"""Validation helpers for uploaded plant images."""

from fastapi import HTTPException, UploadFile

from models.scan_report import UploadedImage

ALLOWED_IMAGE_TYPES = {
    "image/jpeg",
    "image/jpg",
    "image/png",
    "image/webp",
}

_EXTENSION_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".webp": "image/webp",
}

MAX_IMAGE_BYTES = 10 * 1024 * 1024


def normalize_image_type(content_type: str | None, filename: str | None) -> str:
    """Return the canonical MIME type for an upload or raise HTTP 415.

    The declared content type wins; when it is missing (or a generic
    `application/octet-stream`) the filename extension is used instead.
    """
    mime = (content_type or "").lower().split(";", 1)[0].strip()
    if mime in ("", "application/octet-stream"):
        name = (filename or "").lower()
        mime = next((t for ext, t in _EXTENSION_TYPES.items() if name.endswith(ext)), "")
    if mime not in ALLOWED_IMAGE_TYPES:
        raise HTTPException(
            status_code=415,
            detail=f"Unsupported image type: {content_type or filename or 'unknown'}. Use JPEG, PNG or WebP.",
        )
    return "image/jpeg" if mime == "image/jpg" else mime


async def read_image_upload(image_file: UploadFile) -> UploadedImage:
    """Read a validated image upload, ensuring it is non-empty and not oversized."""
    mime_type = normalize_image_type(image_file.content_type, image_file.filename)
    try:
        data = await image_file.read()
    except Exception as exc:  # pylint: disable=broad-exception-caught
        raise HTTPException(status_code=400, detail="Unable to read uploaded image.") from exc
    if not data:
        raise HTTPException(status_code=400, detail="Uploaded image is empty.")
    if len(data) > MAX_IMAGE_BYTES:
        raise HTTPException(status_code=413, detail="Uploaded image exceeds the 10 MB limit.")
    return UploadedImage(data=data, mime_type=mime_type, filename=image_file.filename or "image")
