"""Upload checks shared by the image analysis services."""

from dataclasses import dataclass

DEFAULT_MAX_IMAGE_BYTES = 5 * 1024 * 1024


class ImageValidationError(ValueError):
    """Rejected upload. The message is safe to show to the user."""


@dataclass
class ImageUpload:
    """An uploaded plant image."""

    data: bytes
    mime_type: str
    filename: str | None = None


def validate_image_upload(
    upload: ImageUpload | None,
    plant_name: str | None,
    max_bytes: int = DEFAULT_MAX_IMAGE_BYTES,
) -> str:
    """
    Check an upload before it is sent to the model.

    Returns:
        The stripped plant name

    Raises:
        ImageValidationError: no image, empty or oversized image, non-image
            MIME type, or missing plant name
    """
    if upload is None or not upload.data:
        raise ImageValidationError("No image file provided")
    if not (upload.mime_type or "").startswith("image/"):
        raise ImageValidationError(f"Unsupported file type: {upload.mime_type or 'unknown'}")
    if len(upload.data) > max_bytes:
        raise ImageValidationError(f"Image is too large (limit {max_bytes} bytes)")

    name = (plant_name or "").strip()
    if not name:
        raise ImageValidationError("Plant name is required")
    return name
