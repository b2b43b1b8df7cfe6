# royaltymeds/core/cdn.py
import logging

import cloudinary
import cloudinary.uploader

from royaltymeds.core.config import settings

logger = logging.getLogger(__name__)

_configured = False

def _ensure_configured() -> None:
    global _configured
    if _configured:
        return
    cloudinary.config(
        cloud_name=settings.CLOUDINARY_CLOUD_NAME,
        api_key=settings.CLOUDINARY_API_KEY,
        api_secret=settings.CLOUDINARY_API_SECRET,
        secure=True,
    )
    _configured = True

def upload_document(file_bytes: bytes, folder: str, filename: str | None = None) -> tuple[str, str]:
    """
    Stores a prescription scan, fill proof or payment receipt and returns
    (secure_url, public_id). PDFs are delivered by Cloudinary as the image
    resource type, so "auto" covers every accepted upload.
    """
    _ensure_configured()
    res = cloudinary.uploader.upload(
        file_bytes,
        folder=folder,
        resource_type="auto",
        unique_filename=True,
        use_filename=bool(filename),
        filename_override=filename,
        tags=["royaltymeds", folder.rsplit("/", 1)[-1]],
    )
    logger.info("Uploaded %s (%s bytes) to %s", res["public_id"], len(file_bytes), folder)
    return res["secure_url"], res["public_id"]

def destroy(public_id: str | None) -> None:
    if not public_id:
        return
    _ensure_configured()
    res = cloudinary.uploader.destroy(public_id, resource_type="image", invalidate=True)
    if res.get("result") != "ok":
        logger.warning("Cloudinary could not remove %s: %s", public_id, res.get("result"))
