"""
Presigned upload endpoint.

Clients upload images straight to the object store; the service only hands
out a short-lived PUT URL and the public URL the image will have.
"""
from typing import Optional
import logging

from fastapi import APIRouter, Depends, status

from storefront_cms.auth import require_admin
from storefront_cms.errors import APIError, StorageNotConfigured, issue
from storefront_cms.deps import get_object_store
from storefront_cms.object_store import ALLOWED_CONTENT_TYPES, ObjectStoreClient, build_object_key
from storefront_cms.schemas import PresignRequest, PresignResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/uploads", tags=["uploads"], dependencies=[Depends(require_admin)])


@router.post("/presign", response_model=PresignResponse)
async def presign_upload(
    payload: PresignRequest,
    store: Optional[ObjectStoreClient] = Depends(get_object_store)
):
    """
    Issue an upload URL for one image.

    Raises:
        APIError: 415 if the content type is not an allowed image type
        StorageNotConfigured: If object-store settings are missing
    """
    if payload.content_type not in ALLOWED_CONTENT_TYPES:
        raise APIError(
            status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
            "UNSUPPORTED_MEDIA_TYPE",
            f"contentType must be one of: {', '.join(ALLOWED_CONTENT_TYPES)}",
            [issue("contentType", "Unsupported content type")],
        )
    if store is None:
        raise StorageNotConfigured("Object storage is not configured")

    key = build_object_key(payload.section, payload.filename)
    try:
        upload_url = store.presign_upload(key, payload.content_type)
    except Exception as e:
        logger.error(f"uploads:presign:fail key={key}: {e}", exc_info=True)
        raise APIError(status.HTTP_500_INTERNAL_SERVER_ERROR, "INTERNAL_ERROR", "Failed to presign upload") from e

    logger.info(f"uploads:presign:ok key={key}")
    return PresignResponse(
        uploadUrl=upload_url,
        publicUrl=store.public_url(key),
        key=key,
        expiresIn=store.config.presign_expires_seconds,
    )
