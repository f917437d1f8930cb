import asyncio
from pathlib import Path

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from ..db import get_db
from ..schemas.report import ImageUploadResponse
from ..api.auth import Capability, require_capability
from ..core.blobs import BlobStore, LocalBlobStore, is_valid_blob_id
from ..core.config import settings
from ..core.errors import PayloadTooLarge, UploadTimeout, ValidationError
from ..core.formdata import FormStream, is_multipart
from ..core.logger import RequestLog
from ..core.security import TokenClaims
from ..core.tracing import get_request_log

router = APIRouter()

IMAGE_FIELD = "image"
# Boundaries, part headers and small extra fields on top of the file itself
FORM_OVERHEAD_BYTES = 16 * 1024


def get_blob_store(
    db: Session = Depends(get_db),
    log: RequestLog = Depends(get_request_log),
) -> BlobStore:
    return LocalBlobStore(
        db,
        Path(settings.blob_storage_dir),
        max_bytes=settings.max_upload_bytes,
        allowed_types=settings.allowed_image_types,
        log=log,
    )


def _declared_length(request: Request) -> int:
    try:
        return int(request.headers.get("content-length", ""))
    except ValueError:
        return -1


async def receive_image(request: Request, store: BlobStore) -> str:
    """Stream the ``image`` part of a multipart body straight into the store"""
    form = FormStream(request.headers["content-type"], request.stream())
    part = await form.next_file(IMAGE_FIELD)
    if part is None:
        raise ValidationError("No file uploaded")
    return await store.put(form.iter_part(), part.content_type)


@router.post("", response_model=ImageUploadResponse, status_code=status.HTTP_201_CREATED)
async def upload_image(
    request: Request,
    claims: TokenClaims = Depends(require_capability(Capability.AUTHENTICATED)),
    store: BlobStore = Depends(get_blob_store),
    log: RequestLog = Depends(get_request_log),
):
    """Upload a single image (multipart field ``image``) and return its public URL"""
    # Nothing has read the body yet; the guards above have already run
    if not is_multipart(request.headers.get("content-type")):
        raise ValidationError("No file uploaded")

    if _declared_length(request) > settings.max_upload_bytes + FORM_OVERHEAD_BYTES:
        raise PayloadTooLarge(f"File size exceeds maximum of {settings.max_upload_bytes} bytes")

    try:
        blob_id = await asyncio.wait_for(
            receive_image(request, store),
            timeout=settings.upload_timeout_seconds,
        )
    except asyncio.TimeoutError:
        log.error("Upload timed out after %ss", settings.upload_timeout_seconds)
        raise UploadTimeout("Upload timed out")

    image_url = str(request.url_for("download_image", blob_id=blob_id))
    log.info("Image uploaded successfully: %s (user %s)", image_url, claims.user_id)
    return ImageUploadResponse(message="File uploaded successfully", image_url=image_url)


@router.get(
    "/{blob_id}",
    name="download_image",
    dependencies=[Depends(require_capability(Capability.PUBLIC))],
)
def download_image(blob_id: str, store: BlobStore = Depends(get_blob_store)):
    """Stream a stored image back to the client"""
    if not is_valid_blob_id(blob_id):
        raise ValidationError("Invalid image id")

    blob = store.get(blob_id)
    return StreamingResponse(
        blob.stream,
        media_type=blob.content_type,
        headers={
            "Content-Length": str(blob.size_bytes),
            "ETag": f'"{blob.sha256_hex}"',
            # Blobs never change once stored
            "Cache-Control": "public, max-age=31536000, immutable",
        },
    )
