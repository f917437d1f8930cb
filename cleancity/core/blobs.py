"""
Image blob storage.

``BlobStore`` is the whole contract the rest of the app relies on: ``put``
streams bytes in and returns an id, ``get`` hands back a stream for that
id. ``LocalBlobStore`` keeps the bytes on disk and the metadata in the
``blobs`` table.
"""
import hashlib
import os
import re
import tempfile
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import AsyncIterator, Iterable, Iterator, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .config import settings
from .errors import InternalError, NotFound, PayloadTooLarge, UnsupportedMediaType, ValidationError
from .logger import RequestLog, db as db_logger
from ..models.blob import Blob

CHUNK_SIZE = 64 * 1024

_BLOB_ID = re.compile(r"^[0-9a-f]{32}$")


@dataclass
class StoredBlob:
    stream: Iterator[bytes]
    content_type: str
    size_bytes: int
    sha256_hex: str


def generate_blob_id() -> str:
    return uuid.uuid4().hex


def is_valid_blob_id(blob_id: str) -> bool:
    return bool(_BLOB_ID.match(blob_id or ""))


def normalize_content_type(content_type: Optional[str]) -> str:
    """Drop parameters such as charset and lower-case the media type"""
    return (content_type or "").split(";", 1)[0].strip().lower()


class BlobStore(ABC):
    @abstractmethod
    async def put(self, chunks: AsyncIterator[bytes], content_type: str) -> str:
        """Store a stream of bytes and return the new blob id"""

    @abstractmethod
    def get(self, blob_id: str) -> StoredBlob:
        """Open a stored blob for streaming"""


def _iter_file(path: Path, chunk_size: int = CHUNK_SIZE) -> Iterator[bytes]:
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(chunk_size), b""):
            yield chunk


class LocalBlobStore(BlobStore):
    def __init__(
        self,
        db: Session,
        root: Path,
        max_bytes: int = settings.max_upload_bytes,
        allowed_types: Iterable[str] = tuple(settings.allowed_image_types),
        log: Optional[RequestLog] = None,
    ):
        self.db = db
        self.root = Path(root)
        self.max_bytes = max_bytes
        self.allowed_types = {normalize_content_type(t) for t in allowed_types}
        self.log = (log or RequestLog.detached()).bind(db_logger)

    def _path(self, blob_id: str) -> Path:
        return self.root / f"{blob_id}.bin"

    def check_content_type(self, content_type: Optional[str]) -> str:
        content_type = normalize_content_type(content_type)
        if content_type not in self.allowed_types:
            raise UnsupportedMediaType("Only images are allowed (jpeg, jpg, png, gif, webp)")
        return content_type

    async def put(self, chunks: AsyncIterator[bytes], content_type: str) -> str:
        content_type = self.check_content_type(content_type)
        self.root.mkdir(parents=True, exist_ok=True)

        blob_id = generate_blob_id()
        final_path = self._path(blob_id)
        fd, tmp_name = tempfile.mkstemp(dir=self.root, prefix=".upload-", suffix=".part")
        tmp_path = Path(tmp_name)

        digest = hashlib.sha256()
        size = 0
        try:
            with os.fdopen(fd, "wb") as out:
                async for chunk in chunks:
                    size += len(chunk)
                    if size > self.max_bytes:
                        raise PayloadTooLarge(
                            f"File size exceeds maximum of {self.max_bytes} bytes"
                        )
                    digest.update(chunk)
                    out.write(chunk)
            if size == 0:
                raise ValidationError("No file uploaded")
            os.replace(tmp_path, final_path)
        except BaseException:
            # Includes cancellation: never leave a partial file behind
            tmp_path.unlink(missing_ok=True)
            raise

        blob = Blob(
            id=blob_id,
            content_type=content_type,
            size_bytes=size,
            sha256_hex=digest.hexdigest(),
        )
        try:
            self.db.add(blob)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            final_path.unlink(missing_ok=True)
            self.log.exception("Failed to record blob %s", blob_id)
            raise InternalError("Error uploading image")

        self.log.info("Stored blob %s (%s, %s bytes)", blob_id, content_type, size)
        return blob_id

    def get(self, blob_id: str) -> StoredBlob:
        blob = None
        if is_valid_blob_id(blob_id):
            blob = self.db.query(Blob).filter(Blob.id == blob_id).first()
        if blob is None:
            raise NotFound("Image not found")

        path = self._path(blob_id)
        if not path.exists():
            self.log.error("Blob %s has metadata but no bytes on disk", blob_id)
            raise NotFound("Image not found")

        return StoredBlob(
            stream=_iter_file(path),
            content_type=blob.content_type,
            size_bytes=blob.size_bytes,
            sha256_hex=blob.sha256_hex,
        )
