"""
Avatar upload validation

Pipeline, each stage able to abort the rest:
1. extension allow-list, checked before any bytes are copied
2. size limit enforced while streaming into a staging file
3. magic-byte sniffing of the staged content against an image allow-list
4. server-generated filename, independent of the client's
5. staged file removed on every exit path
6. promotion into the upload directory with an atomic rename
"""

import logging
import os
import secrets
import tempfile
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Optional, Protocol

import anyio

from src.libs.clock import Clock, system_clock
from src.libs.result import Error, Result, Return

logger = logging.getLogger(__name__)

DEFAULT_MAX_BYTES = 5 * 1024 * 1024
CHUNK_SIZE_BYTES = 64 * 1024
STAGING_DIRNAME = ".staging"

ALLOWED_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif", ".webp"}

# Allowed image types with their magic bytes
IMAGE_SIGNATURES = {
    "image/jpeg": [b"\xff\xd8\xff"],
    "image/png": [b"\x89PNG\r\n\x1a\n"],
    "image/gif": [b"GIF87a", b"GIF89a"],
    # RIFF....WEBP, the WEBP marker sits at offset 8
    "image/webp": [b"RIFF"],
}

EXTENSION_FOR_TYPE = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
    "image/webp": ".webp",
}

SNIFF_BYTES = 16


class AsyncReadable(Protocol):
    async def read(self, size: int = -1) -> bytes: ...


@dataclass(frozen=True)
class UploadedAsset:
    owner_id: str
    filename: str
    content_type: str
    size: int
    path: str
    url: str


def detect_image_type(head: bytes) -> Optional[str]:
    """Return the MIME type matching the leading bytes, or None"""
    for mime_type, signatures in IMAGE_SIGNATURES.items():
        for sig in signatures:
            if head.startswith(sig):
                if mime_type == "image/webp":
                    if len(head) >= 12 and head[8:12] == b"WEBP":
                        return mime_type
                else:
                    return mime_type
    return None


class UploadValidator:
    def __init__(
        self,
        upload_dir: str,
        url_prefix: str = "/uploads",
        max_bytes: int = DEFAULT_MAX_BYTES,
        clock: Clock = system_clock,
        workers: int = 2,
    ):
        self.upload_dir = os.path.abspath(upload_dir)
        self.staging_dir = os.path.join(self.upload_dir, STAGING_DIRNAME)
        self.url_prefix = url_prefix.rstrip("/")
        self.max_bytes = max_bytes
        self._clock = clock
        self._workers = max(1, workers)
        self._limiter: Optional[anyio.CapacityLimiter] = None
        os.makedirs(self.staging_dir, exist_ok=True)

    def check_extension(self, filename: Optional[str]) -> Result[str]:
        ext = os.path.splitext(filename or "")[1].lower()
        if ext not in ALLOWED_EXTENSIONS:
            return Return.err(
                Error(
                    "UNSUPPORTED_FILE_TYPE",
                    "Only image files are allowed (jpg, jpeg, png, gif, webp)",
                )
            )
        return Return.ok(ext)

    def generate_filename(self, owner_id: str, content_type: str) -> str:
        timestamp_ms = int(self._clock() * 1000)
        return f"{owner_id}-{timestamp_ms}-{secrets.token_hex(16)}{EXTENSION_FOR_TYPE[content_type]}"

    @asynccontextmanager
    async def staged_file(self) -> AsyncIterator[str]:
        """Reserve a staging path that is guaranteed to be gone on exit"""
        fd, path = tempfile.mkstemp(dir=self.staging_dir, suffix=".part")
        os.close(fd)
        try:
            yield path
        finally:
            # Promotion renames the file away; anything still here is rejected or partial
            if os.path.exists(path):
                os.remove(path)

    async def _copy_limited(self, source: AsyncReadable, path: str) -> Result[int]:
        total = 0
        async with await anyio.open_file(path, "wb") as out:
            while True:
                chunk = await source.read(CHUNK_SIZE_BYTES)
                if not chunk:
                    break
                total += len(chunk)
                if total > self.max_bytes:
                    return Return.err(
                        Error(
                            "FILE_TOO_LARGE",
                            f"File too large. Maximum size: {self.max_bytes // (1024 * 1024)}MB",
                        )
                    )
                await out.write(chunk)
        if total == 0:
            return Return.err(Error("EMPTY_FILE", "Empty file uploaded"))
        return Return.ok(total)

    def sniff(self, path: str) -> Optional[str]:
        with open(path, "rb") as staged:
            head = staged.read(SNIFF_BYTES)
        return detect_image_type(head)

    async def accept(
        self, owner_id: str, filename: Optional[str], source: AsyncReadable
    ) -> Result[UploadedAsset]:
        """
        Run the full pipeline and promote the file into the upload directory.

        Returns:
            Result with the stored UploadedAsset, or Error with code
            UNSUPPORTED_FILE_TYPE, FILE_TOO_LARGE, EMPTY_FILE or
            INVALID_FILE_CONTENT. No file remains on disk after an error.
        """
        ext_result = self.check_extension(filename)
        if ext_result.is_err():
            return Return.err(ext_result.error)

        async with self.staged_file() as staged_path:
            copy_result = await self._copy_limited(source, staged_path)
            if copy_result.is_err():
                return Return.err(copy_result.error)

            if self._limiter is None:
                self._limiter = anyio.CapacityLimiter(self._workers)
            content_type = await anyio.to_thread.run_sync(
                self.sniff, staged_path, limiter=self._limiter
            )
            if content_type is None:
                # Log detected type server-side only; the client gets a generic reason
                logger.warning(
                    f"Upload content validation failed for owner={owner_id} "
                    f"declared_ext={ext_result.value}"
                )
                return Return.err(
                    Error(
                        "INVALID_FILE_CONTENT",
                        "File does not appear to be a valid image",
                    )
                )

            final_name = self.generate_filename(owner_id, content_type)
            final_path = os.path.join(self.upload_dir, final_name)
            os.replace(staged_path, final_path)

        return Return.ok(
            UploadedAsset(
                owner_id=owner_id,
                filename=final_name,
                content_type=content_type,
                size=copy_result.value,
                path=final_path,
                url=f"{self.url_prefix}/{final_name}",
            )
        )

    def discard(self, asset: UploadedAsset) -> None:
        if os.path.exists(asset.path):
            os.remove(asset.path)

    def delete_by_url(self, url: Optional[str]) -> bool:
        """Delete a previously stored asset given its public url"""
        if not url or not url.startswith(f"{self.url_prefix}/"):
            return False
        name = url[len(self.url_prefix) + 1:]
        if not name or os.path.basename(name) != name or name.startswith("."):
            return False
        path = os.path.join(self.upload_dir, name)
        if not os.path.isfile(path):
            return False
        os.remove(path)
        logger.info(f"Deleted replaced asset {name}")
        return True


def sweep_orphaned_uploads(staging_dir: str, max_age_seconds: float, now: float) -> int:
    """Remove staging files older than ``max_age_seconds``; returns the count"""
    removed = 0
    if not os.path.isdir(staging_dir):
        return removed
    with os.scandir(staging_dir) as entries:
        for entry in entries:
            if not entry.is_file():
                continue
            if now - entry.stat().st_mtime < max_age_seconds:
                continue
            try:
                os.remove(entry.path)
                removed += 1
            except FileNotFoundError:
                # Released by its request between scandir and remove
                continue
    if removed:
        logger.info(f"Swept {removed} orphaned upload(s) from {staging_dir}")
    return removed
