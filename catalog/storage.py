"""
Local-disk storage for uploaded assets.
Files are written under a type-scoped directory of the upload root and
referenced from documents by their forward-slash relative path.
"""

import inspect
import uuid
from pathlib import Path, PurePosixPath
from typing import Any, Optional, Union

import aiofiles
import aiofiles.os
import structlog

from .errors import StorageError

logger = structlog.get_logger(__name__)

DEFAULT_UPLOAD_NAME = "upload.png"
CHUNK_SIZE = 64 * 1024

AUTHOR_IMAGES = "image/authors"
CATEGORY_IMAGES = "image/categories"
SUBCATEGORY_IMAGES = "image/subcategories"
USER_IMAGES = "image/users"


def unique_filename(original_name: Optional[str]) -> str:
    """
    Build a collision-free file name that keeps the client's name readable.

    Only the final path component of the client-supplied name is used.
    """
    base_name = PurePosixPath((original_name or "").replace("\\", "/")).name
    return f"{uuid.uuid4()}-{base_name or DEFAULT_UPLOAD_NAME}"


async def read_chunk(stream: Any, size: int = CHUNK_SIZE) -> bytes:
    """Read from either an async (UploadFile) or a plain binary stream."""
    chunk = stream.read(size)
    if inspect.isawaitable(chunk):
        chunk = await chunk
    return chunk


class UploadSink:
    """Streams uploaded files to disk below a fixed root directory."""

    def __init__(self, upload_root: Union[str, Path]):
        self.upload_root = Path(upload_root)

    def resolve(self, relative_path: str) -> Path:
        return self.upload_root / relative_path

    async def store(self, stream: Any, subdir: str, filename: str) -> str:
        """
        Write a stream to ``<upload_root>/<subdir>/<filename>``.

        Args:
            stream: Readable binary stream (sync or async ``read``)
            subdir: Type-scoped directory, e.g. ``image/categories``
            filename: Target name, expected to carry a uniqueness prefix

        Returns:
            Path relative to the upload root, with forward slashes

        Raises:
            StorageError: The stream or the disk failed mid-write. A partial
                file may remain on disk.
        """
        relative_path = PurePosixPath(subdir, filename)
        full_path = self.upload_root.joinpath(*relative_path.parts)

        try:
            await aiofiles.os.makedirs(full_path.parent, exist_ok=True)

            written = 0
            async with aiofiles.open(full_path, "wb") as out:
                while True:
                    chunk = await read_chunk(stream)
                    if not chunk:
                        break
                    await out.write(chunk)
                    written += len(chunk)

        except Exception as e:
            logger.error("Failed to save file", path=str(full_path), error=str(e))
            raise StorageError(f"Error saving file: {e}") from e

        logger.info("Stored upload", path=relative_path.as_posix(), bytes=written)
        return relative_path.as_posix()

    async def exists(self, relative_path: str) -> bool:
        return await aiofiles.os.path.exists(self.resolve(relative_path))
