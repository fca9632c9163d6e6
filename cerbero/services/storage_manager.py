import logging
import uuid
from pathlib import Path

import aiofiles
import aiofiles.os

from cerbero import config
from cerbero.errors import StorageError

logger = logging.getLogger(__name__)


class StorageManager:
    """Owns every write and removal inside the shared root."""

    def __init__(self, root_dir: str):
        self.root_dir = Path(root_dir)
        # In-flight uploads live in a subdirectory of the root: same filesystem
        # as the destination, out of the flat listing, unreachable by upload names
        self.temp_dir = self.root_dir / config.TEMP_DIR_NAME

    async def initialize(self):
        """Create the root and temp directories, cleaning partial uploads left by a crash."""
        logger.info("Initializing storage manager...")

        # Failing here is fatal: the lifespan hook propagates it and the server never starts
        self.root_dir.mkdir(exist_ok=True, parents=True)
        self.temp_dir.mkdir(exist_ok=True)
        logger.debug(f"Storage directories created/verified: {self.root_dir}, {self.temp_dir}")

        files_removed = 0
        for file in self.temp_dir.glob("*"):
            if file.is_file():
                await aiofiles.os.unlink(file)
                files_removed += 1
        logger.info(f"Cleaned temporary directory, removed {files_removed} files")

    def partial_path(self) -> str:
        return str(self.temp_dir / f"{uuid.uuid4().hex}.part")

    async def save_stream(self, source, destination: str, chunk_size: int) -> int:
        """Copy ``source`` (an async ``read(n)`` object) to ``destination``.

        Data goes to a partial file first and is moved over the destination
        only once fully written, replacing any existing file. On failure the
        partial is removed and the destination is left untouched.
        """
        partial_path = self.partial_path()
        content_size = 0
        try:
            async with aiofiles.open(partial_path, 'wb') as f:
                while chunk := await source.read(chunk_size):
                    content_size += len(chunk)
                    await f.write(chunk)
            await aiofiles.os.replace(partial_path, destination)
        except OSError as e:
            logger.error(f"Error writing {destination}: {str(e)}", exc_info=True)
            await self.discard(partial_path)
            raise StorageError("Error while saving the file") from e
        except BaseException:
            # Cancelled mid-copy (client went away): never leave the partial behind
            await self.discard(partial_path)
            raise

        logger.debug(f"Stored {content_size} bytes at {destination}")
        return content_size

    async def discard(self, partial_path: str) -> None:
        try:
            if await aiofiles.os.path.exists(partial_path):
                await aiofiles.os.unlink(partial_path)
        except OSError as e:
            logger.warning(f"Could not remove partial upload {partial_path}: {e}")

    async def remove(self, target: str) -> None:
        """Delete a file immediately. Missing files count as a failure."""
        try:
            await aiofiles.os.remove(target)
        except OSError as e:
            logger.warning(f"Error deleting {target}: {e}")
            raise StorageError("Error while deleting the file") from e
