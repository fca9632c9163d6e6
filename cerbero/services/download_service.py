import logging
import mimetypes
import os

import aiofiles.os
from fastapi.responses import FileResponse

from cerbero.errors import NotFound
from cerbero.services.path_guard import PathGuard

logger = logging.getLogger(__name__)


class DownloadService:
    """Streams files back to clients.

    Downloads carry no password check: anyone who can see the listing can
    fetch what it links to.
    """

    def __init__(self, guard: PathGuard):
        self.guard = guard

    async def handle_download(self, requested_path: str) -> FileResponse:
        # Denied paths never reach the filesystem
        target = self.guard.resolve(requested_path)

        if not await aiofiles.os.path.isfile(target):
            raise NotFound(f"File {requested_path} not found")

        filename = os.path.basename(target)
        content_type, _ = mimetypes.guess_type(filename)
        logger.debug(f"Serving download: {target}")
        return FileResponse(
            target,
            media_type=content_type or "application/octet-stream",
            filename=filename,
        )
