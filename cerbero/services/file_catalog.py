import logging
import os
from datetime import datetime
from typing import List

from cerbero.errors import StorageError
from cerbero.models.file_entry import FileEntry, human_size

logger = logging.getLogger(__name__)


class FileCatalog:
    """Live listing of the regular files directly under the shared root.

    Nothing is cached: every call rescans the directory. Under concurrent
    uploads or deletes the result is a best-effort snapshot, not a consistent
    view.
    """

    def __init__(self, root_dir: str):
        self.root_dir = root_dir

    def list(self) -> List[FileEntry]:
        """Return the files sorted most recently modified first."""
        try:
            with os.scandir(self.root_dir) as it:
                dir_entries = list(it)
        except OSError as e:
            logger.error(f"Error reading shared directory {self.root_dir}: {e}")
            raise StorageError("Error reading the shared directory") from e

        files = []
        for entry in dir_entries:
            try:
                if not entry.is_file():
                    continue
                stat = entry.stat()
            except FileNotFoundError:
                # Removed between the scan and the stat
                continue
            files.append(FileEntry(
                name=entry.name,
                rel_path=entry.name,
                size=stat.st_size,
                modified_at=datetime.fromtimestamp(stat.st_mtime),
                human_size=human_size(stat.st_size),
            ))

        # sorted() is stable, so equal mtimes keep their scan order
        return sorted(files, key=lambda f: f.modified_at, reverse=True)
