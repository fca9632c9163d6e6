import logging
import os

from cerbero.errors import Forbidden, Unauthorized
from cerbero.services.access_gate import AccessGate
from cerbero.services.path_guard import PathGuard
from cerbero.services.storage_manager import StorageManager

logger = logging.getLogger(__name__)


class DeleteService:
    def __init__(self, enabled: bool, gate: AccessGate, guard: PathGuard, storage: StorageManager):
        self.enabled = enabled
        self.gate = gate
        self.guard = guard
        self.storage = storage

    async def handle_delete(self, requested_path: str, supplied_secret: str) -> str:
        """Remove a file for good and return its resolved path.

        Raises Forbidden when deleting is switched off or the path escapes the
        root, Unauthorized on a wrong password and StorageError when the
        removal itself fails (a missing file included).
        """
        if not self.enabled:
            raise Forbidden("Deleting is disabled")
        if not self.gate.verify(supplied_secret):
            raise Unauthorized("Wrong password")

        target = self.guard.resolve(requested_path)
        await self.storage.remove(target)
        logger.info(f"[DELETE] {os.path.basename(target)} deleted")
        return target
