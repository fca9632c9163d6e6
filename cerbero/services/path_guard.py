import logging
import os
import posixpath
from typing import Iterable

from cerbero.errors import PathDenied

logger = logging.getLogger(__name__)


class PathGuard:
    """Maps client-supplied relative paths onto the shared root.

    Resolution is purely lexical: nothing on disk is consulted, so a symlink
    placed inside the root by an operator is followed by whoever opens the
    returned path.
    """

    def __init__(self, root_dir: str, reserved: Iterable[str] = ()):
        self.root = os.path.abspath(root_dir)
        # Top-level names kept for the server itself, never handed to clients
        self.reserved = frozenset(reserved)
        self._prefix = self.root if self.root.endswith(os.sep) else self.root + os.sep

    def resolve(self, requested_path: str) -> str:
        """Return the absolute path for ``requested_path`` or raise PathDenied.

        The result is always a strict descendant of the root; the root itself
        is never returned.
        """
        if "\x00" in requested_path:
            raise PathDenied()

        relative = requested_path.replace("\\", "/")

        # Climbing out of the starting point is refused outright, even though
        # anchoring below would pin the result inside the root anyway.
        unanchored = posixpath.normpath(relative) if relative else ""
        if unanchored == ".." or unanchored.startswith("../"):
            logger.warning(f"Path traversal attempt rejected: {requested_path!r}")
            raise PathDenied()

        # Clean against an enforced anchor before joining, never after
        cleaned = posixpath.normpath("/" + relative).lstrip("/")
        target = os.path.normpath(os.path.join(self.root, *cleaned.split("/")))

        if cleaned.split("/", 1)[0] in self.reserved:
            logger.warning(f"Reserved path rejected: {requested_path!r}")
            raise PathDenied()

        if not target.startswith(self._prefix) or target == self.root:
            logger.warning(f"Path outside shared directory rejected: {requested_path!r}")
            raise PathDenied()
        return target
