from secrets import compare_digest


class AccessGate:
    """Single shared-secret check guarding uploads and deletes."""

    def __init__(self, password: str = ""):
        self._password = password.encode("utf-8")

    @property
    def enabled(self) -> bool:
        return bool(self._password)

    def verify(self, supplied_secret: str) -> bool:
        # Open mode: no password configured, everything passes
        if not self.enabled:
            return True
        return compare_digest((supplied_secret or "").encode("utf-8"), self._password)
