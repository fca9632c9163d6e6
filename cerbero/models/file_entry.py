from datetime import datetime

from pydantic import BaseModel, ConfigDict

SIZE_UNITS = ("B", "KB", "MB", "GB", "TB")


def human_size(num: int) -> str:
    """Format a byte count as e.g. ``1.50 KB`` (two decimals, 1024 steps, capped at TB)."""
    value, unit = float(num), 0
    while value >= 1024 and unit < len(SIZE_UNITS) - 1:
        value /= 1024
        unit += 1
    return f"{value:.2f} {SIZE_UNITS[unit]}"


class FileEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    rel_path: str
    size: int
    modified_at: datetime
    human_size: str
