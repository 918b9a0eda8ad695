"""Project root detection."""

from functools import lru_cache
from pathlib import Path

from repty.logging import get_logger

logger = get_logger("project")

PROJECT_MARKERS = (".git", "package.json")


@lru_cache(maxsize=1024)
def find_project_root(directory: str | Path) -> str | None:
    """Find the nearest ancestor directory holding a project marker.

    The directory itself is checked first. The filesystem root is never
    treated as a project root.

    Args:
        directory: Directory to start from

    Returns:
        Absolute path of the project root, or None if none was found
    """
    current = Path(directory).expanduser().resolve()
    while current != current.parent:
        if any((current / marker).exists() for marker in PROJECT_MARKERS):
            logger.debug("Found project root: directory=%s root=%s", directory, current)
            return str(current)
        current = current.parent
    return None
