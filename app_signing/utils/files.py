"""Local file access for operator-supplied credential files and keystore backups."""

import base64
from pathlib import Path

import structlog

log = structlog.get_logger(__name__)


class LocalFileSystem:
    """Thin wrapper over the local file system.

    Kept behind a class so tests and callers can substitute an in-memory
    implementation.
    """

    def __init__(self, base_dir: Path | None = None) -> None:
        self.base_dir = base_dir

    def clean_path(self, raw_path: str) -> Path:
        """Expand ``~`` and make ``raw_path`` absolute."""
        path = Path(raw_path.strip()).expanduser()
        if not path.is_absolute():
            path = (self.base_dir or Path.cwd()) / path
        return path.resolve()

    def file_exists(self, path: str | Path) -> bool:
        """True when ``path`` exists and is a regular file."""
        return Path(path).is_file()

    def read_local_file(self, path: str | Path) -> bytes:
        """Read the raw contents of ``path``."""
        data = Path(path).read_bytes()
        log.debug("local_file_read", path=str(path), size=len(data))
        return data

    def read_base64(self, path: str | Path) -> str:
        """Read ``path`` and return its contents base64-encoded."""
        return base64.b64encode(self.read_local_file(path)).decode("ascii")

    def write_base64(self, path: str | Path, encoded: str) -> None:
        """Decode ``encoded`` and write it to ``path``."""
        data = base64.b64decode(encoded)
        Path(path).write_bytes(data)
        log.debug("local_file_written", path=str(path), size=len(data))
