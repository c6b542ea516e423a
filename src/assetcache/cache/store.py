"""
Storage of single cache entries.

Server-delegated mode stores two files per entry:
- <name>       a small container rendered from the template, announcing the MIME type
- <name>.none  the raw payload

Self-managed mode stores the payload itself at <name>, plus an optional
<name>.gz precompressed with gzip level 9.

Writes go to a temporary file that is renamed over the target while holding
an exclusive lock on the zone directory, so concurrent writers of the same
key never interleave and readers never observe a partial file.
"""

from __future__ import annotations

import gzip
import os
import tempfile
from contextlib import contextmanager, suppress
from importlib.resources import files
from pathlib import Path
from typing import Generator

try:
    import fcntl
except ImportError:  # pragma: no cover - non-POSIX platforms
    fcntl = None  # type: ignore[assignment]

from assetcache.config import Settings
from assetcache.exceptions import CacheWriteError, TemplateError
from assetcache.logging import get_logger
from assetcache.types import GZIP_SUFFIX, RAW_SUFFIX, GzipMode

logger = get_logger(__name__)

CONTENT_PLACEHOLDER = "%%CONTENT%%"
EARLY_EXIT_MARKER = "exit;"
TEMPLATE_NAME = "default.php"
GZIP_LEVEL = 9


@contextmanager
def _exclusive_lock(directory: Path) -> Generator[None, None, None]:
    """Hold an exclusive advisory lock on a directory."""
    if fcntl is None:
        yield
        return

    fd = os.open(directory, os.O_RDONLY)
    try:
        fcntl.flock(fd, fcntl.LOCK_EX)
        yield
    finally:
        # Closing the descriptor releases the lock
        os.close(fd)


def locked_write(path: Path, data: bytes) -> None:
    """Replace path with data under an exclusive lock.

    The temporary file carries the target name so an orphan left by a crash
    is still picked up by a full purge. A purge that removes the temporary
    file mid-write wipes the write with it: the call returns without
    creating path.

    Raises:
        OSError: If the file cannot be written.
    """
    directory = path.parent
    with _exclusive_lock(directory):
        tmp_fd, tmp_path = tempfile.mkstemp(
            prefix=f".{path.name}.", suffix=".tmp", dir=directory
        )
        try:
            with os.fdopen(tmp_fd, "wb") as f:
                f.write(data)
            os.chmod(tmp_path, 0o644)
            os.replace(tmp_path, path)
        except FileNotFoundError:
            if not os.path.exists(tmp_path) and directory.is_dir():
                logger.debug("Write wiped by concurrent purge", path=str(path))
                return
            with suppress(OSError):
                os.unlink(tmp_path)
            raise
        except BaseException:
            with suppress(OSError):
                os.unlink(tmp_path)
            raise


class EntryStore:
    """Reads and writes cache entries under the cache root."""

    def __init__(self, settings: Settings) -> None:
        """Initialize entry store.

        Args:
            settings: Cache settings; CACHE_DIR must be set.
        """
        if settings.CACHE_DIR is None:
            raise ValueError("EntryStore requires CACHE_DIR to be configured")
        self.settings = settings
        self.root: Path = settings.CACHE_DIR
        self._template: str | None = None

    def path_for(self, filename: str) -> Path:
        return self.root / filename

    def exists(self, filename: str) -> bool:
        """Check whether the entry's primary file exists."""
        return self.path_for(filename).exists()

    def retrieve(self, filename: str, mode: GzipMode) -> bytes | None:
        """Read an entry's payload.

        Returns:
            The payload bytes, or None when the entry is not cached.
        """
        path = self.path_for(filename)
        if mode is GzipMode.SERVER_DELEGATED:
            path = path.with_name(path.name + RAW_SUFFIX)

        try:
            return path.read_bytes()
        except FileNotFoundError:
            return None

    def write(
        self,
        filename: str,
        payload: bytes | str,
        mime_type: str,
        mode: GzipMode,
        create_gzip_sibling: bool = False,
    ) -> None:
        """Store an entry.

        Args:
            filename: File name from PathPolicy.
            payload: Asset content; str is encoded as UTF-8.
            mime_type: MIME type announced by the container (server-delegated).
            mode: Active gzip mode.
            create_gzip_sibling: Also write a .gz file (self-managed only).

        Raises:
            CacheWriteError: If the primary file or raw payload cannot be written.
        """
        data = payload.encode("utf-8") if isinstance(payload, str) else payload
        path = self.path_for(filename)

        if mode is GzipMode.SERVER_DELEGATED:
            container = self.render_container(mime_type).encode("utf-8")
            self._write_primary(path, container)
            self._write_primary(path.with_name(path.name + RAW_SUFFIX), data)
        else:
            self._write_primary(path, data)
            if create_gzip_sibling:
                gz_path = path.with_name(path.name + GZIP_SUFFIX)
                try:
                    locked_write(gz_path, gzip.compress(data, compresslevel=GZIP_LEVEL))
                except OSError as e:
                    logger.debug("Skipped gzip sibling", path=str(gz_path), error=str(e))

        logger.debug("Cached entry", filename=filename, size=len(data), mode=mode.value)

    def render_container(self, mime_type: str) -> str:
        """Render the container for a MIME type."""
        template = self._load_template()
        return template.replace(CONTENT_PLACEHOLDER, mime_type).replace(
            EARLY_EXIT_MARKER, ""
        )

    def _load_template(self) -> str:
        if self._template is not None:
            return self._template

        if self.settings.PLUGIN_DIR is not None:
            path = self.settings.PLUGIN_DIR / "config" / TEMPLATE_NAME
            try:
                self._template = path.read_text(encoding="utf-8")
            except OSError as e:
                raise TemplateError(
                    "Could not read container template", context={"path": str(path)}
                ) from e
        else:
            bundled = files("assetcache") / "templates" / TEMPLATE_NAME
            self._template = bundled.read_text(encoding="utf-8")
        return self._template

    @staticmethod
    def _write_primary(path: Path, data: bytes) -> None:
        try:
            locked_write(path, data)
        except OSError as e:
            raise CacheWriteError(
                "Failed to write cache file", context={"path": str(path), "error": str(e)}
            ) from e
