"""
Ephemeral on-disk storage for uploads and generated outputs.

Every file lives in one of two namespaces (``upload`` and ``output``), each
mapped to its own directory and URL prefix. Nothing here is permanent: files
are removed explicitly after a batch or by the periodic age-based sweep.
"""

import logging
import os
import secrets
import shutil
import tempfile
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable

from tools.errors import StorageError

logger = logging.getLogger(__name__)

UPLOAD = "upload"
OUTPUT = "output"

RESERVED_NAMES = {".gitkeep"}
PARTIAL_PREFIX = ".partial-"


@dataclass(frozen=True)
class StoredFile:
    kind: str
    name: str
    path: Path
    created_at: float


class EphemeralStore:
    def __init__(self, upload_dir, output_dir):
        self._dirs: Dict[str, Path] = {
            UPLOAD: Path(upload_dir),
            OUTPUT: Path(output_dir),
        }
        self._url_prefixes = {UPLOAD: "/uploads", OUTPUT: "/outputs"}
        for path in self._dirs.values():
            path.mkdir(parents=True, exist_ok=True)

    @property
    def upload_dir(self) -> Path:
        return self._dirs[UPLOAD]

    @property
    def output_dir(self) -> Path:
        return self._dirs[OUTPUT]

    def _dir_for(self, kind: str) -> Path:
        try:
            return self._dirs[kind]
        except KeyError:
            raise StorageError(f"Unknown storage kind: {kind!r}") from None

    def put(self, kind: str, data: bytes, suffix: str = "", prefix: str = "") -> StoredFile:
        """
        Write ``data`` under a fresh, collision-resistant name.

        The name combines the current time in milliseconds with a random hex
        token. Bytes go to a hidden temp file first and are renamed into place,
        so a reader never sees a half-written file under its final name.
        """
        directory = self._dir_for(kind)
        created_at = time.time()
        name = f"{prefix}{int(created_at * 1000)}-{secrets.token_hex(4)}{suffix}"
        path = directory / name

        tmp_path = None
        try:
            fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=PARTIAL_PREFIX)
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            os.replace(tmp_path, path)
        except OSError as e:
            if tmp_path is not None:
                Path(tmp_path).unlink(missing_ok=True)
            raise StorageError(f"Could not write {name}: {e}") from e

        return StoredFile(kind=kind, name=name, path=path, created_at=created_at)

    def url_for(self, stored: StoredFile) -> str:
        self._dir_for(stored.kind)
        return f"{self._url_prefixes[stored.kind]}/{stored.name}"

    def path_for(self, kind: str, name: str) -> Path:
        # Path(name).name strips any directory components
        safe_name = Path(name).name
        if not safe_name or safe_name in RESERVED_NAMES:
            raise StorageError(f"Invalid file name: {name!r}")
        return self._dir_for(kind) / safe_name

    def read(self, stored: StoredFile) -> bytes:
        try:
            return self.path_for(stored.kind, stored.name).read_bytes()
        except OSError as e:
            raise StorageError(f"Could not read {stored.name}: {e}") from e

    def remove(self, stored: StoredFile) -> None:
        """Delete now. Never raises: a missing file is fine, other errors are logged."""
        try:
            stored.path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning("Cleanup error for %s: %s", stored.path, e)

    def remove_later(self, files: Iterable[StoredFile], delay: float) -> None:
        """Best-effort delayed cleanup, run after the response has been sent."""
        if delay > 0:
            time.sleep(delay)
        for stored in files:
            self.remove(stored)

    def sweep(self, max_age: float) -> int:
        """Remove entries older than ``max_age`` seconds from every namespace."""
        now = time.time()
        removed = 0
        for directory in self._dirs.values():
            try:
                entries = list(directory.iterdir())
            except OSError as e:
                logger.error("Cleanup error in %s: %s", directory, e)
                continue

            for entry in entries:
                if entry.name in RESERVED_NAMES:
                    continue
                try:
                    age = now - entry.stat().st_mtime
                    if age <= max_age:
                        continue
                    if entry.is_dir() and not entry.is_symlink():
                        shutil.rmtree(entry)
                    else:
                        entry.unlink()
                except FileNotFoundError:
                    # removed concurrently by remove() or another sweep
                    continue
                except OSError as e:
                    logger.error("Cleanup error for %s: %s", entry, e)
                    continue
                removed += 1
                logger.info("Cleaned up: %s", entry)
        return removed
