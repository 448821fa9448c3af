# File: entigen/storage.py
"""
EntiGen - Entity Store
=======================
File-system persistence for entity and repository classes.

- ``read`` / ``write`` / ``exists`` / ``path_for`` address entities by
  short name or FQCN (``Post`` and ``App\\Entity\\Post`` are the same file).
- ``write`` goes through ``utils.write_file`` (temp file + ``os.replace``).
- ``lock`` is an advisory lock file created with ``O_CREAT | O_EXCL``; a
  second holder gets ``ConcurrentModificationError`` instead of racing.
- ``dry_run`` turns every write (and lock file) into a logged no-op.
"""

from __future__ import annotations

import contextlib
import errno
import logging
import os
from pathlib import Path
from typing import Iterator, List, Optional

from entigen.errors import ConcurrentModificationError
from entigen.models import GenerationConfig
from entigen.utils import ensure_directory, read_file, short_class_name, write_file

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("entigen.storage")

LOCK_SUFFIX: str = ".lock"


class EntityStore:
    """Reads, writes, lists and locks entity files under ``entity_dir``."""

    def __init__(self, config: GenerationConfig) -> None:
        self.config: GenerationConfig = config
        self.written: List[Path] = []

    # -----------------------------------------------------------------
    # Paths
    # -----------------------------------------------------------------

    def path_for(self, entity: str) -> Path:
        return self.config.entity_dir / f"{short_class_name(entity)}.php"

    def repository_path_for(self, entity: str) -> Path:
        return self.config.repository_dir / f"{short_class_name(entity)}Repository.php"

    # -----------------------------------------------------------------
    # Entity files
    # -----------------------------------------------------------------

    def exists(self, entity: str) -> bool:
        return self.path_for(entity).is_file()

    def read(self, entity: str) -> Optional[str]:
        """Source text of *entity*, or ``None`` when it does not exist."""
        return read_file(self.path_for(entity))

    def write(self, entity: str, content: str) -> Path:
        return self._write(self.path_for(entity), content)

    def list_entities(self) -> List[str]:
        """Short names of every ``*.php`` file in the entity directory."""
        directory: Path = self.config.entity_dir
        if not directory.is_dir():
            return []
        return sorted(
            p.stem for p in directory.glob("*.php")
            if p.is_file() and not p.name.startswith(".")
        )

    # -----------------------------------------------------------------
    # Repository stubs
    # -----------------------------------------------------------------

    def write_repository_stub(self, entity: str, content: str) -> Optional[Path]:
        """Create the repository file unless one already exists."""
        path: Path = self.repository_path_for(entity)
        if path.exists():
            logger.info("Repository already exists: %s", path)
            return None
        return self._write(path, content)

    # -----------------------------------------------------------------
    # Locking
    # -----------------------------------------------------------------

    def lock_path_for(self, entity: str) -> Path:
        path: Path = self.path_for(entity)
        return path.with_name(path.name + LOCK_SUFFIX)

    @contextlib.contextmanager
    def lock(self, entity: str) -> Iterator[None]:
        """
        Hold the advisory lock of *entity* for the duration of the block.

        Raises:
            ConcurrentModificationError: the lock file already exists.
        """
        if not self.config.lock_files or self.config.dry_run:
            yield
            return

        lock_path: Path = self.lock_path_for(entity)
        ensure_directory(lock_path.parent)
        try:
            fd: int = os.open(str(lock_path), os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
        except OSError as exc:
            if exc.errno != errno.EEXIST:
                raise
            raise ConcurrentModificationError(
                f"'{short_class_name(entity)}' is locked by another run "
                f"({lock_path}).",
                details={"entity": entity, "lock": str(lock_path)},
            ) from exc

        try:
            os.write(fd, str(os.getpid()).encode("ascii"))
        finally:
            os.close(fd)
        logger.debug("Acquired lock %s", lock_path)

        try:
            yield
        finally:
            with contextlib.suppress(FileNotFoundError):
                lock_path.unlink()
            logger.debug("Released lock %s", lock_path)

    # -----------------------------------------------------------------
    # Internals
    # -----------------------------------------------------------------

    def _write(self, path: Path, content: str) -> Path:
        if self.config.dry_run:
            logger.info("[dry-run] would write %s", path)
            return path
        write_file(path, content, atomic=self.config.atomic_writes)
        self.written.append(path)
        logger.info("Saved %s", path)
        return path


__all__: List[str] = [
    "EntityStore",
    "LOCK_SUFFIX",
]
