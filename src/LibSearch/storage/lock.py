"""Write lock for a local index directory.

The lock is a ``write.lock`` file holding the owner's PID. Locks held by
this process are tracked in memory so a second open inside the same process
fails immediately. A lock file whose PID is no longer running, or carries
this process's PID without an in-memory record, is treated as stale:
removed, and acquisition is retried exactly once.
"""

from __future__ import annotations

import os
import threading
from pathlib import Path

from LibSearch.core.errors import IndexLockError
from LibSearch.utils.log import log

LOCK_FILENAME = "write.lock"

_held_locks: set[Path] = set()
_held_guard = threading.Lock()


class IndexLock:
    """Exclusive, PID-stamped lock on an index directory."""

    def __init__(self, directory: Path) -> None:
        self.path = Path(directory) / LOCK_FILENAME
        self._key = self.path.resolve()
        self._held = False

    @property
    def held(self) -> bool:
        return self._held

    def acquire(self) -> None:
        """Take the lock.

        Raises:
            IndexLockError: If this process already holds it (``same_process``),
                or another live process holds it.
        """
        with _held_guard:
            if self._key in _held_locks:
                raise IndexLockError(
                    f"Index is already open in this process: {self.path.parent}",
                    same_process=True,
                )
            try:
                self._create()
            except FileExistsError:
                owner = _read_owner(self.path)
                # Our own PID here means a crashed earlier process reused it; only
                # ``_held_locks`` decides same-process ownership.
                if owner is not None and owner != os.getpid() and _pid_alive(owner):
                    raise IndexLockError(f"Index is locked by running process {owner}: {self.path}") from None
                log.warning("Removing stale index lock: path=%s owner=%s", self.path, owner)
                self.path.unlink(missing_ok=True)
                try:
                    self._create()
                except FileExistsError as error:
                    raise IndexLockError(f"Index lock was re-created during recovery: {self.path}") from error
            _held_locks.add(self._key)
            self._held = True

    def release(self) -> None:
        """Drop the lock; releasing an unheld lock is a no-op."""
        with _held_guard:
            if not self._held:
                return
            self._held = False
            _held_locks.discard(self._key)
            self.path.unlink(missing_ok=True)

    def _create(self) -> None:
        fd = os.open(self.path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(str(os.getpid()))


def _read_owner(path: Path) -> int | None:
    """Return the PID recorded in a lock file, or None when unreadable."""
    try:
        text = path.read_text(encoding="utf-8").strip()
    except OSError:
        return None
    return int(text) if text.isdigit() else None


def _pid_alive(pid: int) -> bool:
    if pid <= 0:
        return False
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        return True
    except (OverflowError, OSError):
        return False
    return True
