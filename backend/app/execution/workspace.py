"""
Per-request working set.

Every temporary artifact of a request lives at:

    <work_dir>/<role>_<token><suffix>

The token is minted once per request and passed explicitly to everything that
names a path. Concurrent requests share the work directory but never a
filename, so no locking is needed.

Lifecycle:
- paths are registered BEFORE anything is written to them
- release() deletes every registered path, in reverse registration order
- release() never raises; failures are logged as CleanupError and collected
- used as a context manager, release() runs on every exit path
- the root is made absolute, so manifest entries never depend on the cwd
"""

import logging
import secrets
import time
from dataclasses import dataclass
from pathlib import Path
from typing import List

from .errors import CleanupError, ReadbackError, StagingError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RequestToken:
    """Per-request unique token: wall-clock millis plus a random nonce."""

    timestamp_ms: int
    nonce: str

    def __str__(self) -> str:
        return f"{self.timestamp_ms}_{self.nonce}"


def new_request_token() -> RequestToken:
    """
    Mint a token for one request.

    Uniqueness is best-effort: two requests in the same millisecond differ by
    the 32-bit nonce.
    """
    return RequestToken(
        timestamp_ms=int(time.time() * 1000),
        nonce=secrets.token_hex(4),
    )


class WorkingSet:
    """
    Request-scoped set of temporary file paths.

    Owned by exactly one runner invocation; never shared across requests.
    """

    def __init__(self, root: Path, token: RequestToken):
        self.root = Path(root).absolute()
        self.token = token
        self._paths: List[Path] = []
        self.cleanup_failures: List[CleanupError] = []
        self._released = False

    # ------------------------------------------------------------------
    # Context management
    # ------------------------------------------------------------------

    def __enter__(self) -> "WorkingSet":
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StagingError(f"Cannot create working directory {self.root}: {e}") from e
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()

    # ------------------------------------------------------------------
    # Acquisition
    # ------------------------------------------------------------------

    @property
    def paths(self) -> List[Path]:
        """Registered paths, in registration order."""
        return list(self._paths)

    def name_for(self, role: str, suffix: str) -> Path:
        """<root>/<role>_<token><suffix>, without registering it."""
        return self.root / f"{role}_{self.token}{suffix}"

    def register(self, path: Path) -> Path:
        """Register a path for release. Idempotent."""
        if path not in self._paths:
            self._paths.append(path)
        return path

    def path_for(self, role: str, suffix: str) -> Path:
        """Reserve and register <root>/<role>_<token><suffix>."""
        return self.register(self.name_for(role, suffix))

    def stage_bytes(self, role: str, suffix: str, data: bytes) -> Path:
        """Register a path and write uploaded bytes to it."""
        path = self.path_for(role, suffix)
        try:
            path.write_bytes(data)
        except OSError as e:
            raise StagingError(f"Failed to write {role} upload: {e}") from e
        logger.debug(f"[WorkingSet] Staged {role}: {path} ({len(data)} bytes)")
        return path

    def stage_text(self, path: Path, text: str) -> Path:
        """Register a path and write text (e.g. a concat manifest) to it."""
        self.register(path)
        try:
            path.write_text(text, encoding="utf-8")
        except OSError as e:
            raise StagingError(f"Failed to write {path.name}: {e}") from e
        return path

    def read_output(self, path: Path) -> bytes:
        """
        Read a produced file fully into memory.

        Raises:
            ReadbackError: file missing, empty, or unreadable
        """
        if not path.is_file():
            raise ReadbackError("Output file was not created")
        try:
            data = path.read_bytes()
        except OSError as e:
            raise ReadbackError(f"Failed to read output: {e}") from e
        if not data:
            raise ReadbackError("Output file is empty (0 bytes)")
        return data

    # ------------------------------------------------------------------
    # Release
    # ------------------------------------------------------------------

    def release(self) -> List[CleanupError]:
        """
        Delete every registered path. Best-effort, never raises.

        Returns:
            CleanupError for each path that could not be deleted.
        """
        if self._released:
            return list(self.cleanup_failures)
        self._released = True

        for path in reversed(self._paths):
            try:
                path.unlink(missing_ok=True)
            except OSError as e:
                failure = CleanupError(str(path), str(e))
                self.cleanup_failures.append(failure)
                logger.warning(f"[WorkingSet] {failure}")

        logger.debug(
            f"[WorkingSet] Released {len(self._paths)} path(s) for token {self.token}"
            f" ({len(self.cleanup_failures)} failure(s))"
        )
        return list(self.cleanup_failures)

    def leftovers(self) -> List[Path]:
        """Files in the work directory that still carry this token."""
        if not self.root.is_dir():
            return []
        marker = f"_{self.token}"
        return [p for p in self.root.iterdir() if marker in p.name]
