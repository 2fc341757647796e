"""Identity store — durable salt and baseline hardware ID records.

Two independent text records live on disk:

    ``id/salt-key``  — base64 of a random 16-byte salt (created once)
    ``id/hw-id``     — hex hardware ID captured on the first good poll

Reads return ``None`` when a record does not exist so callers can tell
"no baseline yet" apart from an I/O failure. Writes replace the whole
file atomically with owner-only permissions.
"""

from __future__ import annotations

import base64
import binascii
import logging
import os
import tempfile
from pathlib import Path

logger = logging.getLogger(__name__)

SALT_SIZE = 16
_FILE_MODE = 0o600
_DIR_MODE = 0o700


class PersistenceError(Exception):
    """Raised when a salt or baseline record cannot be read or written."""


def _read_record(path: Path) -> str | None:
    """Return the trimmed record text, or None if the file does not exist."""
    try:
        value = path.read_text(encoding="utf-8").strip()
    except FileNotFoundError:
        return None
    except (OSError, UnicodeDecodeError) as exc:
        raise PersistenceError(f"Failed to read {path}: {exc}") from exc
    return value


def _write_record(path: Path, value: str) -> None:
    """Write *value* to *path* via temp file + rename."""
    try:
        path.parent.mkdir(mode=_DIR_MODE, parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(value)
                f.flush()
                os.fsync(f.fileno())
            os.chmod(tmp_name, _FILE_MODE)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
    except OSError as exc:
        raise PersistenceError(f"Failed to write {path}: {exc}") from exc


class IdentityStore:
    """File-backed key-value store for the salt and the baseline hardware ID.

    The salt is an explicit value owned by the store: :meth:`salt` loads
    it once per process, generating and persisting it only when no
    record exists yet.
    """

    def __init__(self, salt_path: str | Path, baseline_path: str | Path) -> None:
        self._salt_path = Path(salt_path)
        self._baseline_path = Path(baseline_path)
        self._salt: bytes | None = None

    @property
    def salt_path(self) -> Path:
        return self._salt_path

    @property
    def baseline_path(self) -> Path:
        return self._baseline_path

    # ------------------------------------------------------------------
    # Raw records
    # ------------------------------------------------------------------

    def load_salt(self) -> str | None:
        """Return the stored base64 salt text, or None if absent.

        A blank record is returned as ``""``, not None.
        """
        return _read_record(self._salt_path)

    def save_salt(self, value: str) -> None:
        _write_record(self._salt_path, value)

    def load_baseline(self) -> str | None:
        """Return the stored baseline hardware ID, or None if absent.

        A blank record counts as absent: no baseline was ever captured.
        """
        return _read_record(self._baseline_path) or None

    def save_baseline(self, value: str) -> None:
        _write_record(self._baseline_path, value)

    # ------------------------------------------------------------------
    # Salt lifecycle
    # ------------------------------------------------------------------

    def salt(self) -> bytes:
        """Return the device salt, creating and persisting it on first need.

        A stored salt that is blank or does not decode to ``SALT_SIZE``
        bytes raises ``PersistenceError``. It is never silently replaced:
        a new salt would invalidate the baseline.
        """
        if self._salt is not None:
            return self._salt

        encoded = self.load_salt()
        if encoded is None:
            logger.info("Salt not found, generating a new one at %s", self._salt_path)
            raw = os.urandom(SALT_SIZE)
            self.save_salt(base64.b64encode(raw).decode("ascii"))
            self._salt = raw
            return raw

        if not encoded:
            raise PersistenceError(f"Salt record {self._salt_path} is empty")
        try:
            raw = base64.b64decode(encoded, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise PersistenceError(f"Salt record {self._salt_path} is corrupted: {exc}") from exc
        if len(raw) != SALT_SIZE:
            raise PersistenceError(
                f"Salt record {self._salt_path} has {len(raw)} bytes, expected {SALT_SIZE}"
            )
        self._salt = raw
        return raw
