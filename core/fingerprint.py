"""Hardware fingerprint — salted, irreversible identity of the host hardware.

The hardware ID is::

    sha256(salt || canonical_json(snapshot)).hexdigest()

``canonical_json`` writes the five categories in a fixed order
(lscpu, lspci, lsusb, lshw, cpuinfo) with sorted object keys and no
whitespace, so identical hardware yields identical bytes on any host
and in any process. The salt comes from the identity store and never
changes once written, which is what makes hashes comparable across
restarts.
"""

from __future__ import annotations

import hashlib
import json
import logging

from core.collector import HardwareSnapshot
from core.identity_store import IdentityStore, PersistenceError

logger = logging.getLogger(__name__)


class FingerprintError(Exception):
    """Raised when a snapshot cannot be serialized or the salt is unavailable."""


def canonical_serialize(snapshot: HardwareSnapshot) -> bytes:
    """Serialize *snapshot* to stable bytes.

    Top-level keys follow canonical category order; nested keys are
    sorted. Raises ``FingerprintError`` on non-JSON content.
    """
    body = []
    try:
        for name, obj in snapshot.normalized().items():
            encoded = json.dumps(
                obj,
                sort_keys=True,
                separators=(",", ":"),
                ensure_ascii=False,
                allow_nan=False,
            )
            body.append(f"{json.dumps(name)}:{encoded}")
    except (TypeError, ValueError) as exc:
        raise FingerprintError(f"Failed to serialize hardware data: {exc}") from exc
    return ("{" + ",".join(body) + "}").encode("utf-8")


def compute_hardware_id(salt: bytes, snapshot: HardwareSnapshot) -> str:
    """Return the hex SHA-256 of *salt* followed by the canonical snapshot.

    Returns:
        Lowercase hex digest (64 chars).
    """
    return hashlib.sha256(salt + canonical_serialize(snapshot)).hexdigest()


def short_id(hardware_id: str) -> str:
    """Abbreviate a hardware ID for log lines."""
    if len(hardware_id) <= 12:
        return hardware_id
    return f"{hardware_id[:8]}...{hardware_id[-4:]}"


class FingerprintEngine:
    """Computes hardware IDs with the salt owned by an ``IdentityStore``."""

    def __init__(self, store: IdentityStore) -> None:
        self._store = store

    def fingerprint(self, snapshot: HardwareSnapshot) -> str:
        try:
            salt = self._store.salt()
        except PersistenceError as exc:
            raise FingerprintError(f"Salt unavailable: {exc}") from exc

        hardware_id = compute_hardware_id(salt, snapshot)
        logger.debug("Calculated hardware hash: %s", hardware_id)
        return hardware_id
