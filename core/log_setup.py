"""Centralized logging setup — console plus optional file output.

The watchdog runs as a container process, so the console handler is
the primary sink and logs at INFO. When a log directory is configured,
each launch also writes a timestamped file (e.g.
``logs/edgeguard_2026-02-19_15-30-00.log``) with a ``latest.log``
symlink, and old files beyond ``max_files`` are pruned.

Includes a RedactingFilter that strips the deprovision auth token from
log messages before they are emitted.
"""

from __future__ import annotations

import logging
import os
import re
from datetime import datetime
from pathlib import Path

_FMT = "%(asctime)s %(levelname)-7s [%(name)s] %(message)s"
_DATE_FMT = "%Y-%m-%d %H:%M:%S"
_LOG_PREFIX = "edgeguard_"

_configured = False

# Group 1 (the key and separator) is kept so the line stays readable.
_REDACT_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"((?:auth[_-]?)?token\s*=\s*)\S+", re.I),
    re.compile(r"(authorization\s*[:=]\s*)\S+", re.I),
    re.compile(r"(Bearer\s+)[a-zA-Z0-9._\-]+", re.I),
]

_REDACTED = "[REDACTED]"


def redact(text: str) -> str:
    """Replace secret values in *text* with ``[REDACTED]``."""
    for pattern in _REDACT_PATTERNS:
        text = pattern.sub(rf"\g<1>{_REDACTED}", text)
    return text


class RedactingFilter(logging.Filter):
    """Redact the auth token from the rendered message of each record.

    The message is formatted first and the result stored back with empty
    args, so a pattern can never break the ``%`` placeholders.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        try:
            message = record.getMessage()
        except (TypeError, ValueError):
            # Malformed call; leave it for the handler to report.
            return True
        record.msg = redact(message)
        record.args = ()
        return True


def _cleanup_old_logs(log_dir: Path, max_files: int) -> None:
    """Remove oldest log files when count exceeds *max_files*."""
    log_files = sorted(
        (f for f in log_dir.iterdir() if f.name.startswith(_LOG_PREFIX) and f.suffix == ".log"),
        key=lambda f: f.stat().st_mtime,
    )
    while len(log_files) > max_files:
        oldest = log_files.pop(0)
        oldest.unlink(missing_ok=True)


def setup_logging(
    *,
    debug: bool = False,
    log_dir: str | Path | None = None,
    max_files: int = 10,
) -> None:
    """Configure the root logger with a console handler and optional file.

    Safe to call multiple times — subsequent calls are no-ops.
    """
    global _configured
    if _configured:
        return
    _configured = True

    root = logging.getLogger()
    root.setLevel(logging.DEBUG if debug else logging.INFO)

    redact_filter = RedactingFilter()
    fmt = logging.Formatter(_FMT, datefmt=_DATE_FMT)

    ch = logging.StreamHandler()
    ch.setLevel(logging.DEBUG if debug else logging.INFO)
    ch.setFormatter(fmt)
    ch.addFilter(redact_filter)
    root.addHandler(ch)

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)

    if not log_dir:
        return

    directory = Path(log_dir)
    directory.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")
    log_file = directory / f"{_LOG_PREFIX}{timestamp}.log"

    latest_link = directory / "latest.log"
    try:
        if latest_link.is_symlink() or latest_link.exists():
            latest_link.unlink()
        os.symlink(log_file.name, latest_link)
    except OSError:
        pass  # Symlinks may not work on all platforms

    fh = logging.FileHandler(log_file, encoding="utf-8")
    fh.setLevel(logging.DEBUG)
    fh.setFormatter(fmt)
    fh.addFilter(redact_filter)
    root.addHandler(fh)

    _cleanup_old_logs(directory, max_files)
