"""Drift monitor — the watchdog's polling loop.

Every tick collects hardware facts, computes the hardware ID and
compares it with the persisted baseline:

    AWAITING_BASELINE --(first good poll)--> MONITORING
    MONITORING --(drift + deprovision 200)--> DEPROVISIONED (terminal)

Every failure inside a tick is logged and retried on the next tick.
Drift with a failed deprovision stays in MONITORING, so the drift is
re-detected and the deprovision retried each period until it succeeds.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path

from core.collector import CollectionError, HardwareCollector
from core.deprovision import (
    AuthTokenError,
    DeprovisionClient,
    DeprovisionError,
    load_auth_token,
)
from core.fingerprint import FingerprintEngine, FingerprintError, short_id
from core.identity_store import IdentityStore, PersistenceError

logger = logging.getLogger(__name__)

DEFAULT_PERIOD = 60  # seconds


class MonitorState(StrEnum):
    AWAITING_BASELINE = "awaiting_baseline"
    MONITORING = "monitoring"
    DEPROVISIONED = "deprovisioned"


class TickOutcome(StrEnum):
    BASELINE_SET = "baseline_set"
    UNCHANGED = "unchanged"
    DEPROVISIONED = "deprovisioned"
    FAILED = "failed"


@dataclass
class TickResult:
    """What a single tick did."""

    outcome: TickOutcome
    hardware_id: str = ""
    error: Exception | None = None

    @property
    def failed(self) -> bool:
        return self.outcome is TickOutcome.FAILED


class DriftMonitor:
    """Single-threaded hardware drift watchdog."""

    def __init__(
        self,
        collector: HardwareCollector,
        engine: FingerprintEngine,
        store: IdentityStore,
        deprovisioner: DeprovisionClient,
        *,
        token_path: str | Path = "local-api",
        period: float = DEFAULT_PERIOD,
        backoff_multiplier: float = 1.0,
        max_backoff: float = 900,
        max_consecutive_failures: int = 10,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._collector = collector
        self._engine = engine
        self._store = store
        self._deprovisioner = deprovisioner
        self._token_path = Path(token_path)
        self._period = period
        self._backoff_multiplier = backoff_multiplier
        self._max_backoff = max(period, max_backoff)
        self._max_failures = max_consecutive_failures
        self._sleep = sleep

        self._baseline: str | None = None
        self._state = MonitorState.AWAITING_BASELINE
        self._consecutive_failures = 0
        self._alarm_raised = False
        self._stop_requested = False

    @property
    def state(self) -> MonitorState:
        return self._state

    @property
    def baseline(self) -> str | None:
        return self._baseline

    @property
    def consecutive_failures(self) -> int:
        return self._consecutive_failures

    # ------------------------------------------------------------------
    # Single cycle
    # ------------------------------------------------------------------

    def tick(self) -> TickResult:
        """Run one collect → fingerprint → compare cycle."""
        if self._state is MonitorState.DEPROVISIONED:
            return TickResult(TickOutcome.DEPROVISIONED)

        try:
            result = self._tick()
        except Exception as exc:
            logger.exception("Unexpected error during watchdog tick")
            result = TickResult(TickOutcome.FAILED, error=exc)

        self._record(result)
        return result

    def _tick(self) -> TickResult:
        if self._baseline is None:
            try:
                self._baseline = self._store.load_baseline()
            except PersistenceError as exc:
                logger.error("Error loading baseline hardware ID: %s", exc)
                return TickResult(TickOutcome.FAILED, error=exc)
            if self._baseline is not None:
                self._state = MonitorState.MONITORING

        try:
            snapshot = self._collector.collect()
        except CollectionError as exc:
            logger.error("Error collecting hardware data: %s", exc)
            return TickResult(TickOutcome.FAILED, error=exc)

        try:
            hardware_id = self._engine.fingerprint(snapshot)
        except FingerprintError as exc:
            logger.error("Error calculating hardware hash: %s", exc)
            return TickResult(TickOutcome.FAILED, error=exc)
        logger.info("Calculated hardware hash: %s", short_id(hardware_id))

        if self._baseline is None:
            return self._establish_baseline(hardware_id)

        if hardware_id == self._baseline:
            logger.info("Hardware configuration unchanged.")
            return TickResult(TickOutcome.UNCHANGED, hardware_id)

        return self._handle_drift(self._baseline, hardware_id)

    def _establish_baseline(self, hardware_id: str) -> TickResult:
        try:
            self._store.save_baseline(hardware_id)
        except PersistenceError as exc:
            logger.error("Error saving baseline hardware ID: %s", exc)
            return TickResult(TickOutcome.FAILED, hardware_id, exc)
        self._baseline = hardware_id
        self._state = MonitorState.MONITORING
        logger.info("Initial hardware ID set: %s", short_id(hardware_id))
        return TickResult(TickOutcome.BASELINE_SET, hardware_id)

    def _handle_drift(self, baseline: str, hardware_id: str) -> TickResult:
        logger.warning(
            "Hardware drift detected: baseline %s, current %s",
            short_id(baseline),
            short_id(hardware_id),
        )
        try:
            token = load_auth_token(self._token_path)
        except AuthTokenError as exc:
            logger.error("Error loading auth token: %s", exc)
            return TickResult(TickOutcome.FAILED, hardware_id, exc)

        try:
            self._deprovisioner.deprovision(token)
        except DeprovisionError as exc:
            logger.error("Error deprovisioning device: %s", exc)
            return TickResult(TickOutcome.FAILED, hardware_id, exc)

        self._state = MonitorState.DEPROVISIONED
        logger.warning("Device deprovisioned due to hardware changes.")
        return TickResult(TickOutcome.DEPROVISIONED, hardware_id)

    def _record(self, result: TickResult) -> None:
        if not result.failed:
            self._consecutive_failures = 0
            self._alarm_raised = False
            return

        self._consecutive_failures += 1
        if (
            self._max_failures > 0
            and self._consecutive_failures >= self._max_failures
            and not self._alarm_raised
        ):
            self._alarm_raised = True
            logger.error(
                "Watchdog has failed %d consecutive checks (state=%s); "
                "hardware drift is not being verified",
                self._consecutive_failures,
                self._state.value,
            )

    # ------------------------------------------------------------------
    # Loop
    # ------------------------------------------------------------------

    def next_interval(self) -> float:
        """Seconds to sleep before the next tick."""
        if self._consecutive_failures == 0 or self._backoff_multiplier <= 1.0:
            return self._period
        delay = self._period
        # Grow step by step so a long outage cannot overflow the float.
        for _ in range(self._consecutive_failures):
            delay *= self._backoff_multiplier
            if delay >= self._max_backoff:
                return self._max_backoff
        return delay

    def stop(self) -> None:
        """Ask :meth:`run` to return before its next tick."""
        self._stop_requested = True

    def run(self) -> MonitorState:
        """Tick until deprovisioned or stopped. Returns the final state."""
        logger.info(
            "Hardware watchdog started (period=%ss, state=%s)",
            self._period,
            self._state.value,
        )
        while not self._stop_requested:
            self.tick()
            if self._state is MonitorState.DEPROVISIONED:
                break
            self._sleep(self.next_interval())

        if self._stop_requested:
            logger.info("Hardware watchdog stopped (state=%s)", self._state.value)
        return self._state
