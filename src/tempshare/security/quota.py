"""Fixed-window request quotas with graduated delay.

Each quota tier is an independent policy. A client, identified by its rate
limit key, gets one counting window per policy. Requests beyond a policy's
``delay_after`` threshold are slowed down, and requests beyond ``max`` are
rejected until the window elapses.

State lives in process memory only. A restart resets every counter.

Example:
    tracker = QuotaTracker()
    policy = QuotaPolicy(name="upload", window_ms=900_000, max=10, delay_after=3,
                         base_delay_ms=1000, max_delay_ms=30_000)
    decision = tracker.check_and_increment("203.0.113.7:9f86d081884c", policy)
    if decision.outcome is QuotaOutcome.REJECTED:
        raise QuotaExceededError(policy.message, policy.name, decision.retry_after_seconds)
"""

import math
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Any

import structlog

logger = structlog.get_logger("tempshare.security.quota")

DEFAULT_QUOTA_MESSAGE = "Too many requests from this device, please try again later."


class QuotaTier(str, Enum):
    """Endpoint classes with their own quota policy."""

    UPLOAD = "upload"
    DOWNLOAD = "download"
    LISTING = "listing"
    ADMIN = "admin"
    HEALTH = "health"
    GLOBAL = "global"


class QuotaOutcome(str, Enum):
    """Admission decision for a single request."""

    ALLOWED = "allowed"
    DELAYED = "delayed"
    REJECTED = "rejected"


@dataclass(frozen=True)
class QuotaPolicy:
    """Parameters of one quota tier.

    Attributes:
        name: Tier name, used to keep tiers apart in the tracker
        window_ms: Window length in milliseconds
        max: Requests admitted per window
        delay_after: Requests served without delay (None disables delay)
        base_delay_ms: Delay added for each request past delay_after
        max_delay_ms: Upper bound on the delay
        skip_successful: Refund requests that complete with status < 400
        skip_failed: Refund requests that complete with status >= 400
        message: Error message returned on rejection
    """

    name: str
    window_ms: int
    max: int
    delay_after: int | None = None
    base_delay_ms: int = 0
    max_delay_ms: int = 0
    skip_successful: bool = False
    skip_failed: bool = False
    message: str = DEFAULT_QUOTA_MESSAGE

    @property
    def window_seconds(self) -> float:
        return self.window_ms / 1000

    @property
    def retry_after_seconds(self) -> int:
        """Retry hint for rejected requests, the full window rounded up."""
        return max(1, math.ceil(self.window_ms / 1000))

    def delay_for(self, count: int) -> int:
        """Graduated delay in milliseconds for the ``count``-th request."""
        if self.delay_after is None or count <= self.delay_after:
            return 0
        return min(self.max_delay_ms, self.base_delay_ms * (count - self.delay_after))

    def should_refund(self, status_code: int) -> bool:
        """Whether a completed request is excluded from the count."""
        if status_code < 400:
            return self.skip_successful
        return self.skip_failed


@dataclass
class QuotaState:
    """Counter for one key under one policy.

    Attributes:
        window_start: Unix timestamp the current window began
        count: Requests counted in the current window
        delay_level: Requests counted beyond the delay threshold
    """

    window_start: float
    count: int = 0
    delay_level: int = 0

    def is_elapsed(self, now: float, policy: QuotaPolicy) -> bool:
        return now - self.window_start >= policy.window_seconds


@dataclass(frozen=True)
class QuotaDecision:
    """Result of a quota check.

    Attributes:
        outcome: Allowed, delayed or rejected
        policy: Name of the policy that produced the decision
        count: Requests counted in the window after this check
        limit: The policy maximum
        remaining: Requests left in the window
        window_start: Start of the window the request was counted in
        reset_at: Unix timestamp the window ends
        delay_ms: Delay to apply before serving the request
        retry_after_seconds: Seconds until a rejected client may retry
    """

    outcome: QuotaOutcome
    policy: str
    count: int
    limit: int
    remaining: int
    window_start: float
    reset_at: float
    delay_ms: int = 0
    retry_after_seconds: int = 0

    @property
    def admitted(self) -> bool:
        return self.outcome is not QuotaOutcome.REJECTED


@dataclass
class ViolationRecord:
    """Rejections recorded for one key under one policy."""

    key: str
    policy: str
    window_ms: int
    violation_count: int
    last_violation: float

    def is_active(self, now: float) -> bool:
        return now - self.last_violation < self.window_ms / 1000

    def to_dict(self) -> dict[str, Any]:
        return {
            "fingerprintKey": self.key,
            "violationCount": self.violation_count,
            "lastViolationTime": datetime.fromtimestamp(self.last_violation, UTC).isoformat(),
            "policy": self.policy,
        }


class QuotaTracker:
    """Thread-safe quota counters keyed by client and policy.

    A single lock guards every read-modify-write, so two concurrent requests
    from the same client can never both take the last slot of a window.
    Elapsed windows are purged lazily on access and by a periodic sweep.
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.time,
        sweep_interval: float = 300.0,
    ) -> None:
        """Initialize the tracker.

        Args:
            clock: Returns the current Unix timestamp
            sweep_interval: Seconds between sweeps of elapsed state
        """
        self._clock = clock
        self._sweep_interval = sweep_interval
        self._lock = threading.Lock()
        self._states: dict[tuple[str, str], QuotaState] = {}
        self._policies: dict[str, QuotaPolicy] = {}
        self._violations: dict[tuple[str, str], ViolationRecord] = {}
        self._last_sweep = clock()

    def check_and_increment(self, key: str, policy: QuotaPolicy) -> QuotaDecision:
        """Count a request against a policy and decide its admission.

        A missing or elapsed state counts as zero prior requests.

        Args:
            key: Rate limit key of the client
            policy: Policy to count against

        Returns:
            QuotaDecision for the request
        """
        with self._lock:
            now = self._clock()
            self._maybe_sweep(now)
            self._policies[policy.name] = policy

            state_key = (policy.name, key)
            state = self._states.get(state_key)
            if state is None or state.is_elapsed(now, policy):
                state = QuotaState(window_start=now)
                self._states[state_key] = state

            reset_at = state.window_start + policy.window_seconds

            if state.count >= policy.max:
                self._record_violation(key, policy, now)
                return QuotaDecision(
                    outcome=QuotaOutcome.REJECTED,
                    policy=policy.name,
                    count=state.count,
                    limit=policy.max,
                    remaining=0,
                    window_start=state.window_start,
                    reset_at=reset_at,
                    retry_after_seconds=policy.retry_after_seconds,
                )

            state.count += 1
            delay_ms = policy.delay_for(state.count)
            if policy.delay_after is not None:
                state.delay_level = max(0, state.count - policy.delay_after)

            return QuotaDecision(
                outcome=QuotaOutcome.DELAYED if delay_ms > 0 else QuotaOutcome.ALLOWED,
                policy=policy.name,
                count=state.count,
                limit=policy.max,
                remaining=max(0, policy.max - state.count),
                window_start=state.window_start,
                reset_at=reset_at,
                delay_ms=delay_ms,
            )

    def refund(self, key: str, policy: QuotaPolicy, window_start: float) -> bool:
        """Undo one admission made in the window starting at ``window_start``.

        Ignored if the window has rolled over since the request was counted.

        Returns:
            True if a request was refunded
        """
        with self._lock:
            state = self._states.get((policy.name, key))
            if state is None or state.window_start != window_start or state.count == 0:
                return False
            state.count -= 1
            if policy.delay_after is not None:
                state.delay_level = max(0, state.count - policy.delay_after)
            return True

    def get_state(self, key: str, policy: QuotaPolicy) -> QuotaState | None:
        """Return a copy of the live state for a key, if any."""
        with self._lock:
            state = self._states.get((policy.name, key))
            if state is None or state.is_elapsed(self._clock(), policy):
                return None
            return QuotaState(state.window_start, state.count, state.delay_level)

    def get_violation_stats(self) -> list[ViolationRecord]:
        """Return violations whose window has not yet elapsed.

        Elapsed violations are purged as a side effect.
        """
        with self._lock:
            now = self._clock()
            expired = [k for k, v in self._violations.items() if not v.is_active(now)]
            for violation_key in expired:
                del self._violations[violation_key]
            return sorted(
                self._violations.values(),
                key=lambda v: v.violation_count,
                reverse=True,
            )

    def summarize_violations(self) -> dict[str, Any]:
        """Violation report for the admin API."""
        violations = self.get_violation_stats()
        return {
            "activeViolations": len(violations),
            "totalViolations": sum(v.violation_count for v in violations),
            "violations": [v.to_dict() for v in violations],
        }

    def sweep(self) -> int:
        """Purge every elapsed window.

        Returns:
            Number of states removed
        """
        with self._lock:
            return self._sweep(self._clock())

    def reset(self) -> None:
        """Drop all counters and violations."""
        with self._lock:
            self._states.clear()
            self._violations.clear()

    @property
    def tracked_keys(self) -> int:
        return len(self._states)

    def _maybe_sweep(self, now: float) -> None:
        if now - self._last_sweep >= self._sweep_interval:
            removed = self._sweep(now)
            if removed:
                logger.debug("quota_sweep", removed=removed, remaining=len(self._states))

    def _sweep(self, now: float) -> int:
        self._last_sweep = now
        expired = [
            state_key
            for state_key, state in self._states.items()
            if state_key[0] not in self._policies
            or state.is_elapsed(now, self._policies[state_key[0]])
        ]
        for state_key in expired:
            del self._states[state_key]
        return len(expired)

    def _record_violation(self, key: str, policy: QuotaPolicy, now: float) -> None:
        violation_key = (policy.name, key)
        violation = self._violations.get(violation_key)
        if violation is None or not violation.is_active(now):
            violation = ViolationRecord(
                key=key,
                policy=policy.name,
                window_ms=policy.window_ms,
                violation_count=0,
                last_violation=now,
            )
            self._violations[violation_key] = violation

        violation.violation_count += 1
        violation.last_violation = now
        logger.warning(
            "quota_exceeded",
            rate_limit_key=key,
            policy=policy.name,
            violations=violation.violation_count,
        )
