"""
Lease-based leader election loop.

LeaderElector drives one participant through the election state machine:

    NOT_LEADER --acquire--> LEADER --renew ok--> LEADER
    LEADER --renew not done within renew_deadline--> NOT_LEADER
    NOT_LEADER --wait retry_period (+ jitter)--> try acquire again
    any --shutdown--> STOPPED

The resource lock is the only source of truth for who leads. A participant
considers someone else's lock expired only after it has observed the same
record unchanged for a full lease_duration on its own clock, so clock skew
between participants never shortens a lease.

Work that must only run while leading is passed as on_started_leading; it
runs as a task that is cancelled as soon as leadership is lost or the loop
stops.

Per the monitor daemon pattern:
- asyncio.Event for shutdown coordination
- wait_for with timeout for interruptible sleep
- Failed attempts are logged, never raised
"""

import asyncio
import logging
import math
import random
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import TYPE_CHECKING

from syncer_core.constants import (
    DEFAULT_LEASE_DURATION,
    DEFAULT_RENEW_DEADLINE,
    DEFAULT_RETRY_PERIOD,
    JITTER_FACTOR,
    WATCHDOG_THRESHOLD,
)
from syncer_core.election.lock import LeaderElectionRecord, LockBackendKind, ResourceLock
from syncer_core.exceptions import ApiError, InvalidElectionPolicy

if TYPE_CHECKING:
    from syncer_core.election.watchdog import HealthzAdaptor

logger = logging.getLogger(__name__)


class ElectionState(str, Enum):
    """States of one participant."""

    NOT_LEADER = "not_leader"
    LEADER = "leader"
    STOPPED = "stopped"


@dataclass(frozen=True)
class ElectionPolicy:
    """
    Timings and lock settings for leader election.

    Attributes:
        lease_duration: How long non-leaders wait after the last observed
            change before taking over an unrenewed lock
        renew_deadline: How long the leader keeps retrying a renewal before
            giving up leadership; also the lock client's request timeout
        retry_period: Wait between acquire or renew attempts
        watchdog_threshold: Extra tolerance before the health check reports
            a leader that stopped renewing
        resource_lock: Lock backend kind
        lock_namespace: Explicit lock namespace ("" to discover in-cluster)
        release_on_cancel: Clear the lock holder when stopping as leader
    """

    lease_duration: timedelta = DEFAULT_LEASE_DURATION
    renew_deadline: timedelta = DEFAULT_RENEW_DEADLINE
    retry_period: timedelta = DEFAULT_RETRY_PERIOD
    watchdog_threshold: timedelta = WATCHDOG_THRESHOLD
    resource_lock: str = LockBackendKind.CONFIGMAPS.value
    lock_namespace: str = ""
    release_on_cancel: bool = True

    def validate(self) -> None:
        """
        Check that the timings can guarantee a single leader.

        Raises:
            InvalidElectionPolicy: Unless 0 < retry_period * 1.2 <
                renew_deadline < lease_duration
        """

        def _fail(reason: str) -> InvalidElectionPolicy:
            return InvalidElectionPolicy(
                reason, self.lease_duration, self.renew_deadline, self.retry_period
            )

        if self.lease_duration <= timedelta(0):
            raise _fail("lease duration must be greater than zero")
        if self.renew_deadline <= timedelta(0):
            raise _fail("renew deadline must be greater than zero")
        if self.retry_period <= timedelta(0):
            raise _fail("retry period must be greater than zero")
        if self.lease_duration <= self.renew_deadline:
            raise _fail("lease duration must be greater than renew deadline")
        if self.renew_deadline <= self.retry_period * JITTER_FACTOR:
            raise _fail(f"renew deadline must be greater than retry period * {JITTER_FACTOR}")


@dataclass
class LeaderCallbacks:
    """
    Hooks invoked on leadership changes.

    Attributes:
        on_started_leading: Coroutine function run while leading; cancelled
            when leadership ends
        on_stopped_leading: Called after leadership ends
        on_new_leader: Called with the identity of each newly observed holder
    """

    on_started_leading: Callable[[], Awaitable[None]] | None = None
    on_stopped_leading: Callable[[], None] | None = None
    on_new_leader: Callable[[str], None] | None = None


@dataclass
class LeaderElectionConfig:
    """
    A ready-to-run election.

    Attributes:
        lock: Resource lock bound to this participant's identity
        policy: Validated timings
        name: Name used in logs (e.g., "resource-syncer")
        watchdog: Health adaptor observing this election, if any
        callbacks: Leadership hooks
    """

    lock: ResourceLock
    policy: ElectionPolicy
    name: str = ""
    watchdog: "HealthzAdaptor | None" = None
    callbacks: LeaderCallbacks = field(default_factory=LeaderCallbacks)

    @property
    def lease_duration(self) -> timedelta:
        return self.policy.lease_duration

    @property
    def renew_deadline(self) -> timedelta:
        return self.policy.renew_deadline

    @property
    def retry_period(self) -> timedelta:
        return self.policy.retry_period


def _now() -> datetime:
    return datetime.now(timezone.utc)


class LeaderElector:
    """
    Runs the election loop for one participant.

    Example:
        elector = LeaderElector(config)
        shutdown = asyncio.Event()
        await elector.run(shutdown)  # Returns after shutdown.set()
    """

    def __init__(
        self,
        config: LeaderElectionConfig,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        config.policy.validate()
        self.config = config
        self._clock = clock
        self._state = ElectionState.NOT_LEADER
        self._observed_record = LeaderElectionRecord()
        self._observed_time = 0.0
        self._reported_leader = ""

        if config.watchdog is not None:
            config.watchdog.set_leader_elector(self)

    @property
    def state(self) -> ElectionState:
        return self._state

    @property
    def identity(self) -> str:
        return self.config.lock.identity

    @property
    def observed_time(self) -> float:
        """Clock reading when the current record was last observed to change."""
        return self._observed_time

    def get_leader(self) -> str:
        """Identity of the last observed holder ("" if none)."""
        return self._observed_record.holder_identity

    def is_leader(self) -> bool:
        """True if the last observed record names this participant."""
        return self._observed_record.holder_identity == self.identity

    async def run(self, shutdown: asyncio.Event | None = None) -> None:
        """
        Run until shutdown is set (or the task is cancelled).

        Cycles between acquiring and renewing; losing leadership returns to
        acquiring. On shutdown the gated work is cancelled and, if
        release_on_cancel is set, the lock is released.
        """
        if shutdown is None:
            shutdown = asyncio.Event()

        lock = self.config.lock
        lost = False
        try:
            while not shutdown.is_set():
                if not await self._acquire(shutdown, backoff=lost):
                    break

                self._state = ElectionState.LEADER
                work = None
                if self.config.callbacks.on_started_leading is not None:
                    work = asyncio.create_task(self.config.callbacks.on_started_leading())

                cancelled = False
                try:
                    await self._renew(shutdown)
                except asyncio.CancelledError:
                    cancelled = True
                    raise
                finally:
                    if work is not None:
                        work.cancel()
                        await asyncio.gather(work, return_exceptions=True)
                    stopping = cancelled or shutdown.is_set()
                    if stopping and self.config.policy.release_on_cancel:
                        await self.release()
                    self._state = ElectionState.NOT_LEADER
                    lock.record_event("stopped leading")
                    logger.info("%s stopped leading %s", self.identity, lock.describe())
                    if self.config.callbacks.on_stopped_leading is not None:
                        self.config.callbacks.on_stopped_leading()
                lost = True
        finally:
            self._state = ElectionState.STOPPED

    async def release(self) -> bool:
        """
        Give up the lock if held, so another participant can take over now.

        Returns:
            True if nothing was held or the release was written
        """
        if not self.is_leader():
            return True

        now = _now()
        record = LeaderElectionRecord(
            holder_identity="",
            lease_duration_seconds=1,
            acquire_time=now,
            renew_time=now,
            leader_transitions=self._observed_record.leader_transitions,
        )
        try:
            await asyncio.wait_for(
                self.config.lock.update(record),
                timeout=self.config.renew_deadline.total_seconds(),
            )
        except Exception as e:
            logger.error("Failed to release lock %s: %s", self.config.lock.describe(), e)
            return False

        self._set_observed(record)
        return True

    def check(self, max_tolerable_expired_lease: timedelta) -> str | None:
        """
        Report a leader that has stopped renewing.

        Returns:
            An error message if this participant leads but has not renewed
            for lease_duration + max_tolerable_expired_lease, else None
        """
        if not self.is_leader():
            return None
        limit = (self.config.lease_duration + max_tolerable_expired_lease).total_seconds()
        if self._clock() > self._observed_time + limit:
            return f"failed election to renew leadership on lease {self.config.lock.describe()}"
        return None

    async def _acquire(self, shutdown: asyncio.Event, backoff: bool = False) -> bool:
        """
        Retry until the lock is acquired; False if shutdown came first.

        With backoff set (re-entry after a lost lease) the first attempt
        waits a jittered retry_period like every later one.
        """
        desc = self.config.lock.describe()
        logger.info("%s attempting to acquire leader lease %s...", self.identity, desc)
        if backoff and await self._sleep(self._jittered(self.config.retry_period), shutdown):
            return False

        while not shutdown.is_set():
            succeeded = await self._try_acquire_or_renew()
            self._report_transition()
            if succeeded:
                self.config.lock.record_event("became leader")
                logger.info("%s successfully acquired lease %s", self.identity, desc)
                return True

            logger.debug("%s failed to acquire lease %s", self.identity, desc)
            if await self._sleep(self._jittered(self.config.retry_period), shutdown):
                return False
        return False

    async def _renew(self, shutdown: asyncio.Event) -> None:
        """Keep renewing until a renewal misses renew_deadline or shutdown."""
        desc = self.config.lock.describe()
        retry = self.config.retry_period.total_seconds()

        while not shutdown.is_set():
            deadline = self._clock() + self.config.renew_deadline.total_seconds()
            renewed = False
            while True:
                remaining = deadline - self._clock()
                if remaining <= 0:
                    break
                try:
                    renewed = await asyncio.wait_for(
                        self._try_acquire_or_renew(), timeout=remaining
                    )
                except asyncio.TimeoutError:
                    renewed = False
                if renewed:
                    break
                if await self._sleep(min(retry, max(deadline - self._clock(), 0)), shutdown):
                    return

            self._report_transition()
            if not renewed:
                logger.warning("%s failed to renew lease %s: timed out", self.identity, desc)
                return

            logger.debug("%s successfully renewed lease %s", self.identity, desc)
            if await self._sleep(retry, shutdown):
                return

    async def _try_acquire_or_renew(self) -> bool:
        """
        One acquire-or-renew round against the lock.

        Returns:
            True if this participant holds the lock after the round
        """
        lock = self.config.lock
        now = _now()
        record = LeaderElectionRecord(
            holder_identity=self.identity,
            lease_duration_seconds=math.ceil(self.config.lease_duration.total_seconds()),
            acquire_time=now,
            renew_time=now,
        )

        try:
            old = await lock.get()
        except ApiError as e:
            if not e.is_not_found:
                logger.error("Error retrieving resource lock %s: %s", lock.describe(), e)
                return False
            try:
                await lock.create(record)
            except Exception as create_error:
                logger.error("Error initially creating leader election record: %s", create_error)
                return False
            self._set_observed(record)
            return True
        except Exception as e:
            logger.error("Error retrieving resource lock %s: %s", lock.describe(), e)
            return False

        if old != self._observed_record:
            self._observed_record = old
            self._observed_time = self._clock()

        lease = self.config.lease_duration.total_seconds()
        unexpired = self._observed_time + lease > self._clock()
        if old.holder_identity and unexpired and not self.is_leader():
            logger.debug("lock is held by %s and has not yet expired", old.holder_identity)
            return False

        if self.is_leader():
            record.acquire_time = old.acquire_time
            record.leader_transitions = old.leader_transitions
        else:
            record.leader_transitions = old.leader_transitions + 1

        try:
            await lock.update(record)
        except Exception as e:
            logger.error("Failed to update lock %s: %s", lock.describe(), e)
            return False

        self._set_observed(record)
        return True

    def _set_observed(self, record: LeaderElectionRecord) -> None:
        self._observed_record = record
        self._observed_time = self._clock()

    def _report_transition(self) -> None:
        holder = self._observed_record.holder_identity
        if holder == self._reported_leader:
            return
        self._reported_leader = holder
        if holder:
            logger.info("new leader elected: %s", holder)
        if holder and self.config.callbacks.on_new_leader is not None:
            self.config.callbacks.on_new_leader(holder)

    @staticmethod
    def _jittered(period: timedelta) -> float:
        seconds = period.total_seconds()
        return seconds + random.uniform(0, JITTER_FACTOR * seconds)

    @staticmethod
    async def _sleep(seconds: float, shutdown: asyncio.Event) -> bool:
        """Sleep unless shutdown is set first; True if shutdown was observed."""
        try:
            await asyncio.wait_for(shutdown.wait(), timeout=seconds)
            return True
        except asyncio.TimeoutError:
            return False
