"""Liveness check for a leader that silently stopped renewing."""

from datetime import timedelta
from typing import TYPE_CHECKING

from syncer_core.constants import WATCHDOG_THRESHOLD

if TYPE_CHECKING:
    from syncer_core.election.elector import LeaderElector


class HealthzAdaptor:
    """
    Health check bound to a LeaderElector once the election starts.

    The check passes while not leading and while leading with renewals no
    older than lease_duration + timeout. A process whose election loop is
    stuck (but which otherwise looks alive) fails it.

    Attributes:
        timeout: Tolerance beyond the lease duration
    """

    name = "leaderElection"

    def __init__(self, timeout: timedelta = WATCHDOG_THRESHOLD) -> None:
        self.timeout = timeout
        self._elector: "LeaderElector | None" = None

    def set_leader_elector(self, elector: "LeaderElector") -> None:
        self._elector = elector

    def check(self) -> str | None:
        """Return an error message if unhealthy, None if healthy."""
        # No elector yet: election has not started, nothing to report
        if self._elector is None:
            return None
        return self._elector.check(self.timeout)

    @property
    def healthy(self) -> bool:
        return self.check() is None
