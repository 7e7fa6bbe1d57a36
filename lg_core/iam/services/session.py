# lg_core/iam/services/session.py
from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from django.conf import settings
from django.utils import timezone

from lg_core.iam.services.access import AccessDecision, AccessGate, AccessState

logger = logging.getLogger(__name__)


class AccessSession:
    """
    Per-session access state machine.

        UNCHECKED -> CHECKING -> GRANTED | DENIED

    For long-lived in-process holders (workers, an embedded UI shell). The
    HTTP API does not keep one per login: `HasPortalAccess` re-runs the gate
    on every request, so login and logout there have no timer to manage.

    `start()` runs the first check (call it right after authentication).
    While the session is open a re-check is scheduled every `interval`
    seconds through `timer_factory` (threading.Timer signature). A sticky
    denial (access revoked) stops the periodic loop; only `recheck()` or a
    new session leaves it. `close()` cancels any pending timer.
    """

    def __init__(
        self,
        *,
        user,
        gate=AccessGate,
        interval: Optional[float] = None,
        clock: Callable = timezone.now,
        timer_factory: Callable = threading.Timer,
    ) -> None:
        self.user = user
        self.gate = gate
        self.interval = float(
            interval if interval is not None else getattr(settings, "ACCESS_RECHECK_INTERVAL_SECONDS", 300)
        )
        self.clock = clock
        self.timer_factory = timer_factory

        self.state = AccessState.UNCHECKED
        self.decision: Optional[AccessDecision] = None
        self.last_checked_at = None

        self._timer = None
        self._closed = False
        self._lock = threading.RLock()

    @property
    def closed(self) -> bool:
        return self._closed

    def start(self) -> AccessDecision:
        return self._evaluate()

    def recheck(self) -> AccessDecision:
        """Explicit status check; the only way out of a sticky denial."""
        return self._evaluate()

    def tick(self) -> Optional[AccessDecision]:
        """Timer callback."""
        with self._lock:
            if self._closed:
                return None
            if self.decision is not None and self.decision.sticky:
                return self.decision
        return self._evaluate()

    def close(self) -> None:
        with self._lock:
            self._closed = True
            self._cancel_timer()

    def _evaluate(self) -> AccessDecision:
        with self._lock:
            if self._closed:
                raise RuntimeError("Access session is closed.")
            self._cancel_timer()
            self.state = AccessState.CHECKING

        decision = self.gate.check(user=self.user)

        with self._lock:
            self.decision = decision
            self.state = decision.state
            self.last_checked_at = self.clock()
            if not self._closed and not decision.sticky:
                self._schedule()
            elif decision.sticky:
                logger.info("Access revoked for user_id=%s; periodic re-check stopped", self.user.id)
        return decision

    def _schedule(self) -> None:
        timer = self.timer_factory(self.interval, self.tick)
        # never keep the process alive for a re-check
        if hasattr(timer, "daemon"):
            timer.daemon = True
        timer.start()
        self._timer = timer

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
