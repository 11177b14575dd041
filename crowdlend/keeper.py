"""
keeper.py - Expiry Keeper

Drives the engine's two-phase expiry interface the way an external
scheduled trigger would.

Execution order each step():
1. Advance engine time
2. check_expiry() - read-only, cheap
3. perform_expiry(payload) only when the check says a bucket is due

The engine's operation log is the audit trail; the keeper keeps no state
beyond a count of the sweeps it performed.
"""

from __future__ import annotations
from typing import Iterable, List

from .engine import CampaignEngine, KEEPER


class ExpiryKeeper:
    """
    External trigger for the threshold-expiry sweep.

    Example:
        keeper = ExpiryKeeper(engine)
        expired = keeper.step(engine.current_time + 86_400)
    """

    def __init__(self, engine: CampaignEngine, name: str = KEEPER):
        self.engine = engine
        self.name = name
        self.sweeps_performed = 0
        self.verbose = engine.verbose

    def poll(self) -> List[int]:
        """Check and, if due, perform at the engine's current time."""
        due, payload = self.engine.check_expiry()
        if not due:
            return []
        expired = self.engine.perform_expiry(payload, caller=self.name)
        self.sweeps_performed += 1
        if self.verbose:
            print(f"[KEEPER] day {payload.decode()}: expired {expired}")
        return expired

    def step(self, timestamp: int) -> List[int]:
        """
        Advance time and run one check/perform cycle.

        Returns:
            Ids of campaigns moved to THRESHOLD_UNMET
        """
        self.engine.advance_time(timestamp)
        return self.poll()

    def run(self, timestamps: Iterable[int]) -> List[int]:
        """Step through a sequence of timestamps."""
        expired: List[int] = []
        for timestamp in timestamps:
            expired.extend(self.step(timestamp))
        return expired

    def run_daily(self, until: int) -> List[int]:
        """Poll once per day from the current time up to ``until``."""
        day = self.engine.config.day_length
        return self.run(range(self.engine.current_time + day, until + 1, day))
