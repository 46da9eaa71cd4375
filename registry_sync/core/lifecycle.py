"""
Bundle lifecycle across the station -> server sync protocol.

    COLLECTED -> EXPORTED -> TRANSPORTED -> IMPORTED -> MERGED -> COLLECTED

A station never moves its own data past EXPORTED; only a server runs
IMPORTED -> MERGED.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Tuple

from .errors import InvalidTransitionError
from .schema import SystemMode
from ..util.logging import logger


class BundleState(str, Enum):
    COLLECTED = "collected"
    EXPORTED = "exported"
    TRANSPORTED = "transported"
    IMPORTED = "imported"
    MERGED = "merged"


TRANSITIONS: Dict[BundleState, Tuple[BundleState, ...]] = {
    BundleState.COLLECTED: (BundleState.EXPORTED, BundleState.IMPORTED),
    BundleState.EXPORTED: (BundleState.TRANSPORTED, BundleState.COLLECTED),
    BundleState.TRANSPORTED: (BundleState.IMPORTED,),
    BundleState.IMPORTED: (BundleState.MERGED, BundleState.COLLECTED),
    BundleState.MERGED: (BundleState.COLLECTED,),
}

# States a station is allowed to enter with its own data
STATION_STATES = (BundleState.COLLECTED, BundleState.EXPORTED)


class BundleLifecycle:
    """Tracks one bundle through the sync protocol, rejecting illegal steps.

    COLLECTED -> IMPORTED covers a server reading a file directly, and
    IMPORTED -> COLLECTED a rejected import that leaves local state as it was.
    """

    def __init__(self, mode: str = SystemMode.SERVER.value, state: BundleState = BundleState.COLLECTED):
        self.mode = SystemMode(mode)
        self.state = BundleState(state)
        self.history: List[Tuple[BundleState, datetime]] = [(self.state, datetime.now(timezone.utc))]

    def can_advance(self, target: BundleState) -> bool:
        target = BundleState(target)
        if target not in TRANSITIONS[self.state]:
            return False
        if self.mode == SystemMode.STATION and target not in STATION_STATES:
            return False
        return True

    def advance(self, target: BundleState) -> BundleState:
        target = BundleState(target)
        if not self.can_advance(target):
            logger.log_flow("lifecycle", "rejected", {
                "mode": self.mode.value, "from": self.state.value, "to": target.value
            })
            raise InvalidTransitionError(
                f"Cannot move bundle from {self.state.value} to {target.value} in {self.mode.value} mode"
            )

        self.state = target
        self.history.append((target, datetime.now(timezone.utc)))
        return target
