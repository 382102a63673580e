import logging
from enum import Enum
from typing import Optional

logger = logging.getLogger(__name__)


class GuardState(Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    SETTLED = "settled"


class RequestGuard:
    """
    Rejects a new lookup while another one is still in flight.

    Transitions: IDLE/SETTLED --start--> FETCHING(key) --finish--> SETTLED.
    A start request while FETCHING is refused, whatever its key.
    """

    def __init__(self) -> None:
        self.state = GuardState.IDLE
        self.key: Optional[str] = None

    @property
    def in_flight(self) -> bool:
        return self.state is GuardState.FETCHING

    def start(self, key: str) -> bool:
        if self.state is GuardState.FETCHING:
            logger.debug("Rejected %s; %s still in flight.", key, self.key)
            return False
        self.state = GuardState.FETCHING
        self.key = key
        return True

    def finish(self, key: str) -> None:
        if self.state is GuardState.FETCHING and self.key == key:
            self.state = GuardState.SETTLED
