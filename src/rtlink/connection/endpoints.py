"""Primary/alternate endpoint failover."""

from enum import Enum
from typing import Optional

from rtlink.logger import get_logger

logger = get_logger("connection.endpoints")


class FailoverAction(Enum):
    """What the caller should do after a recorded failure."""

    NONE = "none"
    SWITCH_TO_ALTERNATE = "switch_to_alternate"
    RESET_TO_PRIMARY = "reset_to_primary"


class EndpointSelector:
    """Chooses between a primary and an alternate endpoint.

    After ``max_fails_before_switch`` consecutive failures on the primary the
    selector moves to the alternate (failure count restarts at zero). After
    the same number of consecutive failures on the alternate it marks the
    alternate failed and returns to the primary with the count zeroed, so
    the selector can never stay parked on a dead alternate.

    While ``alternate_failed`` is set the primary keeps retrying without
    further switches; any successful connection clears the flag.
    """

    def __init__(self, primary: str, alternate: Optional[str] = None, max_fails_before_switch: int = 3):
        if max_fails_before_switch < 1:
            raise ValueError("max_fails_before_switch must be >= 1")
        self.primary = primary
        self.alternate = alternate
        self.max_fails_before_switch = max_fails_before_switch
        self.use_alternate = False
        self.alternate_failed = False
        self.consecutive_failures = 0

    @property
    def current(self) -> str:
        """Endpoint the next connection attempt should target."""
        if self.use_alternate and self.alternate:
            return self.alternate
        return self.primary

    @property
    def has_alternate(self) -> bool:
        return bool(self.alternate)

    def record_success(self) -> None:
        """A connection to ``current`` opened."""
        self.consecutive_failures = 0
        if self.alternate_failed:
            logger.info("Connection succeeded, clearing alternate endpoint failure flag")
        self.alternate_failed = False

    def record_failure(self) -> FailoverAction:
        """
        A connection to ``current`` closed or failed.

        Returns:
            The failover step the caller must take
        """
        self.consecutive_failures += 1
        if self.consecutive_failures < self.max_fails_before_switch:
            return FailoverAction.NONE

        if not self.use_alternate:
            if not self.alternate or self.alternate_failed:
                # Nowhere to fail over to; keep retrying the primary
                self.consecutive_failures = 0
                return FailoverAction.NONE
            logger.warning(
                f"Primary endpoint failed {self.consecutive_failures} times, switching to alternate {self.alternate}"
            )
            self.use_alternate = True
            self.consecutive_failures = 0
            return FailoverAction.SWITCH_TO_ALTERNATE

        logger.warning(
            f"Alternate endpoint failed {self.consecutive_failures} times, marking it failed and resetting to primary"
        )
        self.alternate_failed = True
        self.reset_to_primary()
        return FailoverAction.RESET_TO_PRIMARY

    def reset_to_primary(self) -> None:
        self.use_alternate = False
        self.consecutive_failures = 0

    def snapshot(self) -> dict[str, object]:
        return {
            "url": self.current,
            "is_alternate": self.use_alternate,
            "alternate_failed": self.alternate_failed,
            "consecutive_failures": self.consecutive_failures,
            "max_fails_before_switch": self.max_fails_before_switch,
        }
