"""Chain watcher state machine."""

from __future__ import annotations

from enum import Enum, auto


class WatcherPhase(Enum):
    """
    Phases of a watch session.

    State Machine Diagram
    ---------------------
    ::

        IDLE --> ACTIVE <--> AWAITING_BOUNDARY
                  ^  |             |
                  |  v             |
              RECONNECTING <-------+

        Any phase --> STOPPED

    The Lifecycle
    -------------
    1. **IDLE**: Process started, no epoch established yet
    2. **ACTIVE**: Following best and finalized heads for one epoch
    3. **AWAITING_BOUNDARY**: The chain passed the epoch's last slot; the
       next epoch is being resolved and persisted
    4. **RECONNECTING**: The node connection dropped; backing off
    5. **STOPPED**: Shutdown was requested. Terminal.

    Transitions
    -----------
    IDLE -> ACTIVE
        - Triggered when: bootstrap established the watch state
    ACTIVE -> AWAITING_BOUNDARY
        - Triggered when: an observed slot exceeds the epoch's end slot
    AWAITING_BOUNDARY -> ACTIVE
        - Triggered when: the next epoch is persisted and the state replaced
    ACTIVE / AWAITING_BOUNDARY -> RECONNECTING
        - Triggered when: a subscription or RPC call loses the connection
    RECONNECTING -> ACTIVE
        - Triggered when: the connection is back and subscriptions restarted
    """

    IDLE = auto()
    """Before bootstrap. No subscriptions."""

    ACTIVE = auto()
    """Subscribed and applying events to the current epoch."""

    AWAITING_BOUNDARY = auto()
    """
    Rolling over to the next epoch.

    Event processing is paused: the consumer is busy resolving the next
    epoch, so no event can be applied against the old schedule.
    """

    RECONNECTING = auto()
    """Connection lost; waiting out the backoff delay before reconnecting."""

    STOPPED = auto()
    """Shut down. No further transitions."""

    def can_transition_to(self, target: WatcherPhase) -> bool:
        """
        Check if transition to target phase is valid.

        Args:
            target: The proposed target phase.

        Returns:
            True if the transition is allowed by the state machine rules.
        """
        return target in _VALID_TRANSITIONS.get(self, set())

    @property
    def is_running(self) -> bool:
        """Whether the watcher is past bootstrap and not stopped."""
        return self in {
            WatcherPhase.ACTIVE,
            WatcherPhase.AWAITING_BOUNDARY,
            WatcherPhase.RECONNECTING,
        }


_VALID_TRANSITIONS: dict[WatcherPhase, set[WatcherPhase]] = {
    WatcherPhase.IDLE: {WatcherPhase.ACTIVE, WatcherPhase.STOPPED},
    WatcherPhase.ACTIVE: {
        WatcherPhase.AWAITING_BOUNDARY,
        WatcherPhase.RECONNECTING,
        WatcherPhase.STOPPED,
    },
    WatcherPhase.AWAITING_BOUNDARY: {
        WatcherPhase.ACTIVE,
        WatcherPhase.RECONNECTING,
        WatcherPhase.STOPPED,
    },
    WatcherPhase.RECONNECTING: {WatcherPhase.ACTIVE, WatcherPhase.STOPPED},
    WatcherPhase.STOPPED: set(),
}
"""Valid phase transitions for the watcher state machine."""
