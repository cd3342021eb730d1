"""Per-process guard for location lookups and provider calls."""
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from weather_data import Position

INTERACTIVE_CALL_BUDGET = 3
BACKGROUND_CALL_BUDGET = 1


@dataclass
class SessionState:
    """Process-local session bookkeeping; never persisted."""
    location_resolved_this_session: bool = False
    provider_calls_this_session: int = 0
    cached_position: Optional[Position] = None
    default_position_index: int = 0


class SessionThrottle:
    """
    Enforces "locate once, call the provider a few times" per session.

    A UI that re-renders on every scroll must not re-query the network on
    every scroll, so callers check the budget before doing work and fall
    back to cached or synthetic data once it is spent.
    """

    def __init__(self, call_budget: int = INTERACTIVE_CALL_BUDGET, state: Optional[SessionState] = None):
        self.call_budget = call_budget
        self.state = state if state is not None else SessionState()

    @classmethod
    def interactive(cls) -> "SessionThrottle":
        return cls(INTERACTIVE_CALL_BUDGET)

    @classmethod
    def background(cls) -> "SessionThrottle":
        return cls(BACKGROUND_CALL_BUDGET)

    @property
    def remaining_calls(self) -> int:
        return max(0, self.call_budget - self.state.provider_calls_this_session)

    def has_budget(self) -> bool:
        return self.remaining_calls > 0

    def try_consume_provider_call(self) -> bool:
        """Take one call from the budget; False (and no change) once spent."""
        if not self.has_budget():
            logging.debug("Provider call budget exhausted for this session")
            return False
        self.state.provider_calls_this_session += 1
        logging.debug(
            f"Provider call {self.state.provider_calls_this_session}/{self.call_budget} this session"
        )
        return True

    def try_resolve_location_once(self, resolve: Callable[[], Optional[Position]]) -> Optional[Position]:
        """
        Run `resolve` on the first call only.

        Later calls return whatever the first attempt produced (possibly
        None) without repeating any network or device query.
        """
        if self.state.location_resolved_this_session:
            logging.debug("Location already resolved this session")
            return self.state.cached_position

        self.state.location_resolved_this_session = True
        self.state.cached_position = resolve()
        return self.state.cached_position

    def advance_default_position(self, count: int) -> int:
        """Move the default-city rotation one step; returns the new index."""
        if count <= 0:
            return 0
        self.state.default_position_index = (self.state.default_position_index + 1) % count
        return self.state.default_position_index
