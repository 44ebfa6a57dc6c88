"""Turn drag input on a single card into one accept/reject decision.

A card's interpreter is a three-state latch::

    idle --release/force--> deciding --animation done--> decided

Only a trigger arriving while ``idle`` can start a decision.  Drag releases
and button presses share that latch, so a button press landing while a
drag-release exit animation is still running is ignored, and the decision
callback fires at most once per card.  ``replace()`` binds the interpreter
to the next card and reopens the latch.
"""
from __future__ import annotations

from enum import Enum
from typing import Callable

from jobswipe.config import get_float
from jobswipe.log import get_logger
from jobswipe.models import Direction

log = get_logger(__name__)

D_ACCEPT: float = 100.0
V_ACCEPT: float = 500.0
EXIT_ANIMATION_SECONDS: float = 0.2

Scheduler = Callable[[float, Callable[[], None]], None]


class Outcome(str, Enum):
    ACCEPT = "accept"
    REJECT = "reject"
    SNAP_BACK = "snap-back"


class GestureState(str, Enum):
    IDLE = "idle"
    DECIDING = "deciding"
    DECIDED = "decided"


def run_immediately(delay: float, fn: Callable[[], None]) -> None:
    """Scheduler that skips the animation and completes at once."""
    fn()


def default_thresholds() -> tuple[float, float]:
    return (
        get_float("SWIPE_DISTANCE_THRESHOLD", D_ACCEPT),
        get_float("SWIPE_VELOCITY_THRESHOLD", V_ACCEPT),
    )


def classify(
    displacement: float,
    velocity: float,
    distance_threshold: float = D_ACCEPT,
    velocity_threshold: float = V_ACCEPT,
) -> Outcome:
    if displacement > distance_threshold or velocity > velocity_threshold:
        return Outcome.ACCEPT
    if displacement < -distance_threshold or velocity < -velocity_threshold:
        return Outcome.REJECT
    return Outcome.SNAP_BACK


class GestureInterpreter:
    def __init__(
        self,
        candidate_id: str,
        on_decision: Callable[[str, Direction], None],
        *,
        schedule: Scheduler = run_immediately,
        distance_threshold: float = D_ACCEPT,
        velocity_threshold: float = V_ACCEPT,
        exit_duration: float = EXIT_ANIMATION_SECONDS,
    ) -> None:
        self.candidate_id = candidate_id
        self._on_decision = on_decision
        self._schedule = schedule
        self.distance_threshold = distance_threshold
        self.velocity_threshold = velocity_threshold
        self.exit_duration = exit_duration
        self.state = GestureState.IDLE
        self.direction: Direction | None = None
        # Bumped on replace() so a late animation callback for the old card
        # cannot fire for the new one.
        self._card_seq = 0

    @property
    def locked(self) -> bool:
        return self.state is not GestureState.IDLE

    def release(self, displacement: float, velocity: float) -> Outcome | None:
        """Pointer released.  Returns the outcome, or None if latched."""
        if self.locked:
            log.debug("Release ignored on %s (%s)", self.candidate_id, self.state.value)
            return None
        outcome = classify(
            displacement, velocity, self.distance_threshold, self.velocity_threshold
        )
        if outcome is Outcome.SNAP_BACK:
            return outcome
        direction = Direction.ACCEPT if outcome is Outcome.ACCEPT else Direction.REJECT
        self._begin(direction)
        return outcome

    def force_decision(self, direction: Direction) -> bool:
        """Programmatic swipe (buttons).  Goes through the same latch."""
        if self.locked:
            log.debug("Forced %s ignored on %s (%s)", direction.value, self.candidate_id, self.state.value)
            return False
        self._begin(direction)
        return True

    def replace(self, candidate_id: str) -> None:
        self.candidate_id = candidate_id
        self.state = GestureState.IDLE
        self.direction = None
        self._card_seq += 1

    def _begin(self, direction: Direction) -> None:
        self.state = GestureState.DECIDING
        self.direction = direction
        seq = self._card_seq
        self._schedule(self.exit_duration, lambda: self._finish(seq))

    def _finish(self, seq: int) -> None:
        if seq != self._card_seq or self.state is not GestureState.DECIDING:
            return
        if self.direction is None:
            return
        self.state = GestureState.DECIDED
        self._on_decision(self.candidate_id, self.direction)
