"""
ScratchDeck Mode Arbiter (The Referee).
======================================

Decides which mode an accepted delta belongs to. Two hysteresis layers keep
the platter from flickering between behaviours:

1. **Direction Lock:** Once spinning clockwise with speed built up, a
   counter-clockwise wobble is buffered. Only `SWITCH_THRESHOLD_DEG` of
   sustained opposite travel releases the lock.
2. **Scrub Trigger:** Fast clockwise spins enter scrub above
   `SCRUB_ENTER_VELOCITY`, and only leave after staying below the lower
   `SCRUB_EXIT_VELOCITY` for `SCRUB_EXIT_HOLD_MS` without interruption.
"""
import logging
import math
from dataclasses import replace
from typing import Any, Dict, Optional, Tuple

from scratchdeck.config import CONFIG
from scratchdeck.core.types import Direction, DragSession, Mode

logger = logging.getLogger(__name__)


class ModeArbiter:
    def __init__(self, config: Optional[Dict[str, Any]] = None):
        self.config = config or CONFIG

    def arbitrate(self, session: DragSession, delta: float, velocity: float,
                  now: int) -> Tuple[DragSession, bool]:
        """
        Returns (next session, proceed). When `proceed` is False the delta
        was absorbed (zero motion or the direction lock) and no handler may run.
        """
        direction = Direction.from_delta(delta)
        if direction == Direction.NONE:
            return session, False
        if direction == Direction.CLOCKWISE:
            return self._clockwise(session, velocity, now), True
        return self._counter_clockwise(session, delta)

    # --- CLOCKWISE ---
    def _clockwise(self, session: DragSession, velocity: float, now: int) -> DragSession:
        # Any CW motion clears the CCW side of the machine
        session = replace(session, opposite_direction_accumulator_deg=0.0,
                          ccw_step_accumulator_deg=0.0)

        if session.mode == Mode.CLOCKWISE_SEEK:
            return self._hold_or_exit_scrub(session, velocity, now)

        if self.config["SCRUB_ENABLED"] and velocity >= self.config["SCRUB_ENTER_VELOCITY"]:
            logger.debug("Scrub enter | velocity=%.1f", velocity)
            # Multiplier is parked, not reset: speed resumes from it on exit
            return replace(session, mode=Mode.CLOCKWISE_SEEK, scrub_exit_timer_start=None,
                           cw_step_accumulator_deg=0.0)

        return replace(session, mode=Mode.CLOCKWISE_SPEED)

    def _hold_or_exit_scrub(self, session: DragSession, velocity: float, now: int) -> DragSession:
        if velocity > self.config["SCRUB_EXIT_VELOCITY"]:
            # Still fast: any pending exit is cancelled
            return replace(session, scrub_exit_timer_start=None)

        started = session.scrub_exit_timer_start
        if started is None:
            started = now
        if now - started >= self.config["SCRUB_EXIT_HOLD_MS"]:
            logger.debug("Scrub exit | held_ms=%d", now - started)
            return replace(session, mode=Mode.CLOCKWISE_SPEED, scrub_exit_timer_start=None,
                           cw_step_accumulator_deg=0.0)
        return replace(session, scrub_exit_timer_start=started)

    # --- COUNTER-CLOCKWISE ---
    def _counter_clockwise(self, session: DragSession, delta: float) -> Tuple[DragSession, bool]:
        if self._is_direction_locked(session):
            opposite = session.opposite_direction_accumulator_deg + math.degrees(abs(delta))
            if opposite < self.config["SWITCH_THRESHOLD_DEG"]:
                # Small wobble: keep the CW state untouched
                return replace(session, opposite_direction_accumulator_deg=opposite), False
            logger.debug("Direction switch CW -> CCW | opposite_deg=%.1f rate_was=%.2f",
                         opposite, session.cw_speed_multiplier)

        return replace(
            session,
            mode=Mode.COUNTER_CLOCKWISE_SEEK,
            cw_speed_multiplier=1.0,
            scrub_exit_timer_start=None,
            cw_step_accumulator_deg=0.0,
            opposite_direction_accumulator_deg=0.0,
        ), True

    @staticmethod
    def _is_direction_locked(session: DragSession) -> bool:
        if session.mode == Mode.CLOCKWISE_SEEK:
            return True
        return session.mode == Mode.CLOCKWISE_SPEED and session.cw_speed_multiplier > 1.0
