"""
ScratchDeck Step Seeking.
========================

Turns continuous rotation into discrete timeline jumps.

Key Logic: "Accumulate & Step"
1. Rotation magnitude (degrees) is added to a per-direction accumulator.
2. Once it holds at least one step, whole steps are converted to a seek.
3. Only the consumed steps are subtracted; the remainder carries into the
   next sample so slow turns still land on exact step boundaries.

Playback is held at 1x while seeking (no reverse playback).
"""
import math
from dataclasses import replace
from typing import Tuple

from scratchdeck.control.handlers import HandlerContext
from scratchdeck.core.types import DragSession, Direction, SeekBy, SetRate


class StepSeeker:
    def __init__(self, direction: Direction, step_deg_key: str, step_seconds_key: str,
                 accumulator_field: str):
        self.direction = direction
        self.step_deg_key = step_deg_key
        self.step_seconds_key = step_seconds_key
        self.accumulator_field = accumulator_field

    def handle(self, ctx: HandlerContext) -> DragSession:
        ctx.emit(SetRate(1.0))

        accumulated = getattr(ctx.session, self.accumulator_field) + ctx.delta_deg
        steps, remainder = self.quantize(accumulated, ctx.config[self.step_deg_key])

        if steps:
            seconds = steps * ctx.config[self.step_seconds_key]
            ctx.emit(SeekBy(self.direction.value * seconds, self.direction))

        return replace(ctx.session, **{self.accumulator_field: remainder})

    @staticmethod
    def quantize(accumulated_deg: float, step_deg: float) -> Tuple[int, float]:
        """Splits an accumulator into (whole steps, carried remainder)."""
        if accumulated_deg < step_deg:
            return 0, accumulated_deg
        steps = math.floor(accumulated_deg / step_deg)
        # Float error must never push the carry below zero
        return steps, max(0.0, accumulated_deg - steps * step_deg)


def ForwardSeeker() -> StepSeeker:
    """Coarse fast-scrub seeker for clockwise spins."""
    return StepSeeker(Direction.CLOCKWISE, "FORWARD_STEP_DEG", "FORWARD_STEP_SECONDS",
                      "cw_step_accumulator_deg")


def BackwardSeeker() -> StepSeeker:
    """Precise seeker for counter-clockwise turns."""
    return StepSeeker(Direction.COUNTER_CLOCKWISE, "BACKWARD_STEP_DEG", "BACKWARD_STEP_SECONDS",
                      "ccw_step_accumulator_deg")
