"""
ScratchDeck Speed Logic.
=======================

Clockwise rotation speeds playback up. Every accepted clockwise radian
adds `CW_RATE_PER_RAD` to the rate, which only ever climbs until the
session is released, reset, or switches direction.
"""
from dataclasses import replace

from scratchdeck.control.handlers import HandlerContext
from scratchdeck.core.types import DragSession, SetRate


class SpeedHandler:
    def handle(self, ctx: HandlerContext) -> DragSession:
        rate = self.accumulate(
            ctx.session.cw_speed_multiplier,
            ctx.delta,
            ctx.config["CW_RATE_PER_RAD"],
            ctx.config["MAX_PLAYBACK_RATE"],
        )
        ctx.emit(SetRate(rate))
        return replace(ctx.session, cw_speed_multiplier=rate)

    @staticmethod
    def accumulate(rate: float, delta: float, gain: float, max_rate: float) -> float:
        """Monotonic step of the rate, clamped to [1.0, max_rate]."""
        rate = min(max_rate, rate + abs(delta) * gain)
        return max(1.0, rate)
