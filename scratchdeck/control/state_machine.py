"""
ScratchDeck Gesture State Machine.
=================================

Pure transition functions over an immutable `DragSession`:

    apply_sample(session, sample, config) -> (session', commands)

Pipeline per sample: Delta -> Deadzone -> Velocity -> Arbiter -> Mode Handler.
Nothing here touches the audio engine; the returned commands are applied by
the `CommandDispatcher`.
"""
from dataclasses import replace
from typing import Any, Dict, List, Optional, Tuple

from scratchdeck.config import CONFIG
from scratchdeck.control.handlers import HandlerContext
from scratchdeck.control.handlers.seek_handler import BackwardSeeker, ForwardSeeker
from scratchdeck.control.handlers.speed_handler import SpeedHandler
from scratchdeck.core.arbiter import ModeArbiter
from scratchdeck.core.kinematics import KinematicsEngine
from scratchdeck.core.types import (
    DragSession,
    GestureSample,
    Mode,
    SeekAbsoluteClamp,
    SetRate,
    TransportCommand,
)

Transition = Tuple[DragSession, List[TransportCommand]]


class ScratchStateMachine:
    def __init__(self, config: Optional[Dict[str, Any]] = None):
        self.config = config or CONFIG
        self.physics = KinematicsEngine(self.config)
        self.arbiter = ModeArbiter(self.config)

        # Mode -> Handler routing
        self.handlers = {
            Mode.CLOCKWISE_SPEED: SpeedHandler(),
            Mode.CLOCKWISE_SEEK: ForwardSeeker(),
            Mode.COUNTER_CLOCKWISE_SEEK: BackwardSeeker(),
        }

    # --- LIFECYCLE ---
    @staticmethod
    def start_session(sample: GestureSample) -> DragSession:
        """Fresh session anchored at the first touch. Accumulators start at zero."""
        return DragSession(active=True, last_angle=sample.angle_radians,
                           last_sample_time=sample.timestamp_ms)

    @staticmethod
    def end_session(session: DragSession) -> Transition:
        """Release: back to 1x, lock and accumulators cleared. Position is untouched."""
        return DragSession(), [SetRate(1.0)]

    @staticmethod
    def reset_session(session: DragSession) -> Transition:
        """Explicit reset: like a release, plus a rewind to the start."""
        return DragSession(), [SetRate(1.0), SeekAbsoluteClamp(0.0)]

    @staticmethod
    def track_only(session: DragSession, sample: GestureSample) -> DragSession:
        """Advances the angle/time bookkeeping without interpreting the motion."""
        if not session.active:
            return session
        return replace(session, last_angle=sample.angle_radians,
                       last_sample_time=sample.timestamp_ms)

    # --- SAMPLE PROCESSING ---
    def apply_sample(self, session: DragSession, sample: GestureSample) -> Transition:
        if not session.active:
            return session, []

        delta = self.physics.compute_delta(session.last_angle, sample.angle_radians)
        dt_ms = sample.timestamp_ms - session.last_sample_time
        session = self.track_only(session, sample)

        # 1. Deadzone: bookkeeping advanced, nothing else moves
        if self.physics.is_jitter(delta):
            return session, []

        # 2. Arbitration
        velocity = self.physics.compute_velocity(delta, dt_ms)
        session, proceed = self.arbiter.arbitrate(session, delta, velocity, sample.timestamp_ms)
        if not proceed:
            return session, []

        # 3. Mode Handler
        ctx = HandlerContext(session, delta, velocity, sample.timestamp_ms, self.config)
        session = self.handlers[session.mode].handle(ctx)
        return session, ctx.commands

    # --- IDLE NORMALIZER ---
    @staticmethod
    def normalize_idle(session: DragSession, current_rate: float) -> List[TransportCommand]:
        """
        Runs every tick. Forces 1x when nobody is holding the platter.
        Must stay silent mid-drag so it never fights the arbiter.
        """
        if session.active or current_rate == 1.0:
            return []
        return [SetRate(1.0)]


def apply_sample(session: DragSession, sample: GestureSample,
                 config: Optional[Dict[str, Any]] = None) -> Transition:
    """Functional entry point over a throwaway machine."""
    return ScratchStateMachine(config).apply_sample(session, sample)
