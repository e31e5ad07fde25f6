"""
ScratchDeck Controller.
Acts as the central nervous system: input events in, transport commands out.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple

from scratchdeck.config import CONFIG
from scratchdeck.control.action_dispatcher import CommandDispatcher
from scratchdeck.control.state_machine import ScratchStateMachine
from scratchdeck.core.interfaces import IPivotProvider, ITransportSink
from scratchdeck.core.kinematics import KinematicsEngine
from scratchdeck.core.state_manager import StateManager
from scratchdeck.core.types import GestureSample

logger = logging.getLogger(__name__)


def wall_clock_ms() -> int:
    return int(time.time() * 1000)


def format_time(seconds: float) -> str:
    """m:ss, minutes unbounded."""
    seconds = max(0.0, seconds)
    return f"{int(seconds // 60)}:{int(seconds % 60):02d}"


class FixedPivot(IPivotProvider):
    def __init__(self, x: float, y: float):
        self.x, self.y = x, y

    def get_pivot(self) -> Tuple[float, float]:
        return self.x, self.y


@dataclass(frozen=True)
class DeckStatus:
    mode_label: str
    rate: float
    time_text: str
    progress: float      # 0.0 - 1.0
    rotation_deg: float


class ScratchController:
    def __init__(self, transport: ITransportSink, pivot: IPivotProvider,
                 config: Optional[Dict[str, Any]] = None,
                 clock: Optional[Callable[[], int]] = None):
        self.config = config or CONFIG
        self.clock = clock or wall_clock_ms

        self.transport = transport
        self.pivot = pivot
        self.actions = CommandDispatcher(transport)

        self.state = StateManager()
        self.machine = ScratchStateMachine(self.config)
        self.physics = KinematicsEngine(self.config)

    # --- INPUT SOURCE CONTRACT ---
    def on_drag_start(self, x: float, y: float, timestamp_ms: Optional[int] = None):
        sample = self._sample(x, y, timestamp_ms)
        self.state.update_session(self.machine.start_session(sample))

    def on_drag_move(self, x: float, y: float, timestamp_ms: Optional[int] = None):
        if not self.state.is_dragging:
            return
        session = self.state.session
        sample = self._sample(x, y, timestamp_ms)

        # No media: only the anchor moves
        if not self.transport.has_media:
            self.state.update_session(self.machine.track_only(session, sample))
            return

        delta = self.physics.compute_delta(session.last_angle, sample.angle_radians)
        if not self.physics.is_jitter(delta):
            self.state.rotate(delta)

        session, commands = self.machine.apply_sample(session, sample)
        self.state.update_session(session)
        if self.state.mode_changed:
            logger.debug("Mode %s -> %s", self.state.prev_mode.name, self.state.curr_mode.name)
        self.actions.dispatch(commands)

    def on_drag_end(self):
        if not self.state.is_dragging:
            return
        session, commands = self.machine.end_session(self.state.session)
        self.state.update_session(session)
        self.actions.dispatch(commands)

    # --- SCHEDULER TICK ---
    def tick(self):
        """Idle Normalizer. Call once per frame."""
        if not self.transport.has_media:
            return
        commands = self.machine.normalize_idle(self.state.session,
                                               self.transport.get_playback_rate())
        self.actions.dispatch(commands)

    # --- TRANSPORT CONTROLS ---
    def load(self, path: str):
        self.transport.load(path)
        self.reset()
        logger.info("Media ready: %s", path)

    def play(self):
        if self.transport.has_media and not self.transport.is_playing:
            self.transport.play()

    def pause(self):
        self.transport.pause()

    def toggle_play(self):
        if self.transport.is_playing:
            self.pause()
        else:
            self.play()

    def reset(self):
        """Stop, rewind, and put the platter back at its origin."""
        self.pause()
        session, commands = self.machine.reset_session(self.state.session)
        self.state.update_session(session)
        self.state.reset_rotation()
        self.actions.dispatch(commands)
        logger.info("Deck reset")

    # --- STATUS ---
    def status(self) -> DeckStatus:
        playback = self.transport.snapshot()
        current = playback.current_time
        duration = playback.duration or 0.0
        return DeckStatus(
            mode_label=self.state.curr_mode.label,
            rate=playback.rate,
            time_text=f"{format_time(current)} / {format_time(duration)}",
            progress=(current / duration) if duration > 0 else 0.0,
            rotation_deg=self.state.rotation_deg,
        )

    def _sample(self, x: float, y: float, timestamp_ms: Optional[int]) -> GestureSample:
        # Pivot is re-read per sample so a resized control stays correct
        cx, cy = self.pivot.get_pivot()
        now = timestamp_ms if timestamp_ms is not None else self.clock()
        return GestureSample(self.physics.sample_angle(x, y, cx, cy), now)
