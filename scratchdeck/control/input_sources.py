"""
ScratchDeck Hand Input.
======================

Turns tracked hand landmarks into the drag contract the controller expects.

Key Logic: "Pinch & Turn"
1. Thumb(4) and Index(8) pinched together grab the platter (drag start).
2. While pinched, the index fingertip is the pointer (drag move).
3. Opening the pinch, or losing the hand, releases the platter (drag end).

The pinch uses the same Schmitt trigger as a mouse button debounce: a tight
pinch to grab, a clearly open hand to release.
"""
from typing import Any, Dict, Optional, Tuple

from scratchdeck.config import CONFIG
from scratchdeck.core.interfaces import IPivotProvider
from scratchdeck.core.kinematics import KinematicsEngine
from scratchdeck.core.stabilizer import PointerStabilizer

INDEX_TIP = 8


class FramePivot(IPivotProvider):
    """Platter centered in a frame whose size may change between samples."""
    def __init__(self, width: int = 0, height: int = 0):
        self.width = width
        self.height = height

    def resize(self, width: int, height: int):
        self.width, self.height = width, height

    def get_pivot(self) -> Tuple[float, float]:
        return self.width / 2, self.height / 2


class PinchDragSource:
    def __init__(self, controller, config: Optional[Dict[str, Any]] = None):
        self.controller = controller
        self.config = config or CONFIG
        self.physics = KinematicsEngine(self.config)
        self.stabilizer = PointerStabilizer(config=self.config)
        self.is_pinching = False

    def process(self, lms: Any, width: int, height: int, timestamp_ms: Optional[int] = None):
        """
        Args:
            lms: A MediaPipe hand (anything with `.landmark[i].x/.y`), or None
                 when no hand is visible.
            width, height: Frame size in pixels (the pointer coordinate space).
        """
        if lms is None:
            self._release()
            return

        sq_dist = self.physics.get_pinch_sq_dist(lms)
        pinching = self.physics.check_pinch_hysteresis(sq_dist, self.is_pinching)

        tip = lms.landmark[INDEX_TIP]
        x, y = self.stabilizer.process(tip.x * width, tip.y * height)

        if pinching and not self.is_pinching:
            self.controller.on_drag_start(x, y, timestamp_ms)
        elif pinching:
            self.controller.on_drag_move(x, y, timestamp_ms)
        elif self.is_pinching:
            self.controller.on_drag_end()

        self.is_pinching = pinching

    def _release(self):
        if self.is_pinching:
            self.controller.on_drag_end()
        self.is_pinching = False
        self.stabilizer.reset()
