"""
ScratchDeck Stabilization Layer (The Anchor).
Optimized for high-frequency calling.
"""

from typing import Any, Dict, Optional, Tuple

import numpy as np

from scratchdeck.config import CONFIG


class PointerStabilizer:
    """
    Freezes sub-threshold pointer jitter and smooths real motion with an EMA.
    Used on the hand-tracked fingertip before it reaches the angle sampler.
    """
    def __init__(self, jitter_threshold=None, smoothing_factor=None,
                 config: Optional[Dict[str, Any]] = None):
        config = config or CONFIG
        self.thresh = jitter_threshold if jitter_threshold is not None else config["POINTER_JITTER_PX"]
        self.alpha = smoothing_factor if smoothing_factor is not None else config["POINTER_ALPHA"]
        self.prev_point: Optional[np.ndarray] = None
        self.locked = False

    def reset(self):
        self.prev_point = None
        self.locked = False

    def process(self, x: float, y: float) -> Tuple[float, float]:
        curr = np.array([x, y], dtype=np.float64)

        if self.prev_point is None:
            self.prev_point = curr
            return x, y

        movement = np.linalg.norm(curr - self.prev_point)

        if movement < self.thresh:
            self.locked = True
            return float(self.prev_point[0]), float(self.prev_point[1])

        self.locked = False
        smoothed = (self.alpha * curr) + ((1 - self.alpha) * self.prev_point)
        self.prev_point = smoothed
        return float(smoothed[0]), float(smoothed[1])
