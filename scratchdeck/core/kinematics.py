"""
ScratchDeck Kinematics.
Angle sampling, wrap-corrected deltas and angular velocity for the platter,
plus the pinch Schmitt trigger used by the hand input.
"""
import math
from typing import Any, Dict, Optional

from scratchdeck.config import CONFIG

TWO_PI = 2 * math.pi


class KinematicsEngine:
    def __init__(self, config: Optional[Dict[str, Any]] = None):
        self.config = config or CONFIG

    # --- ANGLE SAMPLER ---
    @staticmethod
    def sample_angle(pointer_x: float, pointer_y: float, pivot_x: float, pivot_y: float) -> float:
        """Signed angle of the pointer around the pivot (atan2, y grows downward)."""
        return math.atan2(pointer_y - pivot_y, pointer_x - pivot_x)

    # --- DELTA TRACKER ---
    @staticmethod
    def compute_delta(prev_angle: float, new_angle: float) -> float:
        """
        Short-path angular delta in (-pi, pi].
        Crossing the +/-pi seam would otherwise read as a near full turn.
        """
        delta = new_angle - prev_angle
        if delta > math.pi: delta -= TWO_PI
        if delta <= -math.pi: delta += TWO_PI
        return delta

    def compute_velocity(self, delta: float, dt_ms: float) -> float:
        """
        Angular speed in rad/s.
        dt is floored at MIN_DT_MS so duplicate or backwards timestamps
        cannot produce a velocity spike.
        """
        dt_ms = max(dt_ms, self.config["MIN_DT_MS"])
        return abs(delta) / (dt_ms / 1000.0)

    def is_jitter(self, delta: float) -> bool:
        return abs(delta) < self.config["ANGLE_DEADZONE_RAD"]

    # --- PINCH (Hand Input) ---
    def get_pinch_sq_dist(self, lms) -> float:
        """
        Returns Squared Euclidean distance between Thumb(4) and Index(8).
        SQRT is expensive. We avoid it for high-frequency checks.
        """
        x1, y1 = lms.landmark[4].x, lms.landmark[4].y
        x2, y2 = lms.landmark[8].x, lms.landmark[8].y
        return (x2 - x1)**2 + (y2 - y1)**2

    def check_pinch_hysteresis(self, current_sq_dist: float, is_pinching: bool) -> bool:
        """
        Schmitt Trigger on squared distances: grabbing needs a tight pinch,
        releasing needs the fingers clearly apart.
        """
        if is_pinching:
            return current_sq_dist < self.config["PINCH_STOP"] ** 2
        return current_sq_dist < self.config["PINCH_START"] ** 2
