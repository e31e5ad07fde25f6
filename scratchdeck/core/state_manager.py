"""
ScratchDeck State Management.
Holds the current DragSession plus the platter rotation it has produced.
"""
import math

from scratchdeck.core.types import DragSession, Mode


class StateManager:
    def __init__(self):
        # --- SESSION ---
        self.session = DragSession()

        # --- MODE HISTORY ---
        self.prev_mode = Mode.IDLE
        self.curr_mode = Mode.IDLE

        # --- PLATTER ---
        self.rotation_deg = 0.0   # Accumulated visual rotation (origin = 0)

    @property
    def is_dragging(self) -> bool:
        return self.session.active

    def update_session(self, session: DragSession):
        """Stores the next session and shifts the mode history."""
        self.session = session
        self.prev_mode = self.curr_mode
        self.curr_mode = session.mode

    @property
    def mode_changed(self) -> bool:
        return self.prev_mode != self.curr_mode

    def rotate(self, delta_rad: float):
        self.rotation_deg += math.degrees(delta_rad)

    def reset_rotation(self):
        self.rotation_deg = 0.0
