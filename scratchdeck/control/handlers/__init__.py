"""
Handler Context Definition.
Defines the Data Transfer Object (DTO) passed to the per-mode handlers.
"""

import math
from typing import Any, Dict, List

from scratchdeck.core.types import DragSession, TransportCommand


class HandlerContext:
    """
    A unified context object containing everything a mode handler needs for
    one accepted delta: the session snapshot, the motion, and the config.
    Handlers return the next session and emit commands into `commands`.
    """
    def __init__(self, session: DragSession, delta: float, velocity: float,
                 now: int, config: Dict[str, Any]):
        # 1. Session snapshot (already arbitrated)
        self.session = session

        # 2. Motion of this sample
        self.delta = delta          # radians, signed
        self.velocity = velocity    # rad/s
        self.now = now              # ms

        # 3. Global Resources
        self.config = config
        self.commands: List[TransportCommand] = []

    @property
    def delta_deg(self) -> float:
        return math.degrees(abs(self.delta))

    def emit(self, command: TransportCommand) -> None:
        self.commands.append(command)
