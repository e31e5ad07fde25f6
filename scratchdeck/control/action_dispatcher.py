"""
ScratchDeck Command Dispatcher (The Actuator).
=============================================

This module implements the Command Pattern to decouple the gesture intent
("jump back 10s") from the audio engine that performs it.

Guarantees:
- **No media, no commands:** Everything is dropped while the transport has
  nothing loaded.
- **Local clamping:** Seek targets are clamped to [0, duration] before they
  reach the transport; an unknown duration suppresses the seek.
"""

import logging
import math
from typing import Iterable, Optional

from scratchdeck.core.interfaces import ITransportSink
from scratchdeck.core.types import SeekAbsoluteClamp, SeekBy, SetRate, TransportCommand

logger = logging.getLogger(__name__)


class CommandDispatcher:
    def __init__(self, transport: ITransportSink):
        self.transport = transport

    def dispatch(self, commands: Iterable[TransportCommand]) -> int:
        """Applies commands in order. Returns how many reached the transport."""
        if not self.transport.has_media:
            return 0

        applied = 0
        for command in commands:
            if self._apply(command):
                applied += 1
        return applied

    def _apply(self, command: TransportCommand) -> bool:
        if isinstance(command, SetRate):
            self.transport.set_playback_rate(command.rate)
            return True

        if isinstance(command, SeekBy):
            target = self.transport.get_current_time() + command.delta_seconds
            return self._seek_clamped(target)

        if isinstance(command, SeekAbsoluteClamp):
            return self._seek_clamped(command.target_seconds)

        raise TypeError(f"Unknown transport command: {command!r}")

    def _seek_clamped(self, target: float) -> bool:
        duration = self._known_duration()
        if duration is None:
            logger.debug("Seek suppressed: duration unknown")
            return False
        clamped = min(max(target, 0.0), duration)
        logger.debug("Seek | target=%.2f clamped=%.2f", target, clamped)
        self.transport.seek_to(clamped)
        return True

    def _known_duration(self) -> Optional[float]:
        duration = self.transport.get_duration()
        if duration is None or math.isnan(duration) or duration < 0:
            return None
        return duration
