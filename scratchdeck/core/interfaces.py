"""
ScratchDeck Core Interfaces.
Defines the abstract contracts for the audio engine and the control layout.
"""

from abc import ABC, abstractmethod
from typing import Optional, Tuple

from scratchdeck.core.types import PlaybackState


class ITransportSink(ABC):
    """
    Abstract Protocol for the Audio Transport.
    The gesture core only issues commands against it; it never owns
    playback state.
    """

    # --- QUERIES ---
    @property
    @abstractmethod
    def has_media(self) -> bool: pass
    @property
    @abstractmethod
    def is_playing(self) -> bool: pass
    @abstractmethod
    def get_current_time(self) -> float: pass
    @abstractmethod
    def get_duration(self) -> Optional[float]: pass
    @abstractmethod
    def get_playback_rate(self) -> float: pass

    # --- COMMANDS ---
    @abstractmethod
    def set_playback_rate(self, rate: float) -> None: pass
    @abstractmethod
    def seek_to(self, seconds: float) -> None: pass

    # --- MEDIA LIFECYCLE ---
    @abstractmethod
    def load(self, path: str) -> None: pass
    @abstractmethod
    def play(self) -> None: pass
    @abstractmethod
    def pause(self) -> None: pass
    @abstractmethod
    def close(self) -> None: pass

    def snapshot(self) -> PlaybackState:
        """Read-only copy of the playback state for status displays."""
        has_media = self.has_media
        return PlaybackState(
            current_time=self.get_current_time() if has_media else 0.0,
            duration=self.get_duration(),
            rate=self.get_playback_rate(),
            is_playing=self.is_playing,
        )


class IPivotProvider(ABC):
    """Supplies the platter center in the same coordinate space as the pointer."""

    @abstractmethod
    def get_pivot(self) -> Tuple[float, float]: pass
