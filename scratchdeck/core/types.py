"""
ScratchDeck Types.
Central definition of Data Contracts to prevent circular imports.
"""
from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional, Union


# --- ERRORS ---
class ConfigError(ValueError):
    """Raised when a configuration cannot drive the state machine."""


class TransportError(RuntimeError):
    """Raised by audio backends when media cannot be loaded or played."""


# --- GESTURE TYPES ---
@dataclass(frozen=True)
class GestureSample:
    angle_radians: float
    timestamp_ms: int


# --- ROTATION TYPES ---
class Direction(Enum):
    """
    Sign of the angular delta. With screen coordinates (y grows downward)
    a positive atan2 delta is a visually clockwise turn.
    """
    NONE = 0
    CLOCKWISE = 1
    COUNTER_CLOCKWISE = -1

    @classmethod
    def from_delta(cls, delta: float) -> "Direction":
        if delta > 0:
            return cls.CLOCKWISE
        if delta < 0:
            return cls.COUNTER_CLOCKWISE
        return cls.NONE


class Mode(Enum):
    IDLE = auto()
    CLOCKWISE_SPEED = auto()
    CLOCKWISE_SEEK = auto()        # Fast-scrub
    COUNTER_CLOCKWISE_SEEK = auto()

    @property
    def direction(self) -> Direction:
        if self in (Mode.CLOCKWISE_SPEED, Mode.CLOCKWISE_SEEK):
            return Direction.CLOCKWISE
        if self == Mode.COUNTER_CLOCKWISE_SEEK:
            return Direction.COUNTER_CLOCKWISE
        return Direction.NONE

    @property
    def label(self) -> str:
        return _MODE_LABELS[self]


_MODE_LABELS = {
    Mode.IDLE: "Forward",
    Mode.CLOCKWISE_SPEED: "Clockwise (Speed)",
    Mode.CLOCKWISE_SEEK: "Clockwise (Scrub)",
    Mode.COUNTER_CLOCKWISE_SEEK: "Backwards",
}


@dataclass(frozen=True)
class DragSession:
    """
    State of one press-drag-release interaction.
    The direction lock is derived from `mode`, so a scrubbing session can
    never be locked counter-clockwise.
    """
    active: bool = False
    last_angle: float = 0.0
    last_sample_time: int = 0
    mode: Mode = Mode.IDLE
    cw_speed_multiplier: float = 1.0
    scrub_exit_timer_start: Optional[int] = None
    cw_step_accumulator_deg: float = 0.0
    ccw_step_accumulator_deg: float = 0.0
    opposite_direction_accumulator_deg: float = 0.0

    @property
    def direction_lock(self) -> Direction:
        return self.mode.direction

    @property
    def is_in_scrub_mode(self) -> bool:
        return self.mode == Mode.CLOCKWISE_SEEK


@dataclass(frozen=True)
class PlaybackState:
    current_time: float = 0.0
    duration: Optional[float] = None
    rate: float = 1.0
    is_playing: bool = False


# --- TRANSPORT COMMANDS ---
@dataclass(frozen=True)
class SetRate:
    rate: float


@dataclass(frozen=True)
class SeekBy:
    delta_seconds: float
    direction: Direction


@dataclass(frozen=True)
class SeekAbsoluteClamp:
    target_seconds: float


TransportCommand = Union[SetRate, SeekBy, SeekAbsoluteClamp]
