"""
ScratchDeck Configuration Management.
====================================

This module defines the tuning space for the turntable gesture engine.
The parameters are organized into the same "Layer Cake" model as the
rest of the system: raw input signal at the bottom, application wiring
at the top.

! WARNING !
Changing the Speed / Scrub layers affects the "feel" of the platter
immediately. Step sizes are in degrees of platter rotation.
"""

import copy
from typing import Any, Dict, Optional

from scratchdeck.core.types import ConfigError

# --- MASTER CONFIGURATION ---
CONFIG = {
    # =========================================================
    # LAYER 1: INPUT SIGNAL (Delta Tracker)
    # =========================================================
    "ANGLE_DEADZONE_RAD": 0.05,     # ~2.9 deg; smaller deltas are jitter
    "MIN_DT_MS": 1.0,               # Floor for sample spacing (duplicate / backwards clock)
    "POINTER_JITTER_PX": 2.0,       # Stabilizer: fingertip moves below this are frozen
    "POINTER_ALPHA": 0.6,           # Stabilizer: EMA weight of the newest point

    # =========================================================
    # LAYER 2: SPEED PHYSICS (Clockwise = Faster)
    # =========================================================
    "MAX_PLAYBACK_RATE": 3.0,       # Clamp for CW speed up
    "CW_RATE_PER_RAD": 0.15,        # Rate gained per radian (~2 rotations to max)

    # =========================================================
    # LAYER 3: SCRUB HYSTERESIS (Schmitt Trigger)
    # =========================================================
    "SCRUB_ENABLED": False,         # Fast spins seek forward instead of speeding up
    "SCRUB_ENTER_VELOCITY": 22.0,   # rad/s to enter fast-scrub
    "SCRUB_EXIT_VELOCITY": 10.0,    # rad/s to start the exit hold
    "SCRUB_EXIT_HOLD_MS": 300,      # Must stay slow this long to leave scrub

    # =========================================================
    # LAYER 4: STEP SEEKING
    # =========================================================
    "FORWARD_STEP_DEG": 30.0,       # Degrees per forward scrub step (coarse)
    "FORWARD_STEP_SECONDS": 10.0,   # Seconds jumped forward per step
    "BACKWARD_STEP_DEG": 15.0,      # Degrees per backward seek step (precise)
    "BACKWARD_STEP_SECONDS": 5.0,   # Seconds jumped back per step

    # =========================================================
    # LAYER 5: DIRECTION SWITCHING
    # =========================================================
    "SWITCH_THRESHOLD_DEG": 20.0,   # CCW travel required before leaving CW speed

    # =========================================================
    # APPLICATION
    # =========================================================
    "TICK_HZ": 60,                  # Idle normalizer / event loop rate
    "CAMERA_INDEX": 0,              # OpenCV device ID (hand input)
    "WINDOW_SIZE": 480,             # Square control window (mouse input)
    "PINCH_START": 0.034,           # Hand input: distance to grab the platter
    "PINCH_STOP": 0.050,            # Hand input: distance to release (Hysteresis)
    "AUDIO_BLOCK_SIZE": 1024,       # Frames per sounddevice callback
}

# --- PROFILES ---
# "classic" keeps every clockwise spin as a speed-up.
# "scrub" adds the fast-scrub sub-mode on top.
PROFILES: Dict[str, Dict[str, Any]] = {
    "classic": {"SCRUB_ENABLED": False},
    "scrub": {"SCRUB_ENABLED": True},
}


def validate_config(config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Rejects settings the state machine cannot run with.
    Returns the same dict so calls can be chained.
    """
    missing = [key for key in CONFIG if key not in config]
    if missing:
        raise ConfigError(f"Missing config keys: {', '.join(missing)}")

    for key in ("FORWARD_STEP_DEG", "BACKWARD_STEP_DEG", "SWITCH_THRESHOLD_DEG",
                "FORWARD_STEP_SECONDS", "BACKWARD_STEP_SECONDS", "MIN_DT_MS"):
        if config[key] <= 0:
            raise ConfigError(f"{key} must be positive (got {config[key]})")

    if config["ANGLE_DEADZONE_RAD"] < 0:
        raise ConfigError("ANGLE_DEADZONE_RAD cannot be negative")
    if config["MAX_PLAYBACK_RATE"] < 1.0:
        raise ConfigError("MAX_PLAYBACK_RATE must be at least 1.0")
    if config["CW_RATE_PER_RAD"] < 0:
        raise ConfigError("CW_RATE_PER_RAD cannot be negative")
    if config["SCRUB_EXIT_VELOCITY"] > config["SCRUB_ENTER_VELOCITY"]:
        raise ConfigError("SCRUB_EXIT_VELOCITY must not exceed SCRUB_ENTER_VELOCITY")
    if config["SCRUB_EXIT_HOLD_MS"] < 0:
        raise ConfigError("SCRUB_EXIT_HOLD_MS cannot be negative")
    return config


def build_config(profile: Optional[str] = None, **overrides: Any) -> Dict[str, Any]:
    """
    Returns a fresh, validated copy of CONFIG with a profile and
    per-key overrides applied. The master dict is never mutated.
    """
    config = copy.deepcopy(CONFIG)
    if profile is not None:
        if profile not in PROFILES:
            raise ConfigError(f"Unknown profile '{profile}' (choose from {', '.join(PROFILES)})")
        config.update(PROFILES[profile])

    unknown = [key for key in overrides if key not in CONFIG]
    if unknown:
        raise ConfigError(f"Unknown config keys: {', '.join(unknown)}")
    config.update(overrides)
    return validate_config(config)
