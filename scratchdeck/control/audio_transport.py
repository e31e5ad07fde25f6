"""
ScratchDeck Audio Transport (The Deck).
======================================

Concrete audio engines behind `ITransportSink`.

Features:
- **Variable Speed:** The sounddevice backend walks a fractional read head
  `rate` frames per output frame. No reverse playback, no pitch correction.
- **Thread Safe:** The audio callback runs on the driver thread; all
  playback state is guarded by one lock.
- **Headless Fallback:** `MockTransport` keeps everything in memory for unit
  tests and machines without an audio device.
"""

import logging
import threading
from typing import Any, Dict, List, Optional, Tuple

import numpy as np

from scratchdeck.config import CONFIG
from scratchdeck.core.interfaces import ITransportSink
from scratchdeck.core.types import TransportError

logger = logging.getLogger(__name__)


# =============================================================================
# SOUNDDEVICE BACKEND (Production)
# =============================================================================
class SoundDeviceTransport(ITransportSink):
    """
    Decodes a whole file with `soundfile` and streams it through a
    `sounddevice.OutputStream` callback.
    """
    def __init__(self, config: Optional[Dict[str, Any]] = None):
        try:
            import sounddevice
            import soundfile
        except (ImportError, OSError) as exc:
            # sounddevice raises OSError when the PortAudio library is missing
            logger.error("Audio backend unavailable: %s", exc)
            raise TransportError("sounddevice/soundfile are not usable on this machine") from exc
        self._sd = sounddevice
        self._sf = soundfile

        self.config = config or CONFIG
        self.lock = threading.Lock()

        self._data: Optional[np.ndarray] = None   # (frames, channels) float32
        self._sample_rate = 0
        self._position = 0.0                      # Fractional frame index
        self._rate = 1.0
        self._playing = False
        self._stream = None

    # --- QUERIES ---
    @property
    def has_media(self) -> bool:
        with self.lock:
            return self._data is not None

    @property
    def is_playing(self) -> bool:
        with self.lock:
            return self._playing

    def get_current_time(self) -> float:
        with self.lock:
            if not self._sample_rate:
                return 0.0
            return self._position / self._sample_rate

    def get_duration(self) -> Optional[float]:
        with self.lock:
            if self._data is None or not self._sample_rate:
                return None
            return len(self._data) / self._sample_rate

    def get_playback_rate(self) -> float:
        with self.lock:
            return self._rate

    # --- COMMANDS ---
    def set_playback_rate(self, rate: float) -> None:
        with self.lock:
            self._rate = float(rate)

    def seek_to(self, seconds: float) -> None:
        with self.lock:
            if self._data is None:
                return
            frame = seconds * self._sample_rate
            self._position = float(min(max(frame, 0.0), len(self._data)))

    # --- MEDIA LIFECYCLE ---
    def load(self, path: str) -> None:
        try:
            data, sample_rate = self._sf.read(path, dtype="float32", always_2d=True)
        except (RuntimeError, OSError) as exc:
            # LibsndfileError subclasses RuntimeError
            logger.error("Could not decode %s: %s", path, exc)
            raise TransportError(f"Could not decode {path}") from exc

        # A failed open must leave the deck empty
        self._close_stream()
        with self.lock:
            self._data = None
            self._sample_rate = 0
            self._position = 0.0
            self._rate = 1.0
            self._playing = False

        self._stream = self._open_stream(int(sample_rate), data.shape[1])
        with self.lock:
            self._data = data
            self._sample_rate = int(sample_rate)
        logger.info("Loaded %s | %.1fs @ %dHz x%d", path, len(data) / self._sample_rate,
                    self._sample_rate, data.shape[1])

    def play(self) -> None:
        with self.lock:
            if self._data is not None:
                self._playing = True

    def pause(self) -> None:
        with self.lock:
            self._playing = False

    def close(self) -> None:
        self._close_stream()

    def _open_stream(self, sample_rate: int, channels: int):
        try:
            stream = self._sd.OutputStream(
                samplerate=sample_rate,
                channels=channels,
                dtype="float32",
                blocksize=self.config["AUDIO_BLOCK_SIZE"],
                callback=self._callback,
            )
        except self._sd.PortAudioError as exc:
            logger.error("Could not open audio output: %s", exc)
            raise TransportError("No usable audio output device") from exc

        try:
            stream.start()
        except self._sd.PortAudioError as exc:
            stream.close()
            logger.error("Could not start audio output: %s", exc)
            raise TransportError("Audio output refused to start") from exc
        return stream

    def _close_stream(self):
        if self._stream is not None:
            self._stream.stop()
            self._stream.close()
            self._stream = None

    # --- AUDIO THREAD ---
    def _callback(self, outdata, frames, time_info, status):
        if status:
            logger.debug("Stream status: %s", status)
        outdata.fill(0)

        with self.lock:
            if not self._playing or self._data is None:
                return

            total = len(self._data)
            # Read head positions for this block (monotonic, so valid ones form a prefix)
            heads = self._position + np.arange(frames) * self._rate
            picks = heads[heads < total].astype(np.int64)
            outdata[:len(picks)] = self._data[picks]

            self._position += frames * self._rate
            if self._position >= total:
                self._position = float(total)
                self._playing = False


# =============================================================================
# MOCK BACKEND (Testing / Headless)
# =============================================================================
class MockTransport(ITransportSink):
    """
    In-memory transport. Records every call in `calls` instead of producing
    sound. `load()` accepts any path; pass `duration` to pretend the media
    length is known.
    """
    def __init__(self, duration: Optional[float] = 180.0):
        self.default_duration = duration
        self.calls: List[Tuple[str, Any]] = []
        self.loaded_path: Optional[str] = None
        self.current_time = 0.0
        self.duration: Optional[float] = None
        self.rate = 1.0
        self.playing = False

    @property
    def has_media(self) -> bool: return self.loaded_path is not None
    @property
    def is_playing(self) -> bool: return self.playing

    def get_current_time(self) -> float: return self.current_time
    def get_duration(self) -> Optional[float]: return self.duration
    def get_playback_rate(self) -> float: return self.rate

    def set_playback_rate(self, rate):
        self.calls.append(("set_playback_rate", rate))
        self.rate = rate

    def seek_to(self, seconds):
        self.calls.append(("seek_to", seconds))
        self.current_time = seconds

    def load(self, path):
        self.calls.append(("load", path))
        self.loaded_path = path
        self.duration = self.default_duration
        self.current_time = 0.0
        self.rate = 1.0
        self.playing = False

    def play(self):
        self.calls.append(("play", None))
        if self.has_media: self.playing = True

    def pause(self):
        self.calls.append(("pause", None))
        self.playing = False

    def close(self): pass


def Transport(backend: str = "sounddevice", config: Optional[Dict[str, Any]] = None) -> ITransportSink:
    """Factory method to return the requested audio backend."""
    if backend == "sounddevice":
        return SoundDeviceTransport(config)
    if backend == "mock":
        logger.warning("Using MOCK transport: no audio will be produced.")
        return MockTransport()
    raise ValueError(f"Unknown transport backend '{backend}'")
