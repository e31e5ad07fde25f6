"""
ScratchDeck - Main Entry Point.
==============================

Bootloader for the turntable controller. It wires:
1. An Input Source (mouse drags on a window, or pinch-drags from a webcam).
2. The Controller (gesture state machine + command dispatcher).
3. The Audio Transport (sounddevice backend or the mock).

Usage:
    $ scratchdeck path/to/track.wav --profile scrub
    $ scratchdeck path/to/track.wav --input hand

Keys: SPACE play/pause, R reset, ESC quit.
"""
import argparse
import logging
import threading
import time
from typing import Optional, Tuple

import cv2
import numpy as np

from scratchdeck.config import PROFILES, build_config
from scratchdeck.control.audio_transport import Transport
from scratchdeck.control.controller import FixedPivot, ScratchController
from scratchdeck.control.input_sources import FramePivot, PinchDragSource
from scratchdeck.core.types import TransportError

logger = logging.getLogger("scratchdeck")

WINDOW_NAME = "ScratchDeck"
KEY_ESC = 27
FRAME_WAIT_MS = 10


class ThreadedCamera:
    """
    Camera reader on a daemon thread so the event loop always gets the
    freshest frame instead of a backed-up buffer.
    """
    def __init__(self, src: int = 0):
        self.cap = cv2.VideoCapture(src)
        self.ret, self.frame = self.cap.read()
        self.running = True
        self.lock = threading.Lock()

        threading.Thread(target=self._reader, daemon=True).start()

    def _reader(self):
        while self.running:
            ret, frame = self.cap.read()
            if not ret:
                self.running = False
                break
            with self.lock:
                self.ret, self.frame = ret, frame

    def read(self) -> Tuple[bool, Optional[np.ndarray]]:
        with self.lock:
            return self.ret, self.frame.copy() if self.frame is not None else None

    def release(self):
        self.running = False
        self.cap.release()


class MouseDragSource:
    """Left button drag on the window drives the platter."""
    def __init__(self, controller: ScratchController):
        self.controller = controller
        self.dragging = False

    def attach(self, window_name: str):
        cv2.setMouseCallback(window_name, self._on_mouse)

    def _on_mouse(self, event, x, y, flags, param):
        if event == cv2.EVENT_LBUTTONDOWN:
            self.dragging = True
            self.controller.on_drag_start(x, y)
        elif event == cv2.EVENT_MOUSEMOVE and self.dragging:
            self.controller.on_drag_move(x, y)
        elif event == cv2.EVENT_LBUTTONUP and self.dragging:
            self.dragging = False
            self.controller.on_drag_end()


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="scratchdeck",
                                     description="Scratch an audio file like a record.")
    parser.add_argument("file", nargs="?", help="Audio file to load (wav/flac/ogg)")
    parser.add_argument("--profile", choices=sorted(PROFILES), default="classic",
                        help="classic: CW always speeds up; scrub: fast spins seek forward")
    parser.add_argument("--input", choices=("mouse", "hand"), default="mouse")
    parser.add_argument("--backend", choices=("sounddevice", "mock"), default="sounddevice")
    parser.add_argument("--log-level", default="INFO")
    return parser.parse_args(argv)


def handle_key(key: int, controller: ScratchController) -> bool:
    """Returns False when the loop should stop."""
    if key == KEY_ESC:
        return False
    if key == ord(" "):
        controller.toggle_play()
    elif key in (ord("r"), ord("R")):
        controller.reset()
    return True


def wait_for_frame(controller: ScratchController) -> bool:
    """Idles between missing camera frames while still serving keys."""
    time.sleep(FRAME_WAIT_MS / 1000.0)
    return handle_key(cv2.waitKey(1) & 0xFF, controller)


def run_mouse_loop(controller: ScratchController, config):
    size = config["WINDOW_SIZE"]
    canvas = np.zeros((size, size, 3), dtype=np.uint8)
    cv2.namedWindow(WINDOW_NAME)
    MouseDragSource(controller).attach(WINDOW_NAME)

    delay_ms = max(1, int(1000 / config["TICK_HZ"]))
    last_label = None
    while True:
        controller.tick()
        last_label = _report(controller, last_label)
        cv2.imshow(WINDOW_NAME, canvas)
        if not handle_key(cv2.waitKey(delay_ms) & 0xFF, controller):
            break


def run_hand_loop(controller: ScratchController, pivot: FramePivot, config):
    import mediapipe as mp

    cam = ThreadedCamera(config["CAMERA_INDEX"])
    hands = mp.solutions.hands.Hands(
        max_num_hands=1,
        min_detection_confidence=0.5,
        min_tracking_confidence=0.5,
        model_complexity=0,
    )
    source = PinchDragSource(controller, config)
    last_label = None

    # Warmup time for auto-exposure cameras
    time.sleep(1.0)
    try:
        while True:
            controller.tick()
            ret, frame = cam.read()
            if not ret or frame is None:
                if not cam.running:
                    logger.error("Camera %s stopped delivering frames", config["CAMERA_INDEX"])
                    break
                if not wait_for_frame(controller):
                    break
                continue

            # Mirror for intuitive interaction; MediaPipe wants RGB
            frame = cv2.flip(frame, 1)
            h, w, _ = frame.shape
            pivot.resize(w, h)
            results = hands.process(cv2.cvtColor(frame, cv2.COLOR_BGR2RGB))

            lms = results.multi_hand_landmarks[0] if results.multi_hand_landmarks else None
            source.process(lms, w, h)

            last_label = _report(controller, last_label)
            cv2.imshow(WINDOW_NAME, frame)
            if not handle_key(cv2.waitKey(1) & 0xFF, controller):
                break
    finally:
        cam.release()
        hands.close()


def _report(controller: ScratchController, last_label):
    status = controller.status()
    if status.mode_label != last_label:
        logger.info("%s | %.1fx | %s", status.mode_label, status.rate, status.time_text)
    return status.mode_label


def main(argv=None):
    args = parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level.upper(), logging.INFO),
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    config = build_config(args.profile)

    print("SCRATCHDECK: ONLINE")
    print("   -> SPACE play/pause | R reset | ESC exit")

    try:
        transport = Transport(args.backend, config)
    except TransportError as exc:
        print(f"Audio backend failed: {exc}")
        return 1

    if args.input == "hand":
        pivot = FramePivot()
    else:
        size = config["WINDOW_SIZE"]
        pivot = FixedPivot(size / 2, size / 2)
    controller = ScratchController(transport, pivot, config)

    try:
        if args.file:
            controller.load(args.file)
            controller.play()

        if args.input == "hand":
            run_hand_loop(controller, pivot, config)
        else:
            run_mouse_loop(controller, config)
    except TransportError as exc:
        print(f"Could not load track: {exc}")
        return 1
    except ImportError as exc:
        print(f"Hand input needs the 'hand' extra: {exc}")
        return 1
    finally:
        transport.close()
        cv2.destroyAllWindows()
        print("SCRATCHDECK: OFFLINE")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
