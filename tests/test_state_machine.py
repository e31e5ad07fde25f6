import math
import unittest
from dataclasses import replace

from scratchdeck.config import build_config
from scratchdeck.control.handlers.seek_handler import StepSeeker
from scratchdeck.control.state_machine import ScratchStateMachine, apply_sample
from scratchdeck.core.types import (
    Direction,
    DragSession,
    GestureSample,
    Mode,
    SeekAbsoluteClamp,
    SeekBy,
    SetRate,
)


def wrap(angle):
    return math.atan2(math.sin(angle), math.cos(angle))


class Driver:
    """Feeds signed deltas (radians) at a fixed sample spacing."""
    def __init__(self, machine, session, start_ms=0, step_ms=20):
        self.machine = machine
        self.session = session
        self.angle = session.last_angle
        self.now = start_ms
        self.step_ms = step_ms
        self.commands = []

    def turn(self, delta, step_ms=None):
        self.angle = wrap(self.angle + delta)
        self.now += step_ms if step_ms is not None else self.step_ms
        self.session, cmds = self.machine.apply_sample(self.session, GestureSample(self.angle, self.now))
        self.commands.extend(cmds)
        return cmds

    def turn_deg(self, degrees):
        return self.turn(math.radians(degrees))


class TestSessionLifecycle(unittest.TestCase):
    def setUp(self):
        self.machine = ScratchStateMachine(build_config("classic"))

    def test_start_session_is_clean(self):
        session = self.machine.start_session(GestureSample(1.2, 500))
        self.assertTrue(session.active)
        self.assertEqual(session.last_angle, 1.2)
        self.assertEqual(session.last_sample_time, 500)
        self.assertEqual(session.direction_lock, Direction.NONE)
        self.assertEqual(session.cw_speed_multiplier, 1.0)
        self.assertEqual(session.ccw_step_accumulator_deg, 0.0)

    def test_reset_guarantee_after_drag_end(self):
        """Whatever the session held, release leaves 1x, no lock, empty accumulators."""
        busy = DragSession(active=True, last_angle=2.0, last_sample_time=900,
                           mode=Mode.CLOCKWISE_SEEK, cw_speed_multiplier=2.4,
                           scrub_exit_timer_start=880, cw_step_accumulator_deg=12.0,
                           ccw_step_accumulator_deg=7.0, opposite_direction_accumulator_deg=15.0)
        session, commands = self.machine.end_session(busy)

        self.assertEqual(commands, [SetRate(1.0)])
        self.assertFalse(session.active)
        self.assertEqual(session.direction_lock, Direction.NONE)
        self.assertEqual(session.cw_speed_multiplier, 1.0)
        self.assertEqual(session.cw_step_accumulator_deg, 0.0)
        self.assertEqual(session.ccw_step_accumulator_deg, 0.0)
        self.assertEqual(session.opposite_direction_accumulator_deg, 0.0)
        self.assertIsNone(session.scrub_exit_timer_start)

    def test_explicit_reset_rewinds(self):
        session, commands = self.machine.reset_session(DragSession(active=True))
        self.assertEqual(commands, [SetRate(1.0), SeekAbsoluteClamp(0.0)])
        self.assertEqual(session, DragSession())

    def test_inactive_session_ignores_samples(self):
        session, commands = self.machine.apply_sample(DragSession(), GestureSample(1.0, 10))
        self.assertEqual(session, DragSession())
        self.assertEqual(commands, [])


class TestDeadzone(unittest.TestCase):
    def test_jitter_only_advances_bookkeeping(self):
        machine = ScratchStateMachine(build_config("classic"))
        session = DragSession(active=True, last_angle=0.5, last_sample_time=100,
                              mode=Mode.CLOCKWISE_SPEED, cw_speed_multiplier=1.6,
                              opposite_direction_accumulator_deg=4.0)

        for delta in (0.02, -0.03, 0.049):
            angle = session.last_angle + delta
            nxt, commands = machine.apply_sample(session, GestureSample(angle, session.last_sample_time + 16))
            self.assertEqual(commands, [])
            self.assertEqual(nxt, replace(session, last_angle=angle,
                                          last_sample_time=session.last_sample_time + 16))
            session = nxt

    def test_zero_motion_is_ignored_without_deadzone(self):
        machine = ScratchStateMachine(build_config("classic", ANGLE_DEADZONE_RAD=0.0))
        session = machine.start_session(GestureSample(0.5, 100))

        nxt, commands = machine.apply_sample(session, GestureSample(0.5, 116))
        self.assertEqual(commands, [])
        self.assertEqual(nxt.mode, Mode.IDLE)
        self.assertEqual(nxt, replace(session, last_sample_time=116))


class TestClockwiseSpeed(unittest.TestCase):
    def setUp(self):
        self.config = build_config("classic")
        self.machine = ScratchStateMachine(self.config)
        self.drive = Driver(self.machine, self.machine.start_session(GestureSample(0.0, 0)))

    def test_first_cw_delta_speeds_up(self):
        cmds = self.drive.turn(0.5)
        self.assertEqual(self.drive.session.mode, Mode.CLOCKWISE_SPEED)
        self.assertEqual(self.drive.session.direction_lock, Direction.CLOCKWISE)
        self.assertEqual(len(cmds), 1)
        self.assertAlmostEqual(cmds[0].rate, 1.0 + 0.5 * self.config["CW_RATE_PER_RAD"])

    def test_rate_monotonic_and_clamped(self):
        rates = []
        for _ in range(60):
            cmds = self.drive.turn(0.3)
            rates.append(cmds[-1].rate)

        for before, after in zip(rates, rates[1:]):
            self.assertLessEqual(before, after)
        self.assertLessEqual(max(rates), self.config["MAX_PLAYBACK_RATE"])
        self.assertEqual(rates[-1], self.config["MAX_PLAYBACK_RATE"])

    def test_fast_spin_is_still_speed_when_scrub_disabled(self):
        self.drive.turn(1.0, step_ms=5)  # 200 rad/s
        self.assertEqual(self.drive.session.mode, Mode.CLOCKWISE_SPEED)


class TestDirectionSwitch(unittest.TestCase):
    def setUp(self):
        self.machine = ScratchStateMachine(build_config("classic", SWITCH_THRESHOLD_DEG=20.0))
        locked = DragSession(active=True, last_angle=0.0, last_sample_time=0,
                             mode=Mode.CLOCKWISE_SPEED, cw_speed_multiplier=2.0)
        self.drive = Driver(self.machine, locked)

    def test_below_threshold_keeps_clockwise_speed(self):
        self.drive.turn_deg(-10)
        self.drive.turn_deg(-9)

        self.assertEqual(self.drive.commands, [])
        self.assertEqual(self.drive.session.direction_lock, Direction.CLOCKWISE)
        self.assertEqual(self.drive.session.cw_speed_multiplier, 2.0)
        self.assertAlmostEqual(self.drive.session.opposite_direction_accumulator_deg, 19.0)

    def test_crossing_threshold_switches_and_resets_rate(self):
        self.drive.turn_deg(-7)
        self.drive.turn_deg(-7)
        self.assertEqual(self.drive.session.direction_lock, Direction.CLOCKWISE)

        cmds = self.drive.turn_deg(-7)
        self.assertEqual(self.drive.session.direction_lock, Direction.COUNTER_CLOCKWISE)
        self.assertEqual(self.drive.session.cw_speed_multiplier, 1.0)
        self.assertEqual(cmds, [SetRate(1.0)])
        # Only the crossing delta feeds the backward seeker
        self.assertAlmostEqual(self.drive.session.ccw_step_accumulator_deg, 7.0)

    def test_clockwise_motion_clears_pending_switch(self):
        self.drive.turn_deg(-15)
        self.drive.turn_deg(5)
        self.assertEqual(self.drive.session.opposite_direction_accumulator_deg, 0.0)
        self.drive.turn_deg(-15)
        self.assertEqual(self.drive.session.direction_lock, Direction.CLOCKWISE)

    def test_ccw_to_cw_is_immediate(self):
        for _ in range(3):
            self.drive.turn_deg(-10)
        self.assertEqual(self.drive.session.mode, Mode.COUNTER_CLOCKWISE_SEEK)

        self.drive.turn_deg(5)
        self.assertEqual(self.drive.session.mode, Mode.CLOCKWISE_SPEED)
        self.assertEqual(self.drive.session.ccw_step_accumulator_deg, 0.0)
        self.assertGreater(self.drive.session.cw_speed_multiplier, 1.0)


class TestBackwardSeek(unittest.TestCase):
    def test_step_quantization_carries_remainder(self):
        """37 deg at 15 deg/step and 5 s/step: two steps, 10 s back, 7 deg left."""
        config = build_config("classic", BACKWARD_STEP_DEG=15.0, BACKWARD_STEP_SECONDS=5.0)
        session = ScratchStateMachine.start_session(GestureSample(0.0, 0))

        commands = []
        angle = 0.0
        for i, degrees in enumerate((12, 12, 13)):
            angle -= math.radians(degrees)
            session, cmds = apply_sample(session, GestureSample(angle, 20 * (i + 1)), config)
            commands.extend(cmds)

        seeks = [c for c in commands if isinstance(c, SeekBy)]
        self.assertEqual(len(seeks), 2)
        self.assertAlmostEqual(sum(s.delta_seconds for s in seeks), -10.0)
        self.assertTrue(all(s.direction == Direction.COUNTER_CLOCKWISE for s in seeks))
        self.assertAlmostEqual(session.ccw_step_accumulator_deg, 7.0)
        # Playback held at 1x on every accepted sample
        self.assertEqual([c for c in commands if isinstance(c, SetRate)], [SetRate(1.0)] * 3)

    def test_quantize(self):
        self.assertEqual(StepSeeker.quantize(10.0, 15.0), (0, 10.0))
        steps, remainder = StepSeeker.quantize(37.0, 15.0)
        self.assertEqual(steps, 2)
        self.assertAlmostEqual(remainder, 7.0)
        steps, remainder = StepSeeker.quantize(45.0, 15.0)
        self.assertEqual(steps, 3)
        self.assertGreaterEqual(remainder, 0.0)

    def test_large_single_delta_emits_multiple_steps(self):
        machine = ScratchStateMachine(build_config("classic"))
        drive = Driver(machine, machine.start_session(GestureSample(0.0, 0)))
        cmds = drive.turn_deg(-50)
        self.assertIn(SeekBy(-15.0, Direction.COUNTER_CLOCKWISE), cmds)
        self.assertAlmostEqual(drive.session.ccw_step_accumulator_deg, 5.0)


class TestScrubHysteresis(unittest.TestCase):
    def setUp(self):
        config = build_config("scrub", SCRUB_ENTER_VELOCITY=22.0, SCRUB_EXIT_VELOCITY=10.0,
                              SCRUB_EXIT_HOLD_MS=300)
        self.machine = ScratchStateMachine(config)
        self.drive = Driver(self.machine, self.machine.start_session(GestureSample(0.0, 0)),
                            step_ms=20)
        # 25 rad/s: 0.5 rad per 20 ms sample
        self.drive.turn(0.5)
        self.assertEqual(self.drive.session.mode, Mode.CLOCKWISE_SEEK)

    def _hold(self, rad_per_s, duration_ms):
        """Feeds samples at a constant speed covering `duration_ms` after the first one."""
        for _ in range(duration_ms // 20 + 1):
            self.drive.turn(rad_per_s * 0.020)

    def test_enter_forces_unit_rate(self):
        self.assertEqual(self.drive.commands[0], SetRate(1.0))
        self.assertTrue(self.drive.session.is_in_scrub_mode)
        self.assertEqual(self.drive.session.direction_lock, Direction.CLOCKWISE)

    def test_scrub_keeps_speed_multiplier_for_exit(self):
        spinning = DragSession(active=True, last_angle=0.0, last_sample_time=0,
                               mode=Mode.CLOCKWISE_SPEED, cw_speed_multiplier=2.0)
        drive = Driver(self.machine, spinning)

        cmds = drive.turn(0.5)
        self.assertEqual(drive.session.mode, Mode.CLOCKWISE_SEEK)
        self.assertEqual(drive.session.cw_speed_multiplier, 2.0)
        self.assertEqual(cmds[0], SetRate(1.0))

        # 8 rad/s for the full 300 ms hold
        for _ in range(16):
            drive.turn(0.16)
        self.assertEqual(drive.session.mode, Mode.CLOCKWISE_SPEED)
        rates = [c.rate for c in drive.commands if isinstance(c, SetRate)]
        self.assertAlmostEqual(rates[-1], 2.0 + 0.16 * 0.15)
        self.assertAlmostEqual(drive.session.cw_speed_multiplier, rates[-1])

    def test_brief_dip_does_not_exit(self):
        self._hold(8.0, 200)
        self.assertEqual(self.drive.session.mode, Mode.CLOCKWISE_SEEK)
        self.assertIsNotNone(self.drive.session.scrub_exit_timer_start)

        self.drive.turn(15.0 * 0.020)
        self.assertEqual(self.drive.session.mode, Mode.CLOCKWISE_SEEK)
        self.assertIsNone(self.drive.session.scrub_exit_timer_start)

    def test_sustained_slow_exits(self):
        self._hold(8.0, 280)
        self.assertEqual(self.drive.session.mode, Mode.CLOCKWISE_SEEK)
        self.drive.turn(8.0 * 0.020)
        self.assertEqual(self.drive.session.mode, Mode.CLOCKWISE_SPEED)
        self.assertIsNone(self.drive.session.scrub_exit_timer_start)

    def test_between_thresholds_stays_in_scrub(self):
        self._hold(15.0, 1000)
        self.assertEqual(self.drive.session.mode, Mode.CLOCKWISE_SEEK)

    def test_scrub_seeks_forward_in_coarse_steps(self):
        self.drive.turn(0.5)
        seeks = [c for c in self.drive.commands if isinstance(c, SeekBy)]
        self.assertEqual(seeks, [SeekBy(10.0, Direction.CLOCKWISE)])
        self.assertNotIn(SetRate(1.0 + 0.5 * 0.15), self.drive.commands)

    def test_ccw_wobble_does_not_break_scrub(self):
        self.drive.turn_deg(-10)
        self.assertEqual(self.drive.session.mode, Mode.CLOCKWISE_SEEK)
        self.drive.turn_deg(-15)
        self.assertEqual(self.drive.session.mode, Mode.COUNTER_CLOCKWISE_SEEK)
        self.assertFalse(self.drive.session.is_in_scrub_mode)


class TestIdleNormalizer(unittest.TestCase):
    def test_noop_when_already_normalized(self):
        for _ in range(5):
            self.assertEqual(ScratchStateMachine.normalize_idle(DragSession(), 1.0), [])

    def test_forces_unit_rate_when_idle(self):
        self.assertEqual(ScratchStateMachine.normalize_idle(DragSession(), 2.5), [SetRate(1.0)])

    def test_silent_during_active_drag(self):
        active = DragSession(active=True, mode=Mode.CLOCKWISE_SPEED, cw_speed_multiplier=2.0)
        self.assertEqual(ScratchStateMachine.normalize_idle(active, 2.0), [])


if __name__ == '__main__':
    unittest.main()
